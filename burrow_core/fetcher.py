"""
Burrow Core: Fetcher

Retrieves project sources into a destination directory, either by
cloning a git repository or by copying a local directory tree.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Union

from burrow_core.stages import StageResult

logger = logging.getLogger("burrow.fetcher")

DEFAULT_GIT_TIMEOUT = 300

_REMOTE_RE = re.compile(
    r"^(git://|git\+(https?|ssh|file)://|https?://\S+\.git/?$)"
)


def is_remote_source(source: str) -> bool:
    """Whether ``source`` names a git repository Burrow can clone."""
    return bool(_REMOTE_RE.match(source))


def clone_url(source: str) -> str:
    """Strip the ``git+`` transport prefix git itself doesn't understand."""
    return source[4:] if source.startswith("git+") else source


class Fetcher:
    """Fetch sources from a git URL or a local path.

    Usage:
        result = Fetcher().fetch("git://example.org/foo.git", dest)
        if not result:
            print(result.message)
    """

    def __init__(self, git_timeout: float = DEFAULT_GIT_TIMEOUT):
        self.git_timeout = git_timeout

    def fetch(self, source: str, dest_dir: Union[str, Path]) -> StageResult:
        dest = Path(dest_dir)
        if is_remote_source(source):
            return self._git_clone(clone_url(source), dest)

        path = Path(source[len("file://"):] if source.startswith("file://") else source)
        return self._copy_tree(path.expanduser(), dest)

    # -------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------

    def _git_clone(self, url: str, dest: Path) -> StageResult:
        dest.parent.mkdir(parents=True, exist_ok=True)
        if dest.exists() and any(dest.iterdir()):
            return StageResult.failure(f"Destination {dest} is not empty")

        logger.debug("Cloning %s into %s", url, dest)
        try:
            result = subprocess.run(
                ["git", "clone", "--quiet", url, str(dest)],
                capture_output=True, text=True, timeout=self.git_timeout,
            )
        except subprocess.TimeoutExpired:
            return StageResult.failure(f"git clone of {url} timed out")
        except (subprocess.SubprocessError, FileNotFoundError) as e:
            return StageResult.failure(f"git clone of {url} failed: {e}")

        if result.returncode != 0:
            return StageResult.failure(result.stderr.strip() or f"git clone of {url} failed")
        return StageResult.success(url)

    def _copy_tree(self, src: Path, dest: Path) -> StageResult:
        if not src.is_dir():
            return StageResult.failure(f"Source directory {src} does not exist")

        src = src.resolve()
        dest_abs = dest.resolve()

        def _ignore(directory: str, names):
            skipped = {".git"}
            # A workspace root nested inside the source must not be copied into itself
            for n in names:
                if dest_abs.is_relative_to(Path(directory, n).resolve()):
                    skipped.add(n)
            return skipped

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(src, dest, ignore=_ignore, dirs_exist_ok=True)
        except OSError as e:
            return StageResult.failure(f"Copying {src} failed: {e}")

        logger.debug("Copied %s into %s", src, dest)
        return StageResult.success(str(src))
