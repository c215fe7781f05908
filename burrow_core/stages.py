"""
Burrow Core: build, test and install stage runners

Each runner executes one pipeline stage against a fetched project
directory.  Builder and Tester report through a StageResult and never
raise for a failing command; the orchestrator turns a failed result
into a BurrowError.  Installer raises BurrowError itself.

Build and test steps come from the project's descriptor:

    "build-command": "make all"              # string, split with shlex
    "test-command": ["pytest", "-q", "t/"]   # or an argv list

A project without a command has nothing to build or test.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Union

from burrow_core.errors import BurrowError, Stage
from burrow_core.project import Project
from ecosystem.descriptor import dump_descriptor

logger = logging.getLogger("burrow.stages")

DEFAULT_COMMAND_TIMEOUT = 1800
OUTPUT_TAIL_CHARS = 2000


@dataclass
class StageResult:
    """Outcome of a fetch, build or test stage.

    Attributes:
        ok: Whether the stage succeeded.
        message: Failure reason (or a short note on success).
    """
    ok: bool = True
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, message: str = "") -> StageResult:
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str) -> StageResult:
        return cls(ok=False, message=message)


def command_argv(command: Any) -> Optional[List[str]]:
    """Normalise a descriptor command into an argv list (None if unset)."""
    if not command:
        return None
    if isinstance(command, str):
        return shlex.split(command)
    return [str(c) for c in command]


def run_command(
    argv: List[str],
    cwd: Union[str, Path],
    timeout: float = DEFAULT_COMMAND_TIMEOUT,
) -> StageResult:
    """Run ``argv`` inside ``cwd`` and fold the outcome into a StageResult."""
    logger.debug("Running %s in %s", argv, cwd)
    try:
        result = subprocess.run(
            argv, cwd=str(cwd),
            capture_output=True, text=True, timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return StageResult.failure(f"'{shlex.join(argv)}' timed out after {timeout}s")
    except (subprocess.SubprocessError, OSError) as e:
        return StageResult.failure(f"'{shlex.join(argv)}' could not be run: {e}")

    if result.returncode != 0:
        output = (result.stdout + result.stderr).strip()[-OUTPUT_TAIL_CHARS:]
        return StageResult.failure(
            f"'{shlex.join(argv)}' exited with status {result.returncode}"
            + (f"\n{output}" if output else "")
        )
    return StageResult.success(result.stdout.strip()[-OUTPUT_TAIL_CHARS:])


class Builder:
    """Runs a project's ``build-command``."""

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT):
        self.timeout = timeout

    def build(self, directory: Union[str, Path], project: Project) -> StageResult:
        argv = command_argv(project.metainfo.get("build-command"))
        if argv is None:
            logger.debug("%s declares no build-command", project.name)
            return StageResult.success("nothing to build")
        return run_command(argv, directory, self.timeout)


class Tester:
    """Runs a project's ``test-command``."""

    __test__ = False

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT):
        self.timeout = timeout

    def test(self, directory: Union[str, Path], project: Project) -> StageResult:
        argv = command_argv(project.metainfo.get("test-command"))
        if argv is None:
            logger.debug("%s declares no test-command", project.name)
            return StageResult.success("no tests declared")
        return run_command(argv, directory, self.timeout)


class Installer:
    """Copies a built project into ``<site_dir>/<name>``."""

    def __init__(self, site_dir: Union[str, Path]):
        self.site_dir = Path(site_dir).expanduser()

    def install(self, project: Project, directory: Union[str, Path]) -> Path:
        """Install the tree at ``directory``, replacing a previous copy.

        Raises:
            BurrowError: Stage ``install`` when copying fails.
        """
        dest = self.site_dir / project.name
        try:
            self.site_dir.mkdir(parents=True, exist_ok=True)
            if dest.exists():
                shutil.rmtree(dest)
            shutil.copytree(directory, dest, ignore=shutil.ignore_patterns(".git"))
            dump_descriptor(project.metainfo, dest / "META.json")
        except OSError as e:
            raise BurrowError(project.name, Stage.INSTALL, f"Cannot install into {dest}: {e}") from e

        logger.info("Installed %s into %s", project.name, dest)
        return dest
