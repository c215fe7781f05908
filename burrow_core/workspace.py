"""
Burrow Core: Ephemeral Workspace

Scratch directories for a single pipeline operation.  Each path is
unique (unix time + process-wide counter), owned by exactly one
operation, and removed together with a restore of the caller's working
directory on every exit path, including KeyboardInterrupt.

Usage:
    with ephemeral_workspace(work_root) as ws:
        fetcher.fetch(url, ws)
        builder.build(ws, project)
    # ws is gone here, cwd is what it was before the block
"""

from __future__ import annotations

import itertools
import logging
import os
import shutil
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional, Union

logger = logging.getLogger("burrow.workspace")

DEFAULT_WORK_ROOT = ".burrow-work"

_counter = itertools.count()


def workspace_path(work_root: Optional[Union[str, Path]] = None) -> Path:
    """Allocate a fresh, absolute workspace path.  Nothing is created."""
    root = Path(work_root or DEFAULT_WORK_ROOT).expanduser()
    return (root / f"{int(time.time())}_{next(_counter)}").absolute()


def remove_workspace(path: Path) -> None:
    """Remove a workspace tree if it exists.  Failures are logged only."""
    if not path.exists():
        return
    try:
        shutil.rmtree(path)
        logger.debug("Removed workspace %s", path)
    except OSError as e:
        logger.error("Failed to remove workspace %s: %s", path, e)


@contextmanager
def ephemeral_workspace(
    work_root: Optional[Union[str, Path]] = None,
    create: bool = False,
) -> Generator[Path, None, None]:
    """Yield a workspace path and guarantee its teardown.

    Args:
        work_root: Parent directory for workspaces.
        create: Create the directory up front.  Otherwise the consumer
            (usually the fetcher) creates it when it needs it.
    """
    cwd = os.getcwd()
    path = workspace_path(work_root)
    if create:
        path.mkdir(parents=True, exist_ok=True)
    try:
        yield path
    finally:
        try:
            os.chdir(cwd)
        except OSError as e:
            logger.error("Failed to restore working directory %s: %s", cwd, e)
        remove_workspace(path)
