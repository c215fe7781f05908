"""
Burrow Core: usage Reporter

Records the outcome of every pipeline invocation as one JSON line in a
per-interpreter-version report log (``reports.<python-version>`` beside
the ecosystem state).  The log answers "which projects installed
cleanly on which runtime" and is read back by read_reports().

Submission is fire-and-forget: a report that cannot be written is
logged and dropped, the pipeline result stands.
"""

from __future__ import annotations

import json
import logging
import platform
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Union

from burrow_core.errors import BurrowError
from burrow_core.project import Project

try:
    import fcntl
    _HAS_FCNTL = True
except ImportError:
    _HAS_FCNTL = False

logger = logging.getLogger("burrow.reporter")


@contextmanager
def _file_lock(f, exclusive: bool = True) -> Generator[None, None, None]:
    """Acquire an fcntl advisory lock on an open file descriptor.

    Args:
        f: An open file object.
        exclusive: True for LOCK_EX (write), False for LOCK_SH (read).
    """
    if _HAS_FCNTL:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
        try:
            yield
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    else:
        logger.debug("fcntl unavailable, report log locking skipped")
        yield


def reports_file_for(directory: Union[str, Path]) -> Path:
    """Report log path for the running interpreter version."""
    return Path(directory) / f"reports.{platform.python_version()}"


class Reporter:
    """One usage report for one pipeline invocation.

    Usage:
        Reporter(project, reports_file).submit()          # success
        Reporter(project, reports_file).submit(error)     # failure
    """

    def __init__(self, project: Project, reports_file: Union[str, Path]):
        self.project = project
        self.reports_file = Path(reports_file)

    def build_report(self, error: Optional[BaseException] = None) -> Dict[str, Any]:
        report: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "name": self.project.name,
            "version": self.project.version,
            "source-url": self.project.source_url,
            "status": "success" if error is None else "failure",
            "python": platform.python_version(),
            "platform": platform.platform(),
        }
        if isinstance(error, BurrowError):
            report["stage"] = error.stage.value
            report["message"] = error.message
        elif error is not None:
            report["stage"] = None
            report["message"] = f"{type(error).__name__}: {error}"
        return report

    def submit(self, error: Optional[BaseException] = None) -> bool:
        """Append the report.  Returns False when it could not be written."""
        report = self.build_report(error)
        try:
            self.reports_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.reports_file, "a", encoding="utf-8") as f:
                with _file_lock(f, exclusive=True):
                    f.write(json.dumps(report, default=str) + "\n")
                    f.flush()
        except OSError as e:
            logger.error("Failed to write report for %s: %s", self.project.name, e)
            return False

        logger.debug("Report submitted for %s (%s)", self.project.name, report["status"])
        return True


def read_reports(reports_file: Union[str, Path]) -> List[Dict[str, Any]]:
    """Read every report from a report log."""
    path = Path(reports_file)
    if not path.exists():
        return []

    reports = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            with _file_lock(f, exclusive=False):
                for line in f:
                    line = line.strip()
                    if line:
                        reports.append(json.loads(line))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to read report log %s: %s", path, e)

    return reports
