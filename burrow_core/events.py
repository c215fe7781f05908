"""
Burrow Core: Announcer

User-facing progress messages ("==> Fetching foo").  Every message
kind is a member of the Event enum and is rendered by one exhaustive
match in Announcer._render, so a new kind cannot be added without a
rendering.

Announcements always go to the "burrow.announce" logger.  When a Rich
console is attached they are also printed to it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from rich.markup import escape

from burrow_core.project import Project

logger = logging.getLogger("burrow.announce")


class Event(str, Enum):
    FETCHING = "fetching"
    BUILDING = "building"
    TESTING = "testing"
    INSTALLING = "installing"
    SUCCESS = "success"
    DEPENDS = "depends"
    REBUILDING = "rebuilding"
    LOCAL_SOURCE = "local-source"
    ENTERING_SHELL = "entering-shell"
    NO_SHELL = "no-shell"
    MESSAGE = "message"


class Announcer:
    """Renders pipeline events.

    Args:
        console: Optional rich.console.Console to print to.

    ``history`` keeps every (event, text) pair announced so far.
    """

    def __init__(self, console: Optional[Any] = None):
        self.console = console
        self.history: List[Tuple[Event, str]] = []

    def announce(
        self,
        event: Event,
        project: Optional[Project] = None,
        detail: Any = None,
    ) -> str:
        event = Event(event)
        text = self._render(event, project, detail)
        self.history.append((event, text))

        if event is Event.NO_SHELL:
            logger.warning(text)
        else:
            logger.info(text)

        if self.console is not None:
            self.console.print(f"[bold cyan]==>[/] {escape(text)}", highlight=False)
        return text

    @staticmethod
    def _render(event: Event, project: Optional[Project], detail: Any) -> str:
        name = project.name if project is not None else ""

        if event is Event.FETCHING:
            return f"Fetching {name}"
        if event is Event.BUILDING:
            return f"Building {name}"
        if event is Event.TESTING:
            return f"Testing {name}"
        if event is Event.INSTALLING:
            return f"Installing {name}"
        if event is Event.SUCCESS:
            return f"Successfully installed {name}"
        if event is Event.DEPENDS:
            return f"{name} depends on {', '.join(_names(detail))}"
        if event is Event.REBUILDING:
            return "Rebuilding reverse dependencies: " + " ".join(_names(detail))
        if event is Event.LOCAL_SOURCE:
            return f"Installing {name} from a local directory '{detail}'"
        if event is Event.ENTERING_SHELL:
            directory, shell = detail
            return f"Entering {directory} with {shell}"
        if event is Event.NO_SHELL:
            return "You don't seem to have a SHELL"
        if event is Event.MESSAGE:
            return str(detail)
        raise ValueError(f"Unhandled event: {event!r}")


def _names(items: Optional[Sequence[Any]]) -> List[str]:
    return [getattr(i, "name", str(i)) for i in (items or ())]
