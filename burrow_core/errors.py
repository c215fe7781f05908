"""Error taxonomy for the resolve/fetch/build/test/install pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict


class Stage(str, Enum):
    """Pipeline stage an error is attributed to."""
    RESOLVE = "resolve"
    FETCH = "fetch"
    BUILD = "build"
    TEST = "test"
    INSTALL = "install"


class BurrowError(Exception):
    """A failure attributed to one project and one pipeline stage.

    Attributes:
        project: Name of the subject project (or the raw reference when
            resolution failed before a project existed).
        stage: The failing Stage.
        message: Human-readable description, without the prefix.
    """

    def __init__(self, project: str, stage: Stage, message: str):
        self.project = str(project)
        self.stage = Stage(stage)
        self.message = str(message)
        super().__init__(f"{self.project} failed at stage {self.stage.value}: {self.message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project,
            "stage": self.stage.value,
            "message": self.message,
        }


__all__ = ["BurrowError", "Stage"]
