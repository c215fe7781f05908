"""
Burrow Core: Project entity

One installable unit: identity, declared dependencies, descriptor
metadata and the installation state the ecosystem store records for it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

DEPENDENCY_KEYS = ("depends", "test-depends", "build-depends")
READ_ONLY_FIELDS = ("name", "version", "dependencies", "metainfo")


class ProjectState(str, Enum):
    """Installation state of a project in the ecosystem."""
    ABSENT = "absent"
    INSTALLED = "installed"
    INSTALLED_DEP = "installed-dep"

    @property
    def is_installed(self) -> bool:
        return self is not ProjectState.ABSENT


def merged_dependencies(*lists: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    """Order-preserving, deduplicated union of dependency lists.

    ``None`` lists and ``None`` entries are skipped.
    """
    seen: Dict[str, None] = {}
    for deps in lists:
        if not deps:
            continue
        for name in deps:
            if name is None:
                continue
            seen.setdefault(str(name), None)
    return tuple(seen)


@dataclass
class Project:
    """A project known to the ecosystem.

    Attributes:
        name: Identifier, unique within the registry namespace.
        version: Informational version string.
        dependencies: Union of runtime, test and build dependencies.
        metainfo: The parsed descriptor.  Must carry ``source-url``
            before the project can be fetched.
        state: Installation state.  Only the Ecosystem store writes it.

    Everything except ``state`` is fixed once the project is built.
    """
    name: str
    version: str = ""
    dependencies: Tuple[str, ...] = ()
    metainfo: Dict[str, Any] = field(default_factory=dict)
    state: ProjectState = ProjectState.ABSENT

    def __post_init__(self):
        object.__setattr__(self, "dependencies", tuple(self.dependencies))

    def __setattr__(self, key: str, value: Any) -> None:
        if key in READ_ONLY_FIELDS and key in self.__dict__:
            raise AttributeError(f"Project.{key} is read-only")
        super().__setattr__(key, value)

    @classmethod
    def from_metainfo(cls, meta: Dict[str, Any]) -> Project:
        """Build a Project from a descriptor mapping."""
        version = meta.get("version")
        return cls(
            name=str(meta["name"]),
            version="" if version is None else str(version),
            dependencies=merged_dependencies(*(meta.get(k) for k in DEPENDENCY_KEYS)),
            metainfo=dict(meta),
        )

    @property
    def source_url(self) -> Optional[str]:
        url = self.metainfo.get("source-url")
        return str(url) if url else None

    @property
    def is_installed(self) -> bool:
        return self.state.is_installed

    def __str__(self) -> str:
        return self.name
