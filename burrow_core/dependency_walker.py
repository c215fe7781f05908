"""
Burrow Core: Dependency Graph Walker

Finds every project a root project needs that is not installed yet,
in an order that can be installed front to back.

Dependencies are walked depth first and each project is emitted after
all of its own absent dependencies (post-order), with one visited set
shared across branches.  The result is therefore a topological order of
the absent part of the graph: a project reachable through several
branches appears once, before the first project that needs it.

Names in the excluded set (dists shipped with the runtime itself) are
never looked up.  Already installed projects are not descended into.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set

from burrow_core.errors import BurrowError, Stage
from burrow_core.events import Announcer, Event
from burrow_core.project import Project, ProjectState
from ecosystem.manager import Ecosystem

logger = logging.getLogger("burrow.dependency_walker")

EXCLUDED_DEPENDENCIES = frozenset({"Test", "NativeCall", "nqp", "lib", "MONKEY-TYPING"})


class DependencyWalker:
    """Discovers the absent transitive dependencies of a project.

    Args:
        ecosystem: Store used to look up dependency names and states.
        announcer: Receives a DEPENDS event per project with absent deps.
        excluded: Extra pseudo-dependency names, added to the built-in set.
    """

    def __init__(
        self,
        ecosystem: Ecosystem,
        announcer: Optional[Announcer] = None,
        excluded: Optional[Iterable[str]] = None,
    ):
        self.ecosystem = ecosystem
        self.announcer = announcer or Announcer()
        self.excluded = EXCLUDED_DEPENDENCIES | frozenset(excluded or ())

    def discover(self, root: Project) -> List[Project]:
        """Absent transitive dependencies of ``root``, dependencies first.

        Raises:
            BurrowError: Stage ``resolve`` if a dependency is unknown to
                the ecosystem or absent projects depend on each other in
                a cycle.
        """
        order: List[Project] = []
        done: Set[str] = set()
        self._visit(root, order, done, [root.name])
        logger.debug("%s needs %s", root.name, [p.name for p in order])
        return order

    def absent_dependencies(self, project: Project) -> List[Project]:
        """Direct dependencies of ``project`` that still need installing."""
        absent: List[Project] = []
        for name in project.dependencies:
            if name in self.excluded:
                continue
            dep = self.ecosystem.get_project(name)
            if dep is None:
                raise BurrowError(
                    project.name, Stage.RESOLVE,
                    f"Dependency {name} is not present in the module ecosystem",
                )
            if self.ecosystem.get_state(dep) is ProjectState.ABSENT:
                absent.append(dep)
        return absent

    def _visit(self, project: Project, order: List[Project], done: Set[str], path: List[str]) -> None:
        deps = self.absent_dependencies(project)
        if not deps:
            return
        self.announcer.announce(Event.DEPENDS, project, deps)

        for dep in deps:
            if dep.name in done:
                continue
            if dep.name in path:
                cycle = path[path.index(dep.name):] + [dep.name]
                raise BurrowError(
                    project.name, Stage.RESOLVE,
                    "Circular dependency: " + " -> ".join(cycle),
                )
            path.append(dep.name)
            self._visit(dep, order, done, path)
            path.pop()
            done.add(dep.name)
            order.append(dep)
