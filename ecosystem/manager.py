"""
Ecosystem: registry and installation-state store.

Keeps the catalog of known projects and what Burrow has installed.

# ---- Changelog ----
# [2026-10-18] Initial creation.
#   What: Ecosystem class with get_project(), add_project(),
#         get_state()/set_state(), reverse_dependencies(),
#         suggest_name() and update_catalog().
#   How:  Two JSON files under the ecosystem root (~/.burrow by
#         default, overridable with BURROW_HOME):
#           projects.json  catalog, a JSON array of descriptors
#           state.json     per-project state plus metainfo, so projects
#                          added from a local directory or a git URL
#                          are still known on the next run
#         State is written through on every set_state() call.
# -------------------
"""

from __future__ import annotations

import difflib
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from burrow_core.project import Project, ProjectState
from ecosystem.descriptor import DescriptorError, validate_descriptor

logger = logging.getLogger("burrow.ecosystem")

DEFAULT_ROOT = "~/.burrow"
CATALOG_FILE = "projects.json"
STATE_FILE = "state.json"


class Ecosystem:
    """Catalog of known projects and their installation state.

    Usage:
        eco = Ecosystem()
        project = eco.get_project("JSON-Fast")
        if eco.get_state(project) is ProjectState.ABSENT:
            ...
        eco.set_state(project, ProjectState.INSTALLED)

    Project objects handed out are the store's own instances, so a
    state change is visible to every holder.
    """

    def __init__(
        self,
        root_dir: Optional[Union[str, Path]] = None,
        catalog_path: Optional[Union[str, Path]] = None,
        suggestion_cutoff: float = 0.6,
    ):
        """
        Args:
            root_dir: Ecosystem root.  Defaults to $BURROW_HOME or ~/.burrow.
            catalog_path: Catalog file.  Defaults to <root>/projects.json.
            suggestion_cutoff: Minimum similarity (0..1) for suggest_name().
        """
        self._root = Path(
            root_dir
            or os.environ.get("BURROW_HOME")
            or DEFAULT_ROOT
        ).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

        self._catalog_path = Path(catalog_path).expanduser() if catalog_path else self._root / CATALOG_FILE
        self._state_path = self._root / STATE_FILE
        self._suggestion_cutoff = suggestion_cutoff

        self._projects: Dict[str, Project] = {}
        self._states: Dict[str, ProjectState] = {}
        self._added: Dict[str, None] = {}

        self._load_catalog()
        self._load_state()

    # -------------------------------------------------------------------
    # Core API
    # -------------------------------------------------------------------

    @property
    def root(self) -> Path:
        return self._root

    @property
    def state_path(self) -> Path:
        return self._state_path

    def get_project(self, name: str) -> Optional[Project]:
        """Look up a project by exact name."""
        return self._projects.get(name)

    def add_project(self, project: Project) -> Project:
        """Register (or replace) a project.

        A known state for the name is carried over onto the new object.
        """
        project.state = self._states.get(project.name, project.state)
        self._projects[project.name] = project
        self._added[project.name] = None
        self._save_state()
        logger.debug("Registered project %s %s", project.name, project.version)
        return project

    def projects(self) -> List[Project]:
        return [self._projects[n] for n in sorted(self._projects)]

    def get_state(self, project: Project) -> ProjectState:
        return self._states.get(project.name, ProjectState.ABSENT)

    def set_state(self, project: Project, state: ProjectState) -> None:
        """Record a project's state and persist it."""
        state = ProjectState(state)
        self._states[project.name] = state
        project.state = state
        known = self._projects.get(project.name)
        if known is not None and known is not project:
            known.state = state
        self._save_state()
        logger.info("State of %s is now %s", project.name, state.value)

    def is_installed(self, project: Project) -> bool:
        return self.get_state(project).is_installed

    def reverse_dependencies(self, project: Project, installed_only: bool = True) -> List[Project]:
        """Projects that declare ``project`` as a dependency, sorted by name."""
        revdeps = [
            p for p in self.projects()
            if project.name in p.dependencies and p.name != project.name
        ]
        if installed_only:
            revdeps = [p for p in revdeps if self.get_state(p).is_installed]
        return revdeps

    def suggest_name(self, name: str) -> Optional[str]:
        """Closest known project name, or None below the cutoff."""
        matches = difflib.get_close_matches(
            name, list(self._projects), n=1, cutoff=self._suggestion_cutoff,
        )
        return matches[0] if matches else None

    def report_log_directory(self) -> Path:
        return self._root

    def update_catalog(self, source: Union[str, Path]) -> int:
        """Replace the catalog with the descriptors in ``source``.

        Args:
            source: A JSON file holding an array of descriptors.

        Returns:
            Number of projects in the new catalog.

        Raises:
            DescriptorError: If the source cannot be read or is not an array.
        """
        src = Path(source).expanduser()
        try:
            with open(src, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DescriptorError(f"{src}: {e}") from e
        if not isinstance(data, list):
            raise DescriptorError(f"{src}: catalog must be a JSON array")

        self._catalog_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._catalog_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        self._projects = {n: p for n, p in self._projects.items() if n in self._added}
        count = self._load_catalog()
        logger.info("Catalog updated from %s: %d projects", src, count)
        return count

    # -------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------

    def _load_catalog(self) -> int:
        """Load catalog descriptors.  Invalid entries are skipped."""
        if not self._catalog_path.exists():
            return 0

        try:
            with open(self._catalog_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Failed to load catalog %s: %s", self._catalog_path, e)
            return 0

        if not isinstance(data, list):
            logger.warning("Catalog %s is not a JSON array, ignoring it", self._catalog_path)
            return 0

        count = 0
        for i, meta in enumerate(data):
            try:
                validate_descriptor(meta, origin=f"{self._catalog_path}[{i}]")
            except DescriptorError as e:
                logger.warning("Skipping catalog entry: %s", e)
                continue
            if meta["name"] in self._added:
                continue
            project = Project.from_metainfo(meta)
            project.state = self._states.get(project.name, ProjectState.ABSENT)
            self._projects[project.name] = project
            count += 1

        logger.debug("Loaded %d projects from %s", count, self._catalog_path)
        return count

    def _load_state(self) -> None:
        if not self._state_path.exists():
            return

        try:
            with open(self._state_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            entries = data.get("projects", {})
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, AttributeError) as e:
            logger.warning("Failed to load state %s: %s", self._state_path, e)
            return
        if not isinstance(entries, dict):
            logger.warning("State %s has no project mapping, ignoring it", self._state_path)
            return

        for name, entry in entries.items():
            try:
                state = ProjectState(entry.get("state", ProjectState.ABSENT.value))
            except (ValueError, AttributeError):
                logger.warning("Ignoring bad state entry for %s: %r", name, entry)
                continue
            self._states[name] = state

            meta = entry.get("meta")
            if name not in self._projects and isinstance(meta, dict) and meta.get("name") == name:
                self._projects[name] = Project.from_metainfo(meta)
                self._added[name] = None
            if name in self._projects:
                self._projects[name].state = state

    def _save_state(self) -> None:
        projects: Dict[str, Dict[str, Any]] = {}
        for name, project in self._projects.items():
            state = self._states.get(name, ProjectState.ABSENT)
            if state is ProjectState.ABSENT and name not in self._added:
                continue
            projects[name] = {"state": state.value, "meta": project.metainfo}

        data = {"last_updated": time.time(), "projects": projects}
        try:
            with open(self._state_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=str)
        except OSError as e:
            logger.error("Failed to save state: %s", e)
