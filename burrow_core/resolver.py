"""
Burrow Core: Project Reference Resolver

Turns the string a user typed into a Project.  Three readings are
tried in order:

  1. a local directory holding a descriptor ("./JSON-Fast", "/src/foo")
  2. a git source ("git://host/foo.git", "git+https://...")
  3. a project name in the ecosystem catalog ("JSON-Fast")

A bare word that is also a local directory is rejected rather than
guessed: the user must add a slash to mean the directory.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from burrow_core.errors import BurrowError, Stage
from burrow_core.fetcher import Fetcher, is_remote_source
from burrow_core.project import Project
from ecosystem.descriptor import DescriptorError, find_descriptor, load_descriptor
from ecosystem.manager import Ecosystem

logger = logging.getLogger("burrow.resolver")

_PATH_CHARS_RE = re.compile(r"[/.\\]")


class Origin(str, Enum):
    """Where a resolved project came from."""
    LOCAL = "local"
    REMOTE = "remote"
    REGISTRY = "registry"


class ReferenceResolver:

    def __init__(self, ecosystem: Ecosystem, fetcher: Fetcher):
        self.ecosystem = ecosystem
        self.fetcher = fetcher

    def resolve_reference(self, ref: str, workspace_dir: Union[str, Path]) -> Project:
        return self.locate(ref, workspace_dir)[0]

    def locate(self, ref: str, workspace_dir: Union[str, Path]) -> Tuple[Project, Origin]:
        """Resolve ``ref`` and report which reading matched.

        Projects read from a directory or a git source are registered
        with the ecosystem before returning.

        Raises:
            BurrowError: Stage ``resolve`` for ambiguous, malformed or
                unknown references, ``fetch`` if a git source can't be
                cloned.
        """
        project = self.from_local(ref)
        origin = Origin.LOCAL
        if project is None:
            project = self.from_remote(ref, workspace_dir)
            origin = Origin.REMOTE

        if project is not None:
            self.ecosystem.add_project(project)
            logger.debug("Resolved %r to %s (%s)", ref, project.name, origin.value)
            return project, origin

        project = self.ecosystem.get_project(ref)
        if project is not None:
            return project, Origin.REGISTRY

        suggestion = self.ecosystem.suggest_name(ref)
        if suggestion:
            raise BurrowError(
                ref, Stage.RESOLVE,
                f"Project {ref} not found in the ecosystem. Maybe you meant {suggestion}?",
            )
        raise BurrowError(ref, Stage.RESOLVE, f"Project {ref} not found in the ecosystem")

    def from_local(self, ref: str) -> Optional[Project]:
        """Read a project from a local directory, if ``ref`` is one."""
        directory = Path(ref).expanduser()
        if not directory.is_dir():
            return None
        descriptor = find_descriptor(directory)
        if descriptor is None:
            return None

        if not _PATH_CHARS_RE.search(ref):
            raise BurrowError(
                ref, Stage.RESOLVE,
                "Possibly ambiguous module name requested."
                " Please specify at least one slash if you really mean to install"
                f" from local directory (e.g. ./{ref})",
            )

        return self._project_from_descriptor(ref, descriptor, source_url=ref)

    def from_remote(self, ref: str, workspace_dir: Union[str, Path]) -> Optional[Project]:
        """Clone a git source into ``workspace_dir`` and read its descriptor."""
        if not is_remote_source(ref):
            return None

        workspace = Path(workspace_dir)
        workspace.mkdir(parents=True, exist_ok=True)
        result = self.fetcher.fetch(ref, workspace)
        if not result:
            raise BurrowError(ref, Stage.FETCH, result.message)

        descriptor = find_descriptor(workspace)
        if descriptor is None:
            raise BurrowError(ref, Stage.RESOLVE, f"No project descriptor found in {ref}")

        return self._project_from_descriptor(ref, descriptor, source_url=str(workspace))

    @staticmethod
    def _project_from_descriptor(ref: str, descriptor: Path, source_url: str) -> Project:
        try:
            meta = load_descriptor(descriptor)
        except DescriptorError as e:
            raise BurrowError(ref, Stage.RESOLVE, str(e)) from e
        meta["source-url"] = source_url
        return Project.from_metainfo(meta)
