"""
Burrow Core: Pipeline Orchestrator

Drives one project through fetch -> build -> test -> install, records
its new state, rebuilds installed dependents after an upgrade, and
implements the top-level resolve() and look() operations.

Stages run strictly one after another.  The first failing stage raises
a BurrowError and the remaining stages are skipped.  Whatever happens,
every install() invocation submits exactly one usage report, restores
the working directory and removes its workspace before returning or
raising.

# ---- Changelog ----
# [2026-10-18] Initial creation.
#   What: Burrow class with install(), look() and resolve(), plus the
#         Action enum the CLI maps its subcommands onto.
#   How:  Every collaborator (ecosystem store, fetcher, builder,
#         tester, installer, shell launcher) is injected so the
#         pipeline can be driven with fakes.  from_config() wires the
#         real ones from a validated config dict.
#         Reverse-dependency rebuilds share one visited set per
#         top-level install(), so each dependent is rebuilt once and a
#         dependency cycle among installed projects terminates.
# -------------------
"""

from __future__ import annotations

import logging
import os
import subprocess
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Union

from burrow_core.dependency_walker import DependencyWalker
from burrow_core.errors import BurrowError, Stage
from burrow_core.events import Announcer, Event
from burrow_core.fetcher import Fetcher
from burrow_core.project import Project, ProjectState
from burrow_core.reporter import Reporter, reports_file_for
from burrow_core.resolver import Origin, ReferenceResolver
from burrow_core.stages import Builder, Installer, Tester
from burrow_core.workspace import ephemeral_workspace
from ecosystem.manager import Ecosystem

logger = logging.getLogger("burrow.orchestrator")

ShellLauncher = Callable[[str, Path], int]


class Action(str, Enum):
    """What resolve() does with the root project once its deps are in."""
    INSTALL = "install"
    INSTALL_DEPS_ONLY = "install-deps-only"
    LOOK = "look"


def detect_shell(env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """The user's interactive shell, if one is configured."""
    env = os.environ if env is None else env
    shell = env.get("SHELL")
    if not shell and os.name == "nt":
        shell = env.get("ComSpec")
    return shell or None


def launch_shell(shell: str, cwd: Path) -> int:
    """Run ``shell`` interactively inside ``cwd`` and wait for it."""
    return subprocess.run([shell], cwd=str(cwd)).returncode


class Burrow:
    """Resolves, fetches, builds, tests and installs projects.

    Usage:
        eco = Ecosystem()
        burrow = Burrow(eco)
        burrow.resolve("JSON-Fast")                       # deps + project
        burrow.resolve("./my-project", skip_tests=True)
        burrow.resolve("JSON-Fast", action=Action.LOOK)   # open a shell
    """

    def __init__(
        self,
        ecosystem: Ecosystem,
        fetcher: Optional[Fetcher] = None,
        builder: Optional[Builder] = None,
        tester: Optional[Tester] = None,
        installer: Optional[Installer] = None,
        announcer: Optional[Announcer] = None,
        shell_launcher: Optional[ShellLauncher] = None,
        work_root: Optional[Union[str, Path]] = None,
        shell: Optional[str] = None,
        excluded_dependencies: Optional[Iterable[str]] = None,
    ):
        self.ecosystem = ecosystem
        self.fetcher = fetcher or Fetcher()
        self.builder = builder or Builder()
        self.tester = tester or Tester()
        self.installer = installer or Installer(ecosystem.root / "site")
        self.announcer = announcer or Announcer()
        self.shell_launcher = shell_launcher or launch_shell
        self.work_root = work_root
        self.shell = shell

        self.resolver = ReferenceResolver(ecosystem, self.fetcher)
        self.walker = DependencyWalker(ecosystem, self.announcer, excluded_dependencies)

    @classmethod
    def from_config(cls, config: Dict[str, Any], console: Optional[Any] = None) -> Burrow:
        """Wire the real collaborators from a validated config dict."""
        eco_cfg = config.get("ecosystem", {})
        stage_cfg = config.get("stages", {})
        ecosystem = Ecosystem(
            root_dir=eco_cfg.get("root_dir"),
            catalog_path=eco_cfg.get("catalog_path"),
            suggestion_cutoff=eco_cfg.get("suggestion_cutoff", 0.6),
        )
        site_dir = config.get("install", {}).get("site_dir") or ecosystem.root / "site"
        return cls(
            ecosystem,
            fetcher=Fetcher(git_timeout=stage_cfg.get("git_timeout", 300)),
            builder=Builder(timeout=stage_cfg.get("command_timeout", 1800)),
            tester=Tester(timeout=stage_cfg.get("command_timeout", 1800)),
            installer=Installer(site_dir),
            announcer=Announcer(console),
            work_root=config.get("workspace", {}).get("root"),
            shell=config.get("shell"),
            excluded_dependencies=eco_cfg.get("excluded_dependencies"),
        )

    # -------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------

    def resolve(
        self,
        ref: str,
        skip_deps: bool = False,
        skip_tests: bool = False,
        action: Union[Action, str] = Action.INSTALL,
    ) -> Project:
        """Resolve ``ref``, install its missing dependencies, then act on it.

        Returns:
            The resolved root Project.

        Raises:
            BurrowError: From any stage of any project involved.
        """
        action = Action(action)

        with ephemeral_workspace(self.work_root) as tmpdir:
            project, origin = self.resolver.locate(ref, tmpdir)
            if origin is Origin.LOCAL and action is Action.INSTALL:
                self.announcer.announce(Event.LOCAL_SOURCE, project, ref)

            if not skip_deps:
                deps = _unique(self.walker.discover(project))
                deps = [d for d in deps if self.ecosystem.get_state(d) is ProjectState.ABSENT]
                for dep in deps:
                    self.install(dep, skip_tests=skip_tests, is_transitive=True)

            if action is Action.INSTALL:
                self.install(project, skip_tests=skip_tests, is_transitive=False)
            elif action is Action.INSTALL_DEPS_ONLY:
                logger.info("Dependencies of %s are installed", project.name)
            elif action is Action.LOOK:
                self.look(project)

        return project

    # -------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------

    def install(
        self,
        project: Project,
        skip_tests: bool = False,
        is_transitive: bool = False,
        rebuild_dependents: bool = True,
    ) -> None:
        """Fetch, build, test and install one project.

        Args:
            project: The project to install.
            skip_tests: Skip the test stage.
            is_transitive: Installed only as a dependency of something else.
            rebuild_dependents: Record the new state and, if this was an
                upgrade of an installed project, rebuild its installed
                reverse dependencies.
        """
        self._install(project, skip_tests, is_transitive, rebuild_dependents, set())

    def look(self, project: Project) -> Optional[int]:
        """Fetch ``project`` into a workspace and open a shell there.

        Returns:
            The shell's exit status, or None if no shell is configured.
        """
        with ephemeral_workspace(self.work_root) as workspace:
            self._fetch(project, workspace)

            shell = self.shell or detect_shell()
            if not shell:
                self.announcer.announce(Event.NO_SHELL, project)
                return None

            self.announcer.announce(Event.ENTERING_SHELL, project, (workspace, shell))
            try:
                return self.shell_launcher(shell, workspace)
            except OSError as e:
                raise BurrowError(project.name, Stage.RESOLVE, f"Unable to invoke shell: {shell}") from e

    def _install(
        self,
        project: Project,
        skip_tests: bool,
        is_transitive: bool,
        rebuild_dependents: bool,
        visited: Set[str],
    ) -> None:
        visited.add(project.name)
        reports_file = reports_file_for(self.ecosystem.report_log_directory())

        with ephemeral_workspace(self.work_root) as workspace:
            error: Optional[BaseException] = None
            try:
                was_installed = self.ecosystem.is_installed(project)
                self._run_stages(project, workspace, skip_tests)

                if rebuild_dependents:
                    self._record_state(project, is_transitive)
                    if was_installed:
                        self._rebuild_dependents(project, skip_tests, rebuild_dependents, visited)

                self.announcer.announce(Event.SUCCESS, project)
            except BaseException as e:
                error = e
                raise
            finally:
                Reporter(project, reports_file).submit(error)

    def _run_stages(self, project: Project, workspace: Path, skip_tests: bool) -> None:
        self._fetch(project, workspace)

        self.announcer.announce(Event.BUILDING, project)
        result = self.builder.build(workspace, project)
        if not result:
            raise BurrowError(project.name, Stage.BUILD, result.message)

        if not skip_tests:
            self.announcer.announce(Event.TESTING, project)
            result = self.tester.test(workspace, project)
            if not result:
                raise BurrowError(project.name, Stage.TEST, result.message)

        self.announcer.announce(Event.INSTALLING, project)
        self.installer.install(project, workspace)

    def _fetch(self, project: Project, workspace: Path) -> None:
        self.announcer.announce(Event.FETCHING, project)
        source = project.source_url
        if not source:
            raise BurrowError(project.name, Stage.FETCH, "source-url meta info missing")
        result = self.fetcher.fetch(source, workspace)
        if not result:
            raise BurrowError(project.name, Stage.FETCH, result.message)

    def _record_state(self, project: Project, is_transitive: bool) -> None:
        if not is_transitive:
            state = ProjectState.INSTALLED
        elif self.ecosystem.get_state(project) is ProjectState.INSTALLED:
            # explicitly requested before; a dependency reinstall keeps that
            state = ProjectState.INSTALLED
        else:
            state = ProjectState.INSTALLED_DEP
        self.ecosystem.set_state(project, state)

    def _rebuild_dependents(
        self,
        project: Project,
        skip_tests: bool,
        rebuild_dependents: bool,
        visited: Set[str],
    ) -> None:
        pending: List[Project] = []
        for revdep in self.ecosystem.reverse_dependencies(project, installed_only=True):
            if revdep.name in visited:
                logger.debug("Not rebuilding %s again for %s", revdep.name, project.name)
            else:
                pending.append(revdep)
        if not pending:
            return

        self.announcer.announce(Event.REBUILDING, project, pending)
        for revdep in pending:
            if revdep.name in visited:
                continue
            self._install(revdep, skip_tests, False, rebuild_dependents, visited)


def _unique(projects: Iterable[Project]) -> List[Project]:
    seen: Set[str] = set()
    result = []
    for p in projects:
        if p.name not in seen:
            seen.add(p.name)
            result.append(p)
    return result
