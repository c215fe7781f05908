from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from burrow_core.events import Announcer
from burrow_core.orchestrator import Burrow
from burrow_core.stages import StageResult
from ecosystem.manager import Ecosystem


class FakeFetcher:
    """Materialises fake sources.  ``trees`` maps a source to files to write."""

    def __init__(self):
        self.calls: List[str] = []
        self.fail: Dict[str, str] = {}
        self.trees: Dict[str, Dict[str, str]] = {}

    def fetch(self, source: str, dest_dir) -> StageResult:
        self.calls.append(source)
        if source in self.fail:
            return StageResult.failure(self.fail[source])
        dest = Path(dest_dir)
        dest.mkdir(parents=True, exist_ok=True)
        (dest / "SOURCE").write_text(source)
        for fname, content in self.trees.get(source, {}).items():
            (dest / fname).write_text(content)
        return StageResult.success()


class FakeStage:
    """Stands in for Builder (method "build") or Tester (method "test")."""

    def __init__(self):
        self.calls: List[str] = []
        self.fail: Dict[str, str] = {}

    def _run(self, directory, project) -> StageResult:
        assert Path(directory).is_dir()
        self.calls.append(project.name)
        if project.name in self.fail:
            return StageResult.failure(self.fail[project.name])
        return StageResult.success()

    build = _run
    test = _run


class FakeInstaller:

    def __init__(self):
        self.calls: List[str] = []

    def install(self, project, directory):
        self.calls.append(project.name)
        return Path(directory)


def meta(name: str, *deps: str, **extra: Any) -> Dict[str, Any]:
    m: Dict[str, Any] = {
        "name": name,
        "version": "1.0",
        "depends": list(deps),
        "source-url": f"fake://{name}",
    }
    m.update(extra)
    return m


def write_catalog(root: Path, entries: List[Dict[str, Any]]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    path = root / "projects.json"
    path.write_text(json.dumps(entries))
    return path


@pytest.fixture
def eco_root(tmp_path) -> Path:
    return tmp_path / "eco"


@pytest.fixture
def make_ecosystem(eco_root):
    def _make(*entries: Dict[str, Any], suggestion_cutoff: float = 0.6) -> Ecosystem:
        write_catalog(eco_root, list(entries))
        return Ecosystem(root_dir=eco_root, suggestion_cutoff=suggestion_cutoff)
    return _make


@pytest.fixture
def fakes():
    class Fakes:
        fetcher = FakeFetcher()
        builder = FakeStage()
        tester = FakeStage()
        installer = FakeInstaller()
        launched: List[Any] = []
    return Fakes()


@pytest.fixture
def work_root(tmp_path) -> Path:
    return tmp_path / "work"


@pytest.fixture
def make_burrow(fakes, work_root):
    def _make(ecosystem: Ecosystem, shell: Optional[str] = None, **kwargs) -> Burrow:
        def launcher(shell_cmd, cwd):
            fakes.launched.append((shell_cmd, Path(cwd), Path(cwd).is_dir()))
            return 0

        return Burrow(
            ecosystem,
            fetcher=fakes.fetcher,
            builder=fakes.builder,
            tester=fakes.tester,
            installer=fakes.installer,
            announcer=Announcer(),
            shell_launcher=launcher,
            work_root=work_root,
            shell=shell,
            **kwargs,
        )
    return _make


def leftover_workspaces(work_root: Path) -> List[Path]:
    if not work_root.exists():
        return []
    return list(work_root.iterdir())
