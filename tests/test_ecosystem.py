from __future__ import annotations

import json

import pytest

from burrow_core.project import Project, ProjectState
from conftest import meta, write_catalog
from ecosystem.descriptor import DescriptorError
from ecosystem.manager import Ecosystem


def test_catalog_lookup(make_ecosystem):
    eco = make_ecosystem(meta("A"), meta("B", "A"))

    b = eco.get_project("B")
    assert b.dependencies == ("A",)
    assert eco.get_project("nope") is None
    assert [p.name for p in eco.projects()] == ["A", "B"]


def test_state_defaults_to_absent(make_ecosystem):
    eco = make_ecosystem(meta("A"))
    assert eco.get_state(eco.get_project("A")) is ProjectState.ABSENT
    assert not eco.is_installed(eco.get_project("A"))


def test_state_persists_across_instances(make_ecosystem, eco_root):
    eco = make_ecosystem(meta("A"))
    eco.set_state(eco.get_project("A"), ProjectState.INSTALLED_DEP)

    reloaded = Ecosystem(root_dir=eco_root)
    a = reloaded.get_project("A")
    assert reloaded.get_state(a) is ProjectState.INSTALLED_DEP
    assert a.state is ProjectState.INSTALLED_DEP


def test_added_project_survives_reload(make_ecosystem, eco_root):
    eco = make_ecosystem()
    eco.add_project(Project.from_metainfo(meta("Local", "A")))

    reloaded = Ecosystem(root_dir=eco_root)
    assert reloaded.get_project("Local").dependencies == ("A",)


def test_add_project_keeps_known_state(make_ecosystem):
    eco = make_ecosystem(meta("A"))
    eco.set_state(eco.get_project("A"), ProjectState.INSTALLED)

    fresh = eco.add_project(Project.from_metainfo(meta("A")))
    assert fresh.state is ProjectState.INSTALLED
    assert eco.get_project("A") is fresh


def test_reverse_dependencies(make_ecosystem):
    eco = make_ecosystem(meta("A"), meta("B", "A"), meta("C", "A"), meta("D"))
    a = eco.get_project("A")
    eco.set_state(eco.get_project("C"), ProjectState.INSTALLED)

    assert [p.name for p in eco.reverse_dependencies(a, installed_only=False)] == ["B", "C"]
    assert [p.name for p in eco.reverse_dependencies(a)] == ["C"]


def test_suggest_name(make_ecosystem):
    eco = make_ecosystem(meta("JSON-Fast"), meta("URI"))

    assert eco.suggest_name("JSON-Fats") == "JSON-Fast"
    assert eco.suggest_name("completely-different") is None


def test_suggestion_cutoff_is_configurable(make_ecosystem):
    eco = make_ecosystem(meta("JSON-Fast"), suggestion_cutoff=0.99)
    assert eco.suggest_name("JSON-Fats") is None


def test_invalid_catalog_entries_are_skipped(eco_root):
    write_catalog(eco_root, [meta("A"), {"version": "1"}, {"name": "B", "depends": "A"}])

    eco = Ecosystem(root_dir=eco_root)
    assert [p.name for p in eco.projects()] == ["A"]


@pytest.mark.parametrize("content", [
    b"{broken",
    b"[]",
    b'{"projects": []}',
    b'{"projects": "A"}',
    b'{"projects": {"A": "installed"}}',
    b'{"projects": {"A": {"state": "\xff"}}}',
])
def test_corrupt_state_file_is_ignored(eco_root, content):
    write_catalog(eco_root, [meta("A")])
    (eco_root / "state.json").write_bytes(content)

    eco = Ecosystem(root_dir=eco_root)
    assert eco.get_state(eco.get_project("A")) is ProjectState.ABSENT


def test_update_catalog(make_ecosystem, tmp_path):
    eco = make_ecosystem(meta("Old"))
    eco.add_project(Project.from_metainfo(meta("Local")))
    feed = tmp_path / "feed.json"
    feed.write_text(json.dumps([meta("New1"), meta("New2", "New1")]))

    assert eco.update_catalog(feed) == 2
    assert eco.get_project("Old") is None
    assert eco.get_project("New2").dependencies == ("New1",)
    assert eco.get_project("Local") is not None


def test_update_catalog_rejects_non_array(make_ecosystem, tmp_path):
    eco = make_ecosystem()
    feed = tmp_path / "feed.json"
    feed.write_text(json.dumps({"name": "A"}))

    with pytest.raises(DescriptorError):
        eco.update_catalog(feed)


def test_root_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("BURROW_HOME", str(tmp_path / "home"))
    eco = Ecosystem()
    assert eco.root == tmp_path / "home"
    assert eco.report_log_directory() == tmp_path / "home"
