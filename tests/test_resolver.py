from __future__ import annotations

import json

import pytest

from burrow_core.errors import BurrowError, Stage
from burrow_core.resolver import Origin, ReferenceResolver
from conftest import FakeFetcher, meta


@pytest.fixture
def local_project(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    d = tmp_path / "localproj"
    d.mkdir()
    (d / "META.json").write_text(json.dumps({
        "name": "Local-Proj",
        "version": "0.2",
        "depends": ["A", "B"],
        "test-depends": ["B", "Test"],
        "build-depends": ["C"],
    }))
    return d


def test_bare_local_directory_is_ambiguous(make_ecosystem, local_project, tmp_path):
    resolver = ReferenceResolver(make_ecosystem(), FakeFetcher())

    with pytest.raises(BurrowError) as exc:
        resolver.resolve_reference("localproj", tmp_path / "ws")

    assert exc.value.stage is Stage.RESOLVE
    assert "Possibly ambiguous module name requested" in exc.value.message
    assert "(e.g. ./localproj)" in exc.value.message


def test_local_directory_with_slash(make_ecosystem, local_project, tmp_path):
    eco = make_ecosystem()
    resolver = ReferenceResolver(eco, FakeFetcher())

    project, origin = resolver.locate("./localproj", tmp_path / "ws")

    assert origin is Origin.LOCAL
    assert project.name == "Local-Proj"
    assert project.dependencies == ("A", "B", "Test", "C")
    assert project.source_url == "./localproj"
    assert eco.get_project("Local-Proj") is project


def test_remote_source_fetched_into_workspace(make_ecosystem, tmp_path):
    eco = make_ecosystem()
    fetcher = FakeFetcher()
    url = "git://example.org/remote.git"
    fetcher.trees[url] = {"META.json": json.dumps(meta("Remote", "A"))}
    ws = tmp_path / "ws"

    project, origin = ReferenceResolver(eco, fetcher).locate(url, ws)

    assert origin is Origin.REMOTE
    assert project.name == "Remote"
    assert project.source_url == str(ws)
    assert fetcher.calls == [url]
    assert eco.get_project("Remote") is project


def test_remote_fetch_failure(make_ecosystem, tmp_path):
    fetcher = FakeFetcher()
    url = "git+https://example.org/broken.git"
    fetcher.fail[url] = "repository not found"

    with pytest.raises(BurrowError) as exc:
        ReferenceResolver(make_ecosystem(), fetcher).resolve_reference(url, tmp_path / "ws")

    assert exc.value.stage is Stage.FETCH
    assert exc.value.message == "repository not found"


def test_remote_without_descriptor(make_ecosystem, tmp_path):
    with pytest.raises(BurrowError) as exc:
        ReferenceResolver(make_ecosystem(), FakeFetcher()).resolve_reference(
            "git://example.org/empty.git", tmp_path / "ws",
        )

    assert exc.value.stage is Stage.RESOLVE


def test_registry_lookup(make_ecosystem, tmp_path):
    eco = make_ecosystem(meta("A"))
    project, origin = ReferenceResolver(eco, FakeFetcher()).locate("A", tmp_path / "ws")

    assert origin is Origin.REGISTRY
    assert project is eco.get_project("A")


def test_unknown_name_without_suggestion(make_ecosystem, tmp_path):
    eco = make_ecosystem(meta("JSON-Fast"))

    with pytest.raises(BurrowError) as exc:
        ReferenceResolver(eco, FakeFetcher()).resolve_reference("unknown-name", tmp_path / "ws")

    assert exc.value.stage is Stage.RESOLVE
    assert exc.value.message == "Project unknown-name not found in the ecosystem"


def test_unknown_name_with_suggestion(make_ecosystem, tmp_path):
    eco = make_ecosystem(meta("JSON-Fast"))

    with pytest.raises(BurrowError) as exc:
        ReferenceResolver(eco, FakeFetcher()).resolve_reference("JSON-Fats", tmp_path / "ws")

    assert exc.value.message == (
        "Project JSON-Fats not found in the ecosystem. Maybe you meant JSON-Fast?"
    )


def test_malformed_local_descriptor(make_ecosystem, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    d = tmp_path / "bad"
    d.mkdir()
    (d / "META.json").write_text("{not json")

    with pytest.raises(BurrowError) as exc:
        ReferenceResolver(make_ecosystem(), FakeFetcher()).resolve_reference("./bad", tmp_path / "ws")

    assert exc.value.stage is Stage.RESOLVE


def test_undecodable_local_descriptor(make_ecosystem, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    d = tmp_path / "proj"
    d.mkdir()
    (d / "META.json").write_bytes(b'{"name": "P\xff"}')

    with pytest.raises(BurrowError) as exc:
        ReferenceResolver(make_ecosystem(), FakeFetcher()).resolve_reference("./proj", tmp_path / "ws")

    assert exc.value.stage is Stage.RESOLVE
