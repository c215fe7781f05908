from __future__ import annotations

import json

import pytest

from burrow_core.errors import BurrowError, Stage
from burrow_core.project import Project, ProjectState, merged_dependencies
from ecosystem.descriptor import (
    DescriptorError,
    ValueKind,
    dump_descriptor,
    find_descriptor,
    load_descriptor,
    parse_descriptor,
    value_kind,
)


def test_merged_dependencies_keeps_first_occurrence():
    assert merged_dependencies(["A", "B"], None, ["B", None, "C"], ["A"]) == ("A", "B", "C")


def test_project_from_metainfo():
    p = Project.from_metainfo({
        "name": "Foo",
        "version": 2,
        "depends": ["A"],
        "build-depends": ["B", "A"],
    })
    assert p.name == "Foo"
    assert p.version == "2"
    assert p.dependencies == ("A", "B")
    assert p.source_url is None
    assert p.state is ProjectState.ABSENT
    assert not p.is_installed


def test_installed_states():
    assert ProjectState.INSTALLED.is_installed
    assert ProjectState.INSTALLED_DEP.is_installed
    assert ProjectState("installed-dep") is ProjectState.INSTALLED_DEP


def test_value_kinds():
    assert value_kind(None) is ValueKind.NULL
    assert value_kind(True) is ValueKind.BOOLEAN
    assert value_kind(3) is ValueKind.NUMBER
    assert value_kind(1.5) is ValueKind.NUMBER
    assert value_kind("x") is ValueKind.STRING
    assert value_kind([1]) is ValueKind.ARRAY
    assert value_kind({"a": 1}) is ValueKind.MAPPING
    with pytest.raises(DescriptorError):
        value_kind(object())


@pytest.mark.parametrize("text", [
    "[1, 2]",
    '{"version": "1"}',
    '{"name": ""}',
    '{"name": "A", "depends": "B"}',
    '{"name": "A", "test-depends": [1]}',
    "{oops",
])
def test_invalid_descriptors(text):
    with pytest.raises(DescriptorError):
        parse_descriptor(text)


def test_descriptor_file_roundtrip(tmp_path):
    meta = {"name": "A", "depends": ["B"], "extra": {"nested": [True, None]}}
    dump_descriptor(meta, tmp_path / "META.json")

    assert find_descriptor(tmp_path) == tmp_path / "META.json"
    assert load_descriptor(tmp_path / "META.json") == meta


def test_legacy_descriptor_name(tmp_path):
    (tmp_path / "META.info").write_text(json.dumps({"name": "Old"}))
    assert find_descriptor(tmp_path) == tmp_path / "META.info"


def test_no_descriptor(tmp_path):
    assert find_descriptor(tmp_path) is None


def test_error_formatting():
    err = BurrowError("Foo", Stage.BUILD, "make failed")
    assert err.message == "make failed"
    assert str(err) == "Foo failed at stage build: make failed"
    assert err.to_dict() == {"project": "Foo", "stage": "build", "message": "make failed"}


def test_undecodable_descriptor_file(tmp_path):
    path = tmp_path / "META.json"
    path.write_bytes(b'{"name": "P\xff"}')

    with pytest.raises(DescriptorError):
        load_descriptor(path)


def test_project_identity_is_read_only():
    p = Project.from_metainfo({"name": "Foo", "depends": ["A"]})

    for attr, value in [("name", "Bar"), ("version", "9"), ("dependencies", ()), ("metainfo", {})]:
        with pytest.raises(AttributeError):
            setattr(p, attr, value)

    p.state = ProjectState.INSTALLED
    assert p.name == "Foo"
    assert p.dependencies == ("A",)
    assert p.is_installed
