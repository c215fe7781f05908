"""
Ecosystem: project descriptor (META.json) reader and writer.

A descriptor is a JSON mapping.  Recognised keys:

    name, version, description,
    depends, test-depends, build-depends,
    source-url, build-command, test-command

Unknown keys are kept as-is in the project's metainfo.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger("burrow.ecosystem.descriptor")

DESCRIPTOR_NAMES = ("META.json", "META.info")
LIST_KEYS = ("depends", "test-depends", "build-depends")


class DescriptorError(ValueError):
    """Raised when a descriptor cannot be read or is malformed."""


class ValueKind(str, Enum):
    """Kinds of value a descriptor document may contain."""
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    MAPPING = "mapping"


def value_kind(value: Any) -> ValueKind:
    """Classify a decoded JSON value.

    Raises:
        DescriptorError: If the value is not a JSON data type.
    """
    # bool before number: bool is an int subclass
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.MAPPING
    raise DescriptorError(f"Unsupported value type: {type(value).__name__}")


def find_descriptor(directory: Union[str, Path]) -> Optional[Path]:
    """Return the descriptor file inside ``directory``, if any."""
    d = Path(directory)
    for fname in DESCRIPTOR_NAMES:
        candidate = d / fname
        if candidate.is_file():
            return candidate
    return None


def parse_descriptor(text: str, origin: str = "<string>") -> Dict[str, Any]:
    """Parse and validate descriptor text."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DescriptorError(f"{origin}: invalid JSON: {e}") from e
    return validate_descriptor(data, origin)


def validate_descriptor(data: Any, origin: str = "<data>") -> Dict[str, Any]:
    """Check the shape of a decoded descriptor and return it."""
    if value_kind(data) is not ValueKind.MAPPING:
        raise DescriptorError(f"{origin}: descriptor must be a mapping")

    if value_kind(data.get("name")) is not ValueKind.STRING or not data["name"]:
        raise DescriptorError(f"{origin}: descriptor has no name")

    for key in LIST_KEYS:
        kind = value_kind(data.get(key))
        if kind is ValueKind.NULL:
            continue
        if kind is not ValueKind.ARRAY:
            raise DescriptorError(f"{origin}: '{key}' must be an array, got {kind.value}")
        for item in data[key]:
            if value_kind(item) not in (ValueKind.STRING, ValueKind.NULL):
                raise DescriptorError(f"{origin}: '{key}' entries must be strings")

    return data


def load_descriptor(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a descriptor file."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DescriptorError(f"{p}: {e}") from e
    return parse_descriptor(text, origin=str(p))


def dump_descriptor(meta: Dict[str, Any], path: Union[str, Path]) -> None:
    """Write a descriptor file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(meta, f, indent=2, sort_keys=True)
        f.write("\n")
