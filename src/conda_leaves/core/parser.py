"""Parse installed-package descriptors (conda-meta JSON, METADATA / PKG-INFO)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from conda_leaves.core.errors import MetadataIOError, MetadataParseError

# Interpreter, shared libraries and conda's private packages: never interesting as dependencies.
LOW_LEVEL_PREFIXES = ("python", "lib", "_")

# Descriptor kinds understood by parse_descriptor.
KIND_CONDA_JSON = "conda-json"
KIND_METADATA = "metadata"

# Line prefixes of the line-oriented format (PEP 566 headers).
_NAME_KEY = "Name"
_VERSION_KEY = "Version"
_REQUIRES_KEY = "Requires-Dist"
_EXTRA_KEY = "Provides-Extra"


@dataclass(frozen=True)
class PackageRecord:
    """One installed package as described by its metadata."""

    name: str
    version: str
    requires: tuple[str, ...] = ()
    path: Path | None = field(default=None, compare=False)

    def to_dict(self) -> dict:
        """Serialize record to a JSON-friendly dict."""
        return {
            "name": self.name,
            "version": self.version,
            "requires": list(self.requires),
            "path": str(self.path) if self.path else "",
        }


@dataclass(frozen=True)
class OneOrMany:
    """
    The ``depends`` field of a conda-meta record.

    conda writes either a single string or a list of strings; ``single`` keeps
    track of which one was seen so callers never have to inspect raw JSON again.
    """

    items: tuple[str, ...]
    single: bool = False

    @classmethod
    def one(cls, value: str) -> OneOrMany:
        return cls(items=(value,), single=True)

    @classmethod
    def many(cls, values: list[str] | tuple[str, ...]) -> OneOrMany:
        return cls(items=tuple(values), single=False)

    @classmethod
    def from_json(cls, value: Any, path: Path | None = None) -> OneOrMany:
        """Build from a decoded JSON value; anything but str / list[str] is a parse error."""
        if isinstance(value, str):
            return cls.one(value)
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return cls.many(value)
        raise MetadataParseError(path, "'depends' must be a string or a list of strings")


def is_low_level(name: str) -> bool:
    """True for names filtered out of dependency data (python*, lib*, _*)."""
    return name.startswith(LOW_LEVEL_PREFIXES)


def _first_token(text: str, path: Path | None) -> str:
    parts = text.split()
    if not parts:
        raise MetadataParseError(path, "empty requirement in 'depends'")
    return parts[0]


def normalize_depends(depends: OneOrMany, path: Path | None = None) -> list[str]:
    """
    Turn a ``depends`` value into requirement names.

    Only the first word of each entry is kept (the rest is a version constraint
    such as ``numpy >=1.21,<2``), and low-level names are dropped.
    """
    requires: list[str] = []
    for entry in depends.items:
        token = _first_token(entry, path)
        if is_low_level(token):
            continue
        requires.append(token)
    return requires


def _require_str(data: dict, key: str, path: Path | None) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise MetadataParseError(path, f"field '{key}' is missing or not a string")
    return value


def parse_conda_record(data: Any, path: Path | None = None) -> PackageRecord:
    """Build a PackageRecord from an already-decoded conda-meta JSON object."""
    if not isinstance(data, dict):
        raise MetadataParseError(path, "top-level JSON value is not an object")
    name = _require_str(data, "name", path)
    if not name:
        raise MetadataParseError(path, "field 'name' is empty")
    version = _require_str(data, "version", path)
    if "depends" not in data:
        raise MetadataParseError(path, "field 'depends' is missing")
    depends = OneOrMany.from_json(data["depends"], path)
    return PackageRecord(
        name=name,
        version=version,
        requires=tuple(normalize_depends(depends, path)),
        path=path,
    )


def parse_conda_json(path: Path) -> PackageRecord:
    """Parse a conda-meta ``<name>-<version>-<build>.json`` file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise MetadataIOError(path, e.strerror or str(e)) from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MetadataParseError(path, f"invalid JSON: {e}") from e
    return parse_conda_record(data, path)


def _second_token(line: str, path: Path | None, lineno: int) -> str:
    parts = line.split()
    if len(parts) < 2:
        raise MetadataParseError(path, f"line {lineno} has no value: {line.strip()!r}")
    return parts[1]


def parse_metadata_lines(lines: list[str] | Any, path: Path | None = None) -> PackageRecord:
    """
    Parse line-oriented package metadata (METADATA or PKG-INFO).

    Reads ``Name``, ``Version`` and ``Requires-Dist`` headers. Scanning stops
    at the first ``Provides-Extra`` line (extras are not default requirements)
    or at the blank line that ends the header block.
    """
    name = ""
    version = ""
    requires: list[str] = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if not line.strip():
            break
        if line.startswith(_NAME_KEY):
            name = _second_token(line, path, lineno)
        elif line.startswith(_VERSION_KEY):
            version = _second_token(line, path, lineno)
        elif line.startswith(_EXTRA_KEY):
            break
        elif line.startswith(_REQUIRES_KEY):
            dep = _second_token(line, path, lineno)
            if not is_low_level(dep):
                requires.append(dep)
    if not name:
        raise MetadataParseError(path, "no 'Name' header")
    if not version:
        raise MetadataParseError(path, "no 'Version' header")
    return PackageRecord(name=name, version=version, requires=tuple(requires), path=path)


def parse_metadata_file(path: Path) -> PackageRecord:
    """Parse a METADATA (dist-info) or PKG-INFO (egg-info) file."""
    try:
        with open(path, encoding="utf-8") as f:
            return parse_metadata_lines(f, path)
    except OSError as e:
        raise MetadataIOError(path, e.strerror or str(e)) from e
    except UnicodeDecodeError as e:
        raise MetadataParseError(path, f"not UTF-8 text: {e}") from e


def descriptor_source(entry: Path) -> tuple[str, Path] | None:
    """
    Classify one directory entry as a descriptor.

    Returns ``(kind, file_to_parse)`` or None when the entry is not a
    recognised descriptor.
    """
    suffix = entry.suffix
    if suffix == ".json" and entry.is_file():
        return KIND_CONDA_JSON, entry
    if suffix == ".dist-info" and entry.is_dir():
        metadata = entry / "METADATA"
        if metadata.is_file():
            return KIND_METADATA, metadata
        return None
    if suffix == ".egg-info":
        if entry.is_dir():
            pkg_info = entry / "PKG-INFO"
            if pkg_info.is_file():
                return KIND_METADATA, pkg_info
            return None
        if entry.is_file():
            return KIND_METADATA, entry
    return None


def parse_descriptor(path: Path, kind: str | None = None) -> PackageRecord:
    """Parse a descriptor file, guessing its kind from the extension if not given."""
    if kind is None:
        kind = KIND_CONDA_JSON if path.suffix == ".json" else KIND_METADATA
    if kind == KIND_CONDA_JSON:
        return parse_conda_json(path)
    if kind == KIND_METADATA:
        return parse_metadata_file(path)
    raise ValueError(f"Unknown descriptor kind: {kind}")
