"""Tests for descriptor parsing."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conda_leaves.core.errors import MetadataIOError, MetadataParseError
from conda_leaves.core.parser import (
    KIND_CONDA_JSON,
    KIND_METADATA,
    OneOrMany,
    PackageRecord,
    descriptor_source,
    is_low_level,
    normalize_depends,
    parse_conda_json,
    parse_conda_record,
    parse_descriptor,
    parse_metadata_file,
    parse_metadata_lines,
)

ASTROID_METADATA = """\
Metadata-Version: 2.1
Name: astroid
Version: 2.4.2
Summary: An abstract syntax tree for Python with inference support.
Requires-Python: >=3.5
Requires-Dist: lazy-object-proxy (==1.4.*)
Requires-Dist: six (~=1.12)
Requires-Dist: wrapt (~=1.11)
Requires-Dist: typed-ast (<1.5,>=1.4.0) ; implementation_name == "cpython" and python_version < "3.8"

Astroid
=======
Version 2 of the docs mentions Name changes.
"""

MYPY_METADATA = """\
Metadata-Version: 2.1
Name: mypy
Version: 0.782
Requires-Dist: typed-ast (<1.5.0,>=1.4.0)
Requires-Dist: typing-extensions (>=3.7.4)
Requires-Dist: mypy-extensions (<0.5.0,>=0.4.3)
Provides-Extra: dmypy
Requires-Dist: psutil (>=4.0) ; extra == 'dmypy'
"""


class TestIsLowLevel:
    """Tests for is_low_level helper."""

    def test_regular_package(self) -> None:
        assert is_low_level("numpy") is False
        assert is_low_level("pkg1") is False

    def test_python_prefix(self) -> None:
        assert is_low_level("python") is True
        assert is_low_level("python_abi") is True

    def test_lib_prefix(self) -> None:
        assert is_low_level("libffi") is True
        assert is_low_level("libgcc-ng") is True

    def test_underscore_prefix(self) -> None:
        assert is_low_level("_libgcc_mutex") is True
        assert is_low_level("_openmp_mutex") is True


class TestOneOrMany:
    """Tests for the depends variant."""

    def test_from_string(self) -> None:
        value = OneOrMany.from_json("pkg2")
        assert value.single is True
        assert value.items == ("pkg2",)

    def test_from_list(self) -> None:
        value = OneOrMany.from_json(["a", "b"])
        assert value.single is False
        assert value.items == ("a", "b")

    def test_from_empty_list(self) -> None:
        assert OneOrMany.from_json([]).items == ()

    @pytest.mark.parametrize("bad", [None, 3, {"a": 1}, ["a", 1]])
    def test_wrong_shape(self, bad: object) -> None:
        with pytest.raises(MetadataParseError):
            OneOrMany.from_json(bad)


class TestNormalizeDepends:
    """Tests for normalize_depends."""

    def test_filters_low_level(self) -> None:
        depends = OneOrMany.many(["pkgA", "python", "libfoo", "_low"])
        assert normalize_depends(depends) == ["pkgA"]

    def test_single_string(self) -> None:
        assert normalize_depends(OneOrMany.one("pkgA")) == ["pkgA"]

    def test_single_python_string(self) -> None:
        assert normalize_depends(OneOrMany.one("python")) == []

    def test_drops_version_constraints(self) -> None:
        depends = OneOrMany.many(["numpy >=1.21,<2", "python >=3.8,<3.9.0a0", "six"])
        assert normalize_depends(depends) == ["numpy", "six"]

    def test_single_string_with_constraint(self) -> None:
        assert normalize_depends(OneOrMany.one("pkgA >=1.0")) == ["pkgA"]

    def test_keeps_order_and_duplicates(self) -> None:
        depends = OneOrMany.many(["b", "a", "b"])
        assert normalize_depends(depends) == ["b", "a", "b"]

    def test_blank_entry_is_error(self) -> None:
        with pytest.raises(MetadataParseError):
            normalize_depends(OneOrMany.many(["pkgA", "  "]))


class TestParseCondaRecord:
    """Tests for structured (conda-meta) records."""

    def test_no_dependencies(self) -> None:
        record = parse_conda_record({"name": "pkg1", "version": "0.0.1", "depends": []})
        assert record == PackageRecord(name="pkg1", version="0.0.1", requires=())

    def test_single_depends(self) -> None:
        record = parse_conda_record({"name": "pkg1", "version": "0.0.1", "depends": "pkg2"})
        assert record.requires == ("pkg2",)

    def test_single_depends_python(self) -> None:
        record = parse_conda_record({"name": "pkg1", "version": "0.0.1", "depends": "python"})
        assert record.requires == ()

    def test_list_skips_python_and_low_level(self) -> None:
        record = parse_conda_record(
            {
                "name": "pkg1",
                "version": "0.0.1",
                "depends": ["pkg2a", "pkg2b", "python", "libsome", "_liblowlevel"],
            }
        )
        assert record.requires == ("pkg2a", "pkg2b")

    def test_missing_name(self) -> None:
        with pytest.raises(MetadataParseError, match="name"):
            parse_conda_record({"version": "1.0", "depends": []})

    def test_empty_name(self) -> None:
        with pytest.raises(MetadataParseError):
            parse_conda_record({"name": "", "version": "1.0", "depends": []})

    def test_version_not_string(self) -> None:
        with pytest.raises(MetadataParseError, match="version"):
            parse_conda_record({"name": "a", "version": 1.0, "depends": []})

    def test_missing_depends(self) -> None:
        with pytest.raises(MetadataParseError, match="depends"):
            parse_conda_record({"name": "a", "version": "1.0"})

    def test_not_an_object(self) -> None:
        with pytest.raises(MetadataParseError):
            parse_conda_record(["name", "a"])

    def test_error_carries_path(self) -> None:
        with pytest.raises(MetadataParseError) as excinfo:
            parse_conda_record({}, Path("/meta/bad.json"))
        assert excinfo.value.path == Path("/meta/bad.json")
        assert "/meta/bad.json" in str(excinfo.value)


class TestParseCondaJson:
    """Tests for parse_conda_json."""

    def test_valid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "pkg3-0.0.1-0.json"
        path.write_text(
            json.dumps({"name": "pkg3", "version": "0.0.1", "depends": ["pkg2a", "pkg2b"]})
        )
        record = parse_conda_json(path)
        assert record.name == "pkg3"
        assert record.version == "0.0.1"
        assert record.requires == ("pkg2a", "pkg2b")
        assert record.path == path

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MetadataIOError) as excinfo:
            parse_conda_json(tmp_path / "nope.json")
        assert excinfo.value.path == tmp_path / "nope.json"

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(MetadataParseError, match="invalid JSON"):
            parse_conda_json(path)


class TestParseMetadataLines:
    """Tests for the line-oriented format."""

    def test_requires_dist_non_empty(self) -> None:
        record = parse_metadata_lines(ASTROID_METADATA.splitlines())
        assert record.name == "astroid"
        assert record.version == "2.4.2"
        assert record.requires == ("lazy-object-proxy", "six", "wrapt", "typed-ast")

    def test_stops_at_provides_extra(self) -> None:
        record = parse_metadata_lines(MYPY_METADATA.splitlines())
        assert record.name == "mypy"
        assert record.version == "0.782"
        assert record.requires == ("typed-ast", "typing-extensions", "mypy-extensions")

    def test_body_is_not_scanned(self) -> None:
        # The description body of ASTROID_METADATA starts with "Version 2 ..."
        record = parse_metadata_lines(ASTROID_METADATA.splitlines())
        assert record.version == "2.4.2"

    def test_pkg_info_no_requirements(self) -> None:
        lines = ["Metadata-Version: 1.2", "Name: certifi", "Version: 2020.6.20", "Summary: x"]
        record = parse_metadata_lines(lines)
        assert record == PackageRecord(name="certifi", version="2020.6.20")

    def test_low_level_requirements_filtered(self) -> None:
        lines = ["Name: pkg", "Version: 1.0", "Requires-Dist: libfoo", "Requires-Dist: bar"]
        assert parse_metadata_lines(lines).requires == ("bar",)

    def test_line_without_value(self) -> None:
        with pytest.raises(MetadataParseError, match="line 2"):
            parse_metadata_lines(["Name: pkg", "Version:"])

    def test_missing_name(self) -> None:
        with pytest.raises(MetadataParseError, match="Name"):
            parse_metadata_lines(["Version: 1.0"])

    def test_missing_version(self) -> None:
        with pytest.raises(MetadataParseError, match="Version"):
            parse_metadata_lines(["Name: pkg"])


class TestParseMetadataFile:
    """Tests for parse_metadata_file."""

    def test_valid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "METADATA"
        path.write_text(MYPY_METADATA)
        record = parse_metadata_file(path)
        assert record.name == "mypy"
        assert record.path == path

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MetadataIOError):
            parse_metadata_file(tmp_path / "METADATA")

    def test_not_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "PKG-INFO"
        path.write_bytes(b"Name: \xff\xfe\nVersion: 1\n")
        with pytest.raises(MetadataParseError):
            parse_metadata_file(path)


class TestDescriptorSource:
    """Tests for descriptor_source."""

    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "pkg-1.0-0.json"
        path.write_text("{}")
        assert descriptor_source(path) == (KIND_CONDA_JSON, path)

    def test_dist_info(self, tmp_path: Path) -> None:
        dist = tmp_path / "six-1.15.0.dist-info"
        dist.mkdir()
        (dist / "METADATA").write_text("Name: six\n")
        assert descriptor_source(dist) == (KIND_METADATA, dist / "METADATA")

    def test_dist_info_without_metadata(self, tmp_path: Path) -> None:
        dist = tmp_path / "six-1.15.0.dist-info"
        dist.mkdir()
        assert descriptor_source(dist) is None

    def test_egg_info_dir(self, tmp_path: Path) -> None:
        egg = tmp_path / "certifi-2020.6.20-py3.8.egg-info"
        egg.mkdir()
        (egg / "PKG-INFO").write_text("Name: certifi\n")
        assert descriptor_source(egg) == (KIND_METADATA, egg / "PKG-INFO")

    def test_egg_info_file(self, tmp_path: Path) -> None:
        egg = tmp_path / "legacy-1.0-py3.8.egg-info"
        egg.write_text("Name: legacy\n")
        assert descriptor_source(egg) == (KIND_METADATA, egg)

    def test_other_entries(self, tmp_path: Path) -> None:
        (tmp_path / "history").write_text("")
        (tmp_path / "numpy").mkdir()
        (tmp_path / "dir.json").mkdir()
        assert descriptor_source(tmp_path / "history") is None
        assert descriptor_source(tmp_path / "numpy") is None
        assert descriptor_source(tmp_path / "dir.json") is None


class TestParseDescriptor:
    """Tests for parse_descriptor dispatch."""

    def test_guesses_json(self, tmp_path: Path) -> None:
        path = tmp_path / "a-1-0.json"
        path.write_text(json.dumps({"name": "a", "version": "1", "depends": []}))
        assert parse_descriptor(path).name == "a"

    def test_guesses_metadata(self, tmp_path: Path) -> None:
        path = tmp_path / "PKG-INFO"
        path.write_text("Name: b\nVersion: 2\n")
        assert parse_descriptor(path).name == "b"

    def test_unknown_kind(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            parse_descriptor(tmp_path / "x", kind="wheel")


class TestPackageRecord:
    """Tests for PackageRecord."""

    def test_to_dict(self) -> None:
        record = PackageRecord("pkg", "1.0", ("a", "b"), path=Path("/m/pkg.json"))
        assert record.to_dict() == {
            "name": "pkg",
            "version": "1.0",
            "requires": ["a", "b"],
            "path": "/m/pkg.json",
        }

    def test_path_not_compared(self) -> None:
        assert PackageRecord("a", "1", path=Path("/x")) == PackageRecord("a", "1", path=Path("/y"))
