"""Shared fixtures: small conda-meta and site-packages directories."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


def write_conda_record(
    directory: Path,
    name: str,
    version: str,
    depends: list[str] | str,
    build: str = "0",
) -> Path:
    """Write a minimal conda-meta JSON record and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}-{version}-{build}.json"
    path.write_text(
        json.dumps(
            {
                "build": build,
                "build_number": 0,
                "name": name,
                "version": version,
                "depends": depends,
                "files": [],
            }
        )
    )
    return path


def write_dist_info(directory: Path, name: str, version: str, requires: list[str]) -> Path:
    """Write a ``<name>-<version>.dist-info/METADATA`` and return the dist-info dir."""
    dist_info = directory / f"{name}-{version}.dist-info"
    dist_info.mkdir(parents=True)
    lines = ["Metadata-Version: 2.1", f"Name: {name}", f"Version: {version}"]
    lines += [f"Requires-Dist: {req}" for req in requires]
    (dist_info / "METADATA").write_text("\n".join(lines) + "\n\nLong description.\n")
    return dist_info


@pytest.fixture
def conda_meta(tmp_path: Path) -> Path:
    """pkg3 -> (pkg2a -> pkg1, pkg2b), every package at version 0.0.1."""
    meta = tmp_path / "env" / "conda-meta"
    write_conda_record(meta, "pkg1", "0.0.1", [])
    write_conda_record(meta, "pkg2a", "0.0.1", ["pkg1"])
    write_conda_record(meta, "pkg2b", "0.0.1", [])
    write_conda_record(meta, "pkg3", "0.0.1", ["pkg2a", "pkg2b"])
    return meta


@pytest.fixture
def conda_env(conda_meta: Path) -> Path:
    """Environment prefix around ``conda_meta`` with runtime packages and site-packages."""
    write_conda_record(conda_meta, "python", "3.8.5", ["libffi >=3.3", "_libgcc_mutex 0.1 main"])
    write_conda_record(conda_meta, "libffi", "3.3", ["_libgcc_mutex"])
    write_conda_record(conda_meta, "_libgcc_mutex", "0.1", [])
    write_conda_record(conda_meta, "pip", "20.2.2", ["python >=3.8", "setuptools", "wheel"])
    write_conda_record(conda_meta, "setuptools", "49.6.0", ["python >=3.8,<3.9.0a0"])
    write_conda_record(conda_meta, "wheel", "0.35.1", "python")
    prefix = conda_meta.parent
    (prefix / "lib" / "python3.8" / "site-packages").mkdir(parents=True)
    return prefix
