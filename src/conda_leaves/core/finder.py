"""Locate conda environments and their metadata directories."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from conda_leaves.core.errors import EnvironmentNotFoundError

logger = logging.getLogger(__name__)

CONDA_META_DIR = "conda-meta"

# Base installs whose envs/ directory is scanned when no roots are given.
_DEFAULT_BASE_DIRS = (
    "miniconda3",
    "anaconda3",
    "miniforge3",
    "mambaforge",
    "micromamba",
    ".conda",
)
_SYSTEM_BASE_DIRS = ("/opt/conda", "/opt/miniconda3", "/opt/anaconda3")


@dataclass
class EnvironmentInfo:
    """Information about a discovered conda environment."""

    path: Path
    name: str
    has_conda_meta: bool = False
    site_packages: Path | None = None
    package_count: int = 0
    packages: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """True if this looks like a usable conda environment."""
        return self.has_conda_meta

    def to_dict(self) -> dict:
        """Serialize to dict for JSON output."""
        return {
            "path": str(self.path),
            "name": self.name,
            "has_conda_meta": self.has_conda_meta,
            "site_packages": str(self.site_packages) if self.site_packages else None,
            "package_count": self.package_count,
            "is_valid": self.is_valid,
        }


def get_conda_prefix(prefix: Path | str | None = None) -> Path:
    """
    Root directory of the environment to inspect.

    An explicit ``prefix`` wins over ``CONDA_PREFIX``.

    Raises:
        EnvironmentNotFoundError: neither is set, or the directory does not exist.
    """
    value = str(prefix) if prefix else os.environ.get("CONDA_PREFIX", "")
    if not value:
        raise EnvironmentNotFoundError(
            "CONDA_PREFIX is not set. Activate a conda environment or pass --prefix."
        )
    path = Path(value).expanduser()
    if not path.is_dir():
        raise EnvironmentNotFoundError(f"Not a directory: {path}")
    return path


def get_env_name(prefix: Path | str | None = None) -> str:
    """Environment name: CONDA_DEFAULT_ENV, else the prefix directory name."""
    if prefix is None:
        name = os.environ.get("CONDA_DEFAULT_ENV", "")
        if name:
            return name
    return get_conda_prefix(prefix).name


def get_conda_meta_path(prefix: Path | str | None = None) -> Path:
    """``<prefix>/conda-meta``, the directory holding one JSON record per package."""
    meta = get_conda_prefix(prefix) / CONDA_META_DIR
    if not meta.is_dir():
        raise EnvironmentNotFoundError(f"No {CONDA_META_DIR} directory in {meta.parent}")
    return meta


def _find_site_packages(prefix: Path) -> Path | None:
    windows = prefix / "Lib" / "site-packages"
    if windows.is_dir():
        return windows
    candidates = sorted(p for p in prefix.glob("lib/python3*/site-packages") if p.is_dir())
    # Highest python3.x wins if several are present
    return candidates[-1] if candidates else None


def get_site_packages_path(prefix: Path | str | None = None) -> Path | None:
    """The environment's site-packages directory, or None if it has no Python."""
    return _find_site_packages(get_conda_prefix(prefix))


def _count_conda_records(meta: Path) -> list[str]:
    """Record file stems in a conda-meta directory (``name-version-build``)."""
    try:
        return sorted(p.stem for p in meta.iterdir() if p.suffix == ".json" and p.is_file())
    except OSError:
        return []


def _inspect_environment(path: Path) -> EnvironmentInfo | None:
    meta = path / CONDA_META_DIR
    if not meta.is_dir():
        return None
    records = _count_conda_records(meta)
    return EnvironmentInfo(
        path=path,
        name=path.name,
        has_conda_meta=True,
        site_packages=_find_site_packages(path),
        package_count=len(records),
        packages=records,
    )


def _default_roots(include_home: bool, include_system: bool) -> list[Path]:
    roots: list[Path] = []
    if include_home:
        home = Path.home()
        for base in _DEFAULT_BASE_DIRS:
            candidate = home / base
            if candidate.is_dir():
                roots.append(candidate)
    if include_system:
        for base in _SYSTEM_BASE_DIRS:
            candidate = Path(base)
            if candidate.is_dir():
                roots.append(candidate)
    return roots


def scan_for_environments(
    roots: list[Path] | None = None,
    *,
    include_home: bool = True,
    include_system: bool = True,
) -> list[EnvironmentInfo]:
    """
    Find conda environments under the given roots.

    A root is reported if it has a conda-meta directory itself; each
    directory in its ``envs/`` folder is checked the same way.

    Args:
        roots: Base installs or environment directories. Defaults to common locations.
        include_home: If True and roots is None, include ~/miniconda3, ~/anaconda3, etc.
        include_system: If True and roots is None, include /opt/conda and friends.

    Returns:
        List of EnvironmentInfo, in discovery order, without duplicates.
    """
    if roots is None:
        roots = _default_roots(include_home, include_system)

    environments: list[EnvironmentInfo] = []
    seen: set[Path] = set()

    def _add(p: Path) -> None:
        resolved = p.resolve()
        if resolved in seen:
            return
        info = _inspect_environment(resolved)
        if info is not None:
            seen.add(resolved)
            environments.append(info)

    for root in roots:
        root_path = Path(root).expanduser()
        if not root_path.is_dir():
            logger.debug("Skipping scan root %s: not a directory", root_path)
            continue
        _add(root_path)
        envs = root_path / "envs"
        if envs.is_dir():
            try:
                children = sorted(envs.iterdir())
            except PermissionError:
                logger.debug("Cannot list %s", envs)
                continue
            for child in children:
                if child.is_dir() and not child.name.startswith("."):
                    _add(child)

    return environments
