"""Public API: use conda-leaves from Python or from other tools."""

from __future__ import annotations

from pathlib import Path

from conda_leaves.core.catalog import Catalog
from conda_leaves.core.export import DEFAULT_EXPORT_FILENAME, EnvironmentYml
from conda_leaves.core.finder import (
    EnvironmentInfo,
    get_conda_meta_path,
    get_env_name,
    scan_for_environments,
)
from conda_leaves.core.graph import DEFAULT_MAX_DEPTH, dependents_of, leaves, resolve_package
from conda_leaves.core.parser import PackageRecord
from conda_leaves.core.tree import ResolvedPackage


def load_catalog(
    *,
    meta_dir: Path | None = None,
    prefix: Path | None = None,
    workers: int | None = None,
) -> Catalog:
    """
    Build the catalog of installed packages.

    Reads ``meta_dir`` if given, otherwise the conda-meta directory of
    ``prefix`` (or of the active environment, from CONDA_PREFIX).
    """
    directory = Path(meta_dir) if meta_dir is not None else get_conda_meta_path(prefix)
    return Catalog.build(directory, workers=workers)


def get_package_info(catalog: Catalog, package_name: str) -> PackageRecord | None:
    """Metadata record for a package, or None if it is not installed."""
    return catalog.get(package_name)


def find_leaves(catalog: Catalog) -> list[str]:
    """Installed packages that nothing else requires, sorted by name."""
    return leaves(catalog)


def find_dependents(catalog: Catalog, package_name: str) -> list[str]:
    """
    Packages that require ``package_name``, sorted by name.

    Raises:
        UnknownPackageError: the package is not installed.
    """
    return sorted(dependents_of(catalog, package_name))


def build_tree(
    catalog: Catalog,
    root_package: str,
    *,
    max_depth: int | None = DEFAULT_MAX_DEPTH,
) -> ResolvedPackage:
    """
    Resolve the full dependency tree of a package.

    Args:
        catalog: Installed packages.
        root_package: Name of the root package.
        max_depth: Deepest level followed before raising DependencyDepthError.

    Raises:
        UnknownPackageError: the root or one of its requirements is not installed.
        DependencyCycleError: the requirements loop.
    """
    return resolve_package(catalog, root_package, max_depth=max_depth)


def export_leaves(
    catalog: Catalog,
    path: Path | None = None,
    *,
    env_name: str | None = None,
    prefix: Path | None = None,
    overwrite: bool = False,
) -> EnvironmentYml:
    """
    Write the leaf packages, pinned to their installed versions, to an environment file.

    Every package is written as a conda spec: descriptors do not say which
    installer put a package there.
    """
    if env_name is None:
        env_name = get_env_name(prefix)
    packages = [
        ResolvedPackage(name=record.name, version=record.version)
        for record in (catalog[name] for name in leaves(catalog))
    ]
    env = EnvironmentYml.from_packages(env_name, packages)
    env.write(Path(path) if path is not None else Path(DEFAULT_EXPORT_FILENAME), overwrite=overwrite)
    return env


def scan_environments(
    roots: list[Path] | None = None,
    *,
    include_home: bool = True,
    include_system: bool = True,
) -> list[EnvironmentInfo]:
    """
    Scan the host machine for conda environments.

    Args:
        roots: Directories to start scanning from. Defaults to common locations.
        include_home: If True and roots is None, include ~/miniconda3, ~/anaconda3, etc.
        include_system: If True and roots is None, include /opt/conda and similar.

    Returns:
        List of EnvironmentInfo for each discovered environment.
    """
    return scan_for_environments(
        roots=roots,
        include_home=include_home,
        include_system=include_system,
    )
