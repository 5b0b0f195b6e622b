"""Core library: descriptor parsing, the package catalog, graph queries, tree rendering."""

from conda_leaves.core.catalog import Catalog
from conda_leaves.core.errors import (
    CondaLeavesError,
    DependencyCycleError,
    DependencyDepthError,
    DependencyResolutionError,
    EnvironmentNotFoundError,
    MetadataIOError,
    MetadataParseError,
    UnknownPackageError,
)
from conda_leaves.core.export import EnvironmentYml
from conda_leaves.core.finder import (
    EnvironmentInfo,
    get_conda_meta_path,
    get_conda_prefix,
    get_env_name,
    get_site_packages_path,
    scan_for_environments,
)
from conda_leaves.core.graph import dependents_of, leaves, resolve_package, tree_lines
from conda_leaves.core.parser import PackageRecord, parse_descriptor
from conda_leaves.core.tree import Installer, ResolvedPackage, package_to_lines, render_tree

__all__ = [
    "Catalog",
    "CondaLeavesError",
    "DependencyCycleError",
    "DependencyDepthError",
    "DependencyResolutionError",
    "EnvironmentNotFoundError",
    "MetadataIOError",
    "MetadataParseError",
    "UnknownPackageError",
    "EnvironmentYml",
    "EnvironmentInfo",
    "get_conda_meta_path",
    "get_conda_prefix",
    "get_env_name",
    "get_site_packages_path",
    "scan_for_environments",
    "dependents_of",
    "leaves",
    "resolve_package",
    "tree_lines",
    "PackageRecord",
    "parse_descriptor",
    "Installer",
    "ResolvedPackage",
    "package_to_lines",
    "render_tree",
]
