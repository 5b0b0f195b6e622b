"""conda-leaves: find leaf packages and dependency trees of a conda environment (library, TUI, CLI)."""

from importlib.metadata import version, PackageNotFoundError

from conda_leaves.api import (
    build_tree,
    export_leaves,
    find_dependents,
    find_leaves,
    get_package_info,
    load_catalog,
    scan_environments,
)
from conda_leaves.core.catalog import Catalog
from conda_leaves.core.errors import CondaLeavesError

__all__ = [
    "build_tree",
    "export_leaves",
    "find_dependents",
    "find_leaves",
    "get_package_info",
    "load_catalog",
    "scan_environments",
    "Catalog",
    "CondaLeavesError",
    "__version__",
]

try:
    __version__ = version("conda-leaves")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed as package
