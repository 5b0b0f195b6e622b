"""Queries over a Catalog: dependents, leaves, resolved trees."""

from __future__ import annotations

import logging

from conda_leaves.core.catalog import Catalog
from conda_leaves.core.errors import (
    DependencyCycleError,
    DependencyDepthError,
    UnknownPackageError,
)
from conda_leaves.core.parser import PackageRecord
from conda_leaves.core.tree import ResolvedPackage, package_to_lines

logger = logging.getLogger(__name__)

# Interpreter meta-packages are never reported as dependents.
_DEPENDENT_EXCLUDED_PREFIX = "python"
# Names never reported as leaves (shared libraries and conda internals).
_LEAF_EXCLUDED_PREFIXES = ("lib", "_")

# Deepest requirement chain resolve_package follows before giving up.
DEFAULT_MAX_DEPTH = 256


def dependents_of(catalog: Catalog, name: str) -> set[str]:
    """
    Names of packages that list ``name`` among their requirements.

    Raises:
        UnknownPackageError: ``name`` is not in the catalog.
    """
    if name not in catalog:
        raise UnknownPackageError(name)
    return {
        record.name
        for record in catalog.values()
        if name in record.requires
        and record.name != name
        and not record.name.startswith(_DEPENDENT_EXCLUDED_PREFIX)
    }


def _dependents_index(catalog: Catalog) -> dict[str, set[str]]:
    """Reverse edges for the whole catalog, same rules as dependents_of."""
    index: dict[str, set[str]] = {name: set() for name in catalog}
    for record in catalog.values():
        if record.name.startswith(_DEPENDENT_EXCLUDED_PREFIX):
            continue
        for dep in record.requires:
            if dep in index and dep != record.name:
                index[dep].add(record.name)
    return index


def leaves(catalog: Catalog) -> list[str]:
    """Sorted names of packages nothing depends on, excluding ``lib*`` and ``_*``."""
    index = _dependents_index(catalog)
    return sorted(
        {
            name
            for name, dependents in index.items()
            if not dependents and not name.startswith(_LEAF_EXCLUDED_PREFIXES)
        }
    )


def _lookup(catalog: Catalog, name: str, required_by: str | None) -> PackageRecord:
    record = catalog.get(name)
    if record is None:
        logger.debug("Missing package %s (required by %s)", name, required_by)
        raise UnknownPackageError(name, required_by=required_by)
    return record


def resolve_package(
    catalog: Catalog,
    name: str,
    *,
    max_depth: int | None = DEFAULT_MAX_DEPTH,
) -> ResolvedPackage:
    """
    Resolve ``name`` and everything it requires, transitively.

    Resolution walks an explicit stack, so a long requirement chain never
    exhausts the interpreter stack. The names on the current path are tracked:
    a package seen twice through different branches is fine, but a package
    requiring one of its own ancestors is a cycle.

    Args:
        catalog: Packages to resolve against.
        name: Root package name.
        max_depth: Deepest allowed level below the root; None means unlimited.

    Raises:
        UnknownPackageError: the root or one of the requirements is missing.
        DependencyCycleError: a requirement leads back to an ancestor.
        DependencyDepthError: the tree is deeper than ``max_depth``.
    """
    record = _lookup(catalog, name, None)
    root = ResolvedPackage(name=record.name, version=record.version)
    path = [name]
    on_path = {name}
    stack = [(record, root, iter(record.requires))]

    while stack:
        parent, node, pending = stack[-1]
        dep = next(pending, None)
        if dep is None:
            stack.pop()
            on_path.discard(path.pop())
            continue
        if dep in on_path:
            chain = path[path.index(dep):] + [dep]
            logger.debug("Cycle while resolving %s: %s", name, chain)
            raise DependencyCycleError(chain)
        if max_depth is not None and len(path) > max_depth:
            raise DependencyDepthError(name, max_depth)

        child_record = _lookup(catalog, dep, parent.name)
        child = ResolvedPackage(name=child_record.name, version=child_record.version)
        node.requires.append(child)
        stack.append((child_record, child, iter(child_record.requires)))
        path.append(dep)
        on_path.add(dep)

    return root


def tree_lines(
    catalog: Catalog,
    name: str,
    *,
    max_depth: int | None = DEFAULT_MAX_DEPTH,
) -> list[str]:
    """Display lines of the dependency tree rooted at ``name``."""
    return package_to_lines(resolve_package(catalog, name, max_depth=max_depth))


def collect_edges(
    package: ResolvedPackage,
    edges: set[tuple[str, str]] | None = None,
    visited: set[str] | None = None,
) -> set[tuple[str, str]]:
    """All (parent, child) name pairs in a resolved tree."""
    if edges is None:
        edges = set()
    if visited is None:
        visited = set()
    stack = [package]
    while stack:
        node = stack.pop()
        if node.name in visited:
            continue
        visited.add(node.name)
        for child in node.requires:
            edges.add((node.name, child.name))
            stack.append(child)
    return edges
