"""Command-line interface for conda-leaves: leaves, dependents, trees, graphs, export."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from conda_leaves import __version__
from conda_leaves.api import export_leaves, find_dependents, find_leaves, load_catalog
from conda_leaves.core.catalog import Catalog
from conda_leaves.core.errors import CondaLeavesError, MetadataIOError
from conda_leaves.core.export import DEFAULT_EXPORT_FILENAME
from conda_leaves.core.finder import scan_for_environments
from conda_leaves.core.graph import DEFAULT_MAX_DEPTH, collect_edges, resolve_package
from conda_leaves.core.tree import ResolvedPackage, render_tree

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "CONDA_LEAVES_LOG_LEVEL"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _configure_logging(level_name: str | None) -> None:
    """Configure the root logger once; the flag wins over the environment."""
    name = (level_name or os.environ.get(LOG_LEVEL_ENV) or "WARNING").upper()
    level = getattr(logging, name, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger().setLevel(level)


def _depth(value: str) -> int:
    """argparse type for --depth: an int between 1 and DEFAULT_MAX_DEPTH."""
    try:
        depth = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid depth: {value!r}") from None
    if not 1 <= depth <= DEFAULT_MAX_DEPTH:
        raise argparse.ArgumentTypeError(f"depth must be between 1 and {DEFAULT_MAX_DEPTH}")
    return depth


def _load(args: argparse.Namespace) -> Catalog:
    meta_dir = Path(args.meta_dir) if getattr(args, "meta_dir", None) else None
    prefix = Path(args.prefix) if getattr(args, "prefix", None) else None
    return load_catalog(meta_dir=meta_dir, prefix=prefix, workers=getattr(args, "workers", None))


def _print_tree_text(package: ResolvedPackage) -> None:
    """Print a resolved dependency tree with branch markers."""
    print(render_tree(package))


def cmd_leaves(args: argparse.Namespace) -> int:
    """List packages no other package depends on."""
    catalog = _load(args)
    names = find_leaves(catalog)
    if args.json:
        print(json.dumps(names, indent=2))
    else:
        for name in names:
            print(name)
    return 0


def cmd_depends(args: argparse.Namespace) -> int:
    """List packages that depend on a package."""
    catalog = _load(args)
    dependents = find_dependents(catalog, args.package)
    if args.json:
        print(json.dumps({"package": args.package, "dependents": dependents}, indent=2))
    else:
        if not dependents:
            print(f"Nothing depends on {args.package}.")
            return 0
        for name in dependents:
            print(name)
    return 0


def cmd_tree(args: argparse.Namespace) -> int:
    """Show dependency tree for a package."""
    catalog = _load(args)
    tree = resolve_package(catalog, args.package, max_depth=args.depth)
    if args.json:
        print(json.dumps(tree.to_dict(), indent=2))
    else:
        _print_tree_text(tree)
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List installed packages."""
    catalog = _load(args)
    if args.json:
        print(json.dumps({name: catalog[name].to_dict() for name in catalog.names()}, indent=2))
        return 0
    if not len(catalog):
        print("No packages found.")
        return 1
    print(f"Found {len(catalog)} package(s):\n")
    for name in catalog.names():
        record = catalog[name]
        if args.verbose:
            requires = ", ".join(record.requires) if record.requires else "-"
            print(f"  {name} {record.version}  [{requires}]")
        else:
            print(f"  {name}")
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Scan for conda environments on the host."""
    roots = [Path(p) for p in args.paths] if args.paths else None
    environments = scan_for_environments(
        roots=roots,
        include_home=not args.no_home,
        include_system=not args.no_system,
    )

    if args.json:
        print(json.dumps([env.to_dict() for env in environments], indent=2))
        return 0
    if not environments:
        print("No conda environments found.")
        return 0
    print(f"Found {len(environments)} environment(s):\n")
    for env in environments:
        print(f"  {env.name}")
        print(f"    Path: {env.path}")
        print(f"    Packages: {env.package_count}")
        if env.site_packages:
            print(f"    site-packages: {env.site_packages}")
        if args.verbose and env.packages:
            for record in env.packages[:20]:
                print(f"      - {record}")
            if len(env.packages) > 20:
                print(f"      ... and {len(env.packages) - 20} more")
        print()
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Write leaf packages to an environment file."""
    catalog = _load(args)
    out_path = Path(args.output)
    prefix = Path(args.prefix) if args.prefix else None
    try:
        env = export_leaves(
            catalog,
            out_path,
            env_name=args.name,
            prefix=prefix,
            overwrite=args.force,
        )
    except FileExistsError:
        print(f"{out_path} already exists (use --force to overwrite)", file=sys.stderr)
        return 1
    count = len(env.dependencies) + len(env.pip or [])
    print(f"Wrote {count} package(s) to {out_path}", file=sys.stderr)
    return 0


def _generate_dot(roots: list[ResolvedPackage], title: str | None = None) -> str:
    """Generate DOT (Graphviz) format from resolved trees."""
    root_names = {r.name for r in roots}
    edges: set[tuple[str, str]] = set()
    for root in roots:
        collect_edges(root, edges)

    lines = [
        "digraph dependencies {",
        "    rankdir=LR;",
        '    node [shape=box, style=rounded, fontname="sans-serif"];',
    ]
    if title:
        lines.insert(1, f'    label="{title}";')
        lines.insert(2, "    labelloc=t;")

    for name in sorted(root_names):
        lines.append(f'    "{name}" [style="rounded,filled", fillcolor=lightblue];')

    for parent, child in sorted(edges):
        lines.append(f'    "{parent}" -> "{child}";')

    lines.append("}")
    return "\n".join(lines)


def _generate_mermaid(roots: list[ResolvedPackage], title: str | None = None) -> str:
    """Generate Mermaid format from resolved trees."""
    root_names = {r.name for r in roots}
    edges: set[tuple[str, str]] = set()
    for root in roots:
        collect_edges(root, edges)

    lines = ["graph LR"]
    if title:
        lines[0] = f"---\ntitle: {title}\n---\ngraph LR"

    for name in sorted(root_names):
        lines.append(f"    {_mermaid_id(name)}[{name}]")
        lines.append(f"    style {_mermaid_id(name)} fill:#lightblue")

    for parent, child in sorted(edges):
        lines.append(f"    {_mermaid_id(parent)} --> {_mermaid_id(child)}")

    return "\n".join(lines)


def _mermaid_id(name: str) -> str:
    """Convert a package name to a valid Mermaid node ID."""
    return name.replace("-", "_").replace(".", "_")


def cmd_graph(args: argparse.Namespace) -> int:
    """Generate a dependency graph in DOT or Mermaid format."""
    catalog = _load(args)
    roots = [args.package] if args.package else find_leaves(catalog)
    if not roots:
        print("No packages to graph.", file=sys.stderr)
        return 1

    trees = [resolve_package(catalog, name, max_depth=args.depth) for name in roots]

    if args.no_title:
        title = None
    elif args.package:
        title = f"{args.package} dependencies"
    else:
        title = "Leaf package dependencies"

    if args.format == "mermaid":
        output = _generate_mermaid(trees, title=title)
    else:
        output = _generate_dot(trees, title=title)

    if args.output:
        try:
            Path(args.output).write_text(output + "\n", encoding="utf-8")
        except OSError as e:
            raise MetadataIOError(args.output, e.strerror or str(e), action="write") from e
        print(f"Graph written to: {args.output}", file=sys.stderr)
    else:
        print(output)
    return 0


def cmd_tui(args: argparse.Namespace) -> int:
    """Launch the interactive TUI."""
    from conda_leaves.tui.app import LeavesApp

    app = LeavesApp(
        root_package=getattr(args, "package", None),
        meta_dir=Path(args.meta_dir) if getattr(args, "meta_dir", None) else None,
        prefix=Path(args.prefix) if getattr(args, "prefix", None) else None,
    )
    app.run()
    return 0


def _catalog_options() -> argparse.ArgumentParser:
    """Options shared by every command that reads the catalog."""
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "-p",
        "--prefix",
        metavar="PATH",
        help="Environment to inspect (default: $CONDA_PREFIX)",
    )
    parent.add_argument(
        "-m",
        "--meta-dir",
        metavar="PATH",
        help="Read package descriptors from this directory instead of <prefix>/conda-meta",
    )
    parent.add_argument(
        "-w",
        "--workers",
        type=int,
        default=None,
        help="Threads used to parse descriptors (default: automatic)",
    )
    return parent


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the conda-leaves command."""
    parser = argparse.ArgumentParser(
        prog="conda-leaves",
        description="Find leaf packages and dependency trees of a conda environment.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help=f"Logging level (default: ${LOG_LEVEL_ENV} or WARNING)",
    )

    catalog_options = _catalog_options()
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # conda-leaves leaves
    leaves_parser = subparsers.add_parser(
        "leaves",
        parents=[catalog_options],
        help="List packages nothing else depends on",
        description="List installed packages that no other installed package requires.",
    )
    leaves_parser.add_argument("--json", action="store_true", help="Output as JSON")
    leaves_parser.set_defaults(func=cmd_leaves)

    # conda-leaves depends
    depends_parser = subparsers.add_parser(
        "depends",
        parents=[catalog_options],
        help="List packages that depend on a package",
        description="Show which installed packages require the given package.",
    )
    depends_parser.add_argument("package", help="Package name")
    depends_parser.add_argument("--json", action="store_true", help="Output as JSON")
    depends_parser.set_defaults(func=cmd_depends)

    # conda-leaves tree
    tree_parser = subparsers.add_parser(
        "tree",
        parents=[catalog_options],
        help="Show dependency tree for a package",
        description="Build and display the dependency tree for an installed package.",
    )
    tree_parser.add_argument("package", help="Package name to show dependencies for")
    tree_parser.add_argument(
        "-d",
        "--depth",
        type=_depth,
        default=DEFAULT_MAX_DEPTH,
        help=f"Fail if the tree is deeper than this (default: {DEFAULT_MAX_DEPTH})",
    )
    tree_parser.add_argument("--json", action="store_true", help="Output as JSON")
    tree_parser.set_defaults(func=cmd_tree)

    # conda-leaves list
    list_parser = subparsers.add_parser(
        "list",
        parents=[catalog_options],
        help="List installed packages",
        description="List every package found in the environment's metadata.",
    )
    list_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show versions and requirements"
    )
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.set_defaults(func=cmd_list)

    # conda-leaves graph
    graph_parser = subparsers.add_parser(
        "graph",
        parents=[catalog_options],
        help="Generate a dependency graph (DOT/Mermaid format)",
        description=(
            "Generate a visual dependency graph. "
            "Without a package name, graphs every leaf package."
        ),
    )
    graph_parser.add_argument("package", nargs="?", help="Package name to graph (optional)")
    graph_parser.add_argument(
        "-f",
        "--format",
        choices=["dot", "mermaid"],
        default="dot",
        help="Output format: dot (Graphviz) or mermaid (default: dot)",
    )
    graph_parser.add_argument("-o", "--output", metavar="FILE", help="Output file (default: stdout)")
    graph_parser.add_argument(
        "-d",
        "--depth",
        type=_depth,
        default=DEFAULT_MAX_DEPTH,
        help=f"Fail if a tree is deeper than this (default: {DEFAULT_MAX_DEPTH})",
    )
    graph_parser.add_argument(
        "--no-title", action="store_true", help="Don't include a title in the graph"
    )
    graph_parser.set_defaults(func=cmd_graph)

    # conda-leaves export
    export_parser = subparsers.add_parser(
        "export",
        parents=[catalog_options],
        help="Write leaf packages to an environment file",
        description=(
            "Write leaf packages pinned to their installed versions as an environment.yml. "
            "Package metadata does not record the installer, so every package is "
            "written as a conda spec (name=version)."
        ),
    )
    export_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        default=DEFAULT_EXPORT_FILENAME,
        help=f"Output file (default: {DEFAULT_EXPORT_FILENAME})",
    )
    export_parser.add_argument(
        "-n", "--name", default=None, help="Environment name (default: $CONDA_DEFAULT_ENV)"
    )
    export_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")
    export_parser.set_defaults(func=cmd_export)

    # conda-leaves scan
    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan for conda environments on the host machine",
        description="Discover conda environments in common install locations or given paths.",
    )
    scan_parser.add_argument(
        "paths",
        nargs="*",
        help="Base installs or environments to scan (default: ~/miniconda3, ~/anaconda3, ...)",
    )
    scan_parser.add_argument(
        "--no-home", action="store_true", help="Don't scan home directory locations"
    )
    scan_parser.add_argument("--no-system", action="store_true", help="Don't scan /opt installs")
    scan_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show package records of each environment"
    )
    scan_parser.add_argument("--json", action="store_true", help="Output as JSON")
    scan_parser.set_defaults(func=cmd_scan)

    # conda-leaves tui (default if no command)
    tui_parser = subparsers.add_parser(
        "tui",
        parents=[catalog_options],
        help="Launch the interactive terminal UI",
        description="Start the interactive TUI for browsing leaves and dependency trees.",
    )
    tui_parser.add_argument("package", nargs="?", help="Optional: start with this package's tree")
    tui_parser.set_defaults(func=cmd_tui)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the conda-leaves CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    # Default to TUI if no command specified
    if args.command is None:
        return cmd_tui(argparse.Namespace(package=None, meta_dir=None, prefix=None))

    try:
        return args.func(args)
    except CondaLeavesError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
