"""Textual TUI for browsing leaf packages and their dependency trees."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, LoadingIndicator, Static, Tree
from textual.widgets.tree import TreeNode
from textual.worker import Worker, WorkerState

from conda_leaves.api import build_tree, find_dependents, find_leaves, load_catalog
from conda_leaves.core.catalog import Catalog
from conda_leaves.core.errors import CondaLeavesError
from conda_leaves.core.parser import PackageRecord

WELCOME_DESC = """[bold cyan]conda-leaves[/]

[dim]Find the packages you actually asked for.
Leaves are installed packages that nothing else depends on;
select one to see everything it pulls in.[/]"""

# Limits to avoid huge trees
MAX_PACKAGES_PER_SECTION = 200
MAX_TREE_DEPTH = 8
MAX_TREE_NODES = 500
MAX_SEARCH_RESULTS = 15
EXPAND_DEPTH_DEFAULT = 2

COLOR_LEAF = "bold green"
COLOR_ALL = "dim"
COLOR_HEADER = "bold magenta"
COLOR_PKG = "white"
COLOR_STATS = "cyan"


def _match_packages(
    catalog: Catalog, query: str, limit: int = MAX_SEARCH_RESULTS
) -> list[PackageRecord]:
    """
    Catalog records whose name or version contains ``query`` (case-insensitive).

    An exact name hit comes first, then names starting with the query, then
    the remaining hits; ties are ordered by name.
    """
    q = query.strip().lower()
    if not q:
        return []
    hits = [
        record
        for record in catalog.values()
        if q in record.name.lower() or q in record.version.lower()
    ]
    hits.sort(
        key=lambda r: (r.name.lower() != q, not r.name.lower().startswith(q), r.name)
    )
    return hits[:limit]


def _node_stats(node: Any) -> tuple[int, int, int]:
    """Return (direct_requirements, total_descendants, max_depth) for a node."""
    children = getattr(node, "requires", []) or []
    direct = len(children)
    total = 0
    max_d = 0
    for c in children:
        _sub_direct, sub_total, sub_depth = _node_stats(c)
        total += 1 + sub_total
        max_d = max(max_d, 1 + sub_depth)
    return direct, total, max_d


def _populate_textual_tree(
    tn: TreeNode,
    node: Any,
    *,
    depth: int = 0,
    max_depth: int = MAX_TREE_DEPTH,
    max_nodes: int = MAX_TREE_NODES,
    node_count: list[int] | None = None,
) -> None:
    """Recursively add ResolvedPackage requirements; cap depth and total nodes."""
    if node_count is None:
        node_count = [0]
    for child in getattr(node, "requires", []):
        if node_count[0] >= max_nodes:
            tn.add_leaf(f"[dim]… truncated ({max_nodes} nodes max)[/]")
            return
        if depth >= max_depth:
            tn.add_leaf(f"[dim]{child.name} …[/]")
            continue
        node_count[0] += 1
        child_tn = tn.add(f"[{COLOR_PKG}]{child.label}[/]", expand=False)
        child_tn.data = child
        _populate_textual_tree(
            child_tn,
            child,
            depth=depth + 1,
            max_depth=max_depth,
            max_nodes=max_nodes,
            node_count=node_count,
        )


def _expand_to_depth(tn: TreeNode, depth: int, current: int = 0) -> None:
    """Expand tree nodes up to given depth (0 = root only)."""
    if current >= depth:
        return
    tn.expand()
    for child in tn.children:
        _expand_to_depth(child, depth, current + 1)


class PackageSearchScreen(ModalScreen[str | None]):
    """Pick a package from the catalog by name or version; dismisses with its name."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    DEFAULT_CSS = """
    PackageSearchScreen {
        align: center middle;
        padding: 2 4;
    }
    PackageSearchScreen #search_input {
        width: 60;
        margin: 1 0;
    }
    PackageSearchScreen #search_results {
        width: 60;
        height: auto;
        max-height: 20;
    }
    """

    def __init__(self, catalog: Catalog, leaf_names: set[str], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._catalog = catalog
        self._leaf_names = leaf_names

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(
                f"[bold cyan]Find package[/]  [dim]({len(self._catalog)} installed)[/]",
                markup=True,
            )
            yield Input(placeholder="name or version...", id="search_input")
            yield Static(
                "[dim]Enter[/] = open first match  ·  [dim]Escape[/] = Cancel",
                id="search_results",
                markup=True,
            )

    def on_mount(self) -> None:
        self.query_one("#search_input", Input).focus()

    def on_input_changed(self, event: Input.Changed) -> None:
        matches = _match_packages(self._catalog, event.value)
        results = self.query_one("#search_results", Static)
        if not event.value.strip():
            results.update("[dim]Enter[/] = open first match  ·  [dim]Escape[/] = Cancel")
        elif not matches:
            results.update("[yellow]No installed package matches[/]")
        else:
            results.update("\n".join(self._format_match(record) for record in matches))

    def _format_match(self, record: PackageRecord) -> str:
        color = COLOR_LEAF if record.name in self._leaf_names else COLOR_PKG
        return f"[{color}]{record.name}[/] [dim]{record.version}, {len(record.requires)} deps[/]"

    def on_input_submitted(self, event: Input.Submitted) -> None:
        matches = _match_packages(self._catalog, event.value)
        if matches:
            self.dismiss(matches[0].name)

    def action_cancel(self) -> None:
        self.dismiss(None)


class LeavesApp(App[None]):
    """Terminal UI to explore leaf packages and dependency trees of a conda environment."""

    TITLE = "conda-leaves"
    BINDINGS = [
        Binding("enter", "start_main", "Start", show=False),
        Binding("escape", "back", "Back", show=True),
        Binding("b", "back", "Back", show=False),
        Binding("/", "search", "Search"),
        Binding("d", "toggle_details", "Details"),
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("e", "expand_all", "Expand all"),
        Binding("c", "collapse_all", "Collapse"),
    ]

    DEFAULT_CSS = """
    #welcome_container {
        align: center middle;
        width: 100%;
        height: 100%;
    }
    #welcome_desc {
        text-align: center;
        padding: 2 4;
    }
    #welcome_hint {
        text-align: center;
        padding-top: 1;
    }
    #welcome_loading {
        text-align: center;
        padding-top: 1;
        display: none;
    }
    #welcome_loading.loading {
        display: block;
    }
    #main_container {
        display: none;
    }
    #nav_hint {
        display: none;
        height: auto;
        padding: 0 1;
        margin-bottom: 1;
        color: $text-muted;
    }
    #details {
        padding: 1 2;
        border: solid $primary;
        height: auto;
        min-height: 8;
    }
    """

    def __init__(
        self,
        root_package: str | None = None,
        *,
        meta_dir: Path | None = None,
        prefix: Path | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._root_package = root_package
        self._root_node: Any = None
        self._meta_dir = meta_dir
        self._prefix = prefix
        self._main_started = False
        self._details_visible: bool = True
        # Background loading state
        self._catalog: Catalog | None = None
        self._catalog_loading: bool = False
        self._catalog_error: str | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Container(id="welcome_container"):
            yield Static(WELCOME_DESC, id="welcome_desc", markup=True)
            yield Static(
                "[cyan]Enter[/] to explore  ·  [dim]q[/] to quit",
                id="welcome_hint",
                markup=True,
            )
            with Container(id="welcome_loading"):
                yield LoadingIndicator()
                yield Static("[dim]Reading package metadata...[/]", id="loading_text", markup=True)
        with Container(id="main_container"):
            yield Static(
                "[dim]← Press [bold]Esc[/bold] or [bold]b[/bold] to return to package list[/]",
                id="nav_hint",
            )
            yield Tree("Packages", id="dep_tree")
            yield Static(
                "[dim]↑/↓[/] move  ·  [dim]Enter[/]/[dim]Space[/] select  ·  [dim]Esc[/]/[dim]b[/] = Back",
                id="details",
            )
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = "Leaf Package Explorer"
        self._start_catalog_load()

    def on_key(self, event: Any) -> None:
        """Enter on the welcome screen opens the main view."""
        if not self._main_started and event.key == "enter":
            event.prevent_default()
            event.stop()
            self.action_start_main()

    def _start_catalog_load(self) -> None:
        """Build the catalog in a background thread."""
        if self._catalog is not None or self._catalog_loading:
            return
        self._catalog_loading = True
        self.query_one("#welcome_loading").add_class("loading")
        self.run_worker(self._load_catalog_worker, thread=True)

    def _load_catalog_worker(self) -> Catalog:
        return load_catalog(meta_dir=self._meta_dir, prefix=self._prefix)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.state == WorkerState.SUCCESS:
            self._catalog = event.worker.result
            self._catalog_loading = False
            self._catalog_error = None
            self._update_loading_status()
        elif event.state == WorkerState.ERROR:
            self._catalog_loading = False
            self._catalog_error = str(event.worker.error)
            self._update_loading_status()

    def _update_loading_status(self) -> None:
        self.query_one("#welcome_loading").remove_class("loading")
        hint = self.query_one("#welcome_hint", Static)
        if self._catalog is not None:
            hint.update(
                f"[green]✓[/] {len(self._catalog)} packages found  ·  "
                "[cyan]Enter[/] to explore  ·  [dim]q[/] to quit"
            )
        elif self._catalog_error:
            hint.update(f"[red]Error: {self._catalog_error}[/]  ·  [dim]q[/] to quit")
        if self._main_started:
            self._clear_tree(self.query_one("#dep_tree", Tree))
            self._load_main_view()

    def action_start_main(self) -> None:
        """Transition from welcome screen to main view."""
        if self._main_started:
            return
        self._main_started = True
        self.query_one("#welcome_container").styles.display = "none"
        self.query_one("#main_container").styles.display = "block"
        self._load_main_view()

    def _load_main_view(self) -> None:
        self.query_one("#nav_hint").styles.display = "none"
        tree = self.query_one("#dep_tree", Tree)
        tree.focus()
        if self._catalog_loading:
            tree.root.label = f"[{COLOR_HEADER}]Loading packages...[/]"
            tree.root.add_leaf("[dim]Reading package metadata, please wait...[/]")
            return
        if self._catalog is None:
            self._set_details(f"[red]Error: {self._catalog_error or 'no catalog'}[/]")
            tree.root.add_leaf("[dim]Error loading packages[/]")
            return
        if self._root_package:
            self._load_tree(self._root_package)
            return

        catalog = self._catalog
        leaf_names = find_leaves(catalog)
        all_names = catalog.names()
        tree.root.label = f"[{COLOR_HEADER}]Packages[/]"
        for label, names, color, expand in (
            ("Leaves", leaf_names, COLOR_LEAF, True),
            ("All packages", all_names, COLOR_ALL, False),
        ):
            section = tree.root.add(f"[{color}]{label} ({len(names)})[/]", expand=expand)
            for name in names[:MAX_PACKAGES_PER_SECTION]:
                child_tn = section.add_leaf(f"[{color}]{name}[/]")
                child_tn.data = name
            if len(names) > MAX_PACKAGES_PER_SECTION:
                section.add_leaf(f"[dim]… and {len(names) - MAX_PACKAGES_PER_SECTION} more[/]")
        tree.root.expand()
        self._set_details(
            f"[{COLOR_HEADER}]Package list[/]\n\n"
            f"Total: [{COLOR_STATS}]{len(all_names)}[/] packages  ·  "
            f"Leaves: [{COLOR_STATS}]{len(leaf_names)}[/]\n\n"
            "[dim]↑/↓[/] move  ·  [dim]Enter[/] or [dim]Space[/] on a package = load tree"
        )

    def _clear_tree(self, tree: Tree) -> None:
        tree.root.remove_children()

    def _load_tree(self, root_package: str) -> None:
        if self._catalog is None:
            return
        self._root_package = root_package
        try:
            self._root_node = build_tree(self._catalog, root_package)
        except CondaLeavesError as e:
            self._set_details(f"[red]Error building tree: {e!s}[/]")
            return
        tree = self.query_one("#dep_tree", Tree)
        self._clear_tree(tree)
        tree.root.label = f"[{COLOR_HEADER}]{self._root_node.label}[/]"
        tree.root.data = self._root_node
        _populate_textual_tree(tree.root, self._root_node)
        _expand_to_depth(tree.root, EXPAND_DEPTH_DEFAULT)
        self._set_details(self._format_node(self._root_node))
        self.query_one("#nav_hint").styles.display = "block"
        tree.focus()

    def _format_node(self, node: Any) -> str:
        direct, total_desc, max_depth = _node_stats(node)
        dependents: list[str] = []
        if self._catalog is not None and node.name in self._catalog:
            dependents = find_dependents(self._catalog, node.name)
        required_by = ", ".join(dependents) if dependents else "(nothing: leaf)"
        lines = [
            f"[{COLOR_HEADER}]Package[/]",
            f"  [{COLOR_PKG}]{node.label}[/]",
            "",
            f"[{COLOR_HEADER}]Stats[/]",
            f"  Direct requirements:   [{COLOR_STATS}]{direct}[/]",
            f"  Total descendants:     [{COLOR_STATS}]{total_desc}[/] [dim](indirect)[/]",
            f"  Max depth from here:  [{COLOR_STATS}]{max_depth}[/] [dim]levels[/]",
            "",
            f"[{COLOR_HEADER}]Required by[/]",
            f"  {required_by}",
        ]
        return "\n".join(lines)

    def _set_details(self, text: str) -> None:
        self.query_one("#details", Static).update(text)

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        node = event.node.data
        if node is None:
            return
        if isinstance(node, str):
            self._load_tree(node)
        else:
            self._set_details(self._format_node(node))

    def action_back(self) -> None:
        """Return to the package list (only when viewing a tree)."""
        if not self._main_started or not self._root_package:
            return
        self._root_package = None
        self._root_node = None
        tree = self.query_one("#dep_tree", Tree)
        self._clear_tree(tree)
        self._load_main_view()

    def action_refresh(self) -> None:
        if not self._main_started:
            return
        self._catalog = None
        self._catalog_loading = False
        self._clear_tree(self.query_one("#dep_tree", Tree))
        self._start_catalog_load()
        self._load_main_view()

    def action_expand_all(self) -> None:
        self.query_one("#dep_tree", Tree).root.expand_all()

    def action_collapse_all(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        tree.root.collapse_all()
        tree.root.expand()

    def action_search(self) -> None:
        if not self._main_started:
            return
        if self._catalog is None:
            self.notify("Packages are still loading", severity="warning", timeout=2)
            return
        leaf_names = set(find_leaves(self._catalog))
        self.push_screen(PackageSearchScreen(self._catalog, leaf_names), self._on_search_done)

    def _on_search_done(self, name: str | None) -> None:
        if name:
            self._load_tree(name)

    def action_toggle_details(self) -> None:
        self._details_visible = not self._details_visible
        details = self.query_one("#details", Static)
        details.styles.display = "block" if self._details_visible else "none"

    def action_quit(self) -> None:
        self.exit()


def main() -> None:
    """Entry point for the conda-leaves TUI."""
    root = sys.argv[1].strip() if len(sys.argv) > 1 else None
    LeavesApp(root_package=root).run()


if __name__ == "__main__":
    main()
