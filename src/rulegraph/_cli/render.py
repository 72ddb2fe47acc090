"""Rich rendering utilities for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

if TYPE_CHECKING:
    from collections.abc import Mapping

    from rich.console import Console

    from rulegraph._graph import DependencyGraph


def render_snapshot(values: Mapping[str, Any], overrides: Mapping[str, Any], console: Console) -> None:
    """Render rule values as a Rich table.

    Args:
        values: Snapshot of rule values.
        overrides: Keys set manually; marked in the table.
        console: Rich Console to output to.

    """
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Rule", style="bold")
    table.add_column("Value")
    table.add_column("Source", style="dim")

    for key, value in values.items():
        source = "[yellow]override[/yellow]" if key in overrides else "computed"
        table.add_row(escape(key), escape(repr(value)), source)

    console.print(table)


def render_dependency_tree(graph: DependencyGraph[str], console: Console) -> None:
    """Render the dependency graph as a Rich tree, rooted at rules that read nothing.

    A rule with several upstream rules appears under each of them. Children of
    a rule already expanded on the current branch are not expanded again.

    Args:
        graph: Graph to render.
        console: Rich Console to output to.

    """
    tree = Tree("[bold]rules[/bold]")
    roots = graph.roots()
    if not roots:
        tree.add("[dim]no root rules[/dim]")
    for root in roots:
        _add_tree_children(tree.add(f"[bold]{escape(root)}[/bold]"), graph, root, (root,))
    console.print(tree)


def _add_tree_children(parent: Tree, graph: DependencyGraph[str], node: str, branch: tuple[str, ...]) -> None:
    for child in graph.successors(node):
        if child in branch:
            parent.add(f"[red]{escape(child)} (cycle)[/red]")
            continue
        _add_tree_children(parent.add(escape(child)), graph, child, (*branch, child))
