from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from rich.console import Console
from rich.table import Table

from ..model.filters import FilterOptions
from ..view.builder import ViewModel
from ..view.styles import LegendEntry


def _type_counts(items: Sequence[Mapping[str, Any]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for item in items:
        t = str(item.get("type") or "")
        counts[t] = counts.get(t, 0) + 1
    return counts


def render_view_summary(
    view: ViewModel,
    stats: Mapping[str, Any],
    *,
    console: Optional[Console] = None,
) -> None:
    console = console or Console()
    if not view.valid:
        console.print(f"[yellow]No graph to display:[/yellow] {view.error}")
        return
    table = Table(title="Visible Graph", show_header=True, header_style="bold")
    table.add_column("Kind", style="cyan")
    table.add_column("Type", style="white")
    table.add_column("Visible", justify="right")
    table.add_column("Total", justify="right")

    visible_nodes = _type_counts(view.visible_nodes)
    node_totals = stats.get("nodeTypes") if isinstance(stats.get("nodeTypes"), Mapping) else {}
    for name in sorted(set(node_totals) | set(visible_nodes)):
        table.add_row("node", name, str(visible_nodes.get(name, 0)), str(node_totals.get(name, 0)))

    visible_edges: Dict[str, int] = {}
    for edge in view.visible_edges:
        label = str(edge.get("label") or "")
        visible_edges[label] = visible_edges.get(label, 0) + 1
    edge_totals = stats.get("edgeTypes") if isinstance(stats.get("edgeTypes"), Mapping) else {}
    for name in sorted(set(edge_totals) | set(visible_edges)):
        table.add_row("edge", name, str(visible_edges.get(name, 0)), str(edge_totals.get(name, 0)))

    table.add_row("", "[bold]total nodes[/bold]", str(len(view.visible_nodes)), str(stats.get("nodeCount", 0)))
    table.add_row("", "[bold]total edges[/bold]", str(len(view.visible_edges)), str(stats.get("edgeCount", 0)))
    console.print(table)


def render_node_detail(detail: Mapping[str, Any], *, console: Optional[Console] = None) -> None:
    console = console or Console()
    node = detail.get("node") or {}
    table = Table(title=f"{node.get('label')} ({node.get('type')})", show_header=True, header_style="bold")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("id", str(node.get("id")))
    props = node.get("properties") or {}
    for key in sorted(props):
        table.add_row(str(key), str(props[key]))
    console.print(table)

    neighbors: List[Mapping[str, Any]] = list(detail.get("neighbors") or [])
    if not neighbors:
        console.print("No neighbors.")
        return
    ntable = Table(title="Neighbors", show_header=True, header_style="bold")
    ntable.add_column("Direction", style="cyan")
    ntable.add_column("Relationship")
    ntable.add_column("Id")
    ntable.add_column("Label")
    ntable.add_column("Type")
    for neighbor in neighbors:
        rel = neighbor.get("relationship") or {}
        ntable.add_row(
            str(rel.get("direction")),
            str(rel.get("type")),
            str(neighbor.get("id")),
            str(neighbor.get("label")),
            str(neighbor.get("type")),
        )
    console.print(ntable)


def render_search_results(nodes: Sequence[Mapping[str, Any]], *, console: Optional[Console] = None) -> None:
    console = console or Console()
    if not nodes:
        console.print("No matching nodes.")
        return
    table = Table(title=f"Search Results ({len(nodes)})", show_header=True, header_style="bold")
    table.add_column("Id", style="cyan")
    table.add_column("Label")
    table.add_column("Type")
    for node in nodes:
        table.add_row(str(node.get("id")), str(node.get("label")), str(node.get("type")))
    console.print(table)


def render_filter_options(options: FilterOptions, *, console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title="Filter Options", show_header=True, header_style="bold")
    table.add_column("Facet", style="cyan")
    table.add_column("Values")
    table.add_row("tags", ", ".join(options.tags))
    table.add_row("regions", ", ".join(options.regions))
    table.add_row("resource groups", ", ".join(options.resource_groups))
    table.add_row("subscriptions", ", ".join(options.subscriptions))
    console.print(table)


def render_legend(entries: Sequence[LegendEntry], *, console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title="Legend", show_header=True, header_style="bold")
    table.add_column("Kind", style="cyan")
    table.add_column("Type")
    table.add_column("Count", justify="right")
    table.add_column("Color")
    table.add_column("Description")
    for entry in entries:
        table.add_row(
            entry.kind,
            entry.type_name,
            str(entry.count),
            f"[{entry.color}]{entry.color}[/]",
            entry.description or "",
        )
    console.print(table)


def render_export_summary(
    node_details: Sequence[Mapping[str, Any]],
    paths: Sequence[str],
    *,
    console: Optional[Console] = None,
) -> None:
    console = console or Console()
    table = Table(title="Exported Selection", show_header=True, header_style="bold")
    table.add_column("Id", style="cyan")
    table.add_column("Type")
    table.add_column("Label")
    for detail in node_details:
        table.add_row(str(detail.get("id")), str(detail.get("type")), str(detail.get("label")))
    console.print(table)
    for path in paths:
        console.print(f"Wrote {path}")
