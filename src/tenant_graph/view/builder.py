from __future__ import annotations

import copy
import html
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..model.filters import FilterState, edge_visible, matches
from ..model.payload import (
    PayloadResult,
    edge_endpoints,
    edge_id,
    edge_type,
    get_prop,
    node_id,
    node_label,
    node_properties,
    node_type,
    parse_payload,
)
from .styles import (
    DEFAULT_RENDER_OPTIONS,
    EDGE_FONT,
    NODE_FONT,
    NODE_SHAPE,
    NODE_SIZE,
    edge_style,
    node_color,
)

LOG = get_logger(__name__)

DecoratedNode = Dict[str, Any]
DecoratedEdge = Dict[str, Any]

# (property key, tooltip caption), in display order
TOOLTIP_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("resourceGroup", "Resource Group"),
    ("location", "Location"),
    ("subscriptionId", "Subscription"),
    ("sku", "SKU"),
    ("status", "Status"),
    ("provisioningState", "State"),
)
TOOLTIP_HINT = "Click for more details"


@dataclass(frozen=True)
class ViewModel:
    visible_nodes: List[DecoratedNode] = field(default_factory=list)
    visible_edges: List[DecoratedEdge] = field(default_factory=list)
    error: Optional[str] = None
    dangling_edges: int = 0

    @property
    def valid(self) -> bool:
        return self.error is None

    def node_ids(self) -> List[str]:
        return [str(n["id"]) for n in self.visible_nodes if n.get("id") is not None]

    def render_triple(self) -> Tuple[List[DecoratedNode], List[DecoratedEdge], Dict[str, Any]]:
        """The (nodes, edges, options) input expected by the rendering collaborator."""
        return self.visible_nodes, self.visible_edges, copy.deepcopy(DEFAULT_RENDER_OPTIONS)


def empty_view(error: Optional[str] = None) -> ViewModel:
    return ViewModel(error=error)


def _display_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Mapping):
        # sku objects look like {"name": "Standard_LRS", "tier": "Standard"}
        name = value.get("name")
        return _display_value(name)
    if isinstance(value, (list, tuple, set)):
        parts = [p for p in (_display_value(v) for v in value) if p]
        return ", ".join(parts) or None
    text = str(value).strip()
    return text or None


def node_tooltip(node: Mapping[str, Any]) -> str:
    """HTML tooltip; optional rows appear only when the property has a non-empty value."""
    esc = html.escape
    rows = [
        f'<div class="vis-tooltip-title">{esc(node_label(node))}</div>',
        f'<div class="vis-tooltip-row"><strong>Type:</strong> {esc(node_type(node))}</div>',
    ]
    for key, caption in TOOLTIP_FIELDS:
        value = _display_value(get_prop(node, key))
        if value is None:
            continue
        rows.append(f'<div class="vis-tooltip-row"><strong>{caption}:</strong> {esc(value)}</div>')
    rows.append(f'<div class="vis-tooltip-hint">{TOOLTIP_HINT}</div>')
    return "\n".join(rows)


def decorate_node(node: Mapping[str, Any]) -> DecoratedNode:
    type_name = node_type(node)
    return {
        "id": node_id(node),
        "label": node_label(node),
        "type": type_name,
        "title": node_tooltip(node),
        "color": node_color(type_name),
        "shape": NODE_SHAPE,
        "size": NODE_SIZE,
        "font": dict(NODE_FONT),
        "borderWidth": 2,
        "borderWidthSelected": 4,
        "properties": copy.deepcopy(dict(node_properties(node))),
    }


def decorate_edge(edge: Mapping[str, Any]) -> DecoratedEdge:
    type_name = edge_type(edge)
    source, target = edge_endpoints(edge)
    out: DecoratedEdge = {
        "id": edge_id(edge),
        "from": source,
        "to": target,
        "label": type_name,
        "title": type_name,
        "font": dict(EDGE_FONT),
    }
    out.update(edge_style(type_name).as_dict())
    return out


def build(
    nodes: Sequence[Mapping[str, Any]],
    edges: Sequence[Mapping[str, Any]],
    filters: FilterState,
) -> ViewModel:
    """
    Filter and decorate a graph for rendering.

    An edge is kept only when its own type is visible and both endpoints passed
    every node filter. Output order follows input order; inputs are not mutated.
    """
    if not isinstance(nodes, (list, tuple)) or not isinstance(edges, (list, tuple)):
        LOG.warning(
            "Refusing to build view model from non-array nodes/edges",
            extra={"step": "view", "phase": "error"},
        )
        return empty_view("nodes and edges must be arrays")

    known_ids: Set[str] = set()
    visible: List[Mapping[str, Any]] = []
    for node in nodes:
        if not isinstance(node, Mapping):
            continue
        ident = node_id(node)
        if ident is not None:
            known_ids.add(ident)
        if matches(node, filters):
            visible.append(node)
    visible_ids = {ident for ident in (node_id(n) for n in visible) if ident is not None}

    kept_edges: List[Mapping[str, Any]] = []
    dangling = 0
    for edge in edges:
        if not isinstance(edge, Mapping):
            continue
        source, target = edge_endpoints(edge)
        if source not in known_ids or target not in known_ids:
            dangling += 1
            continue
        if edge_visible(edge, filters) and source in visible_ids and target in visible_ids:
            kept_edges.append(edge)

    if dangling:
        LOG.debug(
            "Dropped edges referencing unknown nodes",
            extra={"step": "view", "phase": "build", "dangling_edges": dangling},
        )

    return ViewModel(
        visible_nodes=[decorate_node(n) for n in visible],
        visible_edges=[decorate_edge(e) for e in kept_edges],
        dangling_edges=dangling,
    )


def build_view(payload: PayloadResult, filters: FilterState) -> ViewModel:
    if not payload.valid:
        LOG.warning(
            "Invalid graph payload; rendering empty view",
            extra={"step": "view", "phase": "error", "error": payload.error},
        )
        return empty_view(payload.error)
    return build(payload.nodes, payload.edges, filters)


def build_from_raw(raw: Any, filters: FilterState) -> ViewModel:
    return build_view(parse_payload(raw), filters)
