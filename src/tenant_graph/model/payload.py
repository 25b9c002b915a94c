from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, TypedDict

from ..logging import get_logger

LOG = get_logger(__name__)

UNKNOWN_TYPE = "Unknown"


class GraphNode(TypedDict, total=False):
    id: str
    label: str
    type: str
    properties: Dict[str, Any]
    labels: List[str]


class GraphEdge(TypedDict, total=False):
    id: str
    source: str
    target: str
    type: str
    label: str
    properties: Dict[str, Any]


class GraphStats(TypedDict, total=False):
    nodeCount: int
    edgeCount: int
    nodeTypes: Dict[str, int]
    edgeTypes: Dict[str, int]


def node_properties(item: Mapping[str, Any]) -> Mapping[str, Any]:
    props = item.get("properties") if isinstance(item, Mapping) else None
    return props if isinstance(props, Mapping) else {}


def get_prop(item: Mapping[str, Any], key: str) -> Optional[Any]:
    """Return a property value, or None when the bag or the key is missing."""
    return node_properties(item).get(key)


def get_str_prop(item: Mapping[str, Any], key: str) -> Optional[str]:
    """Return a property as a non-empty string, or None for absent/empty/non-scalar values."""
    value = get_prop(item, key)
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def node_id(node: Mapping[str, Any]) -> Optional[str]:
    raw = node.get("id") if isinstance(node, Mapping) else None
    if raw is None or raw == "":
        return None
    return str(raw)


def node_type(node: Mapping[str, Any]) -> str:
    raw = node.get("type")
    return str(raw) if raw else UNKNOWN_TYPE


def node_label(node: Mapping[str, Any]) -> str:
    label = node.get("label")
    if isinstance(label, str) and label:
        return label
    return fallback_label(node_properties(node), node_id(node) or "")


def fallback_label(properties: Mapping[str, Any], ident: str) -> str:
    # name -> value -> "Node {id}"
    for key in ("name", "value"):
        value = properties.get(key)
        if value is not None and value != "":
            return str(value)
    return f"Node {ident}"


def _endpoint(raw: Any) -> str:
    if raw is None or raw == "":
        return ""
    return str(raw)


def edge_endpoints(edge: Mapping[str, Any]) -> tuple[str, str]:
    return _endpoint(edge.get("source")), _endpoint(edge.get("target"))


def edge_id(edge: Mapping[str, Any]) -> str:
    raw = edge.get("id")
    if raw is not None and raw != "":
        return str(raw)
    source, target = edge_endpoints(edge)
    return f"{source}-{target}"


def edge_type(edge: Mapping[str, Any]) -> str:
    raw = edge.get("type")
    return str(raw) if raw else UNKNOWN_TYPE


def select_edges(raw: Mapping[str, Any]) -> Any:
    """Pick the edge list from a payload; `edges` wins over the legacy `relationships` key."""
    edges = raw.get("edges")
    if edges is not None:
        return edges
    relationships = raw.get("relationships")
    if relationships is not None:
        return relationships
    return []


def compute_stats(nodes: Iterable[Mapping[str, Any]], edges: Iterable[Mapping[str, Any]]) -> GraphStats:
    node_types: Dict[str, int] = {}
    edge_types: Dict[str, int] = {}
    node_count = 0
    edge_count = 0
    for node in nodes:
        node_count += 1
        t = node_type(node)
        node_types[t] = node_types.get(t, 0) + 1
    for edge in edges:
        edge_count += 1
        t = edge_type(edge)
        edge_types[t] = edge_types.get(t, 0) + 1
    return {
        "nodeCount": node_count,
        "edgeCount": edge_count,
        "nodeTypes": node_types,
        "edgeTypes": edge_types,
    }


@dataclass(frozen=True)
class PayloadResult:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    stats: GraphStats = field(default_factory=dict)  # type: ignore[assignment]
    error: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.error is None

    def node_index(self) -> Dict[str, GraphNode]:
        out: Dict[str, GraphNode] = {}
        for node in self.nodes:
            ident = node_id(node)
            if ident is not None:
                out.setdefault(ident, node)
        return out


def invalid_payload(reason: str) -> PayloadResult:
    return PayloadResult(error=reason)


def parse_payload(raw: Any) -> PayloadResult:
    """
    Validate the shape of a graph query response.

    Never raises: a payload whose `nodes`/`edges` are not arrays, or whose `stats`
    object is missing, comes back as an invalid result with zero nodes and edges
    so callers can render an empty state.
    """
    if not isinstance(raw, Mapping):
        return invalid_payload("payload must be an object")
    nodes = raw.get("nodes")
    if not isinstance(nodes, (list, tuple)):
        return invalid_payload("payload 'nodes' must be an array")
    edges = select_edges(raw)
    if not isinstance(edges, (list, tuple)):
        return invalid_payload("payload 'edges' must be an array")
    stats = raw.get("stats")
    if not isinstance(stats, Mapping):
        return invalid_payload("payload 'stats' is missing")

    kept_nodes = [n for n in nodes if isinstance(n, Mapping) and node_id(n) is not None]
    kept_edges = [e for e in edges if isinstance(e, Mapping)]
    skipped = (len(nodes) - len(kept_nodes)) + (len(edges) - len(kept_edges))
    if skipped:
        LOG.debug(
            "Skipped malformed payload entries",
            extra={"step": "payload", "phase": "parse", "skipped": skipped},
        )
    return PayloadResult(
        nodes=list(kept_nodes),  # type: ignore[arg-type]
        edges=list(kept_edges),  # type: ignore[arg-type]
        stats=dict(stats),  # type: ignore[arg-type]
    )
