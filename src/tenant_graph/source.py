from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .logging import get_logger
from .model.payload import (
    GraphEdge,
    GraphNode,
    UNKNOWN_TYPE,
    compute_stats,
    edge_endpoints,
    edge_id,
    edge_type,
    fallback_label,
    node_id,
    node_properties,
    node_type,
    select_edges,
)
from .util.errors import PayloadError, SourceError
from .util.serialization import sanitize_for_json

LOG = get_logger(__name__)

DEFAULT_SEARCH_LIMIT = 50


class GraphSource(Protocol):
    """Read side of the graph query API consumed by the explorer session."""

    def fetch_graph(self) -> Dict[str, Any]:
        ...

    def fetch_node_detail(self, node_id: str) -> Dict[str, Any]:
        ...

    def search_nodes(self, query: str, node_type: Optional[str] = None) -> List[GraphNode]:
        ...


def _normalize_node(record: Mapping[str, Any]) -> GraphNode:
    """
    Turn a stored node record into the payload shape. Records may come straight
    from the database ({id, labels, properties}) or already carry label/type.
    """
    ident = str(record.get("id"))
    props = sanitize_for_json(dict(node_properties(record)))
    labels = record.get("labels")
    labels = [str(l) for l in labels] if isinstance(labels, (list, tuple)) else []
    type_name = record.get("type") or (labels[0] if labels else UNKNOWN_TYPE)
    label = record.get("label")
    if not isinstance(label, str) or not label:
        label = fallback_label(props, ident)
    node: GraphNode = {"id": ident, "label": label, "type": str(type_name), "properties": props}
    if labels:
        node["labels"] = labels
    return node


def _normalize_edge(record: Mapping[str, Any]) -> GraphEdge:
    source, target = edge_endpoints(record)
    type_name = edge_type(record)
    return {
        "id": edge_id(record),
        "source": source,
        "target": target,
        "type": type_name,
        "label": type_name,
        "properties": sanitize_for_json(dict(node_properties(record))),
    }


class InMemoryGraphSource:
    """Serves graph reads from a document of node and edge records."""

    def __init__(self, document: Mapping[str, Any], *, search_limit: int = DEFAULT_SEARCH_LIMIT) -> None:
        if not isinstance(document, Mapping):
            raise PayloadError("graph document must be an object")
        raw_nodes = document.get("nodes")
        raw_edges = select_edges(document)
        if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
            raise PayloadError("graph document 'nodes' and 'edges' must be arrays")
        self._nodes: List[GraphNode] = [
            _normalize_node(r) for r in raw_nodes if isinstance(r, Mapping) and node_id(r) is not None
        ]
        self._edges: List[GraphEdge] = [_normalize_edge(r) for r in raw_edges if isinstance(r, Mapping)]
        self._by_id: Dict[str, GraphNode] = {}
        for node in self._nodes:
            self._by_id.setdefault(node["id"], node)
        self._search_limit = max(1, int(search_limit))

    def fetch_graph(self) -> Dict[str, Any]:
        return {
            "nodes": list(self._nodes),
            "edges": list(self._edges),
            "stats": compute_stats(self._nodes, self._edges),
        }

    def fetch_node_detail(self, node_id: str) -> Dict[str, Any]:
        node = self._by_id.get(node_id)
        if node is None:
            raise SourceError(f"Node not found: {node_id}")
        neighbors: List[Dict[str, Any]] = []
        for edge in self._edges:
            source, target = edge_endpoints(edge)
            if source == node_id:
                other, direction = target, "outgoing"
            elif target == node_id:
                other, direction = source, "incoming"
            else:
                continue
            neighbor = self._by_id.get(other)
            if neighbor is None:
                continue
            neighbors.append(
                {
                    "id": neighbor["id"],
                    "label": neighbor["label"],
                    "type": neighbor["type"],
                    "properties": neighbor["properties"],
                    "relationship": {
                        "type": edge["type"],
                        "direction": direction,
                        "properties": edge["properties"],
                    },
                }
            )
        return {
            "node": {
                "id": node["id"],
                "label": node["label"],
                "type": node["type"],
                "properties": node["properties"],
                "labels": list(node.get("labels") or [node["type"]]),
            },
            "neighbors": neighbors,
        }

    def search_nodes(self, query: str, node_type: Optional[str] = None) -> List[GraphNode]:
        needle = (query or "").lower()
        type_filter = node_type if node_type and node_type != "all" else None
        out: List[GraphNode] = []
        for node in self._nodes:
            if needle and not _text_matches(node, needle):
                continue
            if type_filter and type_filter not in _node_labels(node):
                continue
            out.append(node)
            if len(out) >= self._search_limit:
                break
        return out


def _node_labels(node: GraphNode) -> List[str]:
    labels = node.get("labels")
    if labels:
        return list(labels)
    return [node_type(node)]


def _text_matches(node: GraphNode, needle: str) -> bool:
    props = node_properties(node)
    for key in ("name", "value"):
        value = props.get(key)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


class FileGraphSource(InMemoryGraphSource):
    """Graph source backed by a JSON export of the tenant graph."""

    def __init__(self, path: Path, *, search_limit: int = DEFAULT_SEARCH_LIMIT) -> None:
        self.path = Path(path)
        if not self.path.is_file():
            raise SourceError(f"Graph payload not found: {self.path}")
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PayloadError(f"Failed to parse graph payload {self.path}: {e}") from e
        super().__init__(document, search_limit=search_limit)
        LOG.info(
            "Graph payload loaded",
            extra={
                "step": "source",
                "phase": "complete",
                "path": str(self.path),
                "nodes": len(self._nodes),
                "edges": len(self._edges),
            },
        )
