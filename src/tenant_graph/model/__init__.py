from __future__ import annotations

from .filters import FilterState, default_filter_state, edge_visible, matches
from .payload import GraphEdge, GraphNode, GraphStats, PayloadResult, parse_payload

__all__ = [
    "FilterState",
    "GraphEdge",
    "GraphNode",
    "GraphStats",
    "PayloadResult",
    "default_filter_state",
    "edge_visible",
    "matches",
    "parse_payload",
]
