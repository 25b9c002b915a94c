from __future__ import annotations

from typing import AbstractSet, Any, Collection, Iterable, Mapping, Optional, Set

from .model.payload import edge_endpoints


def neighbors_of(node_id: str, edges: Iterable[Mapping[str, Any]]) -> Set[str]:
    """Closed 1-hop neighborhood of `node_id`, ignoring edge direction."""
    connected = {node_id}
    for edge in edges:
        if not isinstance(edge, Mapping):
            continue
        source, target = edge_endpoints(edge)
        if source == node_id and target:
            connected.add(target)
        elif target == node_id and source:
            connected.add(source)
    return connected


def toggle_selection(
    node_id: str,
    current: AbstractSet[str],
    edges: Iterable[Mapping[str, Any]],
    *,
    visible_ids: Optional[Collection[str]] = None,
) -> Set[str]:
    """
    Toggle the whole neighborhood of `node_id` in a selection.

    If the anchor is already selected its neighborhood is removed, otherwise it is
    added. When neighborhoods overlap, two clicks on the same node do not always
    restore the original selection. Clicking a node outside `visible_ids` is a no-op.
    Returns a new set; `current` is left untouched.
    """
    if visible_ids is not None and node_id not in visible_ids:
        return set(current)
    connected = neighbors_of(node_id, edges)
    if node_id in current:
        return set(current) - connected
    return set(current) | connected
