from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Collection, Iterable, List, Mapping, Optional, Set

from .payload import GraphStats, edge_type, get_str_prop, node_label, node_properties, node_type

SUBSCRIPTION_TYPE = "Subscription"
RESOURCE_GROUP_TYPE = "ResourceGroup"

# Subscriptions fan out to every resource group; hiding them keeps dense tenants readable.
DEFAULT_HIDDEN_NODE_TYPES = frozenset({SUBSCRIPTION_TYPE})

NAME_KEYS = ("name", "displayName")
REGION_KEYS = ("location", "region")
RESOURCE_GROUP_KEYS = ("resourceGroup", "resourceGroupName")
SUBSCRIPTION_KEYS = ("subscriptionId", "subscriptionName")

FACETS = ("tags", "regions", "resource_groups", "subscriptions")


@dataclass
class FilterState:
    """
    Interactive filter facets. Node facets are ANDed; an empty attribute facet
    places no restriction on nodes.
    """

    visible_node_types: Set[str] = field(default_factory=set)
    visible_edge_types: Set[str] = field(default_factory=set)
    name_filter: str = ""
    selected_tags: Set[str] = field(default_factory=set)
    selected_regions: Set[str] = field(default_factory=set)
    selected_resource_groups: Set[str] = field(default_factory=set)
    selected_subscriptions: Set[str] = field(default_factory=set)

    def copy(self) -> FilterState:
        return FilterState(
            visible_node_types=set(self.visible_node_types),
            visible_edge_types=set(self.visible_edge_types),
            name_filter=self.name_filter,
            selected_tags=set(self.selected_tags),
            selected_regions=set(self.selected_regions),
            selected_resource_groups=set(self.selected_resource_groups),
            selected_subscriptions=set(self.selected_subscriptions),
        )

    def toggle_node_type(self, type_name: str) -> bool:
        """Flip visibility of one node type; returns the new visibility."""
        return _toggle(self.visible_node_types, type_name)

    def toggle_edge_type(self, type_name: str) -> bool:
        return _toggle(self.visible_edge_types, type_name)

    def set_facet(self, facet: str, values: Iterable[str]) -> None:
        if facet not in FACETS:
            raise ValueError(f"Unknown filter facet '{facet}' (expected one of: {', '.join(FACETS)})")
        cleaned = {str(v) for v in values if str(v)}
        setattr(self, f"selected_{facet}", cleaned)

    def reset(
        self,
        stats: Optional[GraphStats],
        hidden_node_types: Collection[str] = DEFAULT_HIDDEN_NODE_TYPES,
    ) -> None:
        """Clear attribute filters and restore default type visibility for `stats`."""
        defaults = default_filter_state(stats, hidden_node_types)
        self.visible_node_types = defaults.visible_node_types
        self.visible_edge_types = defaults.visible_edge_types
        self.name_filter = ""
        self.selected_tags = set()
        self.selected_regions = set()
        self.selected_resource_groups = set()
        self.selected_subscriptions = set()


def _toggle(values: Set[str], item: str) -> bool:
    if item in values:
        values.discard(item)
        return False
    values.add(item)
    return True


def default_visible_types(
    stats: Optional[Mapping[str, Any]],
    hidden_node_types: Collection[str] = DEFAULT_HIDDEN_NODE_TYPES,
) -> tuple[Set[str], Set[str]]:
    stats = stats if isinstance(stats, Mapping) else {}
    node_types = stats.get("nodeTypes")
    edge_types = stats.get("edgeTypes")
    node_keys = set(node_types.keys()) if isinstance(node_types, Mapping) else set()
    edge_keys = set(edge_types.keys()) if isinstance(edge_types, Mapping) else set()
    return {t for t in node_keys if t not in hidden_node_types}, edge_keys


def default_filter_state(
    stats: Optional[GraphStats],
    hidden_node_types: Collection[str] = DEFAULT_HIDDEN_NODE_TYPES,
) -> FilterState:
    node_types, edge_types = default_visible_types(stats, hidden_node_types)
    return FilterState(visible_node_types=node_types, visible_edge_types=edge_types)


# -----------------
# Node sub-predicates
# -----------------


def node_tags(node: Mapping[str, Any]) -> Set[str]:
    """
    Tag names of a node. Accepts a keyed map (tag name -> value) or a
    comma-separated string; anything else yields no tags.
    """
    tags = node_properties(node).get("tags")
    if isinstance(tags, Mapping):
        return {str(k) for k in tags.keys()}
    if isinstance(tags, str):
        return {t.strip() for t in tags.split(",") if t.strip()}
    return set()


def _attribute_values(node: Mapping[str, Any], keys: Iterable[str]) -> List[str]:
    out: List[str] = []
    for key in keys:
        value = get_str_prop(node, key)
        if value is not None:
            out.append(value)
    return out


def matches_type(node: Mapping[str, Any], filters: FilterState) -> bool:
    return node_type(node) in filters.visible_node_types


def matches_name(node: Mapping[str, Any], filters: FilterState) -> bool:
    if not filters.name_filter:
        return True
    needle = filters.name_filter.lower()
    candidates = [node_label(node)] + _attribute_values(node, NAME_KEYS)
    return any(needle in candidate.lower() for candidate in candidates)


def matches_tags(node: Mapping[str, Any], filters: FilterState) -> bool:
    if not filters.selected_tags:
        return True
    return bool(node_tags(node) & filters.selected_tags)


def matches_region(node: Mapping[str, Any], filters: FilterState) -> bool:
    if not filters.selected_regions:
        return True
    return any(v in filters.selected_regions for v in _attribute_values(node, REGION_KEYS))


def _container_values(node: Mapping[str, Any], keys: Iterable[str], container_type: str) -> List[str]:
    values = _attribute_values(node, keys)
    if node_type(node) == container_type:
        values.append(node_label(node))
    return values


def matches_resource_group(node: Mapping[str, Any], filters: FilterState) -> bool:
    if not filters.selected_resource_groups:
        return True
    values = _container_values(node, RESOURCE_GROUP_KEYS, RESOURCE_GROUP_TYPE)
    return any(v in filters.selected_resource_groups for v in values)


def matches_subscription(node: Mapping[str, Any], filters: FilterState) -> bool:
    if not filters.selected_subscriptions:
        return True
    values = _container_values(node, SUBSCRIPTION_KEYS, SUBSCRIPTION_TYPE)
    return any(v in filters.selected_subscriptions for v in values)


NODE_PREDICATES = (
    matches_type,
    matches_name,
    matches_tags,
    matches_region,
    matches_resource_group,
    matches_subscription,
)


def matches(node: Mapping[str, Any], filters: FilterState) -> bool:
    """True when the node passes every facet of `filters`."""
    if not isinstance(node, Mapping):
        return False
    return all(predicate(node, filters) for predicate in NODE_PREDICATES)


def edge_visible(edge: Mapping[str, Any], filters: FilterState) -> bool:
    return edge_type(edge) in filters.visible_edge_types


# ---------------
# Filter options
# ---------------


@dataclass(frozen=True)
class FilterOptions:
    tags: List[str]
    regions: List[str]
    resource_groups: List[str]
    subscriptions: List[str]


def extract_filter_options(nodes: Iterable[Mapping[str, Any]]) -> FilterOptions:
    """Collect the distinct values each attribute facet can be set to."""
    tags: Set[str] = set()
    regions: Set[str] = set()
    resource_groups: Set[str] = set()
    subscriptions: Set[str] = set()
    for node in nodes:
        if not isinstance(node, Mapping):
            continue
        tags.update(node_tags(node))
        regions.update(_attribute_values(node, REGION_KEYS))
        resource_groups.update(_container_values(node, RESOURCE_GROUP_KEYS, RESOURCE_GROUP_TYPE))
        subscriptions.update(_container_values(node, SUBSCRIPTION_KEYS, SUBSCRIPTION_TYPE))
    return FilterOptions(
        tags=sorted(tags),
        regions=sorted(regions),
        resource_groups=sorted(resource_groups),
        subscriptions=sorted(subscriptions),
    )
