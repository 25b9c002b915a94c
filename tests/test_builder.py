from __future__ import annotations

import copy
import itertools

from tenant_graph.model.filters import FilterState, default_filter_state
from tenant_graph.model.payload import compute_stats, parse_payload
from tenant_graph.view.builder import build, build_from_raw, build_view, node_tooltip
from tenant_graph.view.styles import DEFAULT_EDGE_STYLE, DEFAULT_NODE_COLOR, NODE_COLORS

NODES = [
    {"id": "n1", "type": "Tenant"},
    {"id": "n2", "type": "Subscription"},
    {"id": "n3", "type": "ResourceGroup"},
]
EDGES = [
    {"id": "e1", "source": "n1", "target": "n2", "type": "CONTAINS"},
    {"id": "e2", "source": "n2", "target": "n3", "type": "CONTAINS"},
]


def _ids(items) -> list:
    return [item["id"] for item in items]


def test_default_filters_hide_subscription_and_its_edges() -> None:
    filters = default_filter_state(compute_stats(NODES, EDGES))

    view = build(NODES, EDGES, filters)

    assert _ids(view.visible_nodes) == ["n1", "n3"]
    assert view.visible_edges == []


def test_all_types_visible_keeps_every_edge() -> None:
    filters = FilterState(
        visible_node_types={"Tenant", "Subscription", "ResourceGroup"},
        visible_edge_types={"CONTAINS"},
    )

    view = build(NODES, EDGES, filters)

    assert _ids(view.visible_nodes) == ["n1", "n2", "n3"]
    assert _ids(view.visible_edges) == ["e1", "e2"]
    assert view.visible_edges[0]["from"] == "n1"
    assert view.visible_edges[0]["to"] == "n2"


def test_name_filter_scenario() -> None:
    filters = FilterState(visible_node_types={"Resource"}, name_filter="VM")
    nodes = [{"label": "VM1", "type": "Resource"}, {"label": "RG1", "type": "Resource"}]

    view = build(nodes, [], filters)

    assert [n["label"] for n in view.visible_nodes] == ["VM1"]


def test_hidden_edge_type_is_dropped_even_with_visible_endpoints() -> None:
    filters = FilterState(visible_node_types={"Tenant", "Subscription", "ResourceGroup"})

    view = build(NODES, EDGES, filters)

    assert len(view.visible_nodes) == 3
    assert view.visible_edges == []


def test_dangling_edges_are_dropped_and_counted() -> None:
    filters = FilterState(visible_node_types={"Tenant"}, visible_edge_types={"CONTAINS"})
    nodes = [{"id": "a", "type": "Tenant"}, {"id": "b", "type": "Tenant"}]
    edges = [
        {"id": "ok", "source": "a", "target": "b", "type": "CONTAINS"},
        {"id": "bad", "source": "a", "target": "ghost", "type": "CONTAINS"},
    ]

    view = build(nodes, edges, filters)

    assert _ids(view.visible_edges) == ["ok"]
    assert view.dangling_edges == 1


def test_build_does_not_mutate_inputs_and_is_idempotent() -> None:
    nodes = copy.deepcopy(NODES)
    edges = copy.deepcopy(EDGES)
    filters = default_filter_state(compute_stats(nodes, edges))

    first = build(nodes, edges, filters)
    second = build(nodes, edges, filters)

    assert first == second
    assert nodes == NODES
    assert edges == EDGES
    first.visible_nodes[0]["properties"]["touched"] = True
    assert "properties" not in nodes[0]


def test_non_array_inputs_yield_invalid_empty_view() -> None:
    view = build({"n1": {}}, [], FilterState())  # type: ignore[arg-type]
    assert not view.valid
    assert view.visible_nodes == []
    assert view.visible_edges == []


def test_invalid_payload_yields_empty_view() -> None:
    view = build_from_raw({"nodes": NODES, "edges": EDGES}, FilterState({"Tenant"}))
    assert not view.valid
    assert view.visible_nodes == []

    payload = parse_payload({"nodes": NODES, "edges": EDGES, "stats": compute_stats(NODES, EDGES)})
    assert build_view(payload, FilterState({"Tenant"})).valid


def test_node_decoration_uses_color_table_with_fallback() -> None:
    filters = FilterState(visible_node_types={"Tenant", "Mystery"})
    nodes = [{"id": "1", "type": "Tenant", "label": "t"}, {"id": "2", "type": "Mystery", "label": "m"}]

    view = build(nodes, [], filters)

    assert view.visible_nodes[0]["color"] == NODE_COLORS["Tenant"]
    assert view.visible_nodes[1]["color"] == DEFAULT_NODE_COLOR
    assert view.visible_nodes[0]["shape"] == "dot"
    assert view.visible_nodes[0]["size"] == 20


def test_edge_decoration_uses_style_table_with_fallback() -> None:
    filters = FilterState(visible_node_types={"Tenant"}, visible_edge_types={"DEPENDS_ON", "ODD"})
    nodes = [{"id": "a", "type": "Tenant"}, {"id": "b", "type": "Tenant"}]
    edges = [
        {"id": "d", "source": "a", "target": "b", "type": "DEPENDS_ON"},
        {"source": "b", "target": "a", "type": "ODD"},
    ]

    view = build(nodes, edges, filters)
    dep, odd = view.visible_edges

    assert dep["dashes"] == [10, 5]
    assert dep["arrows"] == "to"
    assert dep["label"] == "DEPENDS_ON"
    assert odd["id"] == "b-a"
    assert odd["color"] == DEFAULT_EDGE_STYLE.color
    assert odd["width"] == DEFAULT_EDGE_STYLE.width


def test_tooltip_omits_absent_properties() -> None:
    tooltip = node_tooltip(
        {
            "id": "1",
            "type": "StorageAccount",
            "label": "sa<1>",
            "properties": {"location": "eastus", "sku": {"name": "Standard_LRS"}, "status": "", "resourceGroup": None},
        }
    )

    assert "Location:</strong> eastus" in tooltip
    assert "SKU:</strong> Standard_LRS" in tooltip
    assert "Status" not in tooltip
    assert "Resource Group" not in tooltip
    assert "undefined" not in tooltip
    assert "None" not in tooltip
    assert "sa&lt;1&gt;" in tooltip
    assert "Click for more details" in tooltip


def _sample_graph():
    nodes = [
        {"id": "t", "type": "Tenant", "label": "tenant"},
        {"id": "s", "type": "Subscription", "label": "sub-1"},
        {"id": "g", "type": "ResourceGroup", "label": "rg-app", "properties": {"subscriptionId": "sub-1"}},
        {
            "id": "v",
            "type": "VirtualMachine",
            "label": "vm-web",
            "properties": {"resourceGroup": "rg-app", "location": "eastus", "tags": {"env": "prod"}},
        },
        {
            "id": "k",
            "type": "KeyVaults",
            "label": "kv",
            "properties": {"resourceGroup": "rg-data", "location": "westus", "tags": "owner"},
        },
    ]
    edges = [
        {"id": "1", "source": "t", "target": "s", "type": "CONTAINS"},
        {"id": "2", "source": "s", "target": "g", "type": "CONTAINS"},
        {"id": "3", "source": "g", "target": "v", "type": "CONTAINS"},
        {"id": "4", "source": "v", "target": "k", "type": "DEPENDS_ON"},
        {"id": "5", "source": "k", "target": "missing", "type": "DEPENDS_ON"},
    ]
    return nodes, edges


def _facet_variants(base: FilterState):
    yield base
    for t in sorted(base.visible_node_types):
        narrowed = base.copy()
        narrowed.visible_node_types.discard(t)
        yield narrowed
    for attr, value in (
        ("name_filter", "v"),
        ("selected_tags", {"env"}),
        ("selected_regions", {"eastus"}),
        ("selected_resource_groups", {"rg-app"}),
        ("selected_subscriptions", {"sub-1"}),
    ):
        narrowed = base.copy()
        setattr(narrowed, attr, value)
        yield narrowed


def test_edges_never_reference_hidden_nodes() -> None:
    nodes, edges = _sample_graph()
    base = FilterState(
        visible_node_types={"Tenant", "Subscription", "ResourceGroup", "VirtualMachine", "KeyVaults"},
        visible_edge_types={"CONTAINS", "DEPENDS_ON"},
    )
    for filters in _facet_variants(base):
        view = build(nodes, edges, filters)
        visible = set(_ids(view.visible_nodes))
        for edge in view.visible_edges:
            assert edge["from"] in visible
            assert edge["to"] in visible


def test_narrowing_a_facet_never_grows_the_view() -> None:
    nodes, edges = _sample_graph()
    base = FilterState(
        visible_node_types={"Tenant", "Subscription", "ResourceGroup", "VirtualMachine", "KeyVaults"},
        visible_edge_types={"CONTAINS", "DEPENDS_ON"},
    )
    baseline = len(build(nodes, edges, base).visible_nodes)
    for filters in itertools.islice(_facet_variants(base), 1, None):
        assert len(build(nodes, edges, filters).visible_nodes) <= baseline


def test_render_triple_returns_fresh_options() -> None:
    view = build(NODES, EDGES, FilterState({"Tenant"}))
    _, _, options = view.render_triple()
    options["physics"]["enabled"] = False
    _, _, again = view.render_triple()
    assert again["physics"]["enabled"] is True


def test_decorated_properties_do_not_share_nested_values() -> None:
    nodes = [{"id": "v", "type": "VirtualMachine", "properties": {"tags": {"env": "prod"}}}]

    view = build(nodes, [], FilterState(visible_node_types={"VirtualMachine"}))
    view.visible_nodes[0]["properties"]["tags"]["env"] = "dev"

    assert nodes[0]["properties"]["tags"] == {"env": "prod"}
