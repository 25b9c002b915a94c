from __future__ import annotations

from tenant_graph.model.payload import (
    compute_stats,
    edge_endpoints,
    edge_id,
    fallback_label,
    get_prop,
    get_str_prop,
    node_label,
    parse_payload,
    select_edges,
)


def _graph() -> dict:
    return {
        "nodes": [
            {"id": "1", "label": "Node 1", "type": "VirtualMachine", "properties": {}},
            {"id": "2", "label": "Node 2", "type": "ResourceGroup", "properties": {}},
        ],
        "edges": [{"id": "e1", "source": "1", "target": "2", "type": "CONTAINS", "properties": {}}],
        "stats": {"nodeTypes": {"VirtualMachine": 1, "ResourceGroup": 1}, "edgeTypes": {"CONTAINS": 1}},
    }


def test_parse_payload_accepts_well_formed_graph() -> None:
    result = parse_payload(_graph())

    assert result.valid
    assert [n["id"] for n in result.nodes] == ["1", "2"]
    assert [e["id"] for e in result.edges] == ["e1"]
    assert set(result.node_index()) == {"1", "2"}


def test_parse_payload_falls_back_to_relationships_key() -> None:
    raw = _graph()
    raw["relationships"] = raw.pop("edges")

    result = parse_payload(raw)

    assert result.valid
    assert [e["id"] for e in result.edges] == ["e1"]


def test_select_edges_prefers_edges_over_relationships() -> None:
    raw = {
        "edges": [{"id": "e1", "source": "1", "target": "2"}],
        "relationships": [{"id": "r1", "source": "3", "target": "4"}],
    }
    assert [e["id"] for e in select_edges(raw)] == ["e1"]
    assert select_edges({"nodes": []}) == []


def test_parse_payload_rejects_malformed_shapes() -> None:
    assert not parse_payload(None).valid
    assert not parse_payload({"nodes": {}, "edges": [], "stats": {}}).valid
    assert not parse_payload({"nodes": [], "edges": "nope", "stats": {}}).valid

    missing_stats = parse_payload({"nodes": [{"id": "1"}], "edges": []})
    assert not missing_stats.valid
    assert missing_stats.nodes == []
    assert missing_stats.edges == []
    assert "stats" in (missing_stats.error or "")


def test_parse_payload_skips_entries_that_are_not_objects() -> None:
    raw = _graph()
    raw["nodes"].append("garbage")
    raw["nodes"].append({"label": "no id"})
    raw["edges"].append(42)

    result = parse_payload(raw)

    assert result.valid
    assert len(result.nodes) == 2
    assert len(result.edges) == 1


def test_label_fallback_chain() -> None:
    assert fallback_label({"name": "vm-a", "value": "x"}, "7") == "vm-a"
    assert fallback_label({"value": "x"}, "7") == "x"
    assert fallback_label({}, "7") == "Node 7"
    assert node_label({"id": "9", "properties": {"name": "kv-1"}}) == "kv-1"
    assert node_label({"id": "9", "label": "given"}) == "given"


def test_edge_id_falls_back_to_endpoints() -> None:
    assert edge_id({"source": "1", "target": "2"}) == "1-2"
    assert edge_id({"id": "e9", "source": "1", "target": "2"}) == "e9"


def test_get_str_prop_tolerates_missing_or_odd_properties() -> None:
    assert get_str_prop({"id": "1"}, "location") is None
    assert get_str_prop({"id": "1", "properties": None}, "location") is None
    assert get_str_prop({"id": "1", "properties": {"location": "  "}}, "location") is None
    assert get_str_prop({"id": "1", "properties": {"location": ["eastus"]}}, "location") is None
    assert get_str_prop({"id": "1", "properties": {"location": "eastus"}}, "location") == "eastus"


def test_compute_stats_counts_types() -> None:
    stats = compute_stats(
        [{"id": "1", "type": "A"}, {"id": "2", "type": "A"}, {"id": "3"}],
        [{"source": "1", "target": "2", "type": "R"}],
    )
    assert stats["nodeCount"] == 3
    assert stats["edgeCount"] == 1
    assert stats["nodeTypes"] == {"A": 2, "Unknown": 1}
    assert stats["edgeTypes"] == {"R": 1}


def test_zero_is_a_valid_endpoint() -> None:
    assert edge_endpoints({"source": 0, "target": 1}) == ("0", "1")
    assert edge_endpoints({"source": None, "target": ""}) == ("", "")
    assert edge_id({"source": 0, "target": 1}) == "0-1"


def test_get_prop_returns_stored_value() -> None:
    assert get_prop({"properties": {"tags": {"env": "prod"}}}, "tags") == {"env": "prod"}
    assert get_prop({"properties": {"count": 0}}, "count") == 0
    assert get_prop({"properties": None}, "tags") is None
