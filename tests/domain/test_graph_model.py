from __future__ import annotations

import pytest
from pydantic import ValidationError

from domain.models import InfraGraph, UnresolvedEdgeError, ensure_edges_resolved
from domain.services.graph_builder import GraphBuilder
from domain.services.graph_filter import filter_orphan_nodes
from tests.helpers.graph_fixtures import load_graph_fixture, load_graph_payload, make_graph


def test_fixture_parses_camel_case_payload() -> None:
    graph = load_graph_fixture("web_stack.json")

    postgres = graph.node_index()["postgres"]
    assert postgres.resource_requests is not None
    assert postgres.resource_requests.memory == "4Gi"
    assert graph.edges[1].port == 5432
    assert graph.metadata.project == "web-stack"
    assert graph.metadata.source_files == ["docker-compose.yml"]


def test_dump_round_trips_edge_aliases() -> None:
    graph = load_graph_fixture("web_stack.json")

    payload = graph.model_dump(by_alias=True, exclude_none=True)

    assert payload["edges"][0] == {"from": "nginx", "to": "web", "type": "depends_on"}
    assert "resourceRequests" in payload["nodes"][1]


def test_dangling_edge_fails_validation() -> None:
    with pytest.raises(ValidationError) as exc_info:
        InfraGraph.model_validate(load_graph_payload("dangling_edge.json"))

    assert "non-existent node: missing" in str(exc_info.value)


def test_duplicate_node_ids_fail_validation() -> None:
    payload = {
        "nodes": [
            {"id": "a", "name": "a", "type": "container"},
            {"id": "a", "name": "again", "type": "container"},
        ],
    }

    with pytest.raises(ValidationError, match="Duplicate node id"):
        InfraGraph.model_validate(payload)


def test_empty_node_id_fails_validation() -> None:
    with pytest.raises(ValidationError):
        InfraGraph.model_validate({"nodes": [{"id": "", "name": "x", "type": "container"}]})


def test_ensure_edges_resolved_reports_missing_endpoint() -> None:
    graph = make_graph([("a", "container"), ("b", "container")], [("a", "b")])

    ensure_edges_resolved(graph.node_ids(), graph.edges)
    with pytest.raises(UnresolvedEdgeError) as exc_info:
        ensure_edges_resolved(["b"], graph.edges)

    assert exc_info.value.missing == "a"
    assert isinstance(exc_info.value, ValueError)


def test_builder_deduplicates_and_prefers_explicit_edges() -> None:
    graph = (
        GraphBuilder("shop")
        .add_source_file("docker-compose.yml")
        .add_source_file("docker-compose.yml")
        .add_node("api", "api", "container", replicas=2)
        .add_node("db", "db", "database")
        .add_edge("api", "db")
        .add_edge("api", "db")
        .add_edge("api", "db", "inferred")
        .add_edge("api", "db", "network", port=5432)
        .add_edge("api", "ghost")
        .build()
    )

    assert [(edge.type, edge.port) for edge in graph.edges] == [
        ("depends_on", None),
        ("network", 5432),
    ]
    assert graph.metadata.project == "shop"
    assert graph.metadata.source_files == ["docker-compose.yml"]
    assert graph.metadata.parsed_at is not None
    assert graph.node_index()["api"].replicas == 2


def test_builder_keeps_inferred_edge_when_pair_is_new() -> None:
    builder = GraphBuilder("shop").add_node("a", "a", "container").add_node("b", "b", "cache")

    builder.add_edge("a", "b", "inferred")

    assert builder.has_node("a")
    assert builder.get_node("missing") is None
    assert [edge.type for edge in builder.build().edges] == ["inferred"]


def test_filter_orphan_nodes_splits_connected_from_isolated() -> None:
    graph = make_graph(
        [("api", "container"), ("db", "database"), ("lonely", "container")],
        [("api", "db")],
    )

    result = filter_orphan_nodes(graph)

    assert [node.id for node in result.graph.nodes] == ["api", "db"]
    assert [node.id for node in result.orphans] == ["lonely"]
    assert result.graph.edges == graph.edges
