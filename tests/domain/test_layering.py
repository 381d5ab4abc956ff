from __future__ import annotations

import logging

import pytest

from domain.models import DependencyEdge, UnresolvedEdgeError
from domain.services.layering import assign_layers


def _edges(*pairs: tuple[str, str]) -> list[DependencyEdge]:
    return [DependencyEdge(from_id=source, to_id=target) for source, target in pairs]


def test_chain_layers_count_up_from_deepest_dependency() -> None:
    result = assign_layers(["a", "b", "c"], _edges(("a", "b"), ("b", "c")))

    assert result.layers == {"c": 0, "b": 1, "a": 2}
    assert result.layer_count == 3
    assert result.cycle_broken is False


def test_diamond_sources_share_a_layer() -> None:
    result = assign_layers(["a", "b", "c"], _edges(("a", "c"), ("b", "c")))

    assert result.layers["c"] == 0
    assert result.layers["a"] == result.layers["b"] == 1


def test_node_sits_above_its_deepest_dependency() -> None:
    result = assign_layers(
        ["app", "cache", "db", "pool"],
        _edges(("app", "cache"), ("app", "pool"), ("pool", "db")),
    )

    assert result.layers == {"cache": 0, "db": 0, "pool": 1, "app": 2}


def test_disconnected_and_empty_graphs() -> None:
    assert assign_layers(["x", "y"], []).layers == {"x": 0, "y": 0}

    empty = assign_layers([], [])
    assert empty.layers == {}
    assert empty.layer_count == 0


def test_cycle_forces_remaining_nodes_into_current_layer(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING, logger="domain.services.layering"):
        result = assign_layers(
            ["api", "billing", "ledger", "mysql"],
            _edges(
                ("api", "billing"),
                ("billing", "ledger"),
                ("ledger", "billing"),
                ("ledger", "mysql"),
            ),
        )

    assert result.cycle_broken is True
    assert result.layers["mysql"] == 0
    assert result.layers["api"] == result.layers["billing"] == result.layers["ledger"] == 1
    assert "Dependency cycle" in caplog.text


def test_buckets_follow_requested_order() -> None:
    result = assign_layers(["a", "b", "c"], _edges(("a", "c"), ("b", "c")))

    assert result.buckets(["b", "a", "c"]) == {0: ["c"], 1: ["b", "a"]}


def test_dangling_edge_is_rejected() -> None:
    with pytest.raises(UnresolvedEdgeError) as exc_info:
        assign_layers(["a"], _edges(("a", "ghost")))

    assert exc_info.value.missing == "ghost"
