from __future__ import annotations

import copy
from collections.abc import Sequence
from functools import cache, lru_cache
from pathlib import Path
from typing import Any

import orjson

from domain.models import InfraGraph


@lru_cache(maxsize=1)
def repo_root() -> Path:
    for parent in Path(__file__).resolve().parents:
        if (parent / "pyproject.toml").exists():
            return parent
    raise RuntimeError("Repository root not found")


def graph_fixture_path(name: str) -> Path:
    return repo_root() / "examples" / "graphs" / name


@cache
def _load_graph_payload_cached(name: str) -> dict[str, Any]:
    fixture_path = graph_fixture_path(name)
    payload = orjson.loads(fixture_path.read_bytes())
    if not isinstance(payload, dict):
        raise TypeError(f"Expected dict payload in {fixture_path}")
    return payload


def load_graph_payload(name: str) -> dict[str, Any]:
    return copy.deepcopy(_load_graph_payload_cached(name))


def load_graph_fixture(name: str) -> InfraGraph:
    return InfraGraph.model_validate(load_graph_payload(name))


def make_graph(
    nodes: Sequence[tuple[str, ...]],
    edges: Sequence[tuple[str, str]] = (),
) -> InfraGraph:
    """Small graphs from ``(id, type)`` or ``(id, type, name)`` tuples."""
    node_payloads = []
    for item in nodes:
        node_id, node_type = item[0], item[1]
        name = item[2] if len(item) > 2 else node_id
        node_payloads.append({"id": node_id, "name": name, "type": node_type})
    return InfraGraph.model_validate(
        {
            "nodes": node_payloads,
            "edges": [{"from": source, "to": target} for source, target in edges],
        }
    )
