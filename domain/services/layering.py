from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from domain.models import DependencyEdge, DirectedEdge, ensure_edges_resolved

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayerAssignment:
    layers: dict[str, int]
    layer_count: int
    cycle_broken: bool = False

    def buckets(self, order: Iterable[str] | None = None) -> dict[int, list[str]]:
        node_ids = list(order) if order is not None else list(self.layers)
        buckets: dict[int, list[str]] = {layer: [] for layer in range(self.layer_count)}
        for node_id in node_ids:
            buckets.setdefault(self.layers.get(node_id, 0), []).append(node_id)
        return buckets


def build_dependency_sets(
    node_ids: Sequence[str],
    edges: Sequence[DependencyEdge | DirectedEdge],
) -> dict[str, set[str]]:
    depends_on: dict[str, set[str]] = {node_id: set() for node_id in node_ids}
    for edge in edges:
        depends_on[edge.from_id].add(edge.to_id)
    return depends_on


def assign_layers(
    node_ids: Sequence[str],
    edges: Sequence[DependencyEdge | DirectedEdge],
) -> LayerAssignment:
    """Place every node one layer above its deepest dependency.

    ``edge.from_id`` depends on ``edge.to_id``; nodes without dependencies sit
    in layer 0. When a round cannot place anything the remaining nodes are part
    of (or blocked by) a cycle and all of them are forced into the current
    layer.
    """
    ensure_edges_resolved(node_ids, edges)
    depends_on = build_dependency_sets(node_ids, edges)

    layers: dict[str, int] = {}
    remaining = list(dict.fromkeys(node_ids))
    current_layer = 0
    cycle_broken = False

    while remaining:
        placeable = [
            node_id
            for node_id in remaining
            if all(dep in layers for dep in depends_on[node_id])
        ]
        if not placeable:
            logger.warning(
                "Dependency cycle among %d node(s); forcing them into layer %d",
                len(remaining),
                current_layer,
            )
            for node_id in remaining:
                layers[node_id] = current_layer
            cycle_broken = True
            break
        for node_id in placeable:
            layers[node_id] = current_layer
        placed = set(placeable)
        remaining = [node_id for node_id in remaining if node_id not in placed]
        current_layer += 1

    layer_count = max(layers.values()) + 1 if layers else 0
    return LayerAssignment(layers=layers, layer_count=layer_count, cycle_broken=cycle_broken)
