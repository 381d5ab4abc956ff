from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace

from domain.models import (
    DependencyEdge,
    DirectedEdge,
    LayoutResult,
    NodePosition,
    ServiceGroup,
    ServiceNode,
    Size,
)
from domain.ports.layout import LayoutEngine
from domain.services.layering import assign_layers


@dataclass(frozen=True)
class LayeredLayoutConfig:
    node_size: Size = Size(180, 80)
    horizontal_gap: float = 100.0
    vertical_gap: float = 80.0
    reorder_layers: bool = True


class LayeredLayoutEngine(LayoutEngine):
    def __init__(self, config: LayeredLayoutConfig | None = None) -> None:
        self.config = config or LayeredLayoutConfig()

    def build_layout(
        self,
        nodes: Sequence[ServiceNode],
        edges: Sequence[DependencyEdge | DirectedEdge],
        groups: Sequence[ServiceGroup] = (),
    ) -> LayoutResult:
        node_ids = [node.id for node in nodes] + [group.id for group in groups]
        if not node_ids:
            return LayoutResult(positions={}, width=0.0, height=0.0)

        assignment = assign_layers(node_ids, edges)
        buckets = assignment.buckets(node_ids)
        max_layer = assignment.layer_count - 1
        width = self.config.node_size.width
        height = self.config.node_size.height

        positions: dict[str, NodePosition] = {}
        ordered_layers: dict[int, list[str]] = {}
        max_width = 0.0
        for layer in range(max_layer + 1):
            bucket = buckets.get(layer, [])
            if layer > 0 and self.config.reorder_layers:
                previous = buckets.get(layer - 1, [])
                bucket = self._sort_by_barycenter(bucket, previous, positions, edges)
            ordered_layers[layer] = bucket
            y = (max_layer - layer) * (height + self.config.vertical_gap)
            for idx, node_id in enumerate(bucket):
                positions[node_id] = NodePosition(
                    id=node_id,
                    x=idx * (width + self.config.horizontal_gap),
                    y=y,
                    width=width,
                    height=height,
                    layer=layer,
                )
            max_width = max(max_width, self._layer_width(len(bucket)))

        for layer, bucket in ordered_layers.items():
            offset = (max_width - self._layer_width(len(bucket))) / 2
            for node_id in bucket:
                position = positions[node_id]
                positions[node_id] = replace(position, x=position.x + offset)

        gap = self.config.vertical_gap
        total_height = (max_layer + 1) * (height + gap) - gap
        return LayoutResult(
            positions=positions,
            width=max_width,
            height=total_height,
            cycle_broken=assignment.cycle_broken,
        )

    def _layer_width(self, count: int) -> float:
        if count == 0:
            return 0.0
        return count * self.config.node_size.width + (count - 1) * self.config.horizontal_gap

    def _sort_by_barycenter(
        self,
        bucket: list[str],
        previous_layer: list[str],
        positions: dict[str, NodePosition],
        edges: Sequence[DependencyEdge | DirectedEdge],
    ) -> list[str]:
        if len(bucket) <= 1:
            return bucket
        previous = set(previous_layer)

        def barycenter(node_id: str) -> float:
            xs: list[float] = []
            for edge in edges:
                if edge.from_id == node_id and edge.to_id in previous:
                    neighbor = edge.to_id
                elif edge.to_id == node_id and edge.from_id in previous:
                    neighbor = edge.from_id
                else:
                    continue
                if neighbor in positions:
                    xs.append(positions[neighbor].x)
            return sum(xs) / len(xs) if xs else 0.0

        return sorted(bucket, key=barycenter)
