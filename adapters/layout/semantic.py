from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from adapters.layout.sizing import ConnectionNodeSizer
from domain.models import (
    DependencyEdge,
    DirectedEdge,
    SemanticLayoutResult,
    SemanticPosition,
    ServiceGroup,
    ServiceNode,
    Size,
    ensure_edges_resolved,
)
from domain.ports.layout import LayoutEngine, NodeSizer
from domain.services.classify_roles import (
    ServiceRole,
    detect_service_role,
    find_helper_parent,
)

ROLE_COLUMNS: dict[str, int] = {
    "entry": 0,
    "gateway": 0,
    "ui": 1,
    "app": 1,
    "producer": 1,
    "queue": 2,
    "consumer": 3,
    "cache": 4,
    "database": 4,
    "storage": 4,
    "helper": -1,
}


@dataclass(frozen=True)
class SemanticLayoutConfig:
    helper_size: Size = Size(130, 50)
    column_gap: float = 220.0
    row_gap: float = 30.0
    helper_offset_x: float = 40.0
    helper_gap_y: float = 15.0
    helper_stack_gap: float = 10.0


@dataclass(frozen=True)
class _Item:
    id: str
    role: ServiceRole
    node_type: str | None
    is_group: bool
    connections: int


class SemanticLayoutEngine(LayoutEngine):
    """Columns by role: entry -> app/producer -> queue -> consumer -> data.

    Helpers (sidecars, poolers, cleanup jobs) are placed above their parent
    after the main columns are laid out.
    """

    def __init__(
        self,
        config: SemanticLayoutConfig | None = None,
        sizer: NodeSizer | None = None,
    ) -> None:
        self.config = config or SemanticLayoutConfig()
        self.sizer = sizer or ConnectionNodeSizer()

    def build_layout(
        self,
        nodes: Sequence[ServiceNode],
        edges: Sequence[DependencyEdge | DirectedEdge],
        groups: Sequence[ServiceGroup] = (),
    ) -> SemanticLayoutResult:
        ensure_edges_resolved([node.id for node in nodes] + [group.id for group in groups], edges)
        connection_counts = self._count_connections(nodes, edges)

        items: list[_Item] = []
        helper_parents: dict[str, str] = {}
        for node in nodes:
            role = detect_service_role(node, edges)
            if role == "helper":
                parent_id = find_helper_parent(node, nodes, edges)
                if parent_id is not None:
                    helper_parents[node.id] = parent_id
                    continue
                role = detect_service_role(node, edges, allow_helper=False)
            items.append(
                _Item(
                    id=node.id,
                    role=role,
                    node_type=node.type,
                    is_group=False,
                    connections=connection_counts.get(node.id, 0),
                )
            )
        for group in groups:
            has_consumers = any("consumer" in service.name.lower() for service in group.services)
            items.append(
                _Item(
                    id=group.id,
                    role="consumer" if has_consumers else "producer",
                    node_type=None,
                    is_group=True,
                    connections=len(group.dependencies),
                )
            )

        positions = self._place_columns(items)
        self._place_helpers(helper_parents, positions)

        if not positions:
            return SemanticLayoutResult(positions={}, width=0.0, height=0.0)
        min_x = min(pos.x for pos in positions.values())
        min_y = min(pos.y for pos in positions.values())
        max_x = max(pos.x + pos.width for pos in positions.values())
        max_y = max(pos.y + pos.height for pos in positions.values())
        return SemanticLayoutResult(positions=positions, width=max_x - min_x, height=max_y - min_y)

    def _count_connections(
        self,
        nodes: Sequence[ServiceNode],
        edges: Sequence[DependencyEdge | DirectedEdge],
    ) -> dict[str, int]:
        counts = {node.id: 0 for node in nodes}
        for edge in edges:
            if edge.from_id in counts:
                counts[edge.from_id] += 1
            if edge.to_id in counts and edge.to_id != edge.from_id:
                counts[edge.to_id] += 1
        return counts

    def _place_columns(self, items: Sequence[_Item]) -> dict[str, SemanticPosition]:
        columns: dict[int, list[_Item]] = {}
        for item in items:
            columns.setdefault(ROLE_COLUMNS[item.role], []).append(item)
        used_columns = sorted(columns)
        compacted = {column: idx for idx, column in enumerate(used_columns)}

        sizes = {
            item.id: self.sizer.size(item.node_type, item.connections, item.is_group)
            for item in items
        }
        row_gap = self.config.row_gap

        column_heights: dict[int, float] = {}
        column_widths: dict[int, float] = {}
        for column, members in columns.items():
            column_heights[column] = sum(sizes[item.id].height for item in members) + row_gap * (
                len(members) - 1
            )
            column_widths[column] = max(sizes[item.id].width for item in members)
        max_height = max(column_heights.values(), default=0.0)

        column_x: dict[int, float] = {}
        current_x = 0.0
        for column in used_columns:
            column_x[column] = current_x
            current_x += column_widths[column] + self.config.column_gap

        positions: dict[str, SemanticPosition] = {}
        for column in used_columns:
            current_y = (max_height - column_heights[column]) / 2
            for item in columns[column]:
                size = sizes[item.id]
                positions[item.id] = SemanticPosition(
                    id=item.id,
                    x=column_x[column] + (column_widths[column] - size.width) / 2,
                    y=current_y,
                    width=size.width,
                    height=size.height,
                    role=item.role,
                    column=compacted[column],
                    is_helper=False,
                    connection_count=item.connections,
                )
                current_y += size.height + row_gap
        return positions

    def _place_helpers(
        self,
        helper_parents: dict[str, str],
        positions: dict[str, SemanticPosition],
    ) -> None:
        helper = self.config.helper_size
        stacked: dict[str, int] = {}
        for helper_id, parent_id in helper_parents.items():
            parent = positions[parent_id]
            index = stacked.get(parent_id, 0)
            stacked[parent_id] = index + 1
            positions[helper_id] = SemanticPosition(
                id=helper_id,
                x=parent.x - self.config.helper_offset_x,
                y=parent.y
                - helper.height
                - self.config.helper_gap_y
                - index * (helper.height + self.config.helper_stack_gap),
                width=helper.width,
                height=helper.height,
                role="helper",
                column=parent.column,
                is_helper=True,
                parent_id=parent_id,
            )
