from __future__ import annotations

import logging
from dataclasses import dataclass

from adapters.elk.models import ElkEdgeSection, ElkNode
from domain.models import NodePosition, Point, RoutedPath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendEdgeRoute:
    id: str
    from_id: str
    to_id: str
    path: RoutedPath


@dataclass(frozen=True)
class BackendLayout:
    positions: dict[str, NodePosition]
    routes: list[BackendEdgeRoute]
    width: float
    height: float


def flatten_children(graph: ElkNode) -> dict[str, ElkNode]:
    nodes: dict[str, ElkNode] = {}
    pending = list(graph.children or [])
    while pending:
        node = pending.pop(0)
        nodes[node.id] = node
        pending.extend(node.children or [])
    return nodes


def section_to_path(section: ElkEdgeSection, padding: float = 0.0) -> RoutedPath:
    start = Point(section.start_point.x + padding, section.start_point.y + padding)
    end = Point(section.end_point.x + padding, section.end_point.y + padding)
    points: list[tuple[float, float]] = [(0.0, 0.0)]
    for bend in section.bend_points:
        points.append((bend.x + padding - start.x, bend.y + padding - start.y))
    points.append((end.x - start.x, end.y - start.y))
    return RoutedPath(start=start, end=end, points=tuple(points))


def read_backend_layout(graph: ElkNode, padding: float = 0.0) -> BackendLayout:
    """Absolute rectangles and edge routes from a laid-out ELK graph.

    Edge endpoints may be port ids; they are resolved to the owning node.
    Only the first section of an edge is used.
    """
    elk_nodes = flatten_children(graph)
    owners: dict[str, str] = {}
    positions: dict[str, NodePosition] = {}
    for node_id, node in elk_nodes.items():
        owners[node_id] = node_id
        for port in node.ports or []:
            owners[port.id] = node_id
        if node.x is None or node.y is None:
            logger.warning("No ELK position for node: %s", node_id)
            continue
        positions[node_id] = NodePosition(
            id=node_id,
            x=node.x + padding,
            y=node.y + padding,
            width=node.width or 0.0,
            height=node.height or 0.0,
            layer=node.partition() or 0,
        )

    routes: list[BackendEdgeRoute] = []
    for edge in graph.edges or []:
        if not edge.sources or not edge.targets or not edge.sections:
            continue
        routes.append(
            BackendEdgeRoute(
                id=edge.id,
                from_id=owners.get(edge.sources[0], edge.sources[0]),
                to_id=owners.get(edge.targets[0], edge.targets[0]),
                path=section_to_path(edge.sections[0], padding),
            )
        )

    if graph.width is not None and graph.height is not None:
        width, height = graph.width, graph.height
    elif positions:
        width = max(pos.x + pos.width for pos in positions.values()) - padding
        height = max(pos.y + pos.height for pos in positions.values()) - padding
    else:
        width = height = 0.0
    return BackendLayout(
        positions=positions,
        routes=routes,
        width=width + 2 * padding,
        height=height + 2 * padding,
    )
