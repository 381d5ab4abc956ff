from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from domain.models import (
    DiagramLayout,
    DirectedEdge,
    EdgeRoute,
    InfraGraph,
    ServiceGroup,
    ServiceNode,
    ensure_edges_resolved,
)
from domain.ports.layout import EdgeRouterFactory, LayoutEngine
from domain.services.grouping import group_by_dependency_signature, infer_edge_direction

logger = logging.getLogger(__name__)


def directed_edges(graph: InfraGraph) -> list[DirectedEdge]:
    """One edge per (from, to) pair with a direction; self-loops are dropped."""
    nodes_by_id = graph.node_index()
    edges: list[DirectedEdge] = []
    seen: set[tuple[str, str]] = set()
    for edge in graph.edges:
        pair = (edge.from_id, edge.to_id)
        if edge.from_id == edge.to_id or pair in seen:
            continue
        seen.add(pair)
        edges.append(
            DirectedEdge(
                from_id=edge.from_id,
                to_id=edge.to_id,
                type=edge.type,
                direction=edge.direction
                or infer_edge_direction(nodes_by_id[edge.from_id], nodes_by_id[edge.to_id]),
                port=edge.port,
                protocol=edge.protocol,
            )
        )
    return edges


class BuildDiagramLayout:
    """Validate, optionally group, position and route one graph."""

    def __init__(self, layout_engine: LayoutEngine, router_factory: EdgeRouterFactory) -> None:
        self.layout_engine = layout_engine
        self.router_factory = router_factory

    def build(
        self,
        graph: InfraGraph,
        group: bool = False,
        min_group_size: int = 2,
        exclude_types: Iterable[str] = (),
    ) -> DiagramLayout:
        ensure_edges_resolved(graph.node_ids(), graph.edges)

        nodes: Sequence[ServiceNode]
        groups: Sequence[ServiceGroup] = ()
        if group:
            grouped = group_by_dependency_signature(
                graph,
                min_group_size=min_group_size,
                exclude_types=exclude_types,
            )
            nodes, groups, edges = grouped.nodes, grouped.groups, grouped.edges
            logger.debug(
                "Collapsed %d nodes into %d groups", len(graph.nodes) - len(nodes), len(groups)
            )
        else:
            nodes, edges = graph.nodes, directed_edges(graph)

        result = self.layout_engine.build_layout(nodes, edges, groups)
        positions = result.positions
        router = self.router_factory(positions)
        routes: list[EdgeRoute] = []
        for edge in edges:
            from_rect, to_rect = positions[edge.from_id], positions[edge.to_id]
            path = router.route(edge.from_id, from_rect, edge.to_id, to_rect)
            routes.append(
                EdgeRoute(
                    from_id=edge.from_id,
                    to_id=edge.to_id,
                    direction=edge.direction,
                    path=path,
                )
            )
        fallbacks = sum(1 for route in routes if route.path.used_fallback)
        if fallbacks:
            logger.info("%d of %d edges used the fallback route", fallbacks, len(routes))

        return DiagramLayout(
            positions=dict(positions),
            routes=routes,
            groups=list(groups),
            width=result.width,
            height=result.height,
            cycle_broken=result.cycle_broken,
        )
