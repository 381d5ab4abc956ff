from __future__ import annotations

from dataclasses import dataclass

from domain.models import InfraGraph, ServiceNode


@dataclass(frozen=True)
class OrphanFilterResult:
    graph: InfraGraph
    orphans: list[ServiceNode]


def filter_orphan_nodes(graph: InfraGraph) -> OrphanFilterResult:
    connected: set[str] = set()
    for edge in graph.edges:
        connected.add(edge.from_id)
        connected.add(edge.to_id)

    kept = [node for node in graph.nodes if node.id in connected]
    orphans = [node for node in graph.nodes if node.id not in connected]
    return OrphanFilterResult(
        graph=graph.model_copy(update={"nodes": kept}),
        orphans=orphans,
    )
