from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from domain.models import (
    DependencyEdge,
    GraphMetadata,
    InfraGraph,
    ServiceNode,
    SourceInfo,
)

PARSER_VERSION = "0.1.0"


class GraphBuilder:
    """Incrementally assembles an ``InfraGraph``.

    Edges between unknown nodes are ignored, duplicate ``(from, to, type)``
    edges collapse, and an ``inferred`` edge is skipped when any explicit edge
    already connects the same pair.
    """

    def __init__(self, project: str) -> None:
        self.project = project
        self._nodes: dict[str, ServiceNode] = {}
        self._edges: list[DependencyEdge] = []
        self._source_files: list[str] = []

    def add_source_file(self, file: str) -> GraphBuilder:
        if file not in self._source_files:
            self._source_files.append(file)
        return self

    def add_node(
        self,
        node_id: str,
        name: str,
        node_type: str,
        source: SourceInfo | None = None,
        **options: Any,
    ) -> GraphBuilder:
        self._nodes[node_id] = ServiceNode(
            id=node_id,
            name=name,
            type=node_type,
            source=source,
            **options,
        )
        return self

    def add_edge(
        self,
        from_id: str,
        to_id: str,
        edge_type: str = "depends_on",
        port: int | None = None,
        protocol: str | None = None,
    ) -> GraphBuilder:
        if from_id not in self._nodes or to_id not in self._nodes:
            return self
        same_pair = [
            edge for edge in self._edges if edge.from_id == from_id and edge.to_id == to_id
        ]
        if edge_type == "inferred" and same_pair:
            return self
        if any(edge.type == edge_type for edge in same_pair):
            return self
        self._edges.append(
            DependencyEdge(
                from_id=from_id,
                to_id=to_id,
                type=edge_type,
                port=port,
                protocol=protocol,
            )
        )
        return self

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> ServiceNode | None:
        return self._nodes.get(node_id)

    def build(self) -> InfraGraph:
        return InfraGraph(
            nodes=list(self._nodes.values()),
            edges=list(self._edges),
            metadata=GraphMetadata(
                project=self.project,
                parsed_at=datetime.now(timezone.utc).isoformat(),
                source_files=list(self._source_files),
                parser_version=PARSER_VERSION,
            ),
        )
