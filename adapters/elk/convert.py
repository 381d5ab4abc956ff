from __future__ import annotations

from dataclasses import dataclass

from adapters.elk.models import (
    ELK_LAYOUT_OPTIONS,
    PARTITION_OPTION,
    PORT_CONSTRAINTS_OPTION,
    PORT_SIDE_OPTION,
    ElkEdge,
    ElkLabel,
    ElkNode,
    ElkPort,
)
from adapters.layout.sizing import resource_scale
from domain.models import InfraGraph, ServiceNode, Size, ensure_edges_resolved
from domain.services.classify_roles import SemanticLayer, assign_semantic_layers

ROOT_ID = "root"

LAYER_PARTITIONS: dict[str, int] = {
    "entry": 0,
    "gateway": 1,
    "ui": 2,
    "api": 3,
    "worker": 4,
    "queue": 5,
    "data": 6,
}

DEFAULT_NODE_SIZE = Size(140, 50)
NODE_SIZES: dict[str, Size] = {
    "database": Size(120, 60),
    "cache": Size(100, 50),
    "queue": Size(100, 50),
    "proxy": Size(100, 50),
}

LABEL_CHAR_WIDTH = 8.0
LABEL_MIN_WIDTH = 40.0
LABEL_HEIGHT = 20.0
LABEL_PADDING = 20.0


@dataclass(frozen=True)
class ElkConversionResult:
    graph: ElkNode
    layer_assignments: dict[str, SemanticLayer]


def label_size(text: str) -> Size:
    return Size(max(LABEL_MIN_WIDTH, len(text) * LABEL_CHAR_WIDTH), LABEL_HEIGHT)


def elk_node_size(node: ServiceNode, scale_by_resources: bool = True) -> Size:
    base = NODE_SIZES.get(node.type, DEFAULT_NODE_SIZE)
    label = label_size(node.name)
    width = max(base.width, label.width + LABEL_PADDING)
    height = base.height
    if scale_by_resources:
        scale = resource_scale(node.resource_requests)
        width *= scale
        height *= scale
    return Size(width, height)


def port_sides(source_partition: int, target_partition: int) -> tuple[str, str]:
    if source_partition == target_partition:
        return "SOUTH", "NORTH"
    if target_partition > source_partition:
        return "EAST", "WEST"
    return "WEST", "EAST"


class ElkGraphConverter:
    """Translate an ``InfraGraph`` into an ELK JSON graph.

    Only partition and port hints are emitted; coordinates are left to the
    layout backend.
    """

    def __init__(self, semantic_layers: bool = True, scale_by_resources: bool = True) -> None:
        self.semantic_layers = semantic_layers
        self.scale_by_resources = scale_by_resources

    def convert(self, graph: InfraGraph) -> ElkConversionResult:
        ensure_edges_resolved(graph.node_ids(), graph.edges)
        layer_assignments = assign_semantic_layers(graph.nodes, graph.edges)
        partitions = {
            node_id: LAYER_PARTITIONS[layer] for node_id, layer in layer_assignments.items()
        }

        node_ports: dict[str, list[ElkPort]] = {}
        edges: list[ElkEdge] = []
        for index, edge in enumerate(graph.edges):
            edge_id = f"e{index}"
            if not self.semantic_layers:
                edges.append(ElkEdge(id=edge_id, sources=[edge.from_id], targets=[edge.to_id]))
                continue
            source_side, target_side = port_sides(partitions[edge.from_id], partitions[edge.to_id])
            source_port = self._port(edge.from_id, source_side, index)
            target_port = self._port(edge.to_id, target_side, index)
            node_ports.setdefault(edge.from_id, []).append(source_port)
            node_ports.setdefault(edge.to_id, []).append(target_port)
            edges.append(ElkEdge(id=edge_id, sources=[source_port.id], targets=[target_port.id]))

        children = [
            self._convert_node(node, partitions[node.id], node_ports.get(node.id, []))
            for node in graph.nodes
        ]
        preset = "semantic" if self.semantic_layers else "standard"
        root = ElkNode(
            id=ROOT_ID,
            layout_options=dict(ELK_LAYOUT_OPTIONS[preset]),
            children=children,
            edges=edges,
        )
        return ElkConversionResult(graph=root, layer_assignments=layer_assignments)

    def _port(self, node_id: str, side: str, edge_index: int) -> ElkPort:
        return ElkPort(
            id=f"{node_id}-{side.lower()}-{edge_index}",
            layout_options={PORT_SIDE_OPTION: side},
        )

    def _convert_node(self, node: ServiceNode, partition: int, ports: list[ElkPort]) -> ElkNode:
        size = elk_node_size(node, self.scale_by_resources)
        label = label_size(node.name)
        layout_options: dict[str, str] = {}
        if self.semantic_layers:
            layout_options[PARTITION_OPTION] = str(partition)
        if ports:
            layout_options[PORT_CONSTRAINTS_OPTION] = "FIXED_SIDE"
        return ElkNode(
            id=node.id,
            width=size.width,
            height=size.height,
            labels=[ElkLabel(text=node.name, width=label.width, height=label.height)],
            ports=ports or None,
            layout_options=layout_options or None,
        )
