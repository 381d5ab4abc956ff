from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

from domain.models import (
    DependencyEdge,
    DirectedEdge,
    EdgeDirection,
    GroupedGraph,
    InfraGraph,
    ServiceGroup,
    ServiceNode,
    ensure_edges_resolved,
)

SourceKind = Literal["consumer", "producer", "worker", "generic"]

CONSUMER_KEYWORDS = ("consumer", "subscriber")
PRODUCER_KEYWORDS = ("producer", "publisher", "writer")
WORKER_KEYWORDS = ("worker", "processor")

MIN_PATTERN_LENGTH = 3
FALLBACK_PATTERN = "grouped services"

DEPENDENCY_TYPE_LABELS = {
    "queue": "queue",
    "database": "db",
    "cache": "cache",
}

EDGE_DIRECTION_COLORS: dict[str, str] = {
    "read": "#228be6",
    "write": "#f76707",
    "bidirectional": "#868e96",
}

# (source kind, target type) -> direction; ``None`` target type is the fallback for the kind.
DIRECTION_TABLE: dict[tuple[SourceKind, str | None], EdgeDirection] = {
    ("consumer", "queue"): "read",
    ("consumer", "database"): "write",
    ("consumer", "cache"): "write",
    ("consumer", None): "bidirectional",
    ("producer", "queue"): "write",
    ("producer", None): "bidirectional",
    ("worker", "queue"): "read",
    ("worker", None): "bidirectional",
    ("generic", "queue"): "write",
    ("generic", "database"): "bidirectional",
    ("generic", "cache"): "bidirectional",
    ("generic", None): "bidirectional",
}

_KIND_RULES: tuple[tuple[SourceKind, tuple[str, ...]], ...] = (
    ("consumer", CONSUMER_KEYWORDS),
    ("producer", PRODUCER_KEYWORDS),
    ("worker", WORKER_KEYWORDS),
)


@dataclass(frozen=True)
class DependencySignature:
    signature: str
    dependencies: tuple[str, ...]


def dependency_signature(service_id: str, edges: Iterable[DependencyEdge]) -> DependencySignature:
    dependencies = tuple(sorted({edge.to_id for edge in edges if edge.from_id == service_id}))
    return DependencySignature(signature=",".join(dependencies), dependencies=dependencies)


def longest_common_prefix(strings: Sequence[str]) -> str:
    if not strings:
        return ""
    if len(strings) == 1:
        return strings[0]
    first = min(strings)
    last = max(strings)
    idx = 0
    while idx < len(first) and first[idx] == last[idx]:
        idx += 1
    return first[:idx]


def longest_common_suffix(strings: Sequence[str]) -> str:
    reversed_prefix = longest_common_prefix([value[::-1] for value in strings])
    return reversed_prefix[::-1]


def find_common_pattern(names: Sequence[str]) -> str:
    if not names:
        return "services"
    if len(names) == 1:
        return names[0]

    prefix = longest_common_prefix(names)
    if len(prefix) >= MIN_PATTERN_LENGTH:
        clean_prefix = re.sub(r"[-_]+$", "", prefix)
        if len(clean_prefix) >= MIN_PATTERN_LENGTH:
            remainders = [name[len(prefix) :] for name in names]
            tail = re.sub(r"^[-_]+", "", longest_common_suffix(remainders))
            if len(tail) >= MIN_PATTERN_LENGTH:
                return f"{clean_prefix}-*-{tail}"
            return f"{clean_prefix}-*"

    suffix = longest_common_suffix(names)
    if len(suffix) >= MIN_PATTERN_LENGTH:
        clean_suffix = re.sub(r"^[-_]+", "", suffix)
        if len(clean_suffix) >= MIN_PATTERN_LENGTH:
            return f"*-{clean_suffix}"

    return FALLBACK_PATTERN


def generate_group_name(
    services: Sequence[ServiceNode],
    dependencies: Sequence[str],
    nodes_by_id: dict[str, ServiceNode],
) -> str:
    count = len(services)
    pattern = find_common_pattern([service.name for service in services])
    if pattern != FALLBACK_PATTERN:
        return f"{pattern} ({count})"

    dep_types = sorted({nodes_by_id[dep].type for dep in dependencies if dep in nodes_by_id})
    type_labels = "/".join(DEPENDENCY_TYPE_LABELS.get(dep_type, dep_type) for dep_type in dep_types)
    if type_labels:
        return f"{type_labels} clients ({count})"
    return f"{FALLBACK_PATTERN} ({count})"


def classify_source_kind(name: str) -> SourceKind:
    lower = name.lower()
    for kind, keywords in _KIND_RULES:
        if any(keyword in lower for keyword in keywords):
            return kind
    return "generic"


def _lookup_direction(kind: SourceKind, target_type: str) -> EdgeDirection:
    direction = DIRECTION_TABLE.get((kind, target_type))
    if direction is None:
        direction = DIRECTION_TABLE[(kind, None)]
    return direction


def infer_edge_direction(from_service: ServiceNode, to_service: ServiceNode) -> EdgeDirection:
    return _lookup_direction(classify_source_kind(from_service.name), to_service.type)


def infer_group_edge_direction(group: ServiceGroup, to_service: ServiceNode) -> EdgeDirection:
    """Direction for a group edge, decided by a strict majority of member kinds."""
    total = len(group.services)
    for kind, keywords in _KIND_RULES:
        members = sum(
            1
            for service in group.services
            if any(keyword in service.name.lower() for keyword in keywords)
        )
        if members > total / 2:
            return _lookup_direction(kind, to_service.type)
    return _lookup_direction("generic", to_service.type)


def edge_direction_color(direction: str) -> str:
    return EDGE_DIRECTION_COLORS.get(direction, EDGE_DIRECTION_COLORS["bidirectional"])


def group_by_dependency_signature(
    graph: InfraGraph,
    min_group_size: int = 2,
    exclude_types: Iterable[str] = (),
    exclude_with_incoming_edges: bool = True,
) -> GroupedGraph:
    nodes_by_id = graph.node_index()
    ensure_edges_resolved(nodes_by_id, graph.edges)
    excluded_types = set(exclude_types)

    has_incoming: set[str] = set()
    if exclude_with_incoming_edges:
        has_incoming = {edge.to_id for edge in graph.edges}

    signatures = {node.id: dependency_signature(node.id, graph.edges) for node in graph.nodes}

    signature_buckets: dict[str, list[ServiceNode]] = {}
    for node in graph.nodes:
        if node.type in excluded_types or node.id in has_incoming:
            continue
        signature = signatures[node.id]
        if not signature.signature:
            continue
        signature_buckets.setdefault(signature.signature, []).append(node)

    groups: list[ServiceGroup] = []
    group_of: dict[str, str] = {}
    for signature, services in signature_buckets.items():
        if len(services) < max(min_group_size, 1):
            continue
        dependencies = signatures[services[0].id].dependencies
        group = ServiceGroup(
            id=f"group-{len(groups)}",
            name=generate_group_name(services, dependencies, nodes_by_id),
            services=tuple(services),
            dependency_signature=signature,
            dependencies=dependencies,
        )
        groups.append(group)
        for service in services:
            group_of[service.id] = group.id

    individual_nodes = [node for node in graph.nodes if node.id not in group_of]
    edges = _build_directed_edges(graph, groups, individual_nodes, group_of, nodes_by_id)
    return GroupedGraph(
        nodes=individual_nodes,
        groups=groups,
        edges=edges,
        metadata=graph.metadata,
    )


def _build_directed_edges(
    graph: InfraGraph,
    groups: Sequence[ServiceGroup],
    individual_nodes: Sequence[ServiceNode],
    group_of: dict[str, str],
    nodes_by_id: dict[str, ServiceNode],
) -> list[DirectedEdge]:
    directed: list[DirectedEdge] = []
    seen: set[tuple[str, str]] = set()

    for group in groups:
        sample = group.services[0]
        for dep_id in group.dependencies:
            target_id = group_of.get(dep_id, dep_id)
            if target_id == group.id or (group.id, target_id) in seen:
                continue
            seen.add((group.id, target_id))
            original = next(
                (
                    edge
                    for edge in graph.edges
                    if edge.from_id == sample.id and edge.to_id == dep_id
                ),
                None,
            )
            directed.append(
                DirectedEdge(
                    from_id=group.id,
                    to_id=target_id,
                    type=original.type if original else "depends_on",
                    direction=infer_group_edge_direction(group, nodes_by_id[dep_id]),
                    port=original.port if original else None,
                    protocol=original.protocol if original else None,
                )
            )

    for node in individual_nodes:
        for edge in graph.edges:
            if edge.from_id != node.id or edge.to_id == node.id:
                continue
            # Members absorbed into a group are reached through the group node.
            target_id = group_of.get(edge.to_id, edge.to_id)
            if (node.id, target_id) in seen:
                continue
            seen.add((node.id, target_id))
            directed.append(
                DirectedEdge(
                    from_id=node.id,
                    to_id=target_id,
                    type=edge.type,
                    direction=edge.direction
                    or infer_edge_direction(node, nodes_by_id[edge.to_id]),
                    port=edge.port,
                    protocol=edge.protocol,
                )
            )
    return directed
