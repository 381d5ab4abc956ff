from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

ServiceType = Literal["container", "database", "cache", "queue", "storage", "proxy", "ui"]
DependencyType = Literal[
    "depends_on",
    "network",
    "volume",
    "link",
    "inferred",
    "subchart",
    "database",
    "cache",
]
EdgeDirection = Literal["read", "write", "bidirectional"]
QueueRole = Literal["producer", "consumer", "both"]
SourceFormat = Literal["docker-compose", "helm", "terraform", "ansible"]

SERVICE_TYPES: Tuple[str, ...] = (
    "container",
    "database",
    "cache",
    "queue",
    "storage",
    "proxy",
    "ui",
)


class UnresolvedEdgeError(ValueError):
    def __init__(self, from_id: str, to_id: str, missing: str) -> None:
        self.from_id = from_id
        self.to_id = to_id
        self.missing = missing
        super().__init__(f"Edge {from_id} -> {to_id} references non-existent node: {missing}")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SourceInfo(_CamelModel):
    file: str
    format: SourceFormat
    line: Optional[int] = None


class PortMapping(_CamelModel):
    internal: int
    external: Optional[int] = None


class ResourceRequests(_CamelModel):
    cpu: Optional[str] = None
    memory: Optional[str] = None


class ServiceNode(_CamelModel):
    id: str = Field(..., min_length=1)
    name: str
    type: ServiceType
    source: Optional[SourceInfo] = None
    image: Optional[str] = None
    ports: List[PortMapping] = Field(default_factory=list)
    replicas: Optional[int] = None
    resource_requests: Optional[ResourceRequests] = None
    storage_size: Optional[str] = None
    external: bool = False
    description: Optional[str] = None
    group: Optional[str] = None
    queue_role: Optional[QueueRole] = None


class DependencyEdge(_CamelModel):
    from_id: str = Field(..., alias="from")
    to_id: str = Field(..., alias="to")
    type: DependencyType = "depends_on"
    direction: Optional[EdgeDirection] = None
    port: Optional[int] = None
    protocol: Optional[str] = None


class GraphMetadata(_CamelModel):
    project: str = ""
    parsed_at: Optional[str] = None
    source_files: List[str] = Field(default_factory=list)
    parser_version: str = "0.1.0"


def ensure_edges_resolved(node_ids: Iterable[str], edges: Iterable[DependencyEdge]) -> None:
    known: Set[str] = set(node_ids)
    for edge in edges:
        if edge.from_id not in known:
            raise UnresolvedEdgeError(edge.from_id, edge.to_id, edge.from_id)
        if edge.to_id not in known:
            raise UnresolvedEdgeError(edge.from_id, edge.to_id, edge.to_id)


class InfraGraph(_CamelModel):
    nodes: List[ServiceNode] = Field(default_factory=list)
    edges: List[DependencyEdge] = Field(default_factory=list)
    metadata: GraphMetadata = Field(default_factory=GraphMetadata)

    @model_validator(mode="after")
    def ensure_consistent_references(self) -> InfraGraph:
        seen: Set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                msg = f"Duplicate node id found: {node.id}"
                raise ValueError(msg)
            seen.add(node.id)
        ensure_edges_resolved(seen, self.edges)
        return self

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def node_index(self) -> Dict[str, ServiceNode]:
        return {node.id: node for node in self.nodes}


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass(frozen=True)
class NodePosition:
    id: str
    x: float
    y: float
    width: float
    height: float
    layer: int


@dataclass(frozen=True)
class SemanticPosition:
    id: str
    x: float
    y: float
    width: float
    height: float
    role: str
    column: int
    is_helper: bool = False
    parent_id: str | None = None
    connection_count: int = 0


@dataclass(frozen=True)
class LayoutResult:
    positions: Dict[str, NodePosition]
    width: float
    height: float
    cycle_broken: bool = False


@dataclass(frozen=True)
class SemanticLayoutResult:
    positions: Dict[str, SemanticPosition]
    width: float
    height: float
    cycle_broken: bool = False


@dataclass(frozen=True)
class ServiceGroup:
    id: str
    name: str
    services: Tuple[ServiceNode, ...]
    dependency_signature: str
    dependencies: Tuple[str, ...]

    def service_ids(self) -> List[str]:
        return [service.id for service in self.services]


@dataclass(frozen=True)
class DirectedEdge:
    from_id: str
    to_id: str
    type: str
    direction: str
    port: int | None = None
    protocol: str | None = None


@dataclass(frozen=True)
class GroupedGraph:
    nodes: List[ServiceNode]
    groups: List[ServiceGroup]
    edges: List[DirectedEdge]
    metadata: GraphMetadata = field(default_factory=GraphMetadata)


@dataclass(frozen=True)
class RoutedPath:
    start: Point
    end: Point
    points: Tuple[Tuple[float, float], ...]
    used_fallback: bool = False

    def absolute_points(self) -> List[Point]:
        return [Point(self.start.x + dx, self.start.y + dy) for dx, dy in self.points]


@dataclass(frozen=True)
class EdgeRoute:
    from_id: str
    to_id: str
    direction: str
    path: RoutedPath


@dataclass(frozen=True)
class DiagramLayout:
    positions: Dict[str, NodePosition | SemanticPosition]
    routes: List[EdgeRoute]
    groups: List[ServiceGroup]
    width: float
    height: float
    cycle_broken: bool = False
