from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PARTITION_OPTION = "elk.partitioning.partition"
PORT_SIDE_OPTION = "elk.port.side"
PORT_CONSTRAINTS_OPTION = "elk.portConstraints"

ELK_LAYOUT_OPTIONS: Dict[str, Dict[str, str]] = {
    "standard": {
        "elk.algorithm": "layered",
        "elk.direction": "RIGHT",
        "elk.edgeRouting": "ORTHOGONAL",
        "elk.spacing.nodeNode": "50",
        "elk.layered.spacing.nodeNodeBetweenLayers": "80",
        "elk.layered.mergeEdges": "false",
    },
    "semantic": {
        "elk.algorithm": "layered",
        "elk.direction": "RIGHT",
        "elk.edgeRouting": "ORTHOGONAL",
        "elk.spacing.nodeNode": "50",
        "elk.layered.spacing.nodeNodeBetweenLayers": "80",
        "elk.layered.mergeEdges": "false",
        "elk.partitioning.activate": "true",
    },
}


class ElkElement(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ElkPoint(ElkElement):
    x: float
    y: float


class ElkLabel(ElkElement):
    text: str
    width: Optional[float] = None
    height: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None


class ElkPort(ElkElement):
    id: str
    layout_options: Dict[str, str] = Field(default_factory=dict)
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None

    @property
    def side(self) -> str | None:
        return self.layout_options.get(PORT_SIDE_OPTION)


class ElkEdgeSection(ElkElement):
    id: Optional[str] = None
    start_point: ElkPoint
    end_point: ElkPoint
    bend_points: List[ElkPoint] = Field(default_factory=list)


class ElkEdge(ElkElement):
    id: str
    sources: List[str]
    targets: List[str]
    sections: Optional[List[ElkEdgeSection]] = None


class ElkNode(ElkElement):
    id: str
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    labels: List[ElkLabel] = Field(default_factory=list)
    ports: Optional[List[ElkPort]] = None
    layout_options: Optional[Dict[str, str]] = None
    children: Optional[List[ElkNode]] = None
    edges: Optional[List[ElkEdge]] = None

    def partition(self) -> int | None:
        raw = (self.layout_options or {}).get(PARTITION_OPTION)
        return int(raw) if raw is not None else None
