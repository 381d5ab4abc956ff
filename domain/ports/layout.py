from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from domain.models import (
    DependencyEdge,
    DirectedEdge,
    LayoutResult,
    RoutedPath,
    SemanticLayoutResult,
    ServiceGroup,
    ServiceNode,
    Size,
)


class Rect(Protocol):
    @property
    def x(self) -> float: ...

    @property
    def y(self) -> float: ...

    @property
    def width(self) -> float: ...

    @property
    def height(self) -> float: ...


class LayoutEngine(Protocol):
    def build_layout(
        self,
        nodes: Sequence[ServiceNode],
        edges: Sequence[DependencyEdge | DirectedEdge],
        groups: Sequence[ServiceGroup] = (),
    ) -> LayoutResult | SemanticLayoutResult:
        ...


class NodeSizer(Protocol):
    def size(
        self,
        node_type: str | None,
        connections: int,
        is_group: bool,
    ) -> Size:
        ...


class EdgeRouter(Protocol):
    def route(
        self,
        from_id: str,
        from_rect: Rect,
        to_id: str,
        to_rect: Rect,
    ) -> RoutedPath:
        ...


class EdgeRouterFactory(Protocol):
    def __call__(self, positions: Mapping[str, Rect]) -> EdgeRouter: ...


class LayeredLayoutBackend(Protocol):
    def layout(self, graph: Any) -> Any:
        ...
