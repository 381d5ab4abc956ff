from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import List, Literal, Tuple

from adapters.routing.astar import SearchCosts, find_path, simplify_path
from adapters.routing.grid import Cell, CongestionMap, RoutingGrid
from domain.models import Bounds, Point, RoutedPath
from domain.ports.layout import Rect

logger = logging.getLogger(__name__)

Side = Literal["top", "bottom", "left", "right"]
HORIZONTAL_SIDES: Tuple[Side, ...] = ("left", "right")
SIDE_NORMALS: dict[Side, Cell] = {
    "right": (1, 0),
    "left": (-1, 0),
    "bottom": (0, 1),
    "top": (0, -1),
}


@dataclass(frozen=True)
class RoutingConfig:
    cell_size: float = 10.0
    padding: float = 40.0
    obstacle_margin: float = 5.0
    padding_cells: int = 2
    empty_cost: float = 1.0
    padding_cost: float = 3.0
    arrow_cost: float = 8.0
    congestion_weight: float = 50.0
    turn_penalty: float = 5.0
    iteration_factor: int = 4
    spread_distance: int = 5
    spread_weight: float = 2.0
    fallback_margin: float = 100.0
    anchor_spacing: float = 15.0
    anchor_inset: float = 10.0

    def search_costs(self) -> SearchCosts:
        return SearchCosts(
            empty=self.empty_cost,
            padding=self.padding_cost,
            arrow=self.arrow_cost,
            congestion_weight=self.congestion_weight,
            turn_penalty=self.turn_penalty,
            iteration_factor=self.iteration_factor,
        )


def choose_sides(from_rect: Rect, to_rect: Rect) -> tuple[Side, Side]:
    """Exit side of the source and entry side of the target.

    The dominant axis of the vector between centres wins; ties go vertical.
    """
    dx = (to_rect.x + to_rect.width / 2) - (from_rect.x + from_rect.width / 2)
    dy = (to_rect.y + to_rect.height / 2) - (from_rect.y + from_rect.height / 2)
    if abs(dx) > abs(dy):
        return ("right", "left") if dx > 0 else ("left", "right")
    return ("bottom", "top") if dy > 0 else ("top", "bottom")


def anchor_offset(index: int, spacing: float) -> float:
    """Offset of the ``index``-th connection on a side: 0, +s, -s, +2s, -2s, ..."""
    if index == 0:
        return 0.0
    step = (index + 1) // 2
    return step * spacing if index % 2 == 1 else -step * spacing


@dataclass
class AnchorAllocator:
    spacing: float = 15.0
    inset: float = 10.0
    used: dict[tuple[str, Side], int] = field(default_factory=dict)

    def allocate(self, node_id: str, rect: Rect, side: Side) -> Point:
        index = self.used.get((node_id, side), 0)
        self.used[(node_id, side)] = index + 1
        length = rect.height if side in HORIZONTAL_SIDES else rect.width
        limit = max(0.0, length / 2 - self.inset)
        offset = max(-limit, min(limit, anchor_offset(index, self.spacing)))

        center_x = rect.x + rect.width / 2
        center_y = rect.y + rect.height / 2
        if side == "right":
            return Point(rect.x + rect.width, center_y + offset)
        if side == "left":
            return Point(rect.x, center_y + offset)
        if side == "bottom":
            return Point(center_x + offset, rect.y + rect.height)
        return Point(center_x + offset, rect.y)


def fallback_points(
    start: Point,
    end: Point,
    exit_side: Side,
    bounds: Bounds,
    margin: float = 100.0,
) -> List[tuple[float, float]]:
    """Route that leaves ``start`` outward, runs outside ``bounds`` and turns into ``end``."""
    if exit_side == "right":
        out = max(bounds.max_x, start.x, end.x) + margin
        points = [(start.x, start.y), (out, start.y), (out, end.y), (end.x, end.y)]
    elif exit_side == "left":
        out = min(bounds.min_x, start.x, end.x) - margin
        points = [(start.x, start.y), (out, start.y), (out, end.y), (end.x, end.y)]
    elif exit_side == "bottom":
        out = max(bounds.max_y, start.y, end.y) + margin
        points = [(start.x, start.y), (start.x, out), (end.x, out), (end.x, end.y)]
    else:
        out = min(bounds.min_y, start.y, end.y) - margin
        points = [(start.x, start.y), (start.x, out), (end.x, out), (end.x, end.y)]
    return simplify_path(points)


def orthogonalize(
    start: Point,
    end: Point,
    waypoints: Sequence[tuple[float, float]],
    exit_side: Side,
    entry_side: Side,
) -> List[tuple[float, float]]:
    """Polyline from ``start`` through ``waypoints`` to ``end`` with right-angle elbows."""
    points: List[tuple[float, float]] = [(start.x, start.y)]
    targets = [*waypoints, (end.x, end.y)]
    horizontal = exit_side in HORIZONTAL_SIDES
    for index, (tx, ty) in enumerate(targets):
        px, py = points[-1]
        if px != tx and py != ty:
            if index == len(targets) - 1:
                # Last segment has to arrive along the entry side's normal.
                horizontal_first = entry_side not in HORIZONTAL_SIDES
            else:
                horizontal_first = horizontal
            points.append((tx, py) if horizontal_first else (px, ty))
        if points[-1] != (tx, ty):
            horizontal = points[-1][1] == ty
            points.append((tx, ty))
    return simplify_path(points)


def escape_leg(
    anchor: Point,
    side: Side,
    target: tuple[float, float],
) -> List[tuple[float, float]]:
    """Leaves ``anchor`` along the side's normal, then steps sideways onto ``target``."""
    tx, ty = target
    elbow = (tx, anchor.y) if side in HORIZONTAL_SIDES else (anchor.x, ty)
    return [(anchor.x, anchor.y), elbow, target]


def connect_cells(
    start: Point,
    end: Point,
    cell_points: Sequence[tuple[float, float]],
    exit_side: Side,
    entry_side: Side,
) -> List[tuple[float, float]]:
    """Polyline that follows every cell point of a grid path between the two anchors."""
    head = escape_leg(start, exit_side, cell_points[0])
    tail = escape_leg(end, entry_side, cell_points[-1])
    return simplify_path([*head, *cell_points[1:], *reversed(tail[:2])])


def facing_points(
    start: Point,
    end: Point,
    exit_side: Side,
    entry_side: Side,
) -> List[tuple[float, float]] | None:
    """Route through the middle of the gap between two anchors that face each other."""
    normal_x, normal_y = SIDE_NORMALS[exit_side]
    if SIDE_NORMALS[entry_side] != (-normal_x, -normal_y):
        return None
    if (end.x - start.x) * normal_x + (end.y - start.y) * normal_y <= 0:
        return None
    if exit_side in HORIZONTAL_SIDES:
        mid = (start.x + end.x) / 2
        points = [(start.x, start.y), (mid, start.y), (mid, end.y), (end.x, end.y)]
    else:
        mid = (start.y + end.y) / 2
        points = [(start.x, start.y), (start.x, mid), (end.x, mid), (end.x, end.y)]
    return simplify_path(points)


def segment_enters_rect(
    a: tuple[float, float],
    b: tuple[float, float],
    rect: Rect,
) -> bool:
    """Whether the axis-aligned segment ``a``-``b`` crosses the open interior of ``rect``.

    Running along an edge or touching a corner does not count.
    """
    left, right = min(a[0], b[0]), max(a[0], b[0])
    top, bottom = min(a[1], b[1]), max(a[1], b[1])
    rect_right = rect.x + rect.width
    rect_bottom = rect.y + rect.height
    if left == right:
        return rect.x < left < rect_right and max(top, rect.y) < min(bottom, rect_bottom)
    return rect.y < top < rect_bottom and max(left, rect.x) < min(right, rect_right)


def path_enters_rects(points: Sequence[tuple[float, float]], rects: Sequence[Rect]) -> bool:
    return any(
        segment_enters_rect(a, b, rect) for a, b in zip(points, points[1:]) for rect in rects
    )


def to_routed_path(
    start: Point,
    end: Point,
    points: Sequence[tuple[float, float]],
    used_fallback: bool = False,
) -> RoutedPath:
    relative = tuple((x - start.x, y - start.y) for x, y in points)
    if not relative or relative[0] != (0.0, 0.0):
        relative = ((0.0, 0.0), *relative)
    return RoutedPath(start=start, end=end, points=relative, used_fallback=used_fallback)


class OrthogonalRouter:
    """Routes edges one at a time over a shared grid.

    Every accepted route is written into ``congestion`` so later edges avoid
    it; the order of calls changes the result. ``obstacles`` are the node
    rectangles no route may cut through.
    """

    def __init__(
        self,
        grid: RoutingGrid,
        congestion: CongestionMap | None = None,
        config: RoutingConfig | None = None,
        obstacles: Sequence[Rect] = (),
    ) -> None:
        self.config = config or RoutingConfig()
        self.grid = grid
        self.obstacles = tuple(obstacles)
        self.congestion = congestion or CongestionMap(
            spread_distance=self.config.spread_distance,
            spread_weight=self.config.spread_weight,
        )
        self.anchors = AnchorAllocator(
            spacing=self.config.anchor_spacing,
            inset=self.config.anchor_inset,
        )
        self._costs = self.config.search_costs()

    @classmethod
    def for_positions(
        cls,
        positions: Mapping[str, Rect],
        config: RoutingConfig | None = None,
    ) -> OrthogonalRouter:
        config = config or RoutingConfig()
        grid = RoutingGrid.from_rects(
            positions.values(),
            cell_size=config.cell_size,
            padding=config.padding,
            obstacle_margin=config.obstacle_margin,
            padding_cells=config.padding_cells,
        )
        return cls(grid, config=config, obstacles=list(positions.values()))

    def route(self, from_id: str, from_rect: Rect, to_id: str, to_rect: Rect) -> RoutedPath:
        exit_side, entry_side = choose_sides(from_rect, to_rect)
        start = self.anchors.allocate(from_id, from_rect, exit_side)
        end = self.anchors.allocate(to_id, to_rect, entry_side)
        return self.route_between(start, end, exit_side, entry_side)

    def route_between(
        self,
        start: Point,
        end: Point,
        exit_side: Side,
        entry_side: Side,
    ) -> RoutedPath:
        start_cell = self._escape_cell(start, exit_side)
        end_cell = self._escape_cell(end, entry_side)

        if start_cell is None or end_cell is None:
            # Obstacle margins of close neighbours merge, leaving no free cell between them.
            points = facing_points(start, end, exit_side, entry_side)
            if points is not None and not path_enters_rects(points, self.obstacles):
                self.congestion.mark_path(self.grid.cells_along(points), self.grid)
                return to_routed_path(start, end, points)
        else:
            cells = find_path(self.grid, start_cell, end_cell, self.congestion, self._costs)
            if cells is not None:
                corners = [self.grid.grid_to_world(cell) for cell in simplify_path(cells)]
                candidates = (
                    orthogonalize(start, end, corners[1:-1], exit_side, entry_side),
                    connect_cells(start, end, corners, exit_side, entry_side),
                )
                for points in candidates:
                    if not path_enters_rects(points, self.obstacles):
                        self.congestion.mark_path(cells, self.grid)
                        return to_routed_path(start, end, points)

        logger.debug(
            "No grid path from (%.1f, %.1f) to (%.1f, %.1f), using fallback route",
            start.x,
            start.y,
            end.x,
            end.y,
        )
        points = fallback_points(
            start, end, exit_side, self.grid.bounds, self.config.fallback_margin
        )
        self.congestion.mark_path(self.grid.cells_along(points), self.grid)
        return to_routed_path(start, end, points, used_fallback=True)

    def _escape_cell(self, anchor: Point, side: Side) -> Cell | None:
        """Free cell straight out from ``anchor`` along the side's normal.

        ``None`` when the walk leaves the grid or its leg would cut through a node.
        """
        cell = self.grid.first_traversable_along(
            self.grid.world_to_grid(anchor.x, anchor.y), SIDE_NORMALS[side]
        )
        if cell is None:
            return None
        leg = escape_leg(anchor, side, self.grid.grid_to_world(cell))
        return None if path_enters_rects(leg, self.obstacles) else cell


@dataclass(frozen=True)
class OrthogonalRouterFactory:
    """Builds a fresh router (grid and congestion map) per diagram."""

    config: RoutingConfig = field(default_factory=RoutingConfig)

    def __call__(self, positions: Mapping[str, Rect]) -> OrthogonalRouter:
        return OrthogonalRouter.for_positions(positions, self.config)
