from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import List, Literal, Tuple

from domain.models import Bounds
from domain.ports.layout import Rect

CellState = Literal["empty", "obstacle", "padding"]
Cell = Tuple[int, int]

EMPTY: CellState = "empty"
OBSTACLE: CellState = "obstacle"
PADDING: CellState = "padding"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class RoutingGrid:
    """Rasterized obstacle map in world space.

    Terrain never changes after construction; per-edge state lives in
    ``CongestionMap``.
    """

    cells: List[List[CellState]]
    cell_size: float
    offset_x: float
    offset_y: float
    bounds: Bounds

    @property
    def width(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    @property
    def height(self) -> int:
        return len(self.cells)

    @classmethod
    def from_rects(
        cls,
        rects: Iterable[Rect],
        cell_size: float = 10.0,
        padding: float = 40.0,
        obstacle_margin: float = 5.0,
        padding_cells: int = 2,
    ) -> RoutingGrid:
        rects = list(rects)
        if not rects:
            return cls(
                cells=[[EMPTY]],
                cell_size=cell_size,
                offset_x=0.0,
                offset_y=0.0,
                bounds=Bounds(0.0, 0.0, 0.0, 0.0),
            )

        bounds = Bounds(
            min_x=min(rect.x for rect in rects),
            min_y=min(rect.y for rect in rects),
            max_x=max(rect.x + rect.width for rect in rects),
            max_y=max(rect.y + rect.height for rect in rects),
        )
        offset_x = bounds.min_x - padding
        offset_y = bounds.min_y - padding
        width = math.ceil((bounds.max_x + padding - offset_x) / cell_size) + 2
        height = math.ceil((bounds.max_y + padding - offset_y) / cell_size) + 2
        cells: List[List[CellState]] = [[EMPTY] * width for _ in range(height)]

        for rect in rects:
            start_x = math.floor((rect.x - obstacle_margin - offset_x) / cell_size)
            start_y = math.floor((rect.y - obstacle_margin - offset_y) / cell_size)
            end_x = math.ceil((rect.x + rect.width + obstacle_margin - offset_x) / cell_size)
            end_y = math.ceil((rect.y + rect.height + obstacle_margin - offset_y) / cell_size)
            for gy in range(max(0, start_y), min(height, end_y + 1)):
                for gx in range(max(0, start_x), min(width, end_x + 1)):
                    cells[gy][gx] = OBSTACLE
            ring_y = range(max(0, start_y - padding_cells), min(height, end_y + padding_cells + 1))
            ring_x = range(max(0, start_x - padding_cells), min(width, end_x + padding_cells + 1))
            for gy in ring_y:
                for gx in ring_x:
                    if cells[gy][gx] == EMPTY:
                        cells[gy][gx] = PADDING

        return cls(
            cells=cells,
            cell_size=cell_size,
            offset_x=offset_x,
            offset_y=offset_y,
            bounds=bounds,
        )

    def in_bounds(self, cell: Cell) -> bool:
        gx, gy = cell
        return 0 <= gx < self.width and 0 <= gy < self.height

    def state(self, cell: Cell) -> CellState:
        gx, gy = cell
        return self.cells[gy][gx]

    def is_traversable(self, cell: Cell) -> bool:
        return self.in_bounds(cell) and self.state(cell) != OBSTACLE

    def clamp(self, cell: Cell) -> Cell:
        gx, gy = cell
        return (
            max(0, min(self.width - 1, gx)),
            max(0, min(self.height - 1, gy)),
        )

    def world_to_grid(self, x: float, y: float) -> Cell:
        return self.clamp(
            (
                _round_half_up((x - self.offset_x) / self.cell_size),
                _round_half_up((y - self.offset_y) / self.cell_size),
            )
        )

    def grid_to_world(self, cell: Cell) -> tuple[float, float]:
        gx, gy = cell
        return gx * self.cell_size + self.offset_x, gy * self.cell_size + self.offset_y

    def first_traversable_along(self, cell: Cell, step: Cell) -> Cell | None:
        """First non-obstacle cell met walking from ``cell`` in ``step`` increments.

        ``cell`` itself counts. Returns ``None`` once the walk leaves the grid.
        """
        gx, gy = cell
        while self.in_bounds((gx, gy)):
            if self.state((gx, gy)) != OBSTACLE:
                return gx, gy
            gx, gy = gx + step[0], gy + step[1]
        return None

    def cells_along(self, points: Sequence[tuple[float, float]]) -> List[Cell]:
        """Grid cells covered by an orthogonal world-space polyline."""
        cells: List[Cell] = []
        for (x1, y1), (x2, y2) in zip(points, points[1:]):
            start = self.world_to_grid(x1, y1)
            end = self.world_to_grid(x2, y2)
            step_x = (end[0] > start[0]) - (end[0] < start[0])
            step_y = (end[1] > start[1]) - (end[1] < start[1])
            current = start
            if not cells or cells[-1] != current:
                cells.append(current)
            while current != end:
                # Diagonal input is walked x first.
                if current[0] != end[0]:
                    current = (current[0] + step_x, current[1])
                else:
                    current = (current[0], current[1] + step_y)
                cells.append(current)
        return cells


@dataclass
class CongestionMap:
    """Usage accumulated by already routed edges of one diagram."""

    spread_distance: int = 5
    spread_weight: float = 2.0
    usage: dict[Cell, float] = field(default_factory=dict)
    arrow_cells: set[Cell] = field(default_factory=set)

    def usage_at(self, cell: Cell) -> float:
        return self.usage.get(cell, 0.0)

    def is_arrow(self, cell: Cell) -> bool:
        return cell in self.arrow_cells

    def mark_path(self, cells: Sequence[Cell], grid: RoutingGrid | None = None) -> None:
        for index, cell in enumerate(cells):
            self.usage[cell] = self.usage.get(cell, 0.0) + 1.0
            self.arrow_cells.add(cell)
            if len(cells) == 1:
                continue
            neighbor = cells[index + 1] if index + 1 < len(cells) else cells[index - 1]
            horizontal = neighbor[1] == cell[1]
            for distance in range(1, self.spread_distance + 1):
                penalty = self.spread_weight / distance
                if horizontal:
                    spread = ((cell[0], cell[1] - distance), (cell[0], cell[1] + distance))
                else:
                    spread = ((cell[0] - distance, cell[1]), (cell[0] + distance, cell[1]))
                for target in spread:
                    if grid is not None and not grid.in_bounds(target):
                        continue
                    self.usage[target] = self.usage.get(target, 0.0) + penalty
