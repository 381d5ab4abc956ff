from __future__ import annotations

import heapq
from collections.abc import Sequence
from dataclasses import dataclass
from typing import List, Optional, TypeVar

from adapters.routing.grid import PADDING, Cell, CongestionMap, RoutingGrid

_DIRECTIONS: tuple[Cell, ...] = ((0, -1), (0, 1), (-1, 0), (1, 0))

PointT = TypeVar("PointT", bound=tuple)


@dataclass(frozen=True)
class SearchCosts:
    empty: float = 1.0
    padding: float = 3.0
    arrow: float = 8.0
    congestion_weight: float = 50.0
    turn_penalty: float = 5.0
    iteration_factor: int = 4


def manhattan(a: Cell, b: Cell) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def step_cost(
    grid: RoutingGrid,
    congestion: CongestionMap,
    cell: Cell,
    costs: SearchCosts,
) -> float:
    if congestion.is_arrow(cell):
        terrain = costs.arrow
    elif grid.state(cell) == PADDING:
        terrain = costs.padding
    else:
        terrain = costs.empty
    return terrain + congestion.usage_at(cell) * costs.congestion_weight


def find_path(
    grid: RoutingGrid,
    start: Cell,
    goal: Cell,
    congestion: CongestionMap | None = None,
    costs: SearchCosts | None = None,
) -> Optional[List[Cell]]:
    """Cheapest 4-connected cell path from ``start`` to ``goal``, both inclusive.

    Returns ``None`` when the goal is unreachable or the expansion budget of
    ``width * height * iteration_factor`` runs out.
    """
    congestion = congestion or CongestionMap()
    costs = costs or SearchCosts()
    if start == goal:
        return [start]

    max_iterations = grid.width * grid.height * costs.iteration_factor
    counter = 0
    h_start = manhattan(start, goal)
    # (f, h, insertion order) keeps pops deterministic on ties.
    open_heap: list[tuple[float, int, int, Cell]] = [(h_start, h_start, counter, start)]
    best_cost: dict[Cell, float] = {start: 0.0}
    parents: dict[Cell, Cell] = {}
    closed: set[Cell] = set()
    iterations = 0

    while open_heap and iterations < max_iterations:
        _, _, _, current = heapq.heappop(open_heap)
        if current in closed:
            continue
        iterations += 1
        if current == goal:
            return _reconstruct(parents, current)
        closed.add(current)

        previous = parents.get(current)
        heading = None if previous is None else (current[0] - previous[0], current[1] - previous[1])
        for dx, dy in _DIRECTIONS:
            neighbor = (current[0] + dx, current[1] + dy)
            if neighbor in closed or not grid.is_traversable(neighbor):
                continue
            cost = best_cost[current] + step_cost(grid, congestion, neighbor, costs)
            if heading is not None and heading != (dx, dy):
                cost += costs.turn_penalty
            if cost >= best_cost.get(neighbor, float("inf")):
                continue
            best_cost[neighbor] = cost
            parents[neighbor] = current
            counter += 1
            h = manhattan(neighbor, goal)
            heapq.heappush(open_heap, (cost + h, h, counter, neighbor))

    return None


def _reconstruct(parents: dict[Cell, Cell], cell: Cell) -> List[Cell]:
    path = [cell]
    while cell in parents:
        cell = parents[cell]
        path.append(cell)
    path.reverse()
    return path


def simplify_path(points: Sequence[PointT]) -> List[PointT]:
    """Drop repeated points and interior points on a straight run."""
    deduped: List[PointT] = []
    for point in points:
        if not deduped or deduped[-1] != point:
            deduped.append(point)
    if len(deduped) <= 2:
        return deduped

    simplified = [deduped[0]]
    for index in range(1, len(deduped) - 1):
        prev = simplified[-1]
        curr = deduped[index]
        nxt = deduped[index + 1]
        collinear = (prev[0] == curr[0] == nxt[0]) or (prev[1] == curr[1] == nxt[1])
        if not collinear:
            simplified.append(curr)
    simplified.append(deduped[-1])
    return simplified
