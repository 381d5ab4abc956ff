from __future__ import annotations

import pytest

from adapters.routing.grid import EMPTY, OBSTACLE, RoutingGrid
from adapters.routing.router import (
    AnchorAllocator,
    OrthogonalRouter,
    OrthogonalRouterFactory,
    RoutingConfig,
    anchor_offset,
    choose_sides,
    connect_cells,
    facing_points,
    fallback_points,
    orthogonalize,
    path_enters_rects,
    segment_enters_rect,
)
from domain.models import Bounds, NodePosition, Point, RoutedPath


def _rect(node_id: str, x: float, y: float, width: float = 100, height: float = 50) -> NodePosition:
    return NodePosition(id=node_id, x=x, y=y, width=width, height=height, layer=0)


def _is_orthogonal(path: RoutedPath) -> bool:
    points = path.points
    return all(a[0] == b[0] or a[1] == b[1] for a, b in zip(points, points[1:]))


@pytest.mark.parametrize(
    ("target", "expected"),
    [
        (_rect("b", 300, 0), ("right", "left")),
        (_rect("b", -300, 0), ("left", "right")),
        (_rect("b", 0, 200), ("bottom", "top")),
        (_rect("b", 0, -200), ("top", "bottom")),
        (_rect("b", 100, 100, 100, 50), ("bottom", "top")),
    ],
)
def test_choose_sides_follows_dominant_axis(target: NodePosition, expected: tuple) -> None:
    assert choose_sides(_rect("a", 0, 0), target) == expected


def test_anchor_offsets_alternate_around_centre() -> None:
    assert [anchor_offset(index, 15) for index in range(5)] == [0, 15, -15, 30, -30]


def test_anchor_allocator_spreads_and_clamps_per_side() -> None:
    anchors = AnchorAllocator(spacing=15, inset=10)
    rect = _rect("a", 0, 0, 100, 40)

    right = [anchors.allocate("a", rect, "right") for _ in range(3)]
    top = [anchors.allocate("a", rect, "top") for _ in range(2)]

    assert right == [Point(100, 20), Point(100, 30), Point(100, 10)]
    assert top == [Point(50, 0), Point(65, 0)]


def test_orthogonalize_inserts_elbows_and_enters_along_side_normal() -> None:
    points = orthogonalize(Point(0, 0), Point(100, 60), [(50, 30)], "right", "left")

    assert points == [(0, 0), (50, 0), (50, 60), (100, 60)]


def test_fallback_steps_outside_bounds() -> None:
    bounds = Bounds(0, 0, 400, 100)

    right = fallback_points(Point(100, 25), Point(300, 75), "right", bounds, margin=100)
    top = fallback_points(Point(100, 0), Point(300, 0), "top", bounds, margin=50)

    assert right == [(100, 25), (500, 25), (500, 75), (300, 75)]
    assert top == [(100, 0), (100, -50), (300, -50), (300, 0)]


def test_route_between_neighbours_is_straight() -> None:
    positions = {"a": _rect("a", 0, 0), "b": _rect("b", 300, 0)}
    router = OrthogonalRouter.for_positions(positions)

    path = router.route("a", positions["a"], "b", positions["b"])

    assert path.start == Point(100, 25)
    assert path.end == Point(300, 25)
    assert path.points == ((0.0, 0.0), (200.0, 0.0))
    assert not path.used_fallback


def test_parallel_edges_spread_across_anchors() -> None:
    positions = {"a": _rect("a", 0, 0), "b": _rect("b", 300, 0)}
    router = OrthogonalRouter.for_positions(positions)

    router.route("a", positions["a"], "b", positions["b"])
    second = router.route("a", positions["a"], "b", positions["b"])

    assert second.start == Point(100, 40)
    assert second.end == Point(300, 40)
    assert _is_orthogonal(second)


def test_second_edge_avoids_cells_of_the_first() -> None:
    positions = {"a": _rect("a", 0, 0), "b": _rect("b", 300, 0)}
    router = OrthogonalRouter.for_positions(positions, RoutingConfig(anchor_spacing=0))

    first = router.route("a", positions["a"], "b", positions["b"])
    second = router.route("a", positions["a"], "b", positions["b"])

    assert (second.start, second.end) == (first.start, first.end)

    def corridor_cells(path: RoutedPath) -> set[tuple[int, int]]:
        points = [(point.x, point.y) for point in path.absolute_points()]
        # Columns strictly between the padding rings of both nodes.
        return {cell for cell in router.grid.cells_along(points) if 18 <= cell[0] <= 30}

    assert corridor_cells(first)
    assert corridor_cells(second)
    assert corridor_cells(first).isdisjoint(corridor_cells(second))
    assert _is_orthogonal(second)
    assert not second.used_fallback


def test_stacked_neighbours_connect_through_their_gap() -> None:
    positions = {"a": _rect("a", 0, 0), "b": _rect("b", 30, 70)}
    router = OrthogonalRouter.for_positions(positions)

    path = router.route("a", positions["a"], "b", positions["b"])

    assert path.start == Point(50, 50)
    assert path.end == Point(80, 70)
    assert path.points == ((0.0, 0.0), (0.0, 10.0), (30.0, 10.0), (30.0, 20.0))
    assert not path.used_fallback
    assert not path_enters_rects(
        [(point.x, point.y) for point in path.absolute_points()], list(positions.values())
    )


def test_helper_above_parent_is_not_crossed() -> None:
    positions = {
        "pooler": _rect("pooler", -40, -65, 130, 50),
        "db": _rect("db", 0, 0, 200, 100),
        "api": _rect("api", -400, 20, 150, 60),
    }
    router = OrthogonalRouter.for_positions(positions)
    rects = list(positions.values())

    for from_id, to_id in [("pooler", "db"), ("api", "db"), ("api", "pooler")]:
        path = router.route(from_id, positions[from_id], to_id, positions[to_id])
        points = [(point.x, point.y) for point in path.absolute_points()]

        assert not path_enters_rects(points, rects), (from_id, to_id, points)
        assert _is_orthogonal(path)


def test_facing_points_split_the_gap() -> None:
    assert facing_points(Point(0, 0), Point(40, 30), "right", "left") == [
        (0, 0),
        (20, 0),
        (20, 30),
        (40, 30),
    ]
    assert facing_points(Point(10, 50), Point(10, 70), "bottom", "top") == [(10, 50), (10, 70)]
    assert facing_points(Point(40, 0), Point(0, 0), "right", "left") is None
    assert facing_points(Point(0, 0), Point(40, 30), "right", "top") is None


def test_connect_cells_leaves_and_enters_along_side_normals() -> None:
    points = connect_cells(
        Point(100, 25), Point(300, 75), [(120, 30), (120, 80), (280, 80)], "right", "left"
    )

    assert points == [(100, 25), (120, 25), (120, 80), (280, 80), (280, 75), (300, 75)]


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ((-10, 25), (50, 25), True),
        ((50, -10), (50, 10), True),
        ((100, 25), (150, 25), False),
        ((0, -10), (0, 60), False),
        ((-10, 50), (110, 50), False),
        ((-10, 60), (110, 60), False),
    ],
)
def test_segment_enters_rect_only_through_the_interior(
    a: tuple[float, float], b: tuple[float, float], expected: bool
) -> None:
    assert segment_enters_rect(a, b, _rect("a", 0, 0)) is expected


def test_enclosed_target_uses_fallback_route() -> None:
    cells = [[EMPTY] * 20 for _ in range(20)]
    for gy in range(11, 18):
        for gx in range(11, 18):
            if gx in (11, 17) or gy in (11, 17):
                cells[gy][gx] = OBSTACLE
    grid = RoutingGrid(
        cells=cells,
        cell_size=10.0,
        offset_x=0.0,
        offset_y=0.0,
        bounds=Bounds(0.0, 0.0, 200.0, 200.0),
    )
    router = OrthogonalRouter(grid)

    path = router.route_between(Point(20, 20), Point(140, 140), "right", "left")

    assert path.used_fallback
    assert path.points == ((0.0, 0.0), (280.0, 0.0), (280.0, 120.0), (120.0, 120.0))
    assert _is_orthogonal(path)
    assert router.congestion.usage


def test_factory_builds_a_fresh_router_per_diagram() -> None:
    factory = OrthogonalRouterFactory(RoutingConfig(cell_size=20.0))
    positions = {"a": _rect("a", 0, 0), "b": _rect("b", 300, 0)}

    first = factory(positions)
    second = factory(positions)

    assert first is not second
    assert first.congestion is not second.congestion
    assert first.grid.cell_size == 20.0
