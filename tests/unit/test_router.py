"""Unit tests for the edge router and its rectangle geometry."""

from __future__ import annotations

import math

from survey_flow.config import RouterConfig
from survey_flow.ir.graph import GraphEdge
from survey_flow.layout.geometry import Rect, polyline_hits_rect, segment_intersects_rect
from survey_flow.layout.router import EdgeRouter
from survey_flow.types import EdgeKind, Point, Side

SOURCE = Rect(0, 0, 400, 150)
TARGET = Rect(0, 700, 400, 150)
CENTERED_BLOCKER = Rect(0, 350, 400, 150)


def make_edge(source: str = "S", target: str = "T", index: int = 0, total: int = 1) -> GraphEdge:
    return GraphEdge(
        id=f"{source}-{target}-{index}",
        source=source,
        target=target,
        kind=EdgeKind.EXPLICIT,
        insertion_anchor=1,
        parallel_index=index,
        parallel_total=total,
    )


def make_boxes(**extra: Rect) -> dict[str, Rect]:
    boxes = {"S": SOURCE, "T": TARGET}
    boxes.update(extra)
    return boxes


# ─── Geometry ────────────────────────────────────────────────────────────────


class TestGeometry:
    def test_segment_crossing_rect(self):
        assert segment_intersects_rect(Point(-10, 50), Point(110, 50), Rect(0, 0, 100, 100))

    def test_segment_missing_rect(self):
        assert not segment_intersects_rect(Point(-10, 150), Point(110, 150), Rect(0, 0, 100, 100))

    def test_segment_inside_rect(self):
        assert segment_intersects_rect(Point(10, 10), Point(20, 20), Rect(0, 0, 100, 100))

    def test_diagonal_past_corner(self):
        assert not segment_intersects_rect(Point(90, -20), Point(130, 20), Rect(0, 0, 100, 100))

    def test_polyline_bbox_reject(self):
        assert not polyline_hits_rect([Point(500, 0), Point(500, 100)], Rect(0, 0, 100, 100))

    def test_polyline_hit(self):
        assert polyline_hits_rect([Point(50, -50), Point(50, -10), Point(50, 10)], Rect(0, 0, 100, 100))

    def test_invalid_rects(self):
        assert not Rect(math.nan, 0, 10, 10).is_valid()
        assert not Rect(0, 0, 0, 10).is_valid()
        assert not Rect(0, 0, 10, math.inf).is_valid()
        assert Rect(0, 0, 10, 10).is_valid()

    def test_padded(self):
        assert Rect(10, 10, 100, 50).padded(5) == Rect(5, 5, 110, 60)


# ─── Fast path ───────────────────────────────────────────────────────────────


class TestDirectRoute:
    def test_no_blocker_no_detour(self):
        route = EdgeRouter().route(make_edge(), make_boxes())
        assert route is not None
        assert not route.needs_detour
        assert route.path == ""
        assert route.points[0] == Point(200, 150)
        assert route.points[-1] == Point(200, 700)

    def test_label_at_midpoint(self):
        route = EdgeRouter().route(make_edge(), make_boxes())
        assert route.label == Point(200, 425)

    def test_label_staggered_by_index(self):
        route = EdgeRouter().route(make_edge(index=1, total=2), make_boxes())
        assert route.label == Point(200, 450)

    def test_node_off_to_the_side_does_not_block(self):
        route = EdgeRouter().route(make_edge(), make_boxes(B=Rect(600, 350, 400, 150)))
        assert not route.needs_detour

    def test_upward_edge(self):
        route = EdgeRouter().route(make_edge("T", "S"), make_boxes())
        assert route.points[0] == Point(200, 700)
        assert route.points[-1] == Point(200, 150)

    def test_side_by_side_uses_facing_sides(self):
        boxes = {"S": Rect(0, 0, 400, 150), "T": Rect(600, 0, 400, 150)}
        route = EdgeRouter().route(make_edge(), boxes)
        assert route.points[0] == Point(400, 75)
        assert route.points[-1] == Point(600, 75)

    def test_invalid_obstacle_ignored(self):
        route = EdgeRouter().route(make_edge(), make_boxes(B=Rect(math.nan, 350, 400, 150)))
        assert not route.needs_detour

    def test_missing_endpoint(self):
        assert EdgeRouter().route(make_edge(target="X"), make_boxes()) is None


# ─── Detours ─────────────────────────────────────────────────────────────────


class TestDetour:
    def test_centered_blocker_forces_detour(self):
        route = EdgeRouter().route(make_edge(), make_boxes(B=CENTERED_BLOCKER))
        assert route.needs_detour
        assert route.lateral_offset >= CENTERED_BLOCKER.width / 2 + RouterConfig().padding
        assert route.path.startswith("M 200 150")
        assert "Q" in route.path

    def test_detour_clears_every_padded_box(self):
        boxes = make_boxes(B=CENTERED_BLOCKER)
        route = EdgeRouter().route(make_edge(), boxes)
        padded = CENTERED_BLOCKER.padded(RouterConfig().padding)
        assert not polyline_hits_rect(route.points, padded)

    def test_label_outside_padded_boxes(self):
        boxes = make_boxes(B=CENTERED_BLOCKER)
        route = EdgeRouter().route(make_edge(), boxes)
        for box in boxes.values():
            assert not box.padded(RouterConfig().padding).contains(route.label)

    def test_leans_away_from_blockers(self):
        route = EdgeRouter().route(make_edge(), make_boxes(B=Rect(100, 350, 400, 150)))
        assert route.side == Side.LEFT
        assert all(p.x <= 200 for p in route.points)

    def test_cramped_side_falls_back(self):
        boxes = make_boxes(B=Rect(100, 350, 400, 150), W=Rect(-20, 300, 60, 250))
        route = EdgeRouter().route(make_edge(), boxes)
        assert route.side == Side.RIGHT

    def test_leg_pushed_past_neighbour(self):
        boxes = make_boxes(B=CENTERED_BLOCKER, N=Rect(300, 580, 300, 50))
        route = EdgeRouter().route(make_edge(), boxes)
        assert route.needs_detour
        assert route.side == Side.RIGHT
        assert route.lateral_offset == 465
        for box in (CENTERED_BLOCKER, boxes["N"]):
            assert not polyline_hits_rect(route.points, box.padded(RouterConfig().padding))

    def test_exact_offset_for_centered_blocker(self):
        route = EdgeRouter().route(make_edge(), make_boxes(B=CENTERED_BLOCKER))
        assert route.side == Side.RIGHT
        assert route.lateral_offset == 265
        assert route.label == Point(453, 425)

    def test_parallel_detours_fan_out(self):
        router = EdgeRouter()
        boxes = make_boxes(B=CENTERED_BLOCKER)
        first = router.route(make_edge(index=0, total=2), boxes)
        second = router.route(make_edge(index=1, total=2), boxes)
        assert second.lateral_offset - first.lateral_offset == RouterConfig().fan_spacing
        assert first.fan_offset == -17.5
        assert second.fan_offset == 17.5

    def test_route_all(self):
        edges = [make_edge(), make_edge("S", "X")]
        routes = EdgeRouter().route_all(edges, make_boxes(B=CENTERED_BLOCKER))
        assert list(routes) == ["S-T-0"]


class TestSelfLoop:
    def test_loop_on_the_right(self):
        route = EdgeRouter().route(make_edge("S", "S"), make_boxes())
        assert route.needs_detour
        assert route.side == Side.RIGHT
        assert all(p.x >= SOURCE.right for p in route.points)
        assert route.label.x > SOURCE.right
