"""Unit tests for SVG path generation."""

from survey_flow.renderers.path import (
    rounded_path,
    simplify_points,
    smooth_step_path,
    smooth_step_points,
)
from survey_flow.types import Point


class TestSimplify:
    def test_drops_duplicates(self):
        pts = [Point(0, 0), Point(0, 0), Point(0, 10)]
        assert simplify_points(pts) == [Point(0, 0), Point(0, 10)]

    def test_drops_collinear(self):
        pts = [Point(0, 0), Point(0, 5), Point(0, 10), Point(10, 10)]
        assert simplify_points(pts) == [Point(0, 0), Point(0, 10), Point(10, 10)]

    def test_keeps_corners(self):
        pts = [Point(0, 0), Point(0, 10), Point(10, 10), Point(10, 20)]
        assert simplify_points(pts) == pts


class TestRoundedPath:
    def test_empty(self):
        assert rounded_path([]) == ""

    def test_single_point(self):
        assert rounded_path([Point(3, 4)]) == "M 3 4"

    def test_straight_line(self):
        assert rounded_path([Point(0, 0), Point(0, 100)]) == "M 0 0 L 0 100"

    def test_one_corner(self):
        path = rounded_path([Point(0, 0), Point(0, 100), Point(100, 100)])
        assert path == "M 0 0 L 0 90 Q 0 100 10 100 L 100 100"

    def test_radius_clamped_to_short_segment(self):
        path = rounded_path([Point(0, 0), Point(0, 10), Point(100, 10)])
        assert path == "M 0 0 L 0 5 Q 0 10 5 10 L 100 10"

    def test_tiny_corner_is_sharp(self):
        path = rounded_path([Point(0, 0), Point(0, 2), Point(100, 2)])
        assert path == "M 0 0 L 0 2 L 100 2"

    def test_fractional_coordinates(self):
        assert rounded_path([Point(0.126, 0), Point(0.126, 50.5)]) == "M 0.13 0 L 0.13 50.5"


class TestSmoothStep:
    def test_points_through_mid_line(self):
        pts = smooth_step_points(Point(0, 0), Point(100, 200))
        assert pts == [Point(0, 0), Point(0, 100), Point(100, 100), Point(100, 200)]

    def test_vertical_run_collapses(self):
        assert smooth_step_path(Point(0, 0), Point(0, 100)) == "M 0 0 L 0 100"

    def test_step_has_two_corners(self):
        path = smooth_step_path(Point(0, 0), Point(100, 200))
        assert path.count("Q") == 2

