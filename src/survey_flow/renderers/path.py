"""SVG path strings for routed edges.

Detours are drawn as polylines with quadratic-curve corners; edges that need
no detour use the cheap smooth-step path between the two endpoints.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from survey_flow.types import Point

# Corners with less room than this are drawn sharp.
_MIN_ROUND: float = 2.0


def _fmt(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _xy(p: Point) -> str:
    return f"{_fmt(p.x)} {_fmt(p.y)}"


def simplify_points(points: Sequence[Point]) -> list[Point]:
    """Drop repeated points and interior points that lie on a straight run."""
    out: list[Point] = []
    for p in points:
        if out and math.isclose(out[-1].x, p.x) and math.isclose(out[-1].y, p.y):
            continue
        if len(out) >= 2:
            a, b = out[-2], out[-1]
            collinear_x = math.isclose(a.x, b.x) and math.isclose(b.x, p.x)
            collinear_y = math.isclose(a.y, b.y) and math.isclose(b.y, p.y)
            if collinear_x or collinear_y:
                out[-1] = p
                continue
        out.append(p)
    return out


def rounded_path(points: Sequence[Point], radius: float = 10.0) -> str:
    """Render a polyline as an SVG path with each corner rounded by ``radius``.

    The radius at a corner is clamped to half of the shorter adjacent segment.
    """
    pts = simplify_points(points)
    if not pts:
        return ""
    if len(pts) == 1:
        return f"M {_xy(pts[0])}"

    parts = [f"M {_xy(pts[0])}"]
    for i in range(1, len(pts) - 1):
        prev, curr, nxt = pts[i - 1], pts[i], pts[i + 1]
        v1x, v1y = curr.x - prev.x, curr.y - prev.y
        v2x, v2y = nxt.x - curr.x, nxt.y - curr.y
        len1 = math.hypot(v1x, v1y)
        len2 = math.hypot(v2x, v2y)

        r = min(radius, len1 / 2, len2 / 2)
        if r < _MIN_ROUND:
            parts.append(f"L {_xy(curr)}")
            continue

        arc_start = Point(curr.x - v1x / len1 * r, curr.y - v1y / len1 * r)
        arc_end = Point(curr.x + v2x / len2 * r, curr.y + v2y / len2 * r)
        parts.append(f"L {_xy(arc_start)}")
        parts.append(f"Q {_xy(curr)} {_xy(arc_end)}")

    parts.append(f"L {_xy(pts[-1])}")
    return " ".join(parts)


def smooth_step_points(source: Point, target: Point) -> list[Point]:
    """Down, across, down through the horizontal mid line."""
    mid_y = (source.y + target.y) / 2
    return [source, Point(source.x, mid_y), Point(target.x, mid_y), target]


def smooth_step_path(source: Point, target: Point, radius: float = 10.0) -> str:
    """The default edge renderer used when no detour is needed."""
    return rounded_path(smooth_step_points(source, target), radius)

