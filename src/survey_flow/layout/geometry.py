"""Rectangle and segment geometry used by the edge router."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from survey_flow.types import Point


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle anchored at its top-left corner."""

    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def is_valid(self) -> bool:
        """False for NaN/infinite coordinates or a non-positive size."""
        values = (self.x, self.y, self.width, self.height)
        return all(math.isfinite(v) for v in values) and self.width > 0 and self.height > 0

    def padded(self, padding: float) -> Rect:
        return Rect(self.x - padding, self.y - padding, self.width + 2 * padding, self.height + 2 * padding)

    def transposed(self) -> Rect:
        return Rect(self.y, self.x, self.height, self.width)

    def overlaps(self, other: Rect) -> bool:
        return not (
            self.right < other.left or other.right < self.left or self.bottom < other.top or other.bottom < self.top
        )

    def overlaps_interior(self, other: Rect) -> bool:
        """Like ``overlaps`` but rectangles that only share an edge do not count."""
        return (
            self.left < other.right and other.left < self.right and self.top < other.bottom and other.top < self.bottom
        )

    def contains(self, p: Point) -> bool:
        return self.left <= p.x <= self.right and self.top <= p.y <= self.bottom


def bounding_box(points: Sequence[Point]) -> Rect:
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return Rect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def segment_intersects_rect(a: Point, b: Point, rect: Rect) -> bool:
    """Liang-Barsky clip of segment ``a``-``b`` against ``rect``."""
    dx = b.x - a.x
    dy = b.y - a.y
    t0, t1 = 0.0, 1.0
    for p, q in (
        (-dx, a.x - rect.left),
        (dx, rect.right - a.x),
        (-dy, a.y - rect.top),
        (dy, rect.bottom - a.y),
    ):
        if p == 0:
            if q < 0:
                return False
            continue
        t = q / p
        if p < 0:
            if t > t1:
                return False
            t0 = max(t0, t)
        else:
            if t < t0:
                return False
            t1 = min(t1, t)
    return t0 <= t1


def polyline_hits_rect(points: Sequence[Point], rect: Rect) -> bool:
    """True when any segment of the polyline touches ``rect``."""
    if len(points) < 2:
        return False
    if not bounding_box(points).overlaps(rect):
        return False
    return any(segment_intersects_rect(a, b, rect) for a, b in zip(points, points[1:]))


def transpose_point(p: Point) -> Point:
    return Point(p.y, p.x)
