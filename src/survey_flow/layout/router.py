"""Edge router: keeps edges from being drawn through unrelated nodes.

Each edge first gets the cheap down-across-down route between the facing
sides of its endpoints. Only when that route touches another node's padded
box does the router build a detour: a lateral leg beside the blockers, on the
side with room, offset far enough to clear every box, with parallel detours
from the same source fanned apart.

Horizontal pairs (endpoints side by side) are routed in a transposed frame so
the same vertical algorithm applies.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from survey_flow.config import RouterConfig
from survey_flow.ir.graph import GraphEdge
from survey_flow.layout.geometry import Rect, polyline_hits_rect, transpose_point
from survey_flow.layout.types import EdgeRoute
from survey_flow.renderers.path import rounded_path, smooth_step_points
from survey_flow.types import Point, Side

logger = logging.getLogger(__name__)

_WORLD_SIDE = {Side.LEFT: Side.TOP, Side.RIGHT: Side.BOTTOM}


@dataclass
class _Frame:
    """Maps between world coordinates and the router's vertical frame."""

    transposed: bool

    def point(self, p: Point) -> Point:
        return transpose_point(p) if self.transposed else p

    def rect(self, r: Rect) -> Rect:
        return r.transposed() if self.transposed else r

    def side(self, side: Side) -> Side:
        return _WORLD_SIDE[side] if self.transposed else side


class EdgeRouter:
    def __init__(self, config: RouterConfig | None = None) -> None:
        self.config = config or RouterConfig()

    def route_all(self, edges: Sequence[GraphEdge], boxes: Mapping[str, Rect]) -> dict[str, EdgeRoute]:
        """Route every edge whose endpoints both have a box."""
        routes: dict[str, EdgeRoute] = {}
        for edge in edges:
            route = self.route(edge, boxes)
            if route is not None:
                routes[edge.id] = route
        return routes

    def route(self, edge: GraphEdge, boxes: Mapping[str, Rect]) -> EdgeRoute | None:
        source = boxes.get(edge.source)
        target = boxes.get(edge.target)
        if source is None or target is None or not source.is_valid() or not target.is_valid():
            logger.debug("edge %s has no usable endpoint geometry", edge.id)
            return None
        if edge.source == edge.target:
            return self._self_loop(edge, source)

        vertical = target.top >= source.bottom or target.bottom <= source.top
        frame = _Frame(transposed=not vertical)
        src = frame.rect(source)
        tgt = frame.rect(target)
        downward = tgt.top >= src.bottom or not (tgt.bottom <= src.top)

        start = Point(src.center.x, src.bottom if downward else src.top)
        end = Point(tgt.center.x, tgt.top if downward else tgt.bottom)

        obstacles = [
            frame.rect(box).padded(self.config.padding)
            for node_id, box in boxes.items()
            if node_id not in (edge.source, edge.target) and box.is_valid()
        ]
        fan_offset = (edge.parallel_index - (edge.parallel_total - 1) / 2) * self.config.fan_spacing

        direct = smooth_step_points(start, end)
        blockers = [r for r in obstacles if polyline_hits_rect(direct, r)]
        if not blockers:
            mid_y = (start.y + end.y) / 2
            label = Point((start.x + end.x) / 2, mid_y + edge.parallel_index * self.config.direct_label_stagger)
            return EdgeRoute(
                edge_id=edge.id,
                needs_detour=False,
                points=[frame.point(p) for p in direct],
                label=frame.point(label),
                fan_offset=fan_offset,
            )

        return self._detour(edge, frame, start, end, downward, blockers, obstacles, fan_offset)

    # ─── Detours ─────────────────────────────────────────────────────────────

    def choose_side(self, start: Point, end: Point, blockers: Sequence[Rect], obstacles: Sequence[Rect]) -> Side:
        """Lean away from the blockers' centroid unless that side is cramped."""
        centroid = sum(b.center.x for b in blockers) / len(blockers)
        path_center = (start.x + end.x) / 2
        preferred = Side.RIGHT if centroid <= path_center else Side.LEFT
        other = Side.LEFT if preferred is Side.RIGHT else Side.RIGHT
        if self.side_clearance(preferred, start, end, blockers, obstacles) > self.config.min_side_clearance:
            return preferred
        return other

    def side_clearance(
        self, side: Side, start: Point, end: Point, blockers: Sequence[Rect], obstacles: Sequence[Rect]
    ) -> float:
        """Free space beside the blocking set, up to the nearest node fully on that side."""
        top, bottom = min(start.y, end.y), max(start.y, end.y)
        band = [r for r in obstacles if r.bottom > top and r.top < bottom]
        if side is Side.RIGHT:
            edge_x = max([start.x, end.x] + [b.right for b in blockers])
            walls = [r.left - edge_x for r in band if r.left >= edge_x]
        else:
            edge_x = min([start.x, end.x] + [b.left for b in blockers])
            walls = [edge_x - r.right for r in band if r.right <= edge_x]
        return min(walls, default=math.inf)

    def _detour(
        self,
        edge: GraphEdge,
        frame: _Frame,
        start: Point,
        end: Point,
        downward: bool,
        blockers: Sequence[Rect],
        obstacles: Sequence[Rect],
        fan_offset: float,
    ) -> EdgeRoute:
        cfg = self.config
        side = self.choose_side(start, end, blockers, obstacles)
        sign = 1.0 if side is Side.RIGHT else -1.0

        if side is Side.RIGHT:
            base_x = max(start.x, end.x)
            clearance = max(0.0, max(b.right for b in blockers) - base_x) + cfg.margin
        else:
            base_x = min(start.x, end.x)
            clearance = max(0.0, base_x - min(b.left for b in blockers)) + cfg.margin
        lateral_offset = clearance + edge.parallel_index * cfg.fan_spacing

        step = cfg.padding if downward else -cfg.padding
        y1 = start.y + step
        y2 = end.y - step

        for _round in range(cfg.max_clearance_rounds):
            leg_x = base_x + sign * lateral_offset
            hits = [r for r in obstacles if self._leg_hits(leg_x, y1, y2, side, r)]
            if not hits:
                break
            if side is Side.RIGHT:
                lateral_offset = max(r.right for r in hits) + cfg.margin - base_x
            else:
                lateral_offset = base_x - min(r.left for r in hits) + cfg.margin
        else:
            logger.warning("edge %s: lateral leg still blocked after %d rounds", edge.id, cfg.max_clearance_rounds)

        leg_x = base_x + sign * lateral_offset
        points = [
            start,
            Point(start.x, y1),
            Point(leg_x, y1),
            Point(leg_x, y2),
            Point(end.x, y2),
            end,
        ]

        low, high = min(y1, y2), max(y1, y2)
        label_y = min(high, (y1 + y2) / 2 + edge.parallel_index * cfg.label_stagger)
        label = Point(leg_x - sign * cfg.label_gap, max(low, label_y))

        world = [frame.point(p) for p in points]
        return EdgeRoute(
            edge_id=edge.id,
            needs_detour=True,
            points=world,
            path=rounded_path(world, cfg.corner_radius),
            label=frame.point(label),
            side=frame.side(side),
            lateral_offset=lateral_offset,
            fan_offset=fan_offset,
        )

    def _leg_hits(self, leg_x: float, y1: float, y2: float, side: Side, rect: Rect) -> bool:
        """Does the lateral leg, or the label band on its inner side, touch ``rect``?"""
        low, high = min(y1, y2), max(y1, y2)
        if polyline_hits_rect([Point(leg_x, low), Point(leg_x, high)], rect):
            return True
        band_x = leg_x - self.config.margin if side is Side.RIGHT else leg_x
        band = Rect(band_x, low, self.config.margin, high - low)
        return band.overlaps_interior(rect)

    def _self_loop(self, edge: GraphEdge, box: Rect) -> EdgeRoute:
        cfg = self.config
        out_x = box.right
        y1 = box.top + box.height / 3
        y2 = box.top + 2 * box.height / 3
        lateral_offset = cfg.margin + edge.parallel_index * cfg.fan_spacing
        loop_x = out_x + lateral_offset
        points = [Point(out_x, y1), Point(loop_x, y1), Point(loop_x, y2), Point(out_x, y2)]
        return EdgeRoute(
            edge_id=edge.id,
            needs_detour=True,
            points=points,
            path=rounded_path(points, cfg.corner_radius),
            label=Point(loop_x + cfg.label_gap, (y1 + y2) / 2),
            side=Side.RIGHT,
            lateral_offset=lateral_offset,
            fan_offset=(edge.parallel_index - (edge.parallel_total - 1) / 2) * cfg.fan_spacing,
        )
