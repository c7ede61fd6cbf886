"""Layout and routing: public API."""

from __future__ import annotations

from survey_flow.layout.engine import LayoutEngine, all_measured
from survey_flow.layout.geometry import Rect, polyline_hits_rect, segment_intersects_rect
from survey_flow.layout.router import EdgeRouter
from survey_flow.layout.sugiyama import (
    AugmentedGraph,
    DummyEdge,
    RankAssignment,
    SugiyamaLayout,
    assign_coordinates,
    count_crossings,
    greedy_fas_ordering,
    insert_dummy_nodes,
    minimise_crossings,
    remove_cycles,
)
from survey_flow.layout.types import DUMMY_PREFIX, EdgeRoute, LayoutNode, LayoutResult

__all__ = [
    "DUMMY_PREFIX",
    "AugmentedGraph",
    "DummyEdge",
    "EdgeRoute",
    "EdgeRouter",
    "LayoutEngine",
    "LayoutNode",
    "LayoutResult",
    "RankAssignment",
    "Rect",
    "SugiyamaLayout",
    "all_measured",
    "assign_coordinates",
    "count_crossings",
    "greedy_fas_ordering",
    "insert_dummy_nodes",
    "minimise_crossings",
    "polyline_hits_rect",
    "remove_cycles",
    "segment_intersects_rect",
]
