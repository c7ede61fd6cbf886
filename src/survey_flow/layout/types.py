"""Layout types shared by the layout engine, the router and the session."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TypeVar

from survey_flow.layout.geometry import Rect
from survey_flow.types import Point, Side

T = TypeVar("T")


@dataclass
class LayoutNode:
    """A positioned node in the layout; ``x``/``y`` is the top-left corner."""

    id: str
    rank: int
    order: int
    x: float
    y: float
    width: float
    height: float

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)


@dataclass
class LayoutResult:
    """Layout output: positioned nodes and the within-rank order chosen for them."""

    nodes: list[LayoutNode] = field(default_factory=list)
    ordering: list[list[str]] = field(default_factory=list)

    def node(self, node_id: str) -> LayoutNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def positions(self) -> dict[str, Point]:
        return {n.id: n.position for n in self.nodes}

    def rects(self) -> dict[str, Rect]:
        return {n.id: n.rect for n in self.nodes}

    def positioned(self, graph_nodes: Iterable[T]) -> list[T]:
        """Copies of ``graph_nodes`` with their laid-out positions filled in."""
        positions = self.positions()
        return [
            dataclasses.replace(n, position=positions[n.id]) if n.id in positions else dataclasses.replace(n)
            for n in graph_nodes
        ]


@dataclass
class EdgeRoute:
    """Routing decision for one edge.

    ``path`` is empty when ``needs_detour`` is False; the caller then draws
    the default smooth-step path between the first and last point.
    """

    edge_id: str
    needs_detour: bool
    points: list[Point]
    path: str = ""
    label: Point | None = None
    side: Side | None = None
    lateral_offset: float = 0.0
    fan_offset: float = 0.0


DUMMY_PREFIX = "__dummy_"
