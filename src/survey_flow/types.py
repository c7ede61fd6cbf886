"""Shared type definitions for survey-flow.

Enums and sentinel ids used across the block model, graph IR, layout,
routing and editing layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

START_ID = "start"
SUBMIT_ID = "submit"

# Rule targets that all mean "finish the survey".
SUBMIT_ALIASES: frozenset[str] = frozenset({"", "submit", "end"})


class NodeKind(Enum):
    START = "start"
    STEP = "step"
    SUBMIT = "submit"


class EdgeKind(Enum):
    IMPLICIT = "implicit-sequential"  # list order or next_block_id, no rule
    EXPLICIT = "explicit-rule"  # conditional navigation rule
    DEFAULT = "default-rule"  # rule marked default, or with an empty condition


class Side(Enum):
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class Point:
    """A 2D point in canvas pixels."""

    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float
