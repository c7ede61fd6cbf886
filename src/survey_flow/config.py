"""Centralized configuration for survey-flow."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class LayoutConfig:
    """Configuration for the layered layout pass."""

    default_width: float = 400.0
    default_height: float = 150.0
    node_sep: float = 100.0
    rank_sep: float = 200.0
    dummy_width: float = 20.0
    max_passes: int = 24
    mirror: bool = True


@dataclass
class RouterConfig:
    """Configuration for obstacle-avoiding edge routing."""

    padding: float = 25.0
    margin: float = 40.0
    min_side_clearance: float = 50.0
    fan_spacing: float = 35.0
    corner_radius: float = 10.0
    label_gap: float = 12.0
    label_stagger: float = 20.0
    direct_label_stagger: float = 25.0
    max_clearance_rounds: int = 8


@dataclass
class FlowConfig:
    """Configuration for the whole build → layout → route pipeline."""

    layout: LayoutConfig = field(default_factory=LayoutConfig)
    router: RouterConfig = field(default_factory=RouterConfig)
