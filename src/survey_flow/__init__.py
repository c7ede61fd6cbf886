"""survey-flow: branching survey definitions as an editable, laid-out flow graph."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from survey_flow.config import FlowConfig, LayoutConfig, RouterConfig
from survey_flow.ir.blocks import Block, BlockOption, NavigationRule, dump_blocks, load_blocks
from survey_flow.ir.coverage import CoverageChecker
from survey_flow.ir.graph import FlowGraph, GraphEdge, GraphNode, resolve_target
from survey_flow.session import FlowDrawing, FlowEditor


def build_flow(
    blocks: Iterable[Block | dict[str, Any]],
    config: FlowConfig | None = None,
    coverage: CoverageChecker | None = None,
) -> FlowDrawing:
    """Derive, lay out and route the flow graph of a block list in one call.

    Args:
        blocks: Ordered blocks, as ``Block`` objects or stored dicts.
        config: Layout and routing settings; defaults when None.
        coverage: Answer coverage check; option-based when None.

    Returns:
        The positioned nodes, edges and edge routes.
    """
    return FlowEditor(blocks, config=config, coverage=coverage).drawing()


__all__ = [
    "Block",
    "BlockOption",
    "FlowConfig",
    "FlowDrawing",
    "FlowEditor",
    "FlowGraph",
    "GraphEdge",
    "GraphNode",
    "LayoutConfig",
    "NavigationRule",
    "RouterConfig",
    "build_flow",
    "dump_blocks",
    "load_blocks",
    "resolve_target",
]
