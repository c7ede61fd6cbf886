"""FlowEditor — host-side state for one survey being edited.

Owns the current block list, derives the graph from it, runs the two-phase
layout protocol (render at default sizes, then relayout once the host has
reported every measured size) and applies posted commands one at a time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from survey_flow.config import FlowConfig
from survey_flow.edit.commands import (
    AddBranch,
    AddRule,
    Command,
    CommandChannel,
    ConfigureNode,
    DeleteEdge,
    DeleteNodes,
    EditEdge,
    InsertBlock,
    Intent,
    OpenBlockConfig,
    OpenRuleEditor,
    ReconnectEdge,
    UpdateBlock,
)
from survey_flow.edit.mutations import MutationCoordinator, MutationResult, reject
from survey_flow.ir.blocks import Block, load_blocks
from survey_flow.ir.coverage import CoverageChecker
from survey_flow.ir.graph import FlowGraph, GraphEdge, GraphNode, structural_signature
from survey_flow.layout.engine import LayoutEngine, all_measured
from survey_flow.layout.router import EdgeRouter
from survey_flow.layout.types import EdgeRoute, LayoutResult
from survey_flow.reconcile import merge_nodes, structure_changed
from survey_flow.types import START_ID, SUBMIT_ID, Point, Size

logger = logging.getLogger(__name__)


def _point(p: Point | None) -> dict[str, float] | None:
    return None if p is None else {"x": p.x, "y": p.y}


@dataclass
class FlowDrawing:
    """Everything a rendering surface needs: positioned nodes, edges and their routes."""

    nodes: list[GraphNode]
    edges: list[GraphEdge]
    routes: dict[str, EdgeRoute] = field(default_factory=dict)
    layout: LayoutResult = field(default_factory=LayoutResult)

    def to_dict(self) -> dict[str, Any]:
        boxes = {n.id: n for n in self.layout.nodes}
        nodes = []
        for node in self.nodes:
            box = boxes.get(node.id)
            nodes.append(
                {
                    "id": node.id,
                    "kind": node.kind.value,
                    "label": node.label,
                    "position": _point(node.position),
                    "size": {"width": box.width, "height": box.height} if box else None,
                    "measured": node.size is not None,
                }
            )

        edges = []
        for edge in self.edges:
            route = self.routes.get(edge.id)
            edges.append(
                {
                    "id": edge.id,
                    "source": edge.source,
                    "target": edge.target,
                    "kind": edge.kind.value,
                    "label": edge.label,
                    "weight": edge.weight,
                    "ruleIndex": edge.rule_ref.index if edge.rule_ref else None,
                    "insertionAnchor": edge.insertion_anchor,
                    "parallelIndex": edge.parallel_index,
                    "parallelTotal": edge.parallel_total,
                    "route": None
                    if route is None
                    else {
                        "needsDetour": route.needs_detour,
                        "points": [_point(p) for p in route.points],
                        "path": route.path,
                        "label": _point(route.label),
                        "side": route.side.value if route.side else None,
                        "lateralOffset": route.lateral_offset,
                        "fanOffset": route.fan_offset,
                    },
                }
            )
        return {"nodes": nodes, "edges": edges}


class FlowEditor:
    """Editing session over one block list."""

    def __init__(
        self,
        blocks: Iterable[Block | dict[str, Any]] = (),
        config: FlowConfig | None = None,
        coverage: CoverageChecker | None = None,
        coordinator: MutationCoordinator | None = None,
    ) -> None:
        self.config = config or FlowConfig()
        self.blocks: list[Block] = load_blocks(list(blocks))
        self.coverage = coverage
        self.coordinator = coordinator or MutationCoordinator()
        self.channel = CommandChannel()
        self.layout_engine = LayoutEngine(self.config.layout)
        self.router = EdgeRouter(self.config.router)
        self.intents: list[Intent] = []
        self.needs_layout = True

        self._graph: FlowGraph | None = None
        self._signature: str | None = None
        self._sizes: dict[str, Size] = {}
        self._rendered: list[GraphNode] = []
        self._layout: LayoutResult | None = None

    # ─── Derived state ───────────────────────────────────────────────────────

    @property
    def graph(self) -> FlowGraph:
        signature = structural_signature(self.blocks)
        if self._graph is None or signature != self._signature:
            self._graph = FlowGraph.from_blocks(self.blocks, coverage=self.coverage)
            self._signature = signature
        return self._graph

    def nodes(self) -> list[GraphNode]:
        """Current nodes, keeping rendered positions and reported sizes by id."""
        merged = merge_nodes(self.graph.nodes, self._rendered)
        for node in merged:
            node.size = self._sizes.get(node.id)
        return merged

    def report_sizes(self, sizes: Mapping[str, Size | tuple[float, float]]) -> bool:
        """Record measured node sizes; returns whether a relayout is now due."""
        changed = False
        for node_id, raw in sizes.items():
            size = raw if isinstance(raw, Size) else Size(float(raw[0]), float(raw[1]))
            if self._sizes.get(node_id) != size:
                self._sizes[node_id] = size
                changed = True
        if changed and all_measured(self.nodes()):
            self.needs_layout = True
        return self.needs_layout

    def relayout(self) -> LayoutResult:
        nodes = self.nodes()
        result = self.layout_engine.layout(nodes, self.graph.edges)
        self._rendered = result.positioned(nodes)
        self._layout = result
        self.needs_layout = False
        return result

    def routes(self) -> dict[str, EdgeRoute]:
        if self._layout is None or self.needs_layout:
            self.relayout()
        return self.router.route_all(self.graph.edges, self._layout.rects())

    def drawing(self) -> FlowDrawing:
        routes = self.routes()
        return FlowDrawing(nodes=self.nodes(), edges=list(self.graph.edges), routes=routes, layout=self._layout)

    # ─── Commands ────────────────────────────────────────────────────────────

    def post(self, command: Command) -> None:
        self.channel.post(command)

    def process(self) -> list[MutationResult]:
        """Apply every queued command in posting order."""
        return [self.apply(command) for command in self.channel.drain()]

    def apply(self, command: Command) -> MutationResult:
        result = self._dispatch(command)
        self.intents.extend(result.intents)
        if result.applied and result.blocks != self.blocks:
            before = self.graph
            self.blocks = result.blocks
            live = {b.id for b in self.blocks} | {START_ID, SUBMIT_ID}
            self._sizes = {k: v for k, v in self._sizes.items() if k in live}
            if structure_changed(before, self.graph):
                self.needs_layout = True
            logger.debug("%s applied, %d block(s)", type(command).__name__, len(self.blocks))
        return result

    def _dispatch(self, command: Command) -> MutationResult:
        blocks = self.blocks
        if isinstance(command, ConfigureNode):
            if not any(b.id == command.node_id for b in blocks):
                return reject(blocks, f"node {command.node_id!r} has no block to configure")
            return MutationResult(blocks=list(blocks), intents=[OpenBlockConfig(command.node_id)])

        if isinstance(command, (EditEdge, DeleteEdge, ReconnectEdge)):
            edge = self.graph.edge(command.edge_id)
            if edge is None:
                return reject(blocks, f"unknown edge {command.edge_id!r}")
            if isinstance(command, ReconnectEdge):
                return self.coordinator.reconnect(blocks, edge.ref(), command.new_target_id)
            if edge.rule_ref is None:
                return reject(blocks, f"edge {edge.id!r} is not backed by a rule")
            if isinstance(command, EditEdge):
                return MutationResult(
                    blocks=list(blocks), intents=[OpenRuleEditor(edge.rule_ref.block_id, edge.rule_ref.index)]
                )
            return self.coordinator.delete_rule(blocks, edge.rule_ref.block_id, edge.rule_ref.index)

        if isinstance(command, InsertBlock):
            context = None
            if command.edge_id is not None:
                edge = self.graph.edge(command.edge_id)
                if edge is None:
                    return reject(blocks, f"unknown edge {command.edge_id!r}")
                context = edge.ref()
            return self.coordinator.insert(blocks, command.at_index, command.template, context)

        if isinstance(command, AddBranch):
            return self.coordinator.add_branch(blocks, command.source_id, command.template)
        if isinstance(command, DeleteNodes):
            return self.coordinator.delete(blocks, command.node_ids)
        if isinstance(command, UpdateBlock):
            return self.coordinator.update_block(blocks, command.block_id, **command.changes)
        if isinstance(command, AddRule):
            return self.coordinator.add_rule(blocks, command.source_id, command.target_id)

        raise ValueError(f"unknown command: {command!r}")
