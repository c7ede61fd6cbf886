"""Flow graph IR — derives the navigation graph from an ordered block list.

This module owns the canonical graph used by all downstream phases (layout,
routing, editing). Every block becomes one node between the ``start`` and
``submit`` sentinels; navigation rules become explicit edges and the
implicit sequential fallback is added only where a respondent could still
reach it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import networkx as nx

from survey_flow.ir.blocks import Block, NavigationRule
from survey_flow.ir.coverage import CoverageChecker, OptionCoverage
from survey_flow.renderers.labels import DEFAULT_RULE_LABEL, describe_condition
from survey_flow.types import START_ID, SUBMIT_ALIASES, SUBMIT_ID, EdgeKind, NodeKind, Point, Size

logger = logging.getLogger(__name__)

PRIMARY_WEIGHT: int = 2
BRANCH_WEIGHT: int = 1


@dataclass
class GraphNode:
    id: str
    kind: NodeKind
    label: str = ""
    block_index: int | None = None
    position: Point = Point(0.0, 0.0)
    size: Size | None = None  # measured size, None until the host reports it


@dataclass(frozen=True)
class RuleRef:
    """Originating rule of an explicit edge, enough to edit or delete it later."""

    block_id: str
    index: int
    rule: NavigationRule


@dataclass(frozen=True)
class EdgeRef:
    """What an edit operation needs to know about an edge."""

    source: str
    target: str
    rule_index: int | None = None


@dataclass
class GraphEdge:
    id: str
    source: str
    target: str
    kind: EdgeKind
    insertion_anchor: int
    rule_ref: RuleRef | None = None
    weight: int = BRANCH_WEIGHT
    label: str | None = None
    parallel_index: int = 0
    parallel_total: int = 1

    def ref(self) -> EdgeRef:
        return EdgeRef(
            source=self.source,
            target=self.target,
            rule_index=self.rule_ref.index if self.rule_ref is not None else None,
        )


# ─── Target resolution ───────────────────────────────────────────────────────


def make_resolver(blocks: Sequence[Block]) -> Callable[[str | None], str]:
    """Return ``resolve_target`` bound to the live ids of ``blocks``."""
    live = {b.id for b in blocks}

    def resolve_target(target: str | None) -> str:
        if not target or target in SUBMIT_ALIASES:
            return SUBMIT_ID
        return target if target in live else SUBMIT_ID

    return resolve_target


def resolve_target(target: str | None, blocks: Sequence[Block]) -> str:
    """Map a rule target to a node id: submit aliases and dangling ids go to ``submit``."""
    return make_resolver(blocks)(target)


def natural_successor(blocks: Sequence[Block], index: int, resolve: Callable[[str | None], str] | None = None) -> str:
    """The node a block leads to when no rule fires.

    ``is_end_block`` wins, then an explicit ``next_block_id``, then list order;
    the last block falls through to ``submit``.
    """
    resolve = resolve or make_resolver(blocks)
    block = blocks[index]
    if block.is_end_block:
        return SUBMIT_ID
    if block.next_block_id:
        return resolve(block.next_block_id)
    if index + 1 < len(blocks):
        return blocks[index + 1].id
    return SUBMIT_ID


def structural_signature(blocks: Sequence[Block]) -> str:
    """Key over everything that affects graph structure, node labels and edge labels."""
    parts: list[str] = []
    for b in blocks:
        rules = ";".join(f"{r.condition}|{r.target}|{int(r.is_default)}" for r in b.navigation_rules)
        options = ";".join(f"{o.value}|{o.label}|{o.id or ''}" for o in b.options)
        parts.append(
            f"{b.id}|{b.type}|{b.field_name}|{b.next_block_id or ''}|{int(b.is_end_block)}|{rules}|{options}"
        )
    return "::".join(parts)


# ─── FlowGraph ───────────────────────────────────────────────────────────────


class FlowGraph:
    """The graph intermediate representation built from a block list.

    Wraps a networkx MultiDiGraph (parallel rules between the same pair of
    blocks are kept apart by edge id) and exposes helpers for topology queries.
    """

    def __init__(self, digraph: nx.MultiDiGraph, nodes: list[GraphNode], edges: list[GraphEdge]) -> None:
        self.digraph = digraph
        self.nodes = nodes
        self.edges = edges
        self._node_index = {n.id: n for n in nodes}
        self._edge_index = {e.id: e for e in edges}

    @classmethod
    def from_blocks(
        cls,
        blocks: Sequence[Block],
        coverage: CoverageChecker | None = None,
        labeler: Callable[[str, Sequence[Block]], str] = describe_condition,
    ) -> FlowGraph:
        """Build a FlowGraph from an ordered block list."""
        coverage = coverage if coverage is not None else OptionCoverage()
        resolve = make_resolver(blocks)

        nodes: list[GraphNode] = [GraphNode(id=START_ID, kind=NodeKind.START, label="Start Survey")]
        kept: list[int] = []
        seen: set[str] = set()
        for index, block in enumerate(blocks):
            if block.id in seen:
                logger.warning("duplicate block id %r at index %d ignored", block.id, index)
                continue
            seen.add(block.id)
            kept.append(index)
            nodes.append(
                GraphNode(id=block.id, kind=NodeKind.STEP, label=block.field_name or block.type, block_index=index)
            )
        nodes.append(GraphNode(id=SUBMIT_ID, kind=NodeKind.SUBMIT, label="Submit / End"))

        edges: list[GraphEdge] = [_start_edge(blocks)]
        for index in kept:
            edges.extend(_block_edges(blocks, index, resolve, coverage, labeler))

        digraph: nx.MultiDiGraph = nx.MultiDiGraph()
        for node in nodes:
            digraph.add_node(node.id, data=node)
        for edge in edges:
            digraph.add_edge(edge.source, edge.target, key=edge.id, data=edge)

        return cls(digraph=digraph, nodes=nodes, edges=edges)

    def node_count(self) -> int:
        return self.digraph.number_of_nodes()

    def edge_count(self) -> int:
        return self.digraph.number_of_edges()

    def node(self, node_id: str) -> GraphNode | None:
        return self._node_index.get(node_id)

    def edge(self, edge_id: str) -> GraphEdge | None:
        return self._edge_index.get(edge_id)

    def out_edges(self, node_id: str) -> list[GraphEdge]:
        return [e for e in self.edges if e.source == node_id]

    def in_edges(self, node_id: str) -> list[GraphEdge]:
        return [e for e in self.edges if e.target == node_id]

    def successors(self, node_id: str) -> list[str]:
        if node_id not in self.digraph:
            return []
        return list(dict.fromkeys(self.digraph.successors(node_id)))

    def edge_pairs(self) -> set[tuple[str, str]]:
        return {(e.source, e.target) for e in self.edges}

    def is_dag(self) -> bool:
        return nx.is_directed_acyclic_graph(self.digraph)

    def unreachable_blocks(self) -> list[str]:
        """Block ids that no path from ``start`` reaches."""
        reachable = nx.descendants(self.digraph, START_ID) | {START_ID}
        return [n.id for n in self.nodes if n.kind is NodeKind.STEP and n.id not in reachable]


def _start_edge(blocks: Sequence[Block]) -> GraphEdge:
    if not blocks:
        return GraphEdge(
            id="start-to-submit",
            source=START_ID,
            target=SUBMIT_ID,
            kind=EdgeKind.IMPLICIT,
            insertion_anchor=0,
            weight=PRIMARY_WEIGHT,
        )
    return GraphEdge(
        id="start-to-first",
        source=START_ID,
        target=blocks[0].id,
        kind=EdgeKind.IMPLICIT,
        insertion_anchor=0,
        weight=PRIMARY_WEIGHT,
    )


def _block_edges(
    blocks: Sequence[Block],
    index: int,
    resolve: Callable[[str | None], str],
    coverage: CoverageChecker,
    labeler: Callable[[str, Sequence[Block]], str],
) -> list[GraphEdge]:
    block = blocks[index]
    successor = natural_successor(blocks, index, resolve)
    edges: list[GraphEdge] = []

    for rule_index, rule in enumerate(block.navigation_rules):
        target = resolve(rule.target)
        is_default = rule.acts_as_default
        edges.append(
            GraphEdge(
                id=f"{block.id}-nav-{rule_index}",
                source=block.id,
                target=target,
                kind=EdgeKind.DEFAULT if is_default else EdgeKind.EXPLICIT,
                insertion_anchor=index + 1,
                rule_ref=RuleRef(block_id=block.id, index=rule_index, rule=rule),
                weight=PRIMARY_WEIGHT if target == successor else BRANCH_WEIGHT,
                label=DEFAULT_RULE_LABEL if is_default else labeler(rule.condition, blocks),
            )
        )

    has_default = any(r.acts_as_default for r in block.navigation_rules)
    has_rule_to_successor = any(e.target == successor for e in edges)
    if not has_default and not has_rule_to_successor and not coverage(block, successor):
        edges.append(
            GraphEdge(
                id=f"{block.id}-seq-{successor}",
                source=block.id,
                target=successor,
                kind=EdgeKind.IMPLICIT,
                insertion_anchor=index + 1,
                weight=PRIMARY_WEIGHT,
            )
        )

    for position, edge in enumerate(edges):
        edge.parallel_index = position
        edge.parallel_total = len(edges)
    return edges
