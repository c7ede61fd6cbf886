"""Sugiyama-style layered graph layout.

Phases:
  1. Cycle removal (greedy-FAS)
  2. Rank assignment (longest path, stray sources pulled down)
  3. Dummy node insertion
  4. Crossing minimization (weighted barycenter)
  5. Coordinate assignment
  6. Mirror and normalise

Every phase walks nodes in insertion order so that equal input always gives
equal output.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from dataclasses import dataclass, field

import networkx as nx

from survey_flow.config import LayoutConfig
from survey_flow.layout.types import DUMMY_PREFIX, LayoutNode, LayoutResult
from survey_flow.types import START_ID

# Alternating down/up sweeps when aligning nodes to their neighbours.
_COORD_PASSES: int = 4


# ─── Cycle Removal (Greedy-FAS) ─────────────────────────────────────────────


def greedy_fas_ordering(graph: nx.DiGraph) -> list[str]:
    """Compute a node ordering using the greedy-FAS heuristic."""
    active: dict[str, None] = dict.fromkeys(graph.nodes)
    out_deg: dict[str, int] = {n: graph.out_degree(n) for n in graph.nodes}
    in_deg: dict[str, int] = {n: graph.in_degree(n) for n in graph.nodes}

    s1: list[str] = []
    s2: list[str] = []

    def take(node: str) -> None:
        del active[node]
        for succ in graph.successors(node):
            if succ in active:
                in_deg[succ] -= 1
        for pred in graph.predecessors(node):
            if pred in active:
                out_deg[pred] -= 1

    while active:
        sinks = [n for n in active if out_deg[n] == 0]
        while sinks:
            for sink in sinks:
                take(sink)
                s2.append(sink)
            sinks = [n for n in active if out_deg[n] == 0]

        sources = [n for n in active if in_deg[n] == 0]
        while sources:
            for source in sources:
                take(source)
                s1.append(source)
            sources = [n for n in active if in_deg[n] == 0]

        if active:
            best = max(active, key=lambda n: out_deg[n] - in_deg[n])
            take(best)
            s1.append(best)

    s2.reverse()
    s1.extend(s2)
    return s1


def remove_cycles(graph: nx.DiGraph) -> tuple[nx.DiGraph, set[tuple[str, str]]]:
    """Remove cycles using greedy-FAS. Returns (dag, reversed_edges).

    Self-loops are dropped; reversed edges that collide with an existing edge
    are merged into it, keeping the larger weight.
    """
    dag: nx.DiGraph = nx.DiGraph()
    dag.add_nodes_from(graph.nodes(data=True))
    if graph.number_of_nodes() == 0:
        return dag, set()

    loopless = nx.DiGraph(graph)
    loopless.remove_edges_from([(u, v) for u, v in graph.edges if u == v])
    position = {node: pos for pos, node in enumerate(greedy_fas_ordering(loopless))}

    reversed_edges: set[tuple[str, str]] = set()
    for src, tgt, attrs in loopless.edges(data=True):
        if position[src] > position[tgt]:
            reversed_edges.add((src, tgt))
            src, tgt = tgt, src
        weight = attrs.get("weight", 1)
        if dag.has_edge(src, tgt):
            dag[src][tgt]["weight"] = max(dag[src][tgt]["weight"], weight)
        else:
            dag.add_edge(src, tgt, weight=weight)

    return dag, reversed_edges


# ─── Rank Assignment ─────────────────────────────────────────────────────────


class RankAssignment:
    def __init__(self, ranks: dict[str, int], rank_count: int, reversed_edges: set[tuple[str, str]]) -> None:
        self.ranks = ranks
        self.rank_count = rank_count
        self.reversed_edges = reversed_edges

    @classmethod
    def assign(cls, dag: nx.DiGraph, reversed_edges: set[tuple[str, str]] | None = None) -> RankAssignment:
        ranks: dict[str, int] = {node_id: 0 for node_id in dag.nodes}

        for node_id in nx.topological_sort(dag):
            for succ in dag.successors(node_id):
                if ranks[succ] < ranks[node_id] + 1:
                    ranks[succ] = ranks[node_id] + 1

        # Orphan sources sit just above their highest child instead of beside start.
        for node_id in dag.nodes:
            if node_id == START_ID or dag.in_degree(node_id) > 0:
                continue
            children = [ranks[s] for s in dag.successors(node_id)]
            if children:
                ranks[node_id] = max(0, min(children) - 1)

        rank_count = (max(ranks.values()) + 1) if ranks else 1
        return cls(ranks=ranks, rank_count=rank_count, reversed_edges=reversed_edges or set())


# ─── Dummy Node Insertion ────────────────────────────────────────────────────


@dataclass
class DummyEdge:
    original_src: str
    original_tgt: str
    dummy_ids: list[str]


@dataclass
class AugmentedGraph:
    graph: nx.DiGraph
    ranks: dict[str, int]
    rank_count: int
    dummy_edges: list[DummyEdge] = field(default_factory=list)


def insert_dummy_nodes(dag: nx.DiGraph, ra: RankAssignment, dummy_width: float) -> AugmentedGraph:
    """Split edges spanning several ranks into chains through dummy nodes."""
    g: nx.DiGraph = nx.DiGraph()
    g.add_nodes_from(dag.nodes(data=True))

    ranks: dict[str, int] = copy.copy(ra.ranks)
    dummy_edges: list[DummyEdge] = []

    for edge_counter, (src_id, tgt_id, attrs) in enumerate(dag.edges(data=True)):
        weight = attrs.get("weight", 1)
        span = ranks[tgt_id] - ranks[src_id]
        if span <= 1:
            g.add_edge(src_id, tgt_id, weight=weight)
            continue

        dummy_ids: list[str] = []
        chain_prev = src_id
        for i in range(span - 1):
            dummy_id = f"{DUMMY_PREFIX}{edge_counter}_{i}"
            g.add_node(dummy_id, width=dummy_width, height=0.0, dummy=True)
            ranks[dummy_id] = ranks[src_id] + i + 1
            dummy_ids.append(dummy_id)
            g.add_edge(chain_prev, dummy_id, weight=weight)
            chain_prev = dummy_id
        g.add_edge(chain_prev, tgt_id, weight=weight)

        dummy_edges.append(DummyEdge(original_src=src_id, original_tgt=tgt_id, dummy_ids=dummy_ids))

    rank_count = (max(ranks.values()) + 1) if ranks else 1
    return AugmentedGraph(graph=g, ranks=ranks, rank_count=rank_count, dummy_edges=dummy_edges)


# ─── Crossing Minimization ───────────────────────────────────────────────────


def minimise_crossings(aug: AugmentedGraph, max_passes: int = 24) -> list[list[str]]:
    """Minimise edge crossings using the weighted barycenter heuristic.

    The initial order within a rank is insertion order; the best ordering seen
    across sweeps is returned.
    """
    ordering: list[list[str]] = [[] for _ in range(aug.rank_count)]
    for node_id in aug.graph.nodes:
        ordering[aug.ranks[node_id]].append(node_id)

    best = copy.deepcopy(ordering)
    best_count = count_crossings(ordering, aug.graph)

    for _pass in range(max_passes):
        if best_count == 0:
            break
        for rank in range(1, aug.rank_count):
            _sort_rank(ordering, rank, aug.graph, rank - 1, "incoming")
        for rank in range(aug.rank_count - 2, -1, -1):
            _sort_rank(ordering, rank, aug.graph, rank + 1, "outgoing")

        new = count_crossings(ordering, aug.graph)
        if new >= best_count:
            break
        best_count = new
        best = copy.deepcopy(ordering)

    return best


def _sort_rank(ordering: list[list[str]], rank: int, graph: nx.DiGraph, fixed_rank: int, direction: str) -> None:
    fixed = {nid: float(i) for i, nid in enumerate(ordering[fixed_rank])}
    current = {nid: float(i) for i, nid in enumerate(ordering[rank])}
    ordering[rank].sort(key=lambda n: _barycenter(n, graph, fixed, direction, current[n]))


def _barycenter(
    node_id: str, graph: nx.DiGraph, neighbor_pos: dict[str, float], direction: str, fallback: float
) -> float:
    if direction == "incoming":
        pairs = [(nb, graph[nb][node_id].get("weight", 1)) for nb in graph.predecessors(node_id)]
    else:
        pairs = [(nb, graph[node_id][nb].get("weight", 1)) for nb in graph.successors(node_id)]
    pairs = [(neighbor_pos[nb], w) for nb, w in pairs if nb in neighbor_pos]
    if not pairs:
        return fallback
    total = sum(w for _, w in pairs)
    return sum(p * w for p, w in pairs) / total


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    total = 0
    for r_idx in range(len(ordering) - 1):
        tgt_pos: dict[str, int] = {nid: i for i, nid in enumerate(ordering[r_idx + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[r_idx]):
            for nb in graph.successors(src_id):
                if nb in tgt_pos:
                    edges.append((sp, tgt_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] < ej[0] and ei[1] > ej[1]) or (ei[0] > ej[0] and ei[1] < ej[1]):
                    total += 1
    return total


# ─── Coordinate Assignment ───────────────────────────────────────────────────


def assign_coordinates(ordering: list[list[str]], aug: AugmentedGraph, config: LayoutConfig) -> list[LayoutNode]:
    """Assign top-left (x, y) coordinates to every node, dummies included."""
    g = aug.graph

    def dims(node_id: str) -> tuple[float, float]:
        attrs = g.nodes[node_id]
        return attrs.get("width", config.default_width), attrs.get("height", config.default_height)

    rank_height = [max((dims(n)[1] for n in nodes), default=0.0) for nodes in ordering]
    rank_y: list[float] = []
    y = 0.0
    for h in rank_height:
        rank_y.append(y)
        y += h + config.rank_sep

    # Centers, packed left to right to start with.
    center: dict[str, float] = {}
    for nodes in ordering:
        x = 0.0
        for node_id in nodes:
            w = dims(node_id)[0]
            center[node_id] = x + w / 2
            x += w + config.node_sep

    for sweep in range(_COORD_PASSES):
        downward = sweep % 2 == 0
        ranks = range(1, len(ordering)) if downward else range(len(ordering) - 2, -1, -1)
        for rank in ranks:
            desired = [_desired_center(n, g, center, downward) for n in ordering[rank]]
            _place_rank(ordering[rank], desired, center, dims, config.node_sep)

    nodes: list[LayoutNode] = []
    for rank, rank_nodes in enumerate(ordering):
        for order, node_id in enumerate(rank_nodes):
            w, h = dims(node_id)
            nodes.append(
                LayoutNode(
                    id=node_id,
                    rank=rank,
                    order=order,
                    x=center[node_id] - w / 2,
                    y=rank_y[rank] + (rank_height[rank] - h) / 2,
                    width=w,
                    height=h,
                )
            )
    return nodes


def _desired_center(node_id: str, graph: nx.DiGraph, center: dict[str, float], downward: bool) -> float | None:
    if downward:
        pairs = [(center[p], graph[p][node_id].get("weight", 1)) for p in graph.predecessors(node_id)]
    else:
        pairs = [(center[s], graph[node_id][s].get("weight", 1)) for s in graph.successors(node_id)]
    if not pairs:
        return None
    return sum(c * w for c, w in pairs) / sum(w for _, w in pairs)


def _place_rank(rank_nodes: list[str], desired: list[float | None], center: dict[str, float], dims, gap: float) -> None:
    """Move nodes towards their desired centers without reordering or overlapping."""
    targets = [d if d is not None else center[n] for n, d in zip(rank_nodes, desired)]

    placed: list[float] = []
    prev_right: float | None = None
    for node_id, target in zip(rank_nodes, targets):
        half = dims(node_id)[0] / 2
        c = target if prev_right is None else max(target, prev_right + gap + half)
        placed.append(c)
        prev_right = c + half

    # The sweep only pushes right; shift back by the mean displacement.
    shift = sum(p - t for p, t in zip(placed, targets)) / len(placed) if placed else 0.0
    for node_id, c in zip(rank_nodes, placed):
        center[node_id] = c - shift


# ─── Post-processing ─────────────────────────────────────────────────────────


def mirror_horizontally(nodes: Sequence[LayoutNode]) -> None:
    """Reflect every x about the layout's horizontal center, in place."""
    if not nodes:
        return
    left = min(n.x for n in nodes)
    right = max(n.x + n.width for n in nodes)
    for n in nodes:
        n.x = left + right - (n.x + n.width)


def normalise(nodes: Sequence[LayoutNode]) -> None:
    """Translate so that the minimum x and y are 0, in place."""
    if not nodes:
        return
    min_x = min(n.x for n in nodes)
    min_y = min(n.y for n in nodes)
    for n in nodes:
        n.x -= min_x
        n.y -= min_y


# ─── SugiyamaLayout ──────────────────────────────────────────────────────────


class SugiyamaLayout:
    """Sugiyama layered layout, top to bottom."""

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()

    def layout(self, graph: nx.DiGraph) -> LayoutResult:
        """Lay out ``graph``; node attributes ``width``/``height`` give each box size."""
        if graph.number_of_nodes() == 0:
            return LayoutResult()

        dag, reversed_edges = remove_cycles(graph)
        ra = RankAssignment.assign(dag, reversed_edges)
        aug = insert_dummy_nodes(dag, ra, self.config.dummy_width)
        ordering = minimise_crossings(aug, self.config.max_passes)
        placed = assign_coordinates(ordering, aug, self.config)

        real = [n for n in placed if not n.id.startswith(DUMMY_PREFIX)]
        if self.config.mirror:
            mirror_horizontally(real)
        normalise(real)

        real_ordering = [[nid for nid in rank if not nid.startswith(DUMMY_PREFIX)] for rank in ordering]
        for rank_nodes in real_ordering:
            for order, nid in enumerate(rank_nodes):
                next(n for n in real if n.id == nid).order = order
        return LayoutResult(nodes=real, ordering=real_ordering)
