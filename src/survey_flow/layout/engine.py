"""Layout engine: effective node sizes, the layout memo, and the Sugiyama pass."""

from __future__ import annotations

import copy
import logging
from collections.abc import Sequence

import networkx as nx

from survey_flow.config import LayoutConfig
from survey_flow.ir.graph import GraphEdge, GraphNode
from survey_flow.layout.sugiyama import SugiyamaLayout
from survey_flow.layout.types import LayoutResult

logger = logging.getLogger(__name__)

LayoutKey = tuple[tuple[tuple[str, float, float], ...], tuple[tuple[str, str], ...]]


def all_measured(nodes: Sequence[GraphNode]) -> bool:
    """True once every node carries a measured size."""
    return all(n.size is not None for n in nodes)


class LayoutEngine:
    """Computes layered layouts and remembers the last one.

    Nodes without a measured size are laid out at the default size. The memo
    holds a single entry keyed by the effective node sizes and the edge pairs;
    a hit returns a fresh copy of the cached result.
    """

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()
        self._sugiyama = SugiyamaLayout(self.config)
        self._cache_key: LayoutKey | None = None
        self._cache_value: LayoutResult | None = None

    def effective_size(self, node: GraphNode) -> tuple[float, float]:
        if node.size is None:
            return self.config.default_width, self.config.default_height
        return node.size.width, node.size.height

    def cache_key(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> LayoutKey:
        sizes = tuple((n.id, *self.effective_size(n)) for n in nodes)
        pairs = tuple((e.source, e.target) for e in edges)
        return sizes, pairs

    def invalidate(self) -> None:
        self._cache_key = None
        self._cache_value = None

    def layout(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> LayoutResult:
        """Position ``nodes`` top to bottom; empty input gives an empty result."""
        if not nodes:
            return LayoutResult()

        key = self.cache_key(nodes, edges)
        if key == self._cache_key and self._cache_value is not None:
            logger.debug("layout cache hit for %d nodes", len(nodes))
            return copy.deepcopy(self._cache_value)

        result = self._sugiyama.layout(self._to_digraph(nodes, edges))
        self._cache_key = key
        self._cache_value = copy.deepcopy(result)
        logger.debug("laid out %d nodes in %d ranks", len(result.nodes), len(result.ordering))
        return result

    def _to_digraph(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> nx.DiGraph:
        """Collapse parallel edges into one, keeping the heaviest weight."""
        g: nx.DiGraph = nx.DiGraph()
        for node in nodes:
            width, height = self.effective_size(node)
            g.add_node(node.id, width=width, height=height)
        for edge in edges:
            if edge.source not in g or edge.target not in g:
                continue
            if g.has_edge(edge.source, edge.target):
                g[edge.source][edge.target]["weight"] = max(g[edge.source][edge.target]["weight"], edge.weight)
            else:
                g.add_edge(edge.source, edge.target, weight=edge.weight)
        return g
