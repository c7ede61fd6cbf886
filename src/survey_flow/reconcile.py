"""Merge freshly derived graph data into previously rendered state, by node id."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence

from survey_flow.ir.graph import FlowGraph, GraphNode


def merge_nodes(fresh: Sequence[GraphNode], previous: Sequence[GraphNode]) -> list[GraphNode]:
    """Copies of ``fresh`` that keep the position and measured size of the previous node with the same id.

    Nodes that did not exist before keep their fresh values.
    """
    old = {n.id: n for n in previous}
    merged: list[GraphNode] = []
    for node in fresh:
        prior = old.get(node.id)
        if prior is None:
            merged.append(dataclasses.replace(node))
        else:
            merged.append(dataclasses.replace(node, position=prior.position, size=prior.size))
    return merged


def structure_changed(old: FlowGraph | None, new: FlowGraph) -> bool:
    """True when node ids or edge endpoints differ; label-only changes do not count."""
    if old is None:
        return True
    return [n.id for n in old.nodes] != [n.id for n in new.nodes] or old.edge_pairs() != new.edge_pairs()
