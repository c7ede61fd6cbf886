"""Tests for the editing session: command channel, two-phase layout and reconciliation."""

from __future__ import annotations

import json

import pytest

from survey_flow import build_flow
from survey_flow.edit import (
    AddBranch,
    AddRule,
    CommandChannel,
    ConfigureNode,
    DeleteEdge,
    DeleteNodes,
    EditEdge,
    FocusNode,
    InsertBlock,
    MutationCoordinator,
    OpenBlockConfig,
    OpenRuleEditor,
    ReconnectEdge,
    UpdateBlock,
)
from survey_flow.ir.blocks import Block, NavigationRule
from survey_flow.ir.graph import FlowGraph
from survey_flow.reconcile import merge_nodes, structure_changed
from survey_flow.session import FlowEditor
from survey_flow.types import Point, Size


def _blocks() -> list[Block]:
    """Q1 jumps to Q3 on "r", otherwise falls through to Q2."""
    return [
        Block(id="Q1", field_name="color", navigation_rules=[NavigationRule('color == "r"', "Q3")]),
        Block(id="Q2", field_name="size"),
        Block(id="Q3", field_name="done"),
    ]


def _editor(**kwargs) -> FlowEditor:
    return FlowEditor(_blocks(), **kwargs)


def _block(editor: FlowEditor, block_id: str) -> Block:
    return next(b for b in editor.blocks if b.id == block_id)


# ─── Command channel ─────────────────────────────────────────────────────────


class TestCommandChannel:
    def test_fifo(self):
        channel = CommandChannel()
        commands = [ConfigureNode("a"), EditEdge("e"), DeleteNodes(("b",))]
        for command in commands:
            channel.post(command)
        assert len(channel) == 3
        assert list(channel.drain()) == commands
        assert not channel

    def test_posting_while_draining(self):
        channel = CommandChannel()
        channel.post(ConfigureNode("a"))
        seen = []
        for command in channel.drain():
            seen.append(command)
            if len(seen) == 1:
                channel.post(ConfigureNode("b"))
        assert seen == [ConfigureNode("a"), ConfigureNode("b")]


# ─── Two-phase layout ────────────────────────────────────────────────────────


class TestTwoPhaseLayout:
    def test_graph_is_cached(self):
        editor = _editor()
        assert editor.graph is editor.graph

    def test_first_drawing_uses_default_sizes(self):
        drawing = _editor().drawing()
        assert all(box.width == 400 and box.height == 150 for box in drawing.layout.nodes)

    def test_partial_sizes_do_not_trigger_relayout(self):
        editor = _editor()
        editor.drawing()
        assert not editor.needs_layout
        assert editor.report_sizes({"Q1": (200, 80)}) is False

    def test_all_sizes_trigger_one_relayout(self):
        editor = _editor()
        editor.drawing()
        sizes = {node.id: Size(200, 80) for node in editor.graph.nodes}
        assert editor.report_sizes(sizes) is True

        drawing = editor.drawing()
        assert not editor.needs_layout
        assert all((box.width, box.height) == (200, 80) for box in drawing.layout.nodes)
        assert all(node["measured"] for node in drawing.to_dict()["nodes"])

    def test_unchanged_sizes_are_ignored(self):
        editor = _editor()
        sizes = {node.id: (200, 80) for node in editor.graph.nodes}
        editor.report_sizes(sizes)
        editor.drawing()
        assert editor.report_sizes(sizes) is False

    def test_positions_survive_label_edit(self):
        editor = _editor()
        editor.drawing()
        before = {n.id: n.position for n in editor.nodes()}
        editor.apply(UpdateBlock("Q2", {"field_name": "shoe_size"}))
        after = {n.id: n.position for n in editor.nodes()}
        assert after == before
        assert editor.graph.node("Q2").label == "shoe_size"

    def test_label_edit_keeps_layout(self):
        editor = _editor()
        editor.drawing()
        editor.apply(UpdateBlock("Q2", {"field_name": "shoe_size"}))
        assert not editor.needs_layout

    def test_structural_edit_needs_layout(self):
        editor = _editor()
        editor.drawing()
        editor.apply(UpdateBlock("Q2", {"next_block_id": "submit"}))
        assert editor.needs_layout


# ─── Command dispatch ────────────────────────────────────────────────────────


class TestDispatch:
    def test_process_in_order(self):
        editor = _editor()
        editor.post(DeleteNodes(("Q2",)))
        editor.post(AddBranch("Q1"))
        results = editor.process()
        assert [r.applied for r in results] == [True, True]
        assert [b.id for b in editor.blocks][:2] == ["Q1", "Q3"]
        assert len(editor.blocks) == 3
        assert editor.intents == [OpenRuleEditor("Q1", 1)]

    def test_configure_node(self):
        editor = _editor()
        result = editor.apply(ConfigureNode("Q2"))
        assert result.intents == [OpenBlockConfig("Q2")]
        assert editor.intents == [OpenBlockConfig("Q2")]

    def test_configure_sentinel_rejected(self):
        assert not _editor().apply(ConfigureNode("start")).applied

    def test_edit_rule_edge(self):
        editor = _editor()
        result = editor.apply(EditEdge("Q1-nav-0"))
        assert result.intents == [OpenRuleEditor("Q1", 0)]
        assert editor.blocks == _blocks()

    def test_edit_implicit_edge_rejected(self):
        assert not _editor().apply(EditEdge("Q1-seq-Q2")).applied

    def test_unknown_edge_rejected(self):
        assert not _editor().apply(DeleteEdge("nope")).applied

    def test_delete_rule_edge(self):
        editor = _editor()
        editor.drawing()
        result = editor.apply(DeleteEdge("Q1-nav-0"))
        assert result.applied
        assert _block(editor, "Q1").navigation_rules == []
        assert editor.needs_layout
        assert editor.graph.edge("Q1-nav-0") is None

    def test_reconnect_implicit_edge(self):
        editor = _editor()
        editor.apply(ReconnectEdge("Q1-seq-Q2", "Q3"))
        assert _block(editor, "Q1").next_block_id == "Q3"

    def test_insert_on_edge(self):
        editor = _editor(coordinator=MutationCoordinator(id_factory=lambda: "new"))
        result = editor.apply(InsertBlock(at_index=1, edge_id="Q1-seq-Q2"))
        assert result.intents == [FocusNode("new")]
        assert [b.id for b in editor.blocks] == ["Q1", "new", "Q2", "Q3"]
        assert _block(editor, "Q1").next_block_id == "new"
        assert _block(editor, "new").next_block_id == "Q2"

    def test_add_rule(self):
        editor = _editor()
        editor.apply(AddRule("Q2", "end"))
        assert _block(editor, "Q2").navigation_rules[0].target == "submit"

    def test_rejection_keeps_layout(self):
        editor = _editor()
        editor.drawing()
        editor.apply(DeleteNodes(("Q1",)))
        assert not editor.needs_layout
        assert [b.id for b in editor.blocks] == ["Q1", "Q2", "Q3"]

    def test_unknown_command(self):
        with pytest.raises(ValueError, match="unknown command"):
            _editor().apply(object())


# ─── Reconciliation ──────────────────────────────────────────────────────────


class TestReconcile:
    def test_merge_keeps_position_and_size(self):
        old = FlowGraph.from_blocks(_blocks()).nodes
        old[1].position = Point(10, 20)
        old[1].size = Size(200, 80)
        fresh = FlowGraph.from_blocks(_blocks()).nodes
        merged = merge_nodes(fresh, old)
        assert merged[1].position == Point(10, 20)
        assert merged[1].size == Size(200, 80)
        assert fresh[1].position == Point(0, 0)

    def test_new_nodes_keep_fresh_values(self):
        fresh = FlowGraph.from_blocks(_blocks() + [Block(id="Q4")]).nodes
        merged = merge_nodes(fresh, [])
        assert [n.id for n in merged] == [n.id for n in fresh]

    def test_label_change_is_not_structural(self):
        before = FlowGraph.from_blocks(_blocks())
        edited = _blocks()
        edited[0].navigation_rules[0].condition = 'color == "g"'
        assert not structure_changed(before, FlowGraph.from_blocks(edited))

    def test_target_change_is_structural(self):
        before = FlowGraph.from_blocks(_blocks())
        edited = _blocks()
        edited[0].navigation_rules[0].target = "Q2"
        assert structure_changed(before, FlowGraph.from_blocks(edited))
        assert structure_changed(None, before)


# ─── build_flow ──────────────────────────────────────────────────────────────


class TestBuildFlow:
    def test_every_edge_routed(self):
        data = build_flow(_blocks()).to_dict()
        assert [n["id"] for n in data["nodes"]] == ["start", "Q1", "Q2", "Q3", "submit"]
        assert all(edge["route"] is not None for edge in data["edges"])
        json.dumps(data)

    def test_accepts_stored_dicts(self):
        items = [{"uuid": "a", "type": "text"}, {"uuid": "b", "type": "text", "isEndBlock": True}]
        data = build_flow(items).to_dict()
        edges = {e["id"]: e for e in data["edges"]}
        assert set(edges) == {"start-to-first", "a-seq-b", "b-seq-submit"}
        assert edges["a-seq-b"]["kind"] == "implicit-sequential"
        assert edges["a-seq-b"]["route"]["needsDetour"] is False

    def test_empty(self):
        data = build_flow([]).to_dict()
        assert [e["id"] for e in data["edges"]] == ["start-to-submit"]
