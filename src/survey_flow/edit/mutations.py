"""MutationCoordinator — structural edits as immutable block-list transforms.

Every operation takes the current block list and returns a ``MutationResult``
holding a new list; the input is never modified. A rejected edit returns the
input unchanged with ``applied=False`` and a human-readable ``reason``.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from survey_flow.edit.commands import FocusNode, Intent, OpenRuleEditor
from survey_flow.ir.blocks import Block, NavigationRule
from survey_flow.ir.graph import EdgeRef, make_resolver, natural_successor
from survey_flow.types import START_ID, SUBMIT_ALIASES, SUBMIT_ID

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset(f.name for f in dataclasses.fields(Block)) - {"id"}


@dataclass
class MutationResult:
    blocks: list[Block]
    applied: bool = True
    reason: str | None = None
    intents: list[Intent] = field(default_factory=list)
    created_id: str | None = None


def _new_id() -> str:
    return str(uuid.uuid4())


def reject(blocks: Sequence[Block], reason: str) -> MutationResult:
    """A result that leaves ``blocks`` untouched and says why."""
    logger.warning("edit rejected: %s", reason)
    return MutationResult(blocks=list(blocks), applied=False, reason=reason)


def _placeholder_field(block: Block) -> str:
    return block.field_name or "field"


def _continue_to(block: Block, target: str) -> None:
    """Point ``block``'s natural successor at ``target`` explicitly."""
    if target == SUBMIT_ID:
        block.is_end_block = True
        block.next_block_id = None
    else:
        block.is_end_block = False
        block.next_block_id = target


class MutationCoordinator:
    """Applies insert, delete, branch, reconnect and rule edits to a block list."""

    def __init__(self, id_factory: Callable[[], str] = _new_id) -> None:
        self.id_factory = id_factory

    def _fresh_block(self, template: Block | None) -> Block:
        block = copy.deepcopy(template) if template is not None else Block.new("")
        block.id = self.id_factory()
        return block

    # ─── Insert ──────────────────────────────────────────────────────────────

    def insert(
        self,
        blocks: Sequence[Block],
        at_index: int,
        template: Block | None = None,
        edge_context: EdgeRef | None = None,
    ) -> MutationResult:
        """Splice a fresh-id copy of ``template`` at ``at_index``.

        With ``edge_context`` the new block is also wired into that edge: the
        edge's source now leads to the new block, and the new block continues
        to the edge's old target.
        """
        out = copy.deepcopy(list(blocks))
        new_block = self._fresh_block(template)

        if edge_context is not None and edge_context.source != START_ID:
            source = next((b for b in out if b.id == edge_context.source), None)
            if source is None:
                return reject(blocks, f"unknown edge source {edge_context.source!r}")
            if edge_context.rule_index is not None:
                if not 0 <= edge_context.rule_index < len(source.navigation_rules):
                    return reject(blocks, f"block {source.id!r} has no rule {edge_context.rule_index}")
                source.navigation_rules[edge_context.rule_index].target = new_block.id
            else:
                source.next_block_id = new_block.id
                source.is_end_block = False
            _continue_to(new_block, edge_context.target)

        index = max(0, min(at_index, len(out)))
        out.insert(index, new_block)
        logger.debug("inserted block %s at %d", new_block.id, index)
        return MutationResult(blocks=out, intents=[FocusNode(new_block.id)], created_id=new_block.id)

    # ─── Delete ──────────────────────────────────────────────────────────────

    def delete(self, blocks: Sequence[Block], target_ids: Iterable[str]) -> MutationResult:
        """Remove blocks, re-pointing every reference to them at their bridge.

        The bridge of a deleted block is its own ``next_block_id`` when that
        block survives, else the block after it in list order when that one
        survives, else submit. A bridge that lands on another deleted block is
        followed through it. Nothing is deleted while a deleted block still
        has a rule leading to a surviving block.
        """
        live = {b.id for b in blocks}
        doomed = {t for t in target_ids if t in live}
        if not doomed:
            return reject(blocks, "no existing block to delete")

        resolve = make_resolver(blocks)
        position = {}
        for i, b in enumerate(blocks):
            position.setdefault(b.id, i)

        for block_id in sorted(doomed, key=position.__getitem__):
            for rule_index, rule in enumerate(blocks[position[block_id]].navigation_rules):
                target = resolve(rule.target)
                if target != SUBMIT_ID and target not in doomed:
                    return reject(blocks, f"{block_id!r} still leads to {target!r} through rule {rule_index}")

        def step(index: int) -> str:
            block = blocks[index]
            explicit = resolve(block.next_block_id) if block.next_block_id else None
            following = blocks[index + 1].id if index + 1 < len(blocks) else SUBMIT_ID
            if explicit is not None and explicit not in doomed:
                return explicit
            if following not in doomed:
                return following
            return explicit or following

        def bridge(block_id: str) -> str:
            seen: set[str] = set()
            current = block_id
            while current in doomed:
                if current in seen:
                    return SUBMIT_ID
                seen.add(current)
                current = step(position[current])
            return current

        survivors = [(i, copy.deepcopy(b)) for i, b in enumerate(blocks) if b.id not in doomed]
        for n, (i, block) in enumerate(survivors):
            old_successor = natural_successor(blocks, i, resolve)

            for rule in block.navigation_rules:
                if resolve(rule.target) in doomed:
                    rule.target = bridge(resolve(rule.target))

            if block.next_block_id and resolve(block.next_block_id) in doomed:
                wanted = bridge(resolve(block.next_block_id))
                block.next_block_id = wanted if wanted != block.id else None
            elif not block.next_block_id and not block.is_end_block and old_successor in doomed:
                wanted = bridge(old_successor)
                list_next = survivors[n + 1][1].id if n + 1 < len(survivors) else SUBMIT_ID
                if wanted not in (list_next, block.id):
                    block.next_block_id = wanted

        logger.debug("deleted %d block(s): %s", len(doomed), ", ".join(sorted(doomed)))
        return MutationResult(blocks=[b for _, b in survivors])

    # ─── Branch / rules ──────────────────────────────────────────────────────

    def add_branch(self, blocks: Sequence[Block], source_id: str, template: Block | None = None) -> MutationResult:
        """Append a new end block and a placeholder rule from ``source_id`` to it."""
        out = copy.deepcopy(list(blocks))
        source = next((b for b in out if b.id == source_id), None)
        if source is None:
            return reject(blocks, f"unknown branch source {source_id!r}")

        new_block = self._fresh_block(template)
        new_block.is_end_block = True
        new_block.next_block_id = None

        rule_index = len(source.navigation_rules)
        source.navigation_rules.append(
            NavigationRule(condition=f'{_placeholder_field(source)} == "value"', target=new_block.id)
        )
        out.append(new_block)
        return MutationResult(blocks=out, intents=[OpenRuleEditor(source_id, rule_index)], created_id=new_block.id)

    def add_rule(self, blocks: Sequence[Block], source_id: str, target_id: str) -> MutationResult:
        """Append a placeholder rule ``<field> == ""`` from ``source_id`` to ``target_id``."""
        out = copy.deepcopy(list(blocks))
        source = next((b for b in out if b.id == source_id), None)
        if source is None:
            return reject(blocks, f"unknown rule source {source_id!r}")
        target = self._live_target(blocks, target_id)
        if target is None:
            return reject(blocks, f"unknown rule target {target_id!r}")

        rule_index = len(source.navigation_rules)
        source.navigation_rules.append(NavigationRule(condition=f'{_placeholder_field(source)} == ""', target=target))
        return MutationResult(blocks=out, intents=[OpenRuleEditor(source_id, rule_index)])

    def delete_rule(self, blocks: Sequence[Block], source_id: str, rule_index: int) -> MutationResult:
        out = copy.deepcopy(list(blocks))
        source = next((b for b in out if b.id == source_id), None)
        if source is None:
            return reject(blocks, f"unknown block {source_id!r}")
        if not 0 <= rule_index < len(source.navigation_rules):
            return reject(blocks, f"block {source_id!r} has no rule {rule_index}")
        del source.navigation_rules[rule_index]
        return MutationResult(blocks=out)

    # ─── Reconnect ───────────────────────────────────────────────────────────

    def reconnect(self, blocks: Sequence[Block], edge_ref: EdgeRef, new_target_id: str) -> MutationResult:
        """Point an existing edge at ``new_target_id``.

        A rule edge gets its rule's target rewritten; an implicit edge gets its
        source's ``next_block_id``/``is_end_block``.
        """
        if edge_ref.source == START_ID:
            return reject(blocks, "the start edge cannot be reconnected")
        index = next((i for i, b in enumerate(blocks) if b.id == edge_ref.source), None)
        if index is None:
            return reject(blocks, f"unknown edge source {edge_ref.source!r}")
        target = self._live_target(blocks, new_target_id)
        if target is None:
            return reject(blocks, f"unknown target {new_target_id!r}")
        if target == edge_ref.source:
            return reject(blocks, f"block {edge_ref.source!r} cannot lead to itself")

        resolve = make_resolver(blocks)
        out = copy.deepcopy(list(blocks))
        source = out[index]

        if edge_ref.rule_index is not None:
            if not 0 <= edge_ref.rule_index < len(source.navigation_rules):
                return reject(blocks, f"block {source.id!r} has no rule {edge_ref.rule_index}")
            rule = source.navigation_rules[edge_ref.rule_index]
            if resolve(rule.target) == target:
                return reject(blocks, "edge already points at that target")
            rule.target = target
        else:
            if natural_successor(blocks, index, resolve) == target:
                return reject(blocks, "edge already points at that target")
            _continue_to(source, target)

        return MutationResult(blocks=out)

    # ─── Update ──────────────────────────────────────────────────────────────

    def update_block(self, blocks: Sequence[Block], block_id: str, **changes: Any) -> MutationResult:
        """Replace fields of one block; the id cannot change."""
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            return reject(blocks, f"cannot update field(s) {', '.join(sorted(unknown))}")
        out = copy.deepcopy(list(blocks))
        block = next((b for b in out if b.id == block_id), None)
        if block is None:
            return reject(blocks, f"unknown block {block_id!r}")
        for name, value in changes.items():
            setattr(block, name, copy.deepcopy(value))
        return MutationResult(blocks=out)

    @staticmethod
    def _live_target(blocks: Sequence[Block], target_id: str) -> str | None:
        if target_id in SUBMIT_ALIASES:
            return SUBMIT_ID
        return target_id if any(b.id == target_id for b in blocks) else None
