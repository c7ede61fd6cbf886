"""Typed command channel between per-node UI actions and the editing session.

Node and edge widgets post commands instead of mutating shared state; the
session drains the channel and applies them one at a time, in posting order.
Follow-up requests for the host UI travel back as intents.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Union

from survey_flow.ir.blocks import Block

# ─── Intents ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OpenRuleEditor:
    block_id: str
    rule_index: int


@dataclass(frozen=True)
class OpenBlockConfig:
    block_id: str


@dataclass(frozen=True)
class FocusNode:
    node_id: str


Intent = Union[OpenRuleEditor, OpenBlockConfig, FocusNode]


# ─── Commands ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConfigureNode:
    node_id: str


@dataclass(frozen=True)
class EditEdge:
    edge_id: str


@dataclass(frozen=True)
class DeleteEdge:
    edge_id: str


@dataclass(frozen=True)
class InsertBlock:
    at_index: int
    template: Block | None = None
    edge_id: str | None = None


@dataclass(frozen=True)
class AddBranch:
    source_id: str
    template: Block | None = None


@dataclass(frozen=True)
class ReconnectEdge:
    edge_id: str
    new_target_id: str


@dataclass(frozen=True)
class DeleteNodes:
    node_ids: tuple[str, ...]


@dataclass(frozen=True)
class UpdateBlock:
    block_id: str
    changes: dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class AddRule:
    source_id: str
    target_id: str


Command = Union[
    ConfigureNode, EditEdge, DeleteEdge, InsertBlock, AddBranch, ReconnectEdge, DeleteNodes, UpdateBlock, AddRule
]


class CommandChannel:
    """FIFO of pending commands."""

    def __init__(self) -> None:
        self._queue: deque[Command] = deque()

    def post(self, command: Command) -> None:
        self._queue.append(command)

    def drain(self) -> Iterator[Command]:
        """Yield queued commands oldest first, including ones posted while draining."""
        while self._queue:
            yield self._queue.popleft()

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)
