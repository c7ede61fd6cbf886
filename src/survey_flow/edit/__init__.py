"""Editing: structural mutations and the command channel that feeds them."""

from survey_flow.edit.commands import (
    AddBranch,
    AddRule,
    Command,
    CommandChannel,
    ConfigureNode,
    DeleteEdge,
    DeleteNodes,
    EditEdge,
    FocusNode,
    InsertBlock,
    Intent,
    OpenBlockConfig,
    OpenRuleEditor,
    ReconnectEdge,
    UpdateBlock,
)
from survey_flow.edit.mutations import MutationCoordinator, MutationResult, reject

__all__ = [
    "AddBranch",
    "AddRule",
    "Command",
    "CommandChannel",
    "ConfigureNode",
    "DeleteEdge",
    "DeleteNodes",
    "EditEdge",
    "FocusNode",
    "InsertBlock",
    "Intent",
    "MutationCoordinator",
    "MutationResult",
    "OpenBlockConfig",
    "OpenRuleEditor",
    "ReconnectEdge",
    "UpdateBlock",
    "reject",
]
