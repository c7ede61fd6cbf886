"""Coverage checks: does a block's rule set already route every discrete answer?

When every option of a choice block has an explicit rule leading somewhere
other than the block's natural successor, the implicit fallback edge is
unreachable and the graph builder leaves it out.
"""

from __future__ import annotations

from typing import Protocol

from survey_flow.ir.blocks import Block
from survey_flow.parsers import ConditionParser, parse_condition
from survey_flow.types import SUBMIT_ALIASES, SUBMIT_ID


class CoverageChecker(Protocol):
    def __call__(self, block: Block, natural_successor: str) -> bool:
        """Return True when every discrete answer of ``block`` already has a rule
        leading somewhere other than ``natural_successor``."""
        ...


def never_covered(block: Block, natural_successor: str) -> bool:
    """Coverage checker for hosts whose block types have no discrete answers."""
    return False


class OptionCoverage:
    """Coverage over ``Block.options`` using ``==`` and ``in`` rules on the block's own field."""

    def __init__(self, parser: ConditionParser | None = None) -> None:
        self.parser = parser

    def __call__(self, block: Block, natural_successor: str) -> bool:
        if not block.options:
            return False

        covered: set[str] = set()
        for rule in block.navigation_rules:
            if rule.acts_as_default:
                continue
            target = SUBMIT_ID if rule.target in SUBMIT_ALIASES else rule.target
            if target == natural_successor:
                continue
            try:
                parts = parse_condition(rule.condition, self.parser)
            except ValueError:
                continue
            if parts.field != block.field_name:
                continue
            if parts.operator == "==" and isinstance(parts.value, str):
                covered.add(parts.value)
            elif parts.operator == "in" and isinstance(parts.value, list):
                covered.update(parts.value)

        return all(option.value in covered for option in block.options)
