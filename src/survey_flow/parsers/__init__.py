"""Condition parser registry — the default structural parser and a parse() shortcut."""

from __future__ import annotations

from survey_flow.parsers.base import ConditionParser, ConditionParts
from survey_flow.parsers.condition import OPERATORS, PatternConditionParser, operator_label

_DEFAULT_PARSER: ConditionParser = PatternConditionParser()


def parse_condition(condition: str, parser: ConditionParser | None = None) -> ConditionParts:
    """Decompose a condition with the given parser (default: the pattern parser).

    Raises:
        ValueError: If the condition is empty or not understood.
    """
    return (parser or _DEFAULT_PARSER).parse(condition)


__all__ = [
    "OPERATORS",
    "ConditionParser",
    "ConditionParts",
    "PatternConditionParser",
    "operator_label",
    "parse_condition",
]
