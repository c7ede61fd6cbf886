"""Edge label text: turns a rule's raw condition into a readable phrase."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from survey_flow.ir.blocks import Block
from survey_flow.parsers import ConditionParser, operator_label, parse_condition

logger = logging.getLogger(__name__)

DEFAULT_RULE_LABEL = "Default"

_QUOTES_RE = re.compile(r"^['\"]|['\"]$")


def describe_condition(condition: str, blocks: Sequence[Block] = (), parser: ConditionParser | None = None) -> str:
    """Render ``condition`` as ``"<field> <operator phrase> <value>"``.

    Option values of the block that owns the field are shown as quoted option
    labels, array values are comma-joined, and the emptiness operators read
    ``"<field> is empty"`` / ``"<field> is not empty"``. A condition the parser
    does not understand is returned verbatim.
    """
    if not condition:
        return ""
    try:
        parts = parse_condition(condition, parser)
    except ValueError:
        logger.debug("showing raw condition text for %r", condition)
        return condition
    if not parts.field and not parts.operator:
        return condition

    if parts.operator == "isEmpty":
        return f"{parts.field} is empty"
    if parts.operator == "isNotEmpty":
        return f"{parts.field} is not empty"

    owner = next((b for b in blocks if b.field_name == parts.field), None)
    if isinstance(parts.value, list):
        value_text = ", ".join(_option_label(owner, v) for v in parts.value)
    else:
        value_text = _option_label(owner, parts.value)

    phrase = f"{parts.field} {operator_label(parts.operator)}"
    return f"{phrase} {value_text}" if value_text else phrase


def _option_label(block: Block | None, raw: str) -> str:
    clean = _strip_quotes(raw)
    if block is not None:
        for option in block.options:
            if option.value == clean or (option.id is not None and option.id == clean):
                return f'"{option.label}"'
    return clean


def _strip_quotes(value: str) -> str:
    return _QUOTES_RE.sub("", value)
