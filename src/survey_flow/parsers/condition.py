"""Condition parser — pattern table over the expressions the rule editor writes.

Decomposes a stored navigation-rule condition into ``ConditionParts``
(field, operator, value). Only structure is recovered; evaluation is the job
of the survey runtime.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass

from survey_flow.parsers.base import ConditionParts

# ─── Operator table ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OperatorDef:
    value: str
    label: str
    category: str  # comparison | string | array | logical | date


OPERATORS: list[OperatorDef] = [
    OperatorDef("==", "Equals", "comparison"),
    OperatorDef("!=", "Not equals", "comparison"),
    OperatorDef(">", "Greater than", "comparison"),
    OperatorDef(">=", "Greater than or equal", "comparison"),
    OperatorDef("<", "Less than", "comparison"),
    OperatorDef("<=", "Less than or equal", "comparison"),
    OperatorDef("contains", "Contains", "string"),
    OperatorDef("notContains", "Does not contain", "string"),
    OperatorDef("startsWith", "Starts with", "string"),
    OperatorDef("endsWith", "Ends with", "string"),
    OperatorDef("matches", "Matches pattern", "string"),
    OperatorDef("in", "In array", "array"),
    OperatorDef("notIn", "Not in array", "array"),
    OperatorDef("containsAny", "Contains any of", "array"),
    OperatorDef("containsAll", "Contains all of", "array"),
    OperatorDef("containsNone", "Contains none of", "array"),
    OperatorDef("isEmpty", "Is empty", "logical"),
    OperatorDef("isNotEmpty", "Is not empty", "logical"),
    OperatorDef("between", "Between", "logical"),
    OperatorDef("notBetween", "Not between", "logical"),
    OperatorDef("dateEquals", "Date equals", "date"),
    OperatorDef("dateNotEquals", "Date not equals", "date"),
    OperatorDef("dateGreaterThan", "Date after", "date"),
    OperatorDef("dateGreaterThanOrEqual", "Date on or after", "date"),
    OperatorDef("dateLessThan", "Date before", "date"),
    OperatorDef("dateLessThanOrEqual", "Date on or before", "date"),
    OperatorDef("dateBetween", "Date between", "date"),
    OperatorDef("dateNotBetween", "Date not between", "date"),
    OperatorDef("isToday", "Is today", "date"),
    OperatorDef("isPastDate", "Is past date", "date"),
    OperatorDef("isFutureDate", "Is future date", "date"),
    OperatorDef("isWeekday", "Is weekday", "date"),
    OperatorDef("isWeekend", "Is weekend", "date"),
    OperatorDef("dayOfWeekEquals", "Day of week equals", "date"),
    OperatorDef("monthEquals", "Month equals", "date"),
    OperatorDef("yearEquals", "Year equals", "date"),
    OperatorDef("ageGreaterThan", "Age greater than", "date"),
    OperatorDef("ageLessThan", "Age less than", "date"),
    OperatorDef("ageBetween", "Age between", "date"),
]

_OPERATOR_INDEX: dict[str, OperatorDef] = {op.value: op for op in OPERATORS}


def operator_label(operator: str) -> str:
    """Display phrase for an operator; unknown operators are shown as-is."""
    op = _OPERATOR_INDEX.get(operator)
    return op.label if op is not None else operator


# ─── Pattern table ───────────────────────────────────────────────────────────

_F = r"([\w.]+)"  # field reference
_Q = r"[\"']([^\"']+)[\"']"  # quoted literal
_AGE = r"Math\.floor\(\(new Date\(\)\.getTime\(\) - new Date\(([\w.]+)\)\.getTime\(\)\) / \(365\.25 \* 24 \* 60 \* 60 \* 1000\)\)"

_Builder = Callable[[re.Match[str]], ConditionParts]


def _single(op: str, field_group: int = 1, value_group: int | None = 2) -> _Builder:
    def build(m: re.Match[str]) -> ConditionParts:
        value = m.group(value_group) if value_group is not None else ""
        return ConditionParts(field=m.group(field_group), operator=op, value=value)

    return build


def _pair(op: str, field_group: int = 1) -> _Builder:
    def build(m: re.Match[str]) -> ConditionParts:
        return ConditionParts(
            field=m.group(field_group), operator=op, value=[m.group(field_group + 1), m.group(field_group + 2)]
        )

    return build


def _array(op: str, field_group: int, array_group: int) -> _Builder:
    def build(m: re.Match[str]) -> ConditionParts:
        return ConditionParts(field=m.group(field_group), operator=op, value=_json_list(m.group(array_group)))

    return build


def _date_compare(m: re.Match[str]) -> ConditionParts:
    ops = {">": "dateGreaterThan", ">=": "dateGreaterThanOrEqual", "<": "dateLessThan", "<=": "dateLessThanOrEqual"}
    return ConditionParts(field=m.group(1), operator=ops[m.group(2)], value=m.group(3))


def _past_future(m: re.Match[str]) -> ConditionParts:
    return ConditionParts(field=m.group(1), operator="isPastDate" if m.group(2) == "<" else "isFutureDate")


def _string_method(m: re.Match[str]) -> ConditionParts:
    return ConditionParts(field=m.group(1), operator=m.group(2), value=m.group(3))


def _comparison(m: re.Match[str]) -> ConditionParts:
    op = {"===": "==", "!==": "!="}.get(m.group(2), m.group(2))
    return ConditionParts(field=m.group(1), operator=op, value=m.group(3).strip())


_PATTERNS: list[tuple[re.Pattern[str], _Builder]] = [
    (
        re.compile(rf"new Date\({_F}\)\.toDateString\(\) === new Date\({_Q}\)\.toDateString\(\)"),
        _single("dateEquals"),
    ),
    (
        re.compile(rf"new Date\({_F}\)\.toDateString\(\) !== new Date\({_Q}\)\.toDateString\(\)"),
        _single("dateNotEquals"),
    ),
    (
        re.compile(rf"new Date\({_F}\)\.toDateString\(\) === new Date\(\)\.toDateString\(\)"),
        _single("isToday", value_group=None),
    ),
    (
        re.compile(
            rf"\(\(\) => \{{ const d = new Date\({_F}\); const day = d\.getDay\(\); return day === 0 \|\| day === 6; \}}\)\(\)"
        ),
        _single("isWeekend", value_group=None),
    ),
    (
        re.compile(
            rf"\(\(\) => \{{ const d = new Date\({_F}\); const day = d\.getDay\(\); return day >= 1 && day <= 5; \}}\)\(\)"
        ),
        _single("isWeekday", value_group=None),
    ),
    (
        re.compile(rf"\(\(\) => \{{ const age = {_AGE}; return age >= (\d+) && age <= (\d+); \}}\)\(\)"),
        _pair("ageBetween"),
    ),
    (re.compile(rf"{_AGE} > (\d+)"), _single("ageGreaterThan")),
    (re.compile(rf"{_AGE} < (\d+)"), _single("ageLessThan")),
    (
        re.compile(rf"new Date\({_F}\) >= new Date\({_Q}\) && new Date\([\w.]+\) <= new Date\({_Q}\)"),
        _pair("dateBetween"),
    ),
    (
        re.compile(rf"new Date\({_F}\) < new Date\({_Q}\) \|\| new Date\([\w.]+\) > new Date\({_Q}\)"),
        _pair("dateNotBetween"),
    ),
    (re.compile(rf"new Date\({_F}\) (>=|<=|>|<) new Date\({_Q}\)"), _date_compare),
    (re.compile(rf"new Date\({_F}\) (<|>) new Date\(\)"), _past_future),
    (re.compile(rf"new Date\({_F}\)\.getDay\(\) === (\d+)"), _single("dayOfWeekEquals")),
    (re.compile(rf"\(new Date\({_F}\)\.getMonth\(\) \+ 1\) === (\d+)"), _single("monthEquals")),
    (re.compile(rf"new Date\({_F}\)\.getFullYear\(\) === (\d+)"), _single("yearEquals")),
    (re.compile(rf"new RegExp\({_Q}\)\.test\({_F}\)"), _single("matches", field_group=2, value_group=1)),
    (re.compile(rf"{_F}\.some\(v => (\[.+\])\.includes\(v\)\)"), _array("containsAny", 1, 2)),
    (re.compile(rf"(\[.+\])\.every\(v => {_F}\.includes\(v\)\)"), _array("containsAll", 2, 1)),
    (re.compile(rf"!{_F}\.some\(v => (\[.+\])\.includes\(v\)\)"), _array("containsNone", 1, 2)),
    (re.compile(rf"!{_F}\.includes\({_Q}\)"), _single("notContains")),
    (re.compile(rf"(\[.+\])\.includes\({_F}\)"), _array("in", 2, 1)),
    (re.compile(rf"!(\[.+\])\.includes\({_F}\)"), _array("notIn", 2, 1)),
    (re.compile(rf"!{_F} \|\| [\w.]+ ===? \"\""), _single("isEmpty", value_group=None)),
    (re.compile(rf"{_F} && [\w.]+ !==? \"\""), _single("isNotEmpty", value_group=None)),
    (re.compile(rf"{_F} >= [\"']?([^\"'&]+?)[\"']? && [\w.]+ <= [\"']?([^\"']+)[\"']?"), _pair("between")),
    (re.compile(rf"{_F} < [\"']?([^\"'|]+?)[\"']? \|\| [\w.]+ > [\"']?([^\"']+)[\"']?"), _pair("notBetween")),
    (re.compile(rf"{_F}\.(contains|startsWith|endsWith)\([\"']([^\"']*)[\"']\)"), _string_method),
    (re.compile(rf"{_F}\s*(===|!==|==|!=|>=|<=|>|<)\s*[\"']?([^\"']*)[\"']?"), _comparison),
]


def _json_list(text: str) -> list[str]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid array literal {text!r}: {e}") from e
    if not isinstance(parsed, list):
        raise ValueError(f"expected an array literal, got {text!r}")
    return [str(item) for item in parsed]


# ─── Parser ──────────────────────────────────────────────────────────────────


class PatternConditionParser:
    """Parser for the condition strings produced by the rule editor."""

    def parse(self, condition: str) -> ConditionParts:
        trimmed = condition.strip()
        if not trimmed:
            raise ValueError("empty condition")
        for pattern, build in _PATTERNS:
            m = pattern.fullmatch(trimmed)
            if m is None:
                continue
            try:
                return build(m)
            except ValueError:
                continue
        raise ValueError(f"unrecognized condition: {condition!r}")
