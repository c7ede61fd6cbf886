"""Base condition-parser protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class ConditionParts:
    """Structural decomposition of a navigation-rule condition."""

    field: str
    operator: str
    value: str | list[str] = ""


class ConditionParser(Protocol):
    """Protocol that all condition parsers must implement."""

    def parse(self, condition: str) -> ConditionParts:
        """Decompose a condition string; raise ValueError when it is not understood."""
        ...
