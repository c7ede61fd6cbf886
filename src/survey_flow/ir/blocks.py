"""Block model: the ordered survey steps the flow graph is derived from.

These types are the input form of the engine. ``load_blocks`` turns the
loosely-shaped dicts stored by the surrounding builder into ``Block``
objects without ever failing on missing or malformed fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

_KNOWN_KEYS = frozenset(
    {"uuid", "id", "type", "fieldName", "navigationRules", "nextBlockId", "isEndBlock", "options"}
)


@dataclass
class NavigationRule:
    condition: str = ""
    target: str = ""
    is_default: bool = False

    @property
    def acts_as_default(self) -> bool:
        """A rule marked default, or one with no condition, always matches."""
        return self.is_default or not self.condition.strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NavigationRule:
        return cls(
            condition=_as_str(data.get("condition")),
            target=_as_str(data.get("target")),
            is_default=_as_bool(data.get("isDefault")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"condition": self.condition, "target": self.target, "isDefault": self.is_default}


@dataclass
class BlockOption:
    value: str
    label: str
    id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockOption:
        value = _as_str(data.get("value"))
        return cls(value=value, label=_as_str(data.get("label")) or value, id=data.get("id"))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"value": self.value, "label": self.label}
        if self.id is not None:
            out["id"] = self.id
        return out


@dataclass
class Block:
    id: str
    type: str = ""
    field_name: str = ""
    navigation_rules: list[NavigationRule] = field(default_factory=list)
    next_block_id: str | None = None
    is_end_block: bool = False
    options: list[BlockOption] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(cls, id: str, type: str = "", field_name: str = "") -> Block:
        return cls(id=id, type=type, field_name=field_name)

    @classmethod
    def from_dict(cls, data: dict[str, Any], fallback_id: str = "") -> Block:
        """Build a Block from a stored dict; malformed fields fall back to defaults."""
        raw_rules = data.get("navigationRules")
        rules = (
            [NavigationRule.from_dict(r) for r in raw_rules if isinstance(r, dict)] if isinstance(raw_rules, list) else []
        )
        raw_options = data.get("options")
        options = (
            [BlockOption.from_dict(o) for o in raw_options if isinstance(o, dict)] if isinstance(raw_options, list) else []
        )
        next_id = data.get("nextBlockId")
        return cls(
            id=_as_str(data.get("uuid") or data.get("id")) or fallback_id,
            type=_as_str(data.get("type")),
            field_name=_as_str(data.get("fieldName")),
            navigation_rules=rules,
            next_block_id=_as_str(next_id) or None,
            is_end_block=_as_bool(data.get("isEndBlock")),
            options=options,
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out.update(
            {
                "uuid": self.id,
                "type": self.type,
                "fieldName": self.field_name,
                "navigationRules": [r.to_dict() for r in self.navigation_rules],
                "isEndBlock": self.is_end_block,
            }
        )
        if self.next_block_id is not None:
            out["nextBlockId"] = self.next_block_id
        if self.options:
            out["options"] = [o.to_dict() for o in self.options]
        return out


def load_blocks(items: Any) -> list[Block]:
    """Load an ordered block list, skipping entries that are not dicts."""
    if not isinstance(items, list):
        return []
    blocks: list[Block] = []
    for index, item in enumerate(items):
        if isinstance(item, Block):
            blocks.append(item)
        elif isinstance(item, dict):
            blocks.append(Block.from_dict(item, fallback_id=f"block-{index}"))
    return blocks


def dump_blocks(blocks: list[Block]) -> list[dict[str, Any]]:
    return [b.to_dict() for b in blocks]


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_bool(value: Any) -> bool:
    """Only a real bool or the strings "true" and "1" count as set."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() in ("true", "1")
