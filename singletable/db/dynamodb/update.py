"""Sparse update statements.

A change-set maps attribute names to one of:

- a concrete value: the attribute is SET,
- ``None``: the attribute is REMOVEd,
- ``UNSET``: the attribute is left untouched (same as leaving the key out).
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Any, Mapping


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True, slots=True)
class UpdateStatement:
    attribute_names: dict[str, str] = field(default_factory=dict)
    attribute_values: dict[str, Any] = field(default_factory=dict)
    update_expr: str = ""
    remove_expr: str = ""
    return_values: str = "ALL_NEW"

    @property
    def expression(self) -> str:
        parts: list[str] = []
        if self.update_expr:
            parts.append(f"SET {self.update_expr}")
        if self.remove_expr:
            parts.append(f"REMOVE {self.remove_expr}")
        return " ".join(parts)

    def to_request(self, key: Mapping[str, Any]) -> dict[str, Any]:
        """Keyword arguments for boto3 ``Table.update_item``."""
        kwargs: dict[str, Any] = {
            "Key": dict(key),
            "UpdateExpression": self.expression,
            "ReturnValues": self.return_values,
        }
        # DynamoDB rejects empty maps here.
        if self.attribute_names:
            kwargs["ExpressionAttributeNames"] = dict(self.attribute_names)
        if self.attribute_values:
            kwargs["ExpressionAttributeValues"] = dict(self.attribute_values)
        return kwargs


def compile_update(change_set: Mapping[str, Any]) -> UpdateStatement:
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    set_parts: list[str] = []
    remove_parts: list[str] = []

    for attr, value in change_set.items():
        if value is UNSET:
            continue

        names[f"#{attr}"] = attr
        if value is None:
            remove_parts.append(f"#{attr}")
        else:
            values[f":{attr}"] = value
            set_parts.append(f"#{attr} = :{attr}")

    return UpdateStatement(
        attribute_names=names,
        attribute_values=values,
        update_expr=", ".join(set_parts),
        remove_expr=", ".join(remove_parts),
    )


def now_ms() -> int:
    return int(time.time() * 1000)


def ttl(start_ms: int, days: int) -> int:
    """Epoch-seconds expiry ``days`` after ``start_ms``."""
    return math.floor(start_ms / 1000) + 60 * 60 * 24 * int(days)
