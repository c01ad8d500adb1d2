from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class QuerySpec:
    """One partition query: equality on a key, optionally ``begins_with`` on the range key."""

    key_name: str
    key_value: Any
    index_name: str | None = None
    range_name: str | None = None
    range_begins_with: str | None = None
    scan_index_forward: bool | None = None
    filter_expression: str | None = None
    attribute_names: dict[str, str] = field(default_factory=dict)
    attribute_values: dict[str, Any] = field(default_factory=dict)

    @property
    def includes_range(self) -> bool:
        return bool(self.range_name and self.range_begins_with)

    def to_params(self) -> dict[str, Any]:
        """Base keyword arguments for boto3 ``Table.query`` (no paging fields)."""
        if self.includes_range:
            condition = "#keyName = :keyName and begins_with(#rangeName, :rangeBeginsWithValue)"
        else:
            condition = "#keyName = :keyName"

        names: dict[str, str] = {"#keyName": self.key_name}
        values: dict[str, Any] = {":keyName": self.key_value}
        if self.includes_range:
            names["#rangeName"] = str(self.range_name)
            values[":rangeBeginsWithValue"] = self.range_begins_with
        names.update(self.attribute_names)
        values.update(self.attribute_values)

        params: dict[str, Any] = {
            "KeyConditionExpression": condition,
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
        }
        if self.index_name:
            params["IndexName"] = self.index_name
        if self.filter_expression:
            params["FilterExpression"] = self.filter_expression
        if self.scan_index_forward is not None:
            params["ScanIndexForward"] = bool(self.scan_index_forward)
        return params
