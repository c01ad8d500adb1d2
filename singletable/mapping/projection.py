"""Shape raw table records into client-facing objects.

A mapper applies, in order: decrypt, per-field transforms, renames, omission
of storage-internal fields, then fills in defaults for anything still missing.
Transformed values replace the raw ones in the output and renamed fields
carry the transformed value.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Union

from ..db.dynamodb.update import UNSET

Record = dict[str, Any]
Decrypt = Callable[[Record], Awaitable[Record]]
Transform = Callable[[Any, Record, "MapContext"], Union[Any, Awaitable[Any]]]

DEFAULT_OMIT_FIELDS: frozenset[str] = frozenset(
    {
        "pk",
        "sk",
        "data",
        "data2",
        "data3",
        "data4",
        "discriminator",
        "ttl",
        "latched",
        "deleted",
        "pull",
        "awsregion",
        "aws:rep:updateregion",
        "aws:rep:updatetime",
        "aws:rep:deleting",
        "eem",
    }
)

DEFAULT_RENAME: Mapping[str, str] = MappingProxyType({"pk": "id"})


@dataclass(frozen=True, slots=True)
class MapContext:
    decrypt: Decrypt | None = None
    extras: Mapping[str, Any] = field(default_factory=dict)


EMPTY_CONTEXT = MapContext()


@dataclass(frozen=True, slots=True)
class FieldPolicy:
    defaults: Mapping[str, Any] = field(default_factory=dict)
    rename: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_RENAME))
    omit: frozenset[str] = DEFAULT_OMIT_FIELDS
    transform: Mapping[str, Transform] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Shared across calls; freeze the tables so no call can mutate them.
        object.__setattr__(self, "defaults", MappingProxyType(dict(self.defaults)))
        object.__setattr__(self, "rename", MappingProxyType(dict(self.rename)))
        object.__setattr__(self, "omit", frozenset(self.omit))
        object.__setattr__(self, "transform", MappingProxyType(dict(self.transform)))


def _present(v: Any) -> bool:
    return v is not None and v is not UNSET


def sort_key_transform(value: Any, *_: Any) -> str:
    """``"children|42"`` -> ``"42"``."""
    parts = str(value).split("|")
    return parts[1] if len(parts) > 1 else ""


def deleted_filter(record: Mapping[str, Any]) -> bool:
    # None means "cleared", not deleted.
    return not record.get("deleted")


class ProjectionMapper:
    def __init__(self, policy: FieldPolicy | None = None):
        self.policy = policy or FieldPolicy()

    async def __call__(self, record: Mapping[str, Any], ctx: MapContext | None = None) -> Record:
        return await self.project(record, ctx)

    async def project(self, record: Mapping[str, Any], ctx: MapContext | None = None) -> Record:
        ctx = ctx or EMPTY_CONTEXT
        policy = self.policy

        decrypted: Record = dict(record)
        if ctx.decrypt is not None:
            decrypted = dict((await ctx.decrypt(decrypted)) or decrypted)

        transformed: Record = {}
        for name, fn in policy.transform.items():
            value = decrypted.get(name)
            if not _present(value):
                continue
            out = fn(value, decrypted, ctx)
            if inspect.isawaitable(out):
                out = await out
            transformed[name] = out

        renamed: Record = {}
        for src, dst in policy.rename.items():
            value = transformed[src] if src in transformed else decrypted.get(src)
            if _present(value):
                renamed[dst] = value

        merged = {**decrypted, **transformed, **renamed}
        result: Record = dict(policy.defaults)
        result.update({k: v for k, v in merged.items() if k not in policy.omit})
        return result


def identity_mapper():
    async def _identity(record: Mapping[str, Any], ctx: MapContext | None = None) -> Record:
        return dict(record)

    return _identity
