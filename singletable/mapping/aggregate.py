"""Fold the records of one partition into a single aggregate object.

The root record (the aggregate's own discriminator) supplies the base fields.
Every other record hangs off the root under its role, the sort-key text
before the first ``|``. Roles with cardinality above 1 collect a list in
input order; the rest hold a single object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping

from ..errors import CardinalityViolation
from ..observability.logging import get_logger
from .projection import (
    FieldPolicy,
    MapContext,
    ProjectionMapper,
    Record,
    deleted_filter,
    identity_mapper,
)

log = get_logger("singletable.aggregate")

DELIMITER = "|"

Mapper = Callable[[Mapping[str, Any], MapContext | None], Awaitable[Record]]


@dataclass(frozen=True, slots=True)
class EntityKind:
    """One discriminator stored in the table.

    ``alias`` is the role prefix used in the sort keys of records that hang
    off an aggregate root (``"<alias>|<id>"``); ``eem`` is the encryption
    metadata handed to the encryptor when records of this kind are saved.
    """

    discriminator: str
    alias: str | None = None
    policy: FieldPolicy = field(default_factory=FieldPolicy)
    cardinality: int = 1
    eem: Mapping[str, Any] = field(default_factory=dict)

    @property
    def role(self) -> str:
        return self.alias or self.discriminator

    def mapper(self) -> ProjectionMapper:
        return ProjectionMapper(self.policy)


def role_of(sort_key: Any, delimiter: str = DELIMITER) -> str:
    return str(sort_key).split(delimiter, 1)[0]


class AggregateReconstructor:
    def __init__(
        self,
        root: EntityKind,
        relations: Iterable[EntityKind] = (),
        *,
        delimiter: str = DELIMITER,
        strict_cardinality: bool = False,
    ):
        relations = tuple(relations)
        self.root = root
        self.aggregate = root.discriminator
        self.delimiter = delimiter
        self.strict_cardinality = bool(strict_cardinality)
        self._mappers: dict[str, Mapper] = {root.discriminator: root.mapper()}
        self._cardinality: dict[str, int] = {}
        for kind in relations:
            self._mappers[kind.discriminator] = kind.mapper()
            self._cardinality[kind.role] = int(kind.cardinality)
        self._identity = identity_mapper()

    @classmethod
    def from_tables(
        cls,
        aggregate: str,
        cardinality: Mapping[str, int],
        mappers: Mapping[str, Mapper],
        *,
        delimiter: str = DELIMITER,
        strict_cardinality: bool = False,
    ) -> "AggregateReconstructor":
        """Build from explicit discriminator->mapper and role->cardinality tables."""
        inst = cls(
            EntityKind(discriminator=aggregate),
            delimiter=delimiter,
            strict_cardinality=strict_cardinality,
        )
        inst._mappers = dict(mappers)
        inst._cardinality = {str(k): int(v) for k, v in cardinality.items()}
        return inst

    def mapper_for(self, discriminator: Any) -> Mapper:
        return self._mappers.get(discriminator) or self._identity

    def cardinality_of(self, role: str) -> int:
        return self._cardinality.get(role, 1)

    async def __call__(self, records: Iterable[Mapping[str, Any]], ctx: MapContext | None = None) -> Record:
        return await self.reconstruct(records, ctx)

    async def reconstruct(self, records: Iterable[Mapping[str, Any]], ctx: MapContext | None = None) -> Record:
        acc: Record = {}
        seen_singular: set[str] = set()

        for rec in records:
            if not deleted_filter(rec):
                continue

            discriminator = rec.get("discriminator")
            mapped = await self.mapper_for(discriminator)(rec, ctx)

            if discriminator == self.aggregate:
                # Relations already folded in win over the root's own fields.
                acc = {**mapped, **acc}
                continue

            role = role_of(rec.get("sk", ""), self.delimiter)
            if self.cardinality_of(role) > 1:
                acc.setdefault(role, []).append(mapped)
                continue

            if role in seen_singular:
                if self.strict_cardinality:
                    raise CardinalityViolation(
                        message=f"More than one record for singular role {role!r}",
                        operation="Reconstruct",
                        key={"pk": rec.get("pk"), "sk": rec.get("sk")},
                        role=role,
                    )
                log.warning("aggregate_cardinality_overwrite", role=role, pk=rec.get("pk"), sk=rec.get("sk"))
            seen_singular.add(role)
            acc[role] = mapped

        return acc
