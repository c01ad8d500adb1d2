from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..db.dynamodb.connector import DynamoConnector, UpdateRequest
from ..db.dynamodb.pagination import Page
from ..db.dynamodb.query import QuerySpec
from ..db.dynamodb.update import now_ms, ttl
from ..mapping.aggregate import DELIMITER, AggregateReconstructor, EntityKind
from ..mapping.projection import MapContext, deleted_filter
from ..observability.logging import get_logger
from ..security.encryption import FieldEncryptor
from ..settings import Settings, get_settings
from .base_repository import Repository

log = get_logger("singletable.repository")


class AggregateRepository(Repository):
    """CRUD for one aggregate kind stored in the shared table.

    The root lives at ``{pk: id, sk: <discriminator>}``; each relation record
    lives at ``{pk: id, sk: "<alias>|<relation id>"}``.
    """

    def __init__(
        self,
        connector: DynamoConnector,
        root: EntityKind,
        relations: Iterable[EntityKind] = (),
        *,
        encryptor: FieldEncryptor | None = None,
        claims: Mapping[str, Any] | None = None,
        settings: Settings | None = None,
        index_name: str = "gsi1",
        save_ttl_days: int | None = None,
        delete_ttl_days: int = 11,
        strict_cardinality: bool = False,
    ):
        self.connector = connector
        self.root = root
        self.relations = tuple(relations)
        self.encryptor = encryptor
        self.claims = dict(claims or {"sub": "system"})
        self.settings = settings or get_settings()
        self.index_name = index_name
        self.save_ttl_days = save_ttl_days
        self.delete_ttl_days = int(delete_ttl_days)
        self._root_mapper = root.mapper()
        self._reconstruct = AggregateReconstructor(
            root, self.relations, strict_cardinality=strict_cardinality
        )

    def _ctx(self) -> MapContext:
        return MapContext(decrypt=self.encryptor.decrypt if self.encryptor else None)

    def _actor(self) -> str:
        return str(self.claims.get("username") or self.claims.get("sub") or "system")

    def _stamp(self, kind: EntityKind, timestamp: int) -> dict[str, Any]:
        return {
            "discriminator": kind.discriminator,
            "timestamp": timestamp,
            "lastModifiedBy": self._actor(),
            "deleted": None,
            "latched": None,
            "ttl": ttl(timestamp, self.save_ttl_days) if self.save_ttl_days else None,
            "awsregion": self.settings.aws_region,
        }

    async def _seal(self, kind: EntityKind, change_set: dict[str, Any]) -> dict[str, Any]:
        if self.encryptor is None or not kind.eem:
            return change_set
        return await self.encryptor.encrypt(kind.eem, change_set)

    async def query(self, *, cursor: str | None = None, limit: int | None = None) -> Page:
        spec = QuerySpec(
            key_name="discriminator",
            key_value=self.root.discriminator,
            index_name=self.index_name,
        )
        page = await self.connector.query(spec, cursor=cursor, limit=limit)
        ctx = self._ctx()
        items = [await self._root_mapper(it, ctx) for it in page.items if deleted_filter(it)]
        return Page(items=items, cursor=page.cursor)

    async def get(self, id: str) -> dict[str, Any]:
        records = await self.connector.get(id)
        return await self._reconstruct(records, self._ctx())

    async def save(self, id: str, input: dict[str, Any]) -> list[dict[str, Any]]:
        timestamp = now_ms()
        aliases = {k.role: k for k in self.relations}
        root_fields = {k: v for k, v in input.items() if k not in aliases}

        batch = [
            UpdateRequest(
                key={"pk": id, "sk": self.root.discriminator},
                change_set=await self._seal(
                    self.root, {**root_fields, **self._stamp(self.root, timestamp)}
                ),
            )
        ]

        # Relations can be added or updated here; they are deleted one by one.
        for alias, kind in aliases.items():
            children = input.get(alias)
            if not children:
                continue
            if isinstance(children, Mapping):
                children = [children]
            for child in children:
                fields = dict(child)
                child_id = fields.pop("id")
                batch.append(
                    UpdateRequest(
                        key={"pk": id, "sk": f"{alias}{DELIMITER}{child_id}"},
                        change_set=await self._seal(
                            kind,
                            {**fields, **self._stamp(kind, timestamp)},
                        ),
                    )
                )

        log.info("aggregate_save", discriminator=self.root.discriminator, id=id, records=len(batch))
        return await self.connector.batch_update(batch)

    async def delete(self, id: str) -> dict[str, Any]:
        return await self._soft_delete({"pk": id, "sk": self.root.discriminator}, self.root)

    async def delete_relation(self, id: str, alias: str, relation_id: str) -> dict[str, Any]:
        kind = next((k for k in self.relations if k.role == alias), None)
        if kind is None:
            raise KeyError(alias)
        return await self._soft_delete({"pk": id, "sk": f"{alias}{DELIMITER}{relation_id}"}, kind)

    async def _soft_delete(self, key: dict[str, Any], kind: EntityKind) -> dict[str, Any]:
        timestamp = now_ms()
        log.info("aggregate_delete", discriminator=kind.discriminator, key=key)
        return await self.connector.update(
            key,
            {
                "discriminator": kind.discriminator,
                "deleted": True,
                "lastModifiedBy": self._actor(),
                "latched": None,
                "ttl": ttl(timestamp, self.delete_ttl_days),
                "timestamp": timestamp,
                "awsregion": self.settings.aws_region,
            },
        )
