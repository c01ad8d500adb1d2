from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import anyio

from ...observability.logging import get_logger
from ...settings import Settings
from .calls import ddb_call
from .client import build_dynamodb_resource
from .errors import DdbError, DdbInternal
from .pagination import FetchResult, Page, drain, paginate
from .query import QuerySpec
from .update import compile_update

log = get_logger("singletable.dynamodb")


@dataclass(frozen=True, slots=True)
class UpdateRequest:
    key: dict[str, Any]
    change_set: Mapping[str, Any]


class DynamoConnector:
    """Async facade over one boto3 ``Table`` resource.

    The table is injected; build it once per process (see
    ``build_dynamodb_resource``) and share the connector by reference.
    """

    def __init__(self, *, table: Any, table_name: str | None = None, default_limit: int = 25):
        self._table = table
        self.table_name = str(table_name or getattr(table, "name", "") or "")
        self.default_limit = max(1, int(default_limit))

    @classmethod
    def from_settings(cls, settings: Settings, *, resource: Any = None) -> "DynamoConnector":
        if not settings.table_name:
            raise DdbInternal(message="TABLE_NAME is not set", operation="Config")
        res = resource if resource is not None else build_dynamodb_resource(settings)
        return cls(
            table=res.Table(settings.table_name),
            table_name=settings.table_name,
            default_limit=settings.default_page_limit,
        )

    # --- writes ---

    async def update(self, key: dict[str, Any], change_set: Mapping[str, Any]) -> dict[str, Any]:
        kwargs = compile_update(change_set).to_request(key)

        def _op():
            resp = self._table.update_item(**kwargs)
            return resp.get("Attributes") or {}

        return await ddb_call("UpdateItem", _op, table_name=self.table_name, key=key)

    async def batch_update(self, batch: Iterable[UpdateRequest]) -> list[dict[str, Any]]:
        """Issue independent updates concurrently.

        Not transactional: every update runs to completion, then the first
        failure (in batch order) is raised. The others may already have applied.
        """
        requests = list(batch)
        results: list[Any] = [None] * len(requests)

        async def _run(i: int, req: UpdateRequest) -> None:
            try:
                results[i] = await self.update(req.key, req.change_set)
            except DdbError as e:
                results[i] = e

        async with anyio.create_task_group() as tg:
            for i, req in enumerate(requests):
                tg.start_soon(_run, i, req)

        failures = [r for r in results if isinstance(r, DdbError)]
        if failures:
            log.warning("batch_update_failed", failed=len(failures), total=len(requests))
            raise failures[0]
        return results

    # --- reads ---

    async def get(
        self,
        pk_value: Any,
        *,
        index_name: str | None = None,
        pk_name: str | None = None,
        sk: Any = None,
        sk_name: str | None = None,
    ) -> list[dict[str, Any]]:
        """All records of one partition (or the single record when ``sk`` is given).

        Reads a single backend page, so a partition larger than 1MB comes back
        truncated. Use ``query_all`` to read such a partition in full.
        """
        names = {"#pk": pk_name or "pk"}
        values: dict[str, Any] = {":pk": pk_value}
        condition = "#pk = :pk"
        if sk:
            names["#sk"] = sk_name or "sk"
            values[":sk"] = sk
            condition = "#pk = :pk and #sk = :sk"

        kwargs: dict[str, Any] = {
            "KeyConditionExpression": condition,
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            # GSIs do not support strongly consistent reads.
            "ConsistentRead": not index_name,
        }
        if index_name:
            kwargs["IndexName"] = index_name

        def _op():
            return self._table.query(**kwargs).get("Items") or []

        return await ddb_call("Query", _op, table_name=self.table_name, key={names["#pk"]: pk_value})

    def _fetcher(self, spec: QuerySpec, limit: int | None = None):
        base = spec.to_params()
        if limit is not None:
            base["Limit"] = limit

        async def fetch_page(native_cursor: Any) -> FetchResult:
            kwargs = dict(base)
            if native_cursor:
                kwargs["ExclusiveStartKey"] = native_cursor
            resp = await ddb_call(
                "Query",
                lambda: self._table.query(**kwargs),
                table_name=self.table_name,
            )
            return FetchResult(
                items=list(resp.get("Items") or []),
                native_cursor=resp.get("LastEvaluatedKey"),
            )

        return fetch_page

    async def query(self, spec: QuerySpec, *, cursor: str | None = None, limit: int | None = None) -> Page:
        lim = max(1, int(limit or self.default_limit))
        return await paginate(self._fetcher(spec, lim), limit=lim, cursor=cursor)

    async def query_all(self, spec: QuerySpec) -> list[dict[str, Any]]:
        return await drain(self._fetcher(spec))
