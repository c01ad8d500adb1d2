"""Data access for single-table DynamoDB designs."""

from .db.dynamodb.connector import DynamoConnector, UpdateRequest
from .db.dynamodb.cursor import decode_cursor, encode_cursor
from .db.dynamodb.pagination import FetchResult, Page, drain, paginate
from .db.dynamodb.query import QuerySpec
from .db.dynamodb.update import UNSET, UpdateStatement, compile_update, now_ms, ttl
from .mapping import (
    DEFAULT_OMIT_FIELDS,
    DEFAULT_RENAME,
    AggregateReconstructor,
    EntityKind,
    FieldPolicy,
    MapContext,
    ProjectionMapper,
    deleted_filter,
    sort_key_transform,
)

__all__ = [
    "AggregateReconstructor",
    "DEFAULT_OMIT_FIELDS",
    "DEFAULT_RENAME",
    "DynamoConnector",
    "EntityKind",
    "FetchResult",
    "FieldPolicy",
    "MapContext",
    "Page",
    "ProjectionMapper",
    "QuerySpec",
    "UNSET",
    "UpdateRequest",
    "UpdateStatement",
    "compile_update",
    "decode_cursor",
    "deleted_filter",
    "drain",
    "encode_cursor",
    "now_ms",
    "paginate",
    "sort_key_transform",
    "ttl",
]
