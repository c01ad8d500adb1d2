from .aggregate import AggregateReconstructor, EntityKind, role_of
from .projection import (
    DEFAULT_OMIT_FIELDS,
    DEFAULT_RENAME,
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
    "EntityKind",
    "FieldPolicy",
    "MapContext",
    "ProjectionMapper",
    "deleted_filter",
    "role_of",
    "sort_key_transform",
]
