from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class StoreError(Exception):
    """Base error for everything raised by this package.

    Backend adapters raise subclasses carrying the operation and key that
    failed; callers decide whether `retryable` failures are worth repeating.
    """

    message: str
    operation: str | None = None
    table_name: str | None = None
    key: dict[str, Any] | None = None
    aws_request_id: str | None = None
    retryable: bool = False
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class CursorDecodeError(StoreError):
    """A client-supplied cursor could not be decoded."""


@dataclass(slots=True)
class CardinalityViolation(StoreError):
    """More than one record arrived for a role declared singular."""

    role: str | None = None


@dataclass(slots=True)
class ObjectStoreError(StoreError):
    pass


@dataclass(slots=True)
class EncryptionError(StoreError):
    pass
