"""
Base repository interface.

All aggregate repositories implement this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..db.dynamodb.pagination import Page


class Repository(ABC):
    """Base repository interface."""

    @abstractmethod
    async def get(self, id: str) -> dict[str, Any]:
        """Load one aggregate by ID."""

    @abstractmethod
    async def query(self, *, cursor: str | None = None, limit: int | None = None) -> Page:
        """List one page of aggregate roots."""

    @abstractmethod
    async def save(self, id: str, input: dict[str, Any]) -> list[dict[str, Any]]:
        """Create or partially update an aggregate."""

    @abstractmethod
    async def delete(self, id: str) -> dict[str, Any]:
        """Soft-delete an aggregate root."""
