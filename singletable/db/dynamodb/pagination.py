"""Cursor pagination over a backend that pages natively.

The backend hands back ``(items, native_cursor)`` per round-trip. ``paginate``
keeps asking until it holds at least ``limit`` items or the backend runs dry,
and exposes the backend cursor only when it stopped early because of the
limit. The limit is checked after each full backend page, so a page may hold
up to one backend page more than ``limit``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from ...observability.logging import get_logger
from .cursor import decode_cursor, encode_cursor

log = get_logger("singletable.pagination")


@dataclass(slots=True)
class FetchResult:
    items: list[dict[str, Any]] = field(default_factory=list)
    native_cursor: Any = None


@dataclass(slots=True)
class Page:
    items: list[dict[str, Any]]
    cursor: str | None = None


FetchPage = Callable[[Any], Awaitable[FetchResult]]


async def paginate(fetch_page: FetchPage, *, limit: int, cursor: str | None = None) -> Page:
    lim = max(1, int(limit))
    working = decode_cursor(cursor)
    buffer: list[dict[str, Any]] = []
    next_native: Any = None
    round_trips = 0

    while True:
        result = await fetch_page(working)
        round_trips += 1
        buffer.extend(result.items)

        if result.native_cursor and len(buffer) < lim:
            working = result.native_cursor
            continue

        next_native = result.native_cursor
        break

    page = Page(items=buffer, cursor=encode_cursor(next_native) if next_native else None)
    log.debug(
        "paginate_done",
        limit=lim,
        count=len(page.items),
        round_trips=round_trips,
        has_more=page.cursor is not None,
    )
    return page


async def drain(fetch_page: FetchPage) -> list[dict[str, Any]]:
    working: Any = None
    buffer: list[dict[str, Any]] = []

    while True:
        result = await fetch_page(working)
        buffer.extend(result.items)
        if not result.native_cursor:
            break
        working = result.native_cursor

    log.debug("drain_done", count=len(buffer))
    return buffer
