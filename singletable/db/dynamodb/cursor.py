"""Opaque continuation tokens.

A cursor is the standard base64 of the compact UTF-8 JSON form of one
backend-native pagination key. Clients only ever hand it back verbatim.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

import simplejson

from ...errors import CursorDecodeError


def _json_default(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return base64.b64encode(bytes(v)).decode("ascii")
    raise TypeError(f"Cannot encode {type(v).__name__} in a cursor")


def encode_cursor(native: Any) -> str | None:
    if native is None or native == {}:
        return None

    # boto3's resource layer hands numbers back as Decimal; keep every digit.
    raw = simplejson.dumps(
        native,
        separators=(",", ":"),
        ensure_ascii=False,
        use_decimal=True,
        default=_json_default,
    )
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str | None) -> Any:
    if not cursor:
        return None

    try:
        raw = base64.b64decode(str(cursor).encode("ascii"), validate=True)
        return simplejson.loads(raw.decode("utf-8"), use_decimal=True)
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise CursorDecodeError(message="Invalid cursor", operation="DecodeCursor", cause=e) from e
