from __future__ import annotations

from typing import Any, Callable, TypeVar

import anyio
from botocore.exceptions import BotoCoreError, ClientError

from ...observability.logging import get_logger
from .errors import (
    DdbConflict,
    DdbError,
    DdbInternal,
    DdbThrottled,
    DdbUnavailable,
    DdbValidation,
)

T = TypeVar("T")

log = get_logger("singletable.dynamodb")

# Reported as retryable so callers can decide; botocore already retried these.
_THROTTLE_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "InternalServerError",
    "ServiceUnavailable",
}


def aws_request_id(e: ClientError) -> str | None:
    return ((e.response or {}).get("ResponseMetadata") or {}).get("RequestId")


def error_code(e: ClientError) -> str | None:
    return ((e.response or {}).get("Error") or {}).get("Code")


def map_botocore_error(
    *,
    operation: str,
    table_name: str | None,
    key: dict[str, Any] | None,
    exc: Exception,
) -> DdbError:
    if isinstance(exc, DdbError):
        return exc

    common: dict[str, Any] = {
        "operation": operation,
        "table_name": table_name,
        "key": key,
        "cause": exc,
    }

    if isinstance(exc, ClientError):
        code = error_code(exc) or ""
        common["aws_request_id"] = aws_request_id(exc)

        if code == "ConditionalCheckFailedException":
            return DdbConflict(message="DynamoDB conditional check failed", **common)

        if code in ("ValidationException", "ParamValidationError"):
            return DdbValidation(message="DynamoDB request validation failed", **common)

        if code in ("AccessDeniedException", "UnrecognizedClientException"):
            return DdbUnavailable(message="DynamoDB access denied", **common)

        if code in _THROTTLE_CODES:
            return DdbThrottled(
                message="DynamoDB request throttled or unavailable",
                retryable=True,
                **common,
            )

        return DdbInternal(message=f"DynamoDB request failed ({code or 'ClientError'})", **common)

    if isinstance(exc, BotoCoreError):
        return DdbUnavailable(message="DynamoDB client error", retryable=True, **common)

    return DdbInternal(message="Unexpected DynamoDB error", **common)


async def ddb_call(
    operation: str,
    fn: Callable[[], T],
    *,
    table_name: str | None = None,
    key: dict[str, Any] | None = None,
) -> T:
    """Run one blocking boto3 call in a worker thread.

    Failures are mapped onto the DdbError taxonomy and raised immediately.
    """
    log.debug("ddb_call", operation=operation, table_name=table_name, key=key)
    try:
        return await anyio.to_thread.run_sync(fn)
    except DdbError:
        raise
    except Exception as e:  # noqa: BLE001
        mapped = map_botocore_error(operation=operation, table_name=table_name, key=key, exc=e)
        log.warning(
            "ddb_call_failed",
            operation=operation,
            table_name=table_name,
            error=type(mapped).__name__,
            aws_request_id=mapped.aws_request_id,
        )
        raise mapped from e
