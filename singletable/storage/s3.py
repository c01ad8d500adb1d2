from __future__ import annotations

from typing import Any, Callable, TypeVar

import anyio
from botocore.exceptions import BotoCoreError, ClientError

from ..db.dynamodb.calls import aws_request_id, error_code
from ..db.dynamodb.cursor import decode_cursor, encode_cursor
from ..errors import ObjectStoreError
from ..observability.logging import get_logger
from ..settings import Settings

T = TypeVar("T")

log = get_logger("singletable.s3")


async def s3_call(operation: str, fn: Callable[[], T], *, bucket: str | None = None, key: str | None = None) -> T:
    log.debug("s3_call", operation=operation, bucket=bucket, key=key)
    try:
        return await anyio.to_thread.run_sync(fn)
    except (ClientError, BotoCoreError) as e:
        code = error_code(e) if isinstance(e, ClientError) else None
        log.warning("s3_call_failed", operation=operation, bucket=bucket, key=key, code=code)
        raise ObjectStoreError(
            message=f"S3 request failed ({code or type(e).__name__})",
            operation=operation,
            table_name=bucket,
            key={"Key": key} if key else None,
            aws_request_id=aws_request_id(e) if isinstance(e, ClientError) else None,
            retryable=isinstance(e, BotoCoreError),
            cause=e,
        ) from e


class ObjectStoreConnector:
    def __init__(self, *, client: Any, bucket_name: str | None = None):
        self._client = client
        self.bucket_name = bucket_name

    @classmethod
    def from_settings(cls, settings: Settings, *, client: Any = None) -> "ObjectStoreConnector":
        if client is None:
            from ..db.dynamodb.client import build_s3_client

            client = build_s3_client(settings)
        return cls(client=client, bucket_name=settings.bucket_name)

    def _bucket(self, bucket: str | None) -> str:
        name = (bucket or self.bucket_name or "").strip()
        if not name:
            raise ObjectStoreError(message="BUCKET_NAME is not set", operation="Config")
        return name

    async def list_objects(
        self,
        *,
        prefix: str | None = None,
        delimiter: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
        bucket: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"Bucket": self._bucket(bucket)}
        if prefix:
            params["Prefix"] = prefix
        if delimiter:
            params["Delimiter"] = delimiter
        if limit:
            params["MaxKeys"] = int(limit)
        token = decode_cursor(cursor)
        if token:
            params["ContinuationToken"] = token

        data = await s3_call("ListObjectsV2", lambda: self._client.list_objects_v2(**params), bucket=params["Bucket"])
        return {
            "cursor": encode_cursor(data.get("NextContinuationToken")) if data.get("IsTruncated") else None,
            "data": data,
        }

    async def list_object_versions(
        self,
        *,
        prefix: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
        bucket: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"Bucket": self._bucket(bucket)}
        if prefix:
            params["Prefix"] = prefix
        if limit:
            params["MaxKeys"] = int(limit)
        markers = decode_cursor(cursor)
        if isinstance(markers, dict):
            params.update({k: v for k, v in markers.items() if v})

        data = await s3_call(
            "ListObjectVersions", lambda: self._client.list_object_versions(**params), bucket=params["Bucket"]
        )
        next_cursor = None
        if data.get("IsTruncated"):
            next_cursor = encode_cursor(
                {
                    "KeyMarker": data.get("NextKeyMarker"),
                    "VersionIdMarker": data.get("NextVersionIdMarker"),
                }
            )
        return {"cursor": next_cursor, "data": data}

    async def head_object(self, key: str, *, version_id: str | None = None, bucket: str | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"Bucket": self._bucket(bucket), "Key": key}
        if version_id:
            params["VersionId"] = version_id
        return await s3_call("HeadObject", lambda: self._client.head_object(**params), bucket=params["Bucket"], key=key)

    async def delete_object(self, key: str, *, version_id: str | None = None, bucket: str | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"Bucket": self._bucket(bucket), "Key": key}
        if version_id:
            params["VersionId"] = version_id
        return await s3_call(
            "DeleteObject", lambda: self._client.delete_object(**params), bucket=params["Bucket"], key=key
        )

    async def presigned_url(
        self,
        operation: str,
        key: str,
        *,
        expires_in: int = 900,
        content_type: str | None = None,
    ) -> str:
        """Presigned GET (default) or PUT (``operation="put_object"``) URL."""
        method = "put_object" if operation in ("put_object", "putObject") else "get_object"
        params: dict[str, Any] = {"Bucket": self._bucket(None), "Key": key}
        if content_type and method == "put_object":
            params["ContentType"] = str(content_type)

        return await s3_call(
            "PresignUrl",
            lambda: self._client.generate_presigned_url(
                ClientMethod=method,
                Params=params,
                ExpiresIn=max(60, min(3600, int(expires_in or 900))),
            ),
            bucket=params["Bucket"],
            key=key,
        )
