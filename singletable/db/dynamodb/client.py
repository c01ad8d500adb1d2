from __future__ import annotations

import boto3
from botocore.config import Config

from ...settings import Settings


def botocore_config(timeout_ms: int) -> Config:
    # Retries and timeouts belong to botocore; the connectors never retry.
    timeout_s = max(1, int(timeout_ms)) / 1000
    return Config(
        retries={"max_attempts": 10, "mode": "adaptive"},
        connect_timeout=timeout_s,
        read_timeout=timeout_s,
    )


def build_dynamodb_resource(settings: Settings, **client_kwargs):
    """Build the process's DynamoDB resource once, at startup.

    Pass the result (or tables from it) to the components that need it.
    """
    return boto3.resource(
        "dynamodb",
        region_name=settings.aws_region,
        config=botocore_config(settings.dynamodb_timeout_ms),
        **client_kwargs,
    )


def build_s3_client(settings: Settings, **client_kwargs):
    return boto3.client(
        "s3",
        region_name=settings.aws_region,
        config=botocore_config(settings.s3_timeout_ms),
        **client_kwargs,
    )
