"""
club_access.config — Environment-driven settings and the shared DynamoDB resource.

Environment:
    MAIN_TABLE_NAME   single table holding clubs, users and memberships
    AWS_REGION        region for the lazily created boto3 resource
"""

from __future__ import annotations

import os
from typing import Any

import boto3

_TABLE_NAME_ENV = "MAIN_TABLE_NAME"
DEFAULT_TABLE_NAME = "club-access-main"

GSI1_INDEX_NAME = "GSI1"
GSI2_INDEX_NAME = "GSI2"

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100

CAPABILITY_CACHE_TTL_SECONDS: int = 5 * 60  # 5 minutes

_dynamodb: Any = None


def table_name() -> str:
    return os.environ.get(_TABLE_NAME_ENV, DEFAULT_TABLE_NAME)


def get_aws_region() -> str:
    region = os.environ.get("AWS_REGION", "").strip()
    if not region:
        raise RuntimeError("AWS_REGION environment variable not set")
    return region


def get_dynamodb() -> Any:
    """Return a process-wide boto3 DynamoDB resource, creating it on first use."""
    global _dynamodb
    if _dynamodb is None:
        _dynamodb = boto3.resource("dynamodb", region_name=get_aws_region())
    return _dynamodb


def reset_dynamodb() -> None:
    global _dynamodb
    _dynamodb = None
