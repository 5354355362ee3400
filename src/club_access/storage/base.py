"""
club_access.storage.base — Shared plumbing for the single-table repositories.

  - table/client wiring with an injectable boto3 DynamoDB resource
  - timed operations: every call logs operation name and duration; storage
    failures are logged and re-raised as InternalError, domain errors pass
  - transactional multi-item writes
  - cursor pagination helpers (opaque base64 JSON cursors)
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from club_access import config
from club_access.exceptions import ClubAccessError, InternalError, InvalidCursorError, ValidationError

logger = Logger(service="club-access")


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _is_conditional_check_failed(exc: ClientError) -> bool:
    """True for a failed condition on a single write or inside a transaction."""
    code = _error_code(exc)
    if code == "ConditionalCheckFailedException":
        return True
    if code != "TransactionCanceledException":
        return False
    reasons = exc.response.get("CancellationReasons") or []
    if any(r.get("Code") == "ConditionalCheckFailed" for r in reasons if isinstance(r, dict)):
        return True
    return "ConditionalCheckFailed" in str(exc.response.get("Error", {}).get("Message", ""))


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def normalize_limit(limit: int | None) -> int:
    if limit is None:
        return config.DEFAULT_PAGE_LIMIT
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
        raise ValidationError("Limit must be a positive integer")
    return min(limit, config.MAX_PAGE_LIMIT)


def encode_cursor(data: dict[str, str]) -> str:
    raw = json.dumps(data, separators=(",", ":"), sort_keys=True)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str, *fields: str) -> dict[str, str]:
    """Decode ``cursor`` and check that every field in ``fields`` is a non-empty string."""
    try:
        data = json.loads(base64.b64decode(cursor.encode("ascii"), validate=True))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise InvalidCursorError() from exc
    if not isinstance(data, dict):
        raise InvalidCursorError()
    for name in fields:
        value = data.get(name)
        if not isinstance(value, str) or not value:
            raise InvalidCursorError()
    return data


def _omit_none(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in item.items() if v is not None}


# ---------------------------------------------------------------------------
# BaseRepository
# ---------------------------------------------------------------------------


class BaseRepository:
    """Table handle plus the helpers every repository shares."""

    def __init__(self, *, table_name: str | None = None, dynamodb_resource: Any = None) -> None:
        self._table_name = table_name or config.table_name()
        self._dynamodb: Any = dynamodb_resource or config.get_dynamodb()
        self._table: Any = self._dynamodb.Table(self._table_name)
        # The resource's client serialises plain Python values, unlike a bare boto3 client.
        self._client: Any = self._dynamodb.meta.client

    @property
    def table_name(self) -> str:
        return self._table_name

    @contextmanager
    def _operation(self, operation: str, **context: Any) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        except ClubAccessError:
            logger.debug(
                "Repository operation rejected",
                operation=operation,
                duration_ms=_elapsed_ms(start),
                **context,
            )
            raise
        except Exception as exc:
            logger.exception(
                "Repository operation failed",
                operation=operation,
                duration_ms=_elapsed_ms(start),
                error_code=_error_code(exc) if isinstance(exc, ClientError) else None,
                **context,
            )
            raise InternalError(f"Storage operation failed: {operation}") from exc
        logger.debug(
            "Repository operation completed",
            operation=operation,
            duration_ms=_elapsed_ms(start),
            **context,
        )

    def _transact_write(self, items: list[dict[str, Any]]) -> None:
        """Write every item or none. Each entry is one TransactItems element."""
        self._client.transact_write_items(TransactItems=items)

    def _put(
        self,
        item: dict[str, Any],
        condition: str | None = None,
        *,
        names: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        put: dict[str, Any] = {"TableName": self._table_name, "Item": _omit_none(item)}
        if condition is not None:
            put["ConditionExpression"] = condition
        if names:
            put["ExpressionAttributeNames"] = names
        if values:
            put["ExpressionAttributeValues"] = values
        return {"Put": put}

    def _delete(self, key: dict[str, str]) -> dict[str, Any]:
        return {"Delete": {"TableName": self._table_name, "Key": key}}

    def _query_page(self, kwargs: dict[str, Any], limit: int) -> tuple[list[dict[str, Any]], bool]:
        """
        Collect up to ``limit`` items and report whether more remain.

        Requests ``limit + 1`` items per call and follows LastEvaluatedKey, so
        filter expressions that drop items still yield full pages.
        """
        collected: list[dict[str, Any]] = []
        request = dict(kwargs, Limit=limit + 1)
        while True:
            response = self._table.query(**request)
            collected.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if len(collected) > limit or not last_key:
                break
            request["ExclusiveStartKey"] = last_key
        return collected[:limit], len(collected) > limit

    def _query_all(self, kwargs: dict[str, Any]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        request = dict(kwargs)
        while True:
            response = self._table.query(**request)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            request["ExclusiveStartKey"] = last_key


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)
