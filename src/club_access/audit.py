"""
club_access.audit — Structured audit events for authorization decisions.

Every decision the authorization layer makes is logged here so a denial can
be traced back to user, capability and resource.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from aws_lambda_powertools import Logger

logger = Logger(service="club-access")


def log_authorization_check(
    *,
    user_id: str,
    system_role: str,
    capability: str,
    resource: str | None = None,
) -> None:
    logger.info(
        "Authorization check initiated",
        event="authorization_check",
        user_id=user_id,
        system_role=system_role,
        capability=capability,
        resource=resource,
    )


def log_authorization_granted(
    *,
    user_id: str,
    capability: str,
    resource: str | None = None,
    duration_ms: float | None = None,
) -> None:
    logger.info(
        "Authorization granted",
        event="authorization_granted",
        user_id=user_id,
        capability=capability,
        resource=resource,
        duration_ms=duration_ms,
    )


def log_authorization_denied(
    *,
    user_id: str,
    capability: str,
    reason: str,
    resource: str | None = None,
    duration_ms: float | None = None,
) -> None:
    logger.warning(
        "Authorization denied",
        event="authorization_denied",
        user_id=user_id,
        capability=capability,
        reason=reason,
        resource=resource,
        duration_ms=duration_ms,
    )


def log_authorization_error(
    *,
    user_id: str,
    operation: str,
    error: BaseException,
    capability: str | None = None,
) -> None:
    logger.error(
        "Authorization error",
        event="authorization_error",
        user_id=user_id,
        operation=operation,
        capability=capability,
        error_type=type(error).__name__,
        error=str(error),
    )


def log_cache_event(
    event: str,
    *,
    user_id: str,
    system_role: str,
    capabilities: Iterable[Any] | None = None,
) -> None:
    logger.debug(
        f"Authorization cache {event}",
        event=f"cache_{event}",
        user_id=user_id,
        system_role=system_role,
        capabilities=[str(c) for c in capabilities] if capabilities is not None else None,
    )


def log_performance(operation: str, duration_ms: float, *, user_id: str | None = None) -> None:
    logger.info(
        "Authorization performance metrics",
        event="authorization_performance",
        operation=operation,
        duration_ms=duration_ms,
        user_id=user_id,
    )
