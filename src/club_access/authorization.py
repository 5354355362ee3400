"""
club_access.authorization — System-level authorization decisions.

AuthorizationService resolves an identity's system capabilities (cached for
five minutes per user and role) and turns capability checks into structured
grant/deny results with audit logging.

Fail-closed: any error during a check is logged and reported as a denial.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any

from aws_lambda_powertools import Logger

from club_access import audit
from club_access.cache import CapabilityCache
from club_access.capabilities import CapabilityResolver, SystemCapability
from club_access.exceptions import AuthorizationServiceError, InsufficientPrivilegesError
from club_access.models import AuthContext, now_iso

logger = Logger(service="club-access")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthorizationResult:
    granted: bool
    capability: SystemCapability
    reason: str | None
    user_id: str
    system_role: str
    timestamp: str
    resource: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "granted": self.granted,
            "capability": str(self.capability),
            "reason": self.reason,
            "context": {
                "userId": self.user_id,
                "systemRole": self.system_role,
                "timestamp": self.timestamp,
            },
        }


@dataclass(frozen=True)
class AuthorizationContext:
    """An identity together with the system capabilities it holds."""

    identity: AuthContext
    capabilities: tuple[SystemCapability, ...]

    def has_capability(self, capability: SystemCapability) -> bool:
        return capability in self.capabilities

    def can_perform(self, action: str, resource: str | None = None) -> bool:
        try:
            capability = SystemCapability(action)
        except ValueError:
            return False
        return capability in self.capabilities


# ---------------------------------------------------------------------------
# Metric emission
# ---------------------------------------------------------------------------


def _emit_denied_metric(cloudwatch_client: Any, *, capability: str, system_role: str) -> None:
    """Publish an AuthorizationDenied count metric. Never raises."""
    try:
        cloudwatch_client.put_metric_data(
            Namespace="clubs/security",
            MetricData=[
                {
                    "MetricName": "AuthorizationDenied",
                    "Value": 1,
                    "Unit": "Count",
                    "Dimensions": [
                        {"Name": "capability", "Value": capability},
                        {"Name": "system_role", "Value": system_role},
                    ],
                }
            ],
        )
    except Exception:
        logger.exception(
            "Failed to emit AuthorizationDenied metric",
            capability=capability,
            system_role=system_role,
        )


# ---------------------------------------------------------------------------
# AuthorizationService
# ---------------------------------------------------------------------------


class AuthorizationService:
    """
    System capability checks for authenticated identities.

    Construct one per process and inject it; there is no module-level
    singleton. ``cloudwatch_client`` is optional; when supplied, denials are
    counted under clubs/security.
    """

    def __init__(
        self,
        *,
        resolver: CapabilityResolver | None = None,
        cache: CapabilityCache | None = None,
        cloudwatch_client: Any = None,
    ) -> None:
        self._resolver = resolver if resolver is not None else CapabilityResolver()
        self._cache = cache if cache is not None else CapabilityCache()
        self._cloudwatch = cloudwatch_client
        self._sweeper: threading.Timer | None = None

    # -- capability resolution ---------------------------------------------

    def _get_capabilities(self, identity: AuthContext) -> list[SystemCapability]:
        role = str(identity.system_role)
        cached = self._cache.get(identity.user_id, role)
        if cached is not None:
            return cached
        capabilities = self._resolver.derive_capabilities(identity)
        self._cache.set(identity.user_id, role, capabilities)
        return capabilities

    def has_system_capability(self, identity: AuthContext, capability: SystemCapability) -> bool:
        if not identity.is_authenticated:
            return False
        start = time.perf_counter()
        try:
            granted = capability in self._get_capabilities(identity)
        except Exception as exc:
            audit.log_authorization_error(
                user_id=identity.user_id,
                operation="has_system_capability",
                error=exc,
                capability=str(capability),
            )
            return False
        audit.log_performance(
            "has_system_capability",
            round((time.perf_counter() - start) * 1000, 3),
            user_id=identity.user_id,
        )
        return granted

    def require_system_capability(
        self, identity: AuthContext, capability: SystemCapability, resource: str | None = None
    ) -> None:
        """Raise InsufficientPrivilegesError unless ``identity`` holds ``capability``."""
        result = self.authorize(identity, capability, resource)
        if not result.granted:
            raise InsufficientPrivilegesError(
                str(capability), user_id=identity.user_id, resource=resource
            )

    def authorize(
        self,
        identity: AuthContext,
        capability: SystemCapability,
        resource: str | None = None,
    ) -> AuthorizationResult:
        """Return a structured decision. Never raises."""
        start = time.perf_counter()
        role = str(identity.system_role)
        audit.log_authorization_check(
            user_id=identity.user_id, system_role=role, capability=str(capability), resource=resource
        )

        try:
            if not identity.is_authenticated:
                granted, reason = False, "User is not authenticated"
            elif capability in self._get_capabilities(identity):
                granted, reason = True, None
            else:
                granted, reason = False, f"Missing required capability: {capability}"
        except Exception as exc:
            audit.log_authorization_error(
                user_id=identity.user_id,
                operation="authorize",
                error=exc,
                capability=str(capability),
            )
            granted, reason = False, "Authorization service error"

        duration_ms = round((time.perf_counter() - start) * 1000, 3)
        if granted:
            audit.log_authorization_granted(
                user_id=identity.user_id,
                capability=str(capability),
                resource=resource,
                duration_ms=duration_ms,
            )
        else:
            audit.log_authorization_denied(
                user_id=identity.user_id,
                capability=str(capability),
                reason=reason or "",
                resource=resource,
                duration_ms=duration_ms,
            )
            if self._cloudwatch is not None:
                _emit_denied_metric(self._cloudwatch, capability=str(capability), system_role=role)

        return AuthorizationResult(
            granted=granted,
            capability=capability,
            reason=reason,
            user_id=identity.user_id,
            system_role=role,
            timestamp=now_iso(),
            resource=resource,
        )

    def create_authorization_context(self, identity: AuthContext) -> AuthorizationContext:
        if not identity.is_authenticated:
            raise AuthorizationServiceError("User is not authenticated", user_id=identity.user_id)
        start = time.perf_counter()
        try:
            capabilities = self._get_capabilities(identity)
        except Exception as exc:
            audit.log_authorization_error(
                user_id=identity.user_id, operation="create_authorization_context", error=exc
            )
            raise AuthorizationServiceError(
                "Failed to create authorization context", user_id=identity.user_id
            ) from exc
        audit.log_performance(
            "create_authorization_context",
            round((time.perf_counter() - start) * 1000, 3),
            user_id=identity.user_id,
        )
        return AuthorizationContext(identity=identity, capabilities=tuple(capabilities))

    # -- cache management --------------------------------------------------

    def clear_user_cache(self, user_id: str) -> int:
        return self._cache.clear_user(user_id)

    def sweep_expired(self) -> int:
        return self._cache.sweep_expired()

    def get_cache_stats(self) -> dict[str, Any]:
        entries = self._cache.entries()
        return {
            "size": len(entries),
            "ttl_seconds": self._cache.ttl_seconds,
            "entries": [
                {
                    "userId": e.user_id,
                    "systemRole": e.system_role,
                    "capabilities": [str(c) for c in e.capabilities],
                }
                for e in entries
            ],
        }

    def start_background_sweep(self, interval_seconds: float | None = None) -> None:
        """
        Sweep expired cache entries every ``interval_seconds`` on a daemon timer.

        No-op while a sweep is already scheduled.
        """
        if self._sweeper is not None:
            return
        interval = interval_seconds if interval_seconds is not None else self._cache.ttl_seconds

        def _run() -> None:
            try:
                self.sweep_expired()
            except Exception:
                logger.exception("Capability cache sweep failed")
            if self._sweeper is not None:
                self._schedule(interval, _run)

        self._schedule(interval, _run)

    def _schedule(self, interval: float, target: Any) -> None:
        timer = threading.Timer(interval, target)
        timer.daemon = True
        self._sweeper = timer
        timer.start()

    def stop_background_sweep(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            self._sweeper = None
