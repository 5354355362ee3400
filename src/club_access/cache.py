"""
club_access.cache — TTL cache for role-derived system capabilities.

Entries are keyed by (user_id, system_role), so a role change produces a new
key and the stale entry simply expires. Only system capabilities are cached;
club-level decisions always read membership state fresh.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from club_access import audit
from club_access.capabilities import SystemCapability
from club_access.config import CAPABILITY_CACHE_TTL_SECONDS


@dataclass(frozen=True)
class CapabilityCacheEntry:
    user_id: str
    system_role: str
    capabilities: tuple[SystemCapability, ...]
    cached_at: float  # clock seconds
    expires_at: float  # clock seconds


class CapabilityCache:
    """
    In-memory capability cache with an injectable clock.

    ``clock`` must return monotonically increasing seconds; tests pass a fake
    to move time forward without sleeping.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = CAPABILITY_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, str], CapabilityCacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, user_id: str, system_role: str) -> list[SystemCapability] | None:
        key = (user_id, str(system_role))
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.expires_at <= self._clock():
                hit = None
            else:
                hit = list(entry.capabilities)
        if hit is None:
            audit.log_cache_event("miss", user_id=user_id, system_role=str(system_role))
        else:
            audit.log_cache_event(
                "hit", user_id=user_id, system_role=str(system_role), capabilities=hit
            )
        return hit

    def set(
        self, user_id: str, system_role: str, capabilities: list[SystemCapability]
    ) -> None:
        now = self._clock()
        entry = CapabilityCacheEntry(
            user_id=user_id,
            system_role=str(system_role),
            capabilities=tuple(capabilities),
            cached_at=now,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._entries[(user_id, str(system_role))] = entry
        audit.log_cache_event(
            "set", user_id=user_id, system_role=str(system_role), capabilities=capabilities
        )

    def clear_user(self, user_id: str) -> int:
        """Drop every entry for ``user_id``; returns the number removed."""
        with self._lock:
            evicted = [self._entries.pop(k) for k in list(self._entries) if k[0] == user_id]
        for entry in evicted:
            audit.log_cache_event("evict", user_id=entry.user_id, system_role=entry.system_role)
        return len(evicted)

    def sweep_expired(self) -> int:
        """Remove expired entries; returns the number removed."""
        now = self._clock()
        with self._lock:
            evicted = [
                self._entries.pop(k) for k, e in list(self._entries.items()) if e.expires_at <= now
            ]
        for entry in evicted:
            audit.log_cache_event("evict", user_id=entry.user_id, system_role=entry.system_role)
        return len(evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def entries(self) -> list[CapabilityCacheEntry]:
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
