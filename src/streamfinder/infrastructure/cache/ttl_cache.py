"""In-memory cache with separate lifetimes for successes and failures.

Failures are kept for a shorter window than successes: a failed lookup is
retried sooner than a successful one is re-verified.
"""

from __future__ import annotations

import time
from collections.abc import Hashable
from typing import Generic, TypeVar

import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")

# Evict expired entries every N put() calls
_EVICT_INTERVAL = 1000

# Maximum number of entries before the oldest are dropped
_MAX_CACHE_SIZE = 10_000


class CacheEntry(Generic[T]):
    """Time-bounded cache entry.  ``value is None`` marks a cached failure."""

    __slots__ = ("value", "created_at", "ttl")

    def __init__(self, value: T | None, ttl: float) -> None:
        self.value = value
        self.created_at = time.monotonic()
        self.ttl = ttl

    @property
    def is_success(self) -> bool:
        return self.value is not None

    @property
    def is_expired(self) -> bool:
        return time.monotonic() - self.created_at >= self.ttl


class TtlCache(Generic[T]):
    """Key-value store with a positive and a (shorter) negative TTL.

    Not thread-safe; safe for single-threaded asyncio because no method
    awaits.

    Args:
        positive_ttl: Seconds a successful value stays valid.
        negative_ttl: Seconds a failure stays valid. Must be shorter.
        max_size: Upper bound on stored entries (oldest evicted first).
    """

    def __init__(
        self,
        *,
        positive_ttl: float,
        negative_ttl: float,
        max_size: int = _MAX_CACHE_SIZE,
    ) -> None:
        if negative_ttl >= positive_ttl:
            raise ValueError(
                f"negative_ttl ({negative_ttl}) must be shorter than "
                f"positive_ttl ({positive_ttl})"
            )
        self.positive_ttl = positive_ttl
        self.negative_ttl = negative_ttl
        self._max_size = max_size
        self._entries: dict[Hashable, CacheEntry[T]] = {}
        self._put_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> CacheEntry[T] | None:
        """Return the fresh entry for *key*, or None when absent/expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired:
            del self._entries[key]
            return None
        return entry

    def put(self, key: Hashable, value: T | None, *, is_success: bool) -> None:
        """Store *value* under the TTL class selected by *is_success*."""
        ttl = self.positive_ttl if is_success else self.negative_ttl
        # Re-insert so that dict order tracks write age
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(value if is_success else None, ttl)

        self._put_count += 1
        if self._put_count % _EVICT_INTERVAL == 0:
            self.evict_expired()
        self._enforce_max_size()

    def invalidate(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def evict_expired(self) -> int:
        """Remove every expired entry; return how many were dropped."""
        expired = [k for k, v in self._entries.items() if v.is_expired]
        for k in expired:
            del self._entries[k]
        if expired:
            log.debug("ttl_cache_evict", evicted=len(expired), size=len(self))
        return len(expired)

    def _enforce_max_size(self) -> None:
        if len(self._entries) <= self._max_size:
            return
        # Python dicts preserve insertion order; pop from the front
        excess = len(self._entries) - self._max_size
        for k in list(self._entries.keys())[:excess]:
            del self._entries[k]
