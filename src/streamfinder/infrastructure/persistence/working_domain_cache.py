"""Working embed domain marker backed by CachePort (diskcache/redis)."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import structlog

from streamfinder.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

_KEY = "embed:working_domain"


def _parse_marker(document: dict[str, Any]) -> tuple[str, float] | None:
    domain = document.get("domain")
    timestamp = document.get("timestamp")
    if not isinstance(domain, str) or not domain:
        return None
    if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
        return None
    return domain, float(timestamp)


class CacheWorkingDomainStore:
    """Persists the last known working embed domain via CachePort.

    The marker carries its own timestamp and is treated as absent once
    older than ``ttl_seconds``, even if the backend still returns it.
    """

    def __init__(
        self,
        cache: CachePort,
        ttl_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache = cache
        self.ttl = ttl_seconds
        self._clock = clock

    async def save(self, domain: str) -> None:
        marker = {"domain": domain, "timestamp": self._clock()}
        await self.cache.set_json(_KEY, marker, ttl=self.ttl)
        log.debug("working_domain_saved", domain=domain, ttl=self.ttl)

    async def load(self) -> tuple[str, float] | None:
        """Return ``(domain, timestamp)`` while the marker is fresh."""
        document = await self.cache.get_json(_KEY)
        if document is None:
            return None

        marker = _parse_marker(document)
        if marker is None:
            log.warning("working_domain_marker_invalid", fields=sorted(document))
            return None

        domain, timestamp = marker
        if self._clock() - timestamp >= self.ttl:
            log.debug("working_domain_expired", domain=domain)
            return None
        return marker

    async def invalidate(self) -> None:
        deleted = await self.cache.delete(_KEY)
        log.debug("working_domain_invalidated", deleted=deleted)
