"""Embed domain fallback manager.

Tracks which embed-hosting domain is currently usable.  Domains are kept
in priority order (primary first).  A domain that failed at playback or
verification time sits in the failed set for ``failed_ttl`` seconds; the
last verified domain is persisted through a WorkingDomainStore.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import httpx
import structlog

from streamfinder.domain.entities.streams import EmbedDomain
from streamfinder.domain.exceptions import ConfigurationError
from streamfinder.domain.ports.working_domain_store import WorkingDomainStore
from streamfinder.infrastructure.embed.templates import build_embed_url, domain_of

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DomainStatus:
    current_domain: str
    failed_domains: list[str] = field(default_factory=list)
    availability: dict[str, bool] = field(default_factory=dict)


class EmbedDomainManager:
    """Chooses, verifies and demotes embed domains.

    Args:
        http_client: Shared client used for HEAD checks.
        domains: Embed domains in priority order.
        store: Persistence for the working-domain marker.
        verify_timeout: HEAD check timeout in seconds.
        failed_ttl: Seconds a domain stays marked failed.
        strict_status: Treat 5xx check responses as unreachable.

    Raises:
        ConfigurationError: *domains* is empty.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        domains: Sequence[EmbedDomain],
        store: WorkingDomainStore,
        *,
        verify_timeout: float = 3.0,
        failed_ttl: float = 300,
        strict_status: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not domains:
            raise ConfigurationError("No embed domains configured")
        self._http_client = http_client
        self._domains = tuple(domains)
        self._store = store
        self._verify_timeout = verify_timeout
        self._failed_ttl = failed_ttl
        self._strict_status = strict_status
        self._clock = clock
        # domain url -> time it was marked failed
        self._failed: dict[str, float] = {}

    @property
    def domains(self) -> tuple[EmbedDomain, ...]:
        return self._domains

    @property
    def primary(self) -> str:
        return self._domains[0].url

    def get(self, url: str) -> EmbedDomain | None:
        for domain in self._domains:
            if domain.url == url:
                return domain
        return None

    def domain_for(self, embed_url: str) -> str | None:
        """Configured domain *embed_url* was built on, or None."""
        domain = domain_of(embed_url, self._domains)
        return domain.url if domain is not None else None

    def embed_url(
        self, url: str, source: str, match_id: str, stream_no: int = 1
    ) -> str:
        """Render an embed URL on domain *url* (unknown urls use query form)."""
        domain = self.get(url) or EmbedDomain(url=url)
        return build_embed_url(domain, source, match_id, stream_no)

    def is_failed(self, url: str) -> bool:
        marked_at = self._failed.get(url)
        if marked_at is None:
            return False
        if self._clock() - marked_at >= self._failed_ttl:
            del self._failed[url]
            log.debug("embed_domain_failure_expired", domain=url)
            return False
        return True

    def failed_domains(self) -> list[str]:
        return [d.url for d in self._domains if self.is_failed(d.url)]

    def _first_available(self) -> str | None:
        for domain in self._domains:
            if not self.is_failed(domain.url):
                return domain.url
        return None

    async def current_domain(self) -> str:
        """Domain to template new embed URLs with; never None."""
        marker = await self._store.load()
        if marker is not None and not self.is_failed(marker[0]):
            return marker[0]
        return self._first_available() or self.primary

    async def verify(self, url: str) -> bool:
        """HEAD-check *url*; reachable unless the request itself fails."""
        try:
            resp = await self._http_client.head(url, timeout=self._verify_timeout)
        except httpx.TimeoutException:
            log.info("embed_domain_verify_timeout", domain=url)
            return False
        except httpx.HTTPError as exc:
            log.info("embed_domain_verify_error", domain=url, error=str(exc))
            return False

        if self._strict_status and resp.status_code >= 500:
            log.info("embed_domain_verify_status", domain=url, status=resp.status_code)
            return False
        return True

    async def resolve_working_domain(self) -> str:
        """Return the persisted domain, or check in priority order and persist."""
        marker = await self._store.load()
        if marker is not None:
            log.debug("embed_domain_marker_hit", domain=marker[0])
            return marker[0]

        for domain in self._domains:
            if self.is_failed(domain.url):
                continue
            if await self.verify(domain.url):
                await self._store.save(domain.url)
                log.info("embed_domain_resolved", domain=domain.url)
                return domain.url
            self._failed[domain.url] = self._clock()
            log.warning("embed_domain_unreachable", domain=domain.url)

        log.warning("embed_domain_all_failed", fallback=self.primary)
        return self.primary

    async def mark_failed(self, url: str) -> None:
        """Demote *url* and drop the persisted marker so the next resolve re-checks."""
        self._failed[url] = self._clock()
        await self._store.invalidate()
        log.warning("embed_domain_marked_failed", domain=url)

    def next_after(self, url: str) -> str | None:
        """Next non-failed domain after *url* in priority order."""
        urls = [d.url for d in self._domains]
        start = urls.index(url) + 1 if url in urls else 0
        for candidate in urls[start:]:
            if candidate != url and not self.is_failed(candidate):
                return candidate
        return None

    async def reset(self) -> None:
        self._failed.clear()
        await self._store.invalidate()
        log.info("embed_domains_reset", primary=self.primary)

    async def status(self) -> DomainStatus:
        return DomainStatus(
            current_domain=await self.current_domain(),
            failed_domains=self.failed_domains(),
            availability={d.url: not self.is_failed(d.url) for d in self._domains},
        )
