"""Composition root: builds every long-lived component from AppConfig."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from streamfinder.application.use_cases.match_streams import MatchStreamsUseCase
from streamfinder.domain.ports.cache import CachePort
from streamfinder.infrastructure.cache.cache_factory import create_cache
from streamfinder.infrastructure.config.schema import AppConfig
from streamfinder.infrastructure.embed import EmbedDomainManager
from streamfinder.infrastructure.extraction import StreamExtractor
from streamfinder.infrastructure.persistence import CacheWorkingDomainStore
from streamfinder.infrastructure.providers import ProviderFailoverResolver
from streamfinder.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


@dataclass
class Services:
    """Everything a request handler or CLI command may need."""

    cache: CachePort
    http_client: httpx.AsyncClient
    extractor: StreamExtractor
    providers: ProviderFailoverResolver
    embed_domains: EmbedDomainManager
    match_streams_uc: MatchStreamsUseCase


def build_services(
    config: AppConfig, *, cache: CachePort, http_client: httpx.AsyncClient
) -> Services:
    """Wire the resolution components.

    Raises:
        ConfigurationError: A required connector is missing.
    """
    extraction = config.extraction
    extractor = StreamExtractor(
        http_client,
        intermediary_url=extraction.intermediary_url,
        proxies=extraction.proxies,
        timeout=extraction.timeout_seconds,
        success_ttl=extraction.success_ttl_seconds,
        failure_ttl=extraction.failure_ttl_seconds,
        follow_iframes=extraction.follow_iframes,
        user_agent=config.http_user_agent,
    )

    providers_cfg = config.providers
    providers = ProviderFailoverResolver(
        http_client,
        bases=providers_cfg.bases,
        templates=providers_cfg.templates,
        proxies=providers_cfg.proxies,
        timeout=providers_cfg.timeout_seconds,
        results_ttl=providers_cfg.results_ttl_seconds,
        empty_ttl=providers_cfg.empty_ttl_seconds,
    )

    embed = config.embed
    embed_domains = EmbedDomainManager(
        http_client,
        embed.embed_domains(),
        CacheWorkingDomainStore(cache, ttl_seconds=embed.marker_ttl_seconds),
        verify_timeout=embed.verify_timeout_seconds,
        failed_ttl=embed.failed_ttl_seconds,
        strict_status=embed.verify_strict_status,
    )

    match_streams_uc = MatchStreamsUseCase(
        providers=providers,
        extractor=extractor,
        domains=embed_domains,
        source_priority=providers_cfg.source_priority,
        fallback_sources=providers_cfg.fallback_sources,
    )

    log.info(
        "services_initialized",
        provider_endpoints=len(providers_cfg.endpoint_pairs()),
        proxies=len(extraction.proxies),
        intermediary=bool(extraction.intermediary_url),
        embed_domains=len(embed.domains),
    )
    return Services(
        cache=cache,
        http_client=http_client,
        extractor=extractor,
        providers=providers,
        embed_domains=embed_domains,
        match_streams_uc=match_streams_uc,
    )


def _create_http_client(config: AppConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=config.http_follow_redirects,
    )


@asynccontextmanager
async def open_services(config: AppConfig) -> AsyncIterator[Services]:
    """Create cache + HTTP client, wire services, and close both on exit.

    Order matters:
        1. Cache (working-domain marker persistence)
        2. HTTP client (shared by extractor, providers, domain checks)
        3. Resolution components
    """
    cache = create_cache(
        backend=config.cache.backend,
        directory=str(config.cache.directory),
        redis_url=config.cache.redis_url,
        ttl_seconds=config.cache.ttl_seconds,
        max_concurrent=config.cache.max_concurrent,
    )
    await cache.__aenter__()
    log.info("cache_initialized", backend=config.cache.backend)
    try:
        http_client = _create_http_client(config)
        log.info("http_client_initialized", timeout=config.http_timeout_seconds)
        try:
            yield build_services(config, cache=cache, http_client=http_client)
        finally:
            await http_client.aclose()
            log.info("http_client_closed")
    finally:
        await cache.aclose()
        log.info("cache_closed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: initialize and clean up all resources (DI Composition Root)."""
    state = cast(AppState, app.state)

    async with open_services(state.config) as services:
        state.cache = services.cache
        state.http_client = services.http_client
        state.extractor = services.extractor
        state.providers = services.providers
        state.embed_domains = services.embed_domains
        state.match_streams_uc = services.match_streams_uc

        log.info("app_startup_complete")
        yield

    log.info("app_shutdown_complete")
