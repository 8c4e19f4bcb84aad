"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from streamfinder.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from streamfinder.application.use_cases.match_streams import MatchStreamsUseCase
    from streamfinder.domain.ports import CachePort
    from streamfinder.infrastructure.embed import EmbedDomainManager
    from streamfinder.infrastructure.extraction import StreamExtractor
    from streamfinder.infrastructure.providers import ProviderFailoverResolver


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CachePort
    http_client: httpx.AsyncClient

    # Stream resolution
    extractor: StreamExtractor
    providers: ProviderFailoverResolver
    embed_domains: EmbedDomainManager

    # Application Services
    match_streams_uc: MatchStreamsUseCase
