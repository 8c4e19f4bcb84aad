"""Shared test fixtures for the streamfinder test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from streamfinder.domain.entities import EmbedDomain, StreamRecord, UrlFormat

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWorkingDomainStore:
    """In-memory WorkingDomainStore."""

    def __init__(self, domain: str | None = None) -> None:
        self.domain = domain
        self.saved: list[str] = []
        self.invalidations = 0

    async def load(self) -> tuple[str, float] | None:
        if self.domain is None:
            return None
        return self.domain, 0.0

    async def save(self, domain: str) -> None:
        self.domain = domain
        self.saved.append(domain)

    async def invalidate(self) -> None:
        self.domain = None
        self.invalidations += 1


# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------

PRIMARY = "https://embed.primary.test"
FALLBACK = "https://embed.fallback.test"
TERTIARY = "https://embed.tertiary.test"


@pytest.fixture()
def embed_domains() -> list[EmbedDomain]:
    """Primary (query form), fallback and tertiary (path form)."""
    return [
        EmbedDomain(url=PRIMARY, url_format=UrlFormat.QUERY_PARAMS),
        EmbedDomain(url=FALLBACK, url_format=UrlFormat.PATH_SEGMENTS),
        EmbedDomain(url=TERTIARY, url_format=UrlFormat.PATH_SEGMENTS),
    ]


@pytest.fixture()
def stream_record() -> StreamRecord:
    return StreamRecord(
        embed_url=f"{PRIMARY}/?id=match-1&source=alpha&streamNo=1",
        source="alpha",
        match_id="match-1",
        stream_index=1,
    )


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_store() -> FakeWorkingDomainStore:
    return FakeWorkingDomainStore()


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort."""
    cache = AsyncMock()
    cache.get_json = AsyncMock(return_value=None)
    cache.set_json = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.aclose = AsyncMock()
    return cache
