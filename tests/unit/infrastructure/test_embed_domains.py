"""Tests for EmbedDomainManager."""

from __future__ import annotations

import httpx
import pytest
import respx

from streamfinder.domain.entities import EmbedDomain
from streamfinder.domain.exceptions import ConfigurationError
from streamfinder.infrastructure.embed.domains import EmbedDomainManager

PRIMARY = "https://embed.primary.test"
FALLBACK = "https://embed.fallback.test"
TERTIARY = "https://embed.tertiary.test"


@pytest.fixture()
def manager(embed_domains, fake_store, fake_clock) -> EmbedDomainManager:
    return EmbedDomainManager(
        httpx.AsyncClient(), embed_domains, fake_store, clock=fake_clock
    )


class TestConstruction:
    def test_empty_domains_rejected(self, fake_store) -> None:
        with pytest.raises(ConfigurationError):
            EmbedDomainManager(httpx.AsyncClient(), [], fake_store)

    def test_primary_is_first(self, manager: EmbedDomainManager) -> None:
        assert manager.primary == PRIMARY

    def test_get(self, manager: EmbedDomainManager) -> None:
        assert manager.get(FALLBACK) == manager.domains[1]
        assert manager.get("https://other.test") is None


class TestEmbedUrls:
    def test_query_form(self, manager: EmbedDomainManager) -> None:
        url = manager.embed_url(PRIMARY, "alpha", "match-1", 2)
        assert url == f"{PRIMARY}/?id=match-1&source=alpha&streamNo=2"

    def test_path_form(self, manager: EmbedDomainManager) -> None:
        url = manager.embed_url(FALLBACK, "alpha", "match-1")
        assert url == f"{FALLBACK}/embed/alpha/match-1/1"

    def test_unknown_domain_uses_query_form(self, manager: EmbedDomainManager) -> None:
        url = manager.embed_url("https://other.test", "alpha", "m")
        assert url == "https://other.test/?id=m&source=alpha&streamNo=1"

    def test_domain_for(self, manager: EmbedDomainManager) -> None:
        assert manager.domain_for(f"{TERTIARY}/embed/a/b/1") == TERTIARY
        assert manager.domain_for("https://elsewhere.test/embed") is None


class TestVerify:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_any_response_is_reachable(self, manager: EmbedDomainManager) -> None:
        respx.head(PRIMARY).respond(404)
        assert await manager.verify(PRIMARY) is True

    @respx.mock
    @pytest.mark.asyncio()
    async def test_server_error_reachable_by_default(
        self, manager: EmbedDomainManager
    ) -> None:
        respx.head(PRIMARY).respond(503)
        assert await manager.verify(PRIMARY) is True

    @respx.mock
    @pytest.mark.asyncio()
    async def test_strict_status_rejects_server_error(
        self, embed_domains, fake_store
    ) -> None:
        respx.head(PRIMARY).respond(503)
        strict = EmbedDomainManager(
            httpx.AsyncClient(), embed_domains, fake_store, strict_status=True
        )
        assert await strict.verify(PRIMARY) is False

    @respx.mock
    @pytest.mark.asyncio()
    async def test_timeout_unreachable(self, manager: EmbedDomainManager) -> None:
        respx.head(PRIMARY).mock(side_effect=httpx.ConnectTimeout("timeout"))
        assert await manager.verify(PRIMARY) is False

    @respx.mock
    @pytest.mark.asyncio()
    async def test_transport_error_unreachable(self, manager: EmbedDomainManager) -> None:
        respx.head(PRIMARY).mock(side_effect=httpx.ConnectError("refused"))
        assert await manager.verify(PRIMARY) is False


class TestResolveWorkingDomain:
    @pytest.mark.asyncio()
    async def test_persisted_marker_wins(self, manager, fake_store) -> None:
        fake_store.domain = FALLBACK
        assert await manager.resolve_working_domain() == FALLBACK
        assert fake_store.saved == []

    @respx.mock
    @pytest.mark.asyncio()
    async def test_first_reachable_persisted(self, manager, fake_store) -> None:
        respx.head(PRIMARY).respond(200)
        assert await manager.resolve_working_domain() == PRIMARY
        assert fake_store.saved == [PRIMARY]

    @respx.mock
    @pytest.mark.asyncio()
    async def test_unreachable_domains_skipped_and_marked(
        self, manager, fake_store
    ) -> None:
        respx.head(PRIMARY).mock(side_effect=httpx.ConnectError("down"))
        respx.head(FALLBACK).mock(side_effect=httpx.ConnectTimeout("slow"))
        respx.head(TERTIARY).respond(200)

        assert await manager.resolve_working_domain() == TERTIARY
        assert fake_store.saved == [TERTIARY]
        assert manager.failed_domains() == [PRIMARY, FALLBACK]

    @respx.mock
    @pytest.mark.asyncio()
    async def test_all_unreachable_returns_primary(self, manager, fake_store) -> None:
        respx.head(PRIMARY).mock(side_effect=httpx.ConnectError("down"))
        respx.head(FALLBACK).mock(side_effect=httpx.ConnectError("down"))
        respx.head(TERTIARY).mock(side_effect=httpx.ConnectError("down"))

        assert await manager.resolve_working_domain() == PRIMARY
        assert fake_store.saved == []

    @respx.mock
    @pytest.mark.asyncio()
    async def test_failed_domains_skipped(self, manager) -> None:
        primary = respx.head(PRIMARY).respond(200)
        respx.head(FALLBACK).respond(200)
        await manager.mark_failed(PRIMARY)

        assert await manager.resolve_working_domain() == FALLBACK
        assert primary.call_count == 0


class TestFailover:
    @pytest.mark.asyncio()
    async def test_primary_and_fallback_failed_yields_tertiary(self, manager) -> None:
        await manager.mark_failed(PRIMARY)
        await manager.mark_failed(FALLBACK)

        assert await manager.current_domain() == TERTIARY
        assert manager.next_after(PRIMARY) == TERTIARY

    @pytest.mark.asyncio()
    async def test_all_failed_current_is_primary(self, manager) -> None:
        for url in (PRIMARY, FALLBACK, TERTIARY):
            await manager.mark_failed(url)

        assert await manager.current_domain() == PRIMARY
        assert manager.next_after(PRIMARY) is None

    @pytest.mark.asyncio()
    async def test_mark_failed_invalidates_marker(self, manager, fake_store) -> None:
        fake_store.domain = PRIMARY

        await manager.mark_failed(PRIMARY)

        assert fake_store.domain is None
        assert fake_store.invalidations == 1

    @pytest.mark.asyncio()
    async def test_failed_marker_ignored(self, manager, fake_store) -> None:
        fake_store.domain = PRIMARY
        await manager.mark_failed(FALLBACK)
        fake_store.domain = FALLBACK

        assert await manager.current_domain() == PRIMARY

    def test_next_after_in_order(self, manager: EmbedDomainManager) -> None:
        assert manager.next_after(PRIMARY) == FALLBACK
        assert manager.next_after(FALLBACK) == TERTIARY
        assert manager.next_after(TERTIARY) is None

    def test_next_after_unknown_searches_from_start(
        self, manager: EmbedDomainManager
    ) -> None:
        assert manager.next_after("https://other.test") == PRIMARY

    @pytest.mark.asyncio()
    async def test_failure_expires(self, manager, fake_clock) -> None:
        await manager.mark_failed(PRIMARY)
        assert manager.is_failed(PRIMARY)

        fake_clock.advance(299)
        assert manager.is_failed(PRIMARY)

        fake_clock.advance(1)
        assert not manager.is_failed(PRIMARY)
        assert await manager.current_domain() == PRIMARY


class TestResetAndStatus:
    @pytest.mark.asyncio()
    async def test_reset_clears_failures(self, manager, fake_store) -> None:
        await manager.mark_failed(PRIMARY)
        await manager.mark_failed(FALLBACK)

        await manager.reset()

        assert manager.failed_domains() == []
        assert await manager.current_domain() == PRIMARY
        assert fake_store.invalidations == 3

    @pytest.mark.asyncio()
    async def test_status(self, manager) -> None:
        await manager.mark_failed(PRIMARY)

        status = await manager.status()

        assert status.current_domain == FALLBACK
        assert status.failed_domains == [PRIMARY]
        assert status.availability == {PRIMARY: False, FALLBACK: True, TERTIARY: True}

    @pytest.mark.asyncio()
    async def test_custom_domain_list(self, fake_store) -> None:
        manager = EmbedDomainManager(
            httpx.AsyncClient(), [EmbedDomain(url="https://only.test")], fake_store
        )
        assert await manager.current_domain() == "https://only.test"
