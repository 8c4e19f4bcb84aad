"""Integration tests: provider failover -> embed domains -> extraction.

Real components wired together over a real DiskcacheAdapter; HTTP is
mocked with respx.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from streamfinder.application.use_cases.match_streams import MatchStreamsUseCase
from streamfinder.domain.entities import EmbedDomain, MatchSource, StreamKind, UrlFormat
from streamfinder.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from streamfinder.infrastructure.config import AppConfig
from streamfinder.infrastructure.embed import EmbedDomainManager
from streamfinder.infrastructure.extraction import StreamExtractor
from streamfinder.infrastructure.persistence import CacheWorkingDomainStore
from streamfinder.infrastructure.providers import ProviderFailoverResolver
from streamfinder.interfaces.app import create_app

pytestmark = pytest.mark.integration

_API_A = "https://api-a.test/api"
_API_B = "https://api-b.test/api"
_PRIMARY = "https://embed-one.test"
_FALLBACK = "https://embed-two.test"
_PLAYER_PAGE = """
<html><body>
<script>
  var player = new Clappr.Player({
    source: "https://cdn.test/live/main.m3u8?token=abc",
    poster: "/img/poster.jpg"
  });
  var backup = 'file: "/vod/backup.mp4"';
</script>
</body></html>
"""

_DOMAINS = [
    EmbedDomain(url=_PRIMARY, url_format=UrlFormat.PATH_SEGMENTS),
    EmbedDomain(url=_FALLBACK, url_format=UrlFormat.PATH_SEGMENTS),
]


def _domains(client: httpx.AsyncClient, cache: DiskcacheAdapter) -> EmbedDomainManager:
    return EmbedDomainManager(client, _DOMAINS, CacheWorkingDomainStore(cache))


class TestWorkingDomainPersistence:
    @pytest.mark.asyncio()
    async def test_marker_survives_restart(
        self, http_client, diskcache, respx_mock: respx.MockRouter
    ) -> None:
        respx_mock.head(_PRIMARY).mock(side_effect=httpx.ConnectError("down"))
        fallback = respx_mock.head(_FALLBACK).respond(200)

        first = _domains(http_client, diskcache)
        assert await first.resolve_working_domain() == _FALLBACK
        assert fallback.call_count == 1

        # New manager, same persistent cache
        second = _domains(http_client, diskcache)
        assert await second.resolve_working_domain() == _FALLBACK
        assert await second.current_domain() == _FALLBACK
        assert fallback.call_count == 1

    @pytest.mark.asyncio()
    async def test_mark_failed_forces_recheck(
        self, http_client, diskcache, respx_mock: respx.MockRouter
    ) -> None:
        primary = respx_mock.head(_PRIMARY).respond(200)
        manager = _domains(http_client, diskcache)

        assert await manager.resolve_working_domain() == _PRIMARY
        await manager.mark_failed(_PRIMARY)
        assert await diskcache.get_json("embed:working_domain") is None

        respx_mock.head(_FALLBACK).respond(200)
        assert await manager.resolve_working_domain() == _FALLBACK
        assert primary.call_count == 1


class TestMatchToPlayback:
    @pytest.mark.asyncio()
    async def test_provider_listing_to_direct_stream(
        self, http_client, diskcache, respx_mock: respx.MockRouter
    ) -> None:
        respx_mock.get(f"{_API_A}/stream/alpha/m-1").mock(
            side_effect=httpx.ConnectTimeout("slow")
        )
        respx_mock.get(f"{_API_B}/stream/alpha/m-1").respond(
            200, json=[{"streamNo": 1, "language": "English", "hd": True}]
        )
        respx_mock.get(f"{_PRIMARY}/embed/alpha/m-1/1").respond(200, text=_PLAYER_PAGE)

        providers = ProviderFailoverResolver(
            http_client, bases=[_API_A, _API_B], templates=["stream/{source}/{match_id}"]
        )
        extractor = StreamExtractor(http_client, proxies=[""])
        use_case = MatchStreamsUseCase(
            providers=providers,
            extractor=extractor,
            domains=_domains(http_client, diskcache),
        )

        records = await use_case.list_streams("m-1", [MatchSource("alpha", "m-1")])

        assert len(records) == 1
        assert records[0].embed_url == f"{_PRIMARY}/embed/alpha/m-1/1"
        assert records[0].origin_base == _API_B

        target = await use_case.resolve_playback(records[0])

        assert target.is_direct
        assert target.stream is not None
        assert target.stream.url == "https://cdn.test/live/main.m3u8?token=abc"
        assert target.stream.kind is StreamKind.HLS

    @pytest.mark.asyncio()
    async def test_dead_embed_domain_falls_back(
        self, http_client, diskcache, respx_mock: respx.MockRouter
    ) -> None:
        respx_mock.get(f"{_PRIMARY}/embed/alpha/m-1/1").respond(502)
        respx_mock.get(f"{_FALLBACK}/embed/alpha/m-1/1").respond(200, text=_PLAYER_PAGE)

        providers = ProviderFailoverResolver(
            http_client, bases=[_API_A], templates=["stream/{source}/{match_id}"]
        )
        respx_mock.get(f"{_API_A}/stream/alpha/m-1").respond(200, json=[])
        domains = _domains(http_client, diskcache)
        use_case = MatchStreamsUseCase(
            providers=providers,
            extractor=StreamExtractor(http_client, proxies=[""]),
            domains=domains,
        )

        records = await use_case.list_streams("m-1", [MatchSource("alpha", "m-1")])
        target = await use_case.resolve_playback(records[0])
        assert not target.is_direct

        moved = await use_case.fallback_embed(records[0])
        assert moved is not None
        assert moved.embed_url == f"{_FALLBACK}/embed/alpha/m-1/1"

        target = await use_case.resolve_playback(moved)
        assert target.is_direct
        assert await domains.current_domain() == _FALLBACK


class TestApplication:
    def test_app_lifecycle_and_extract(self, tmp_path: Path) -> None:
        config = AppConfig.model_validate(
            {
                "cache": {"dir": str(tmp_path / "cache")},
                "extraction": {"proxies": [""]},
                "providers": {
                    "bases": [_API_A],
                    "templates": ["stream/{source}/{match_id}"],
                },
                "embed": {
                    "domains": [
                        {"url": _PRIMARY, "url_format": "path_segments"},
                        {"url": _FALLBACK, "url_format": "path_segments"},
                    ]
                },
            }
        )

        with respx.mock(assert_all_called=False) as router:
            router.get(f"{_PRIMARY}/embed/alpha/m-1/1").respond(200, text=_PLAYER_PAGE)
            router.get(f"{_API_A}/stream/alpha/m-1").respond(
                200, json={"streams": [{"streamNo": 1}]}
            )

            with TestClient(create_app(config)) as client:
                assert client.get("/healthz").json() == {"status": "ok"}

                resp = client.post(
                    "/api/extract", json={"embedUrl": f"{_PRIMARY}/embed/alpha/m-1/1"}
                )
                data = resp.json()
                assert data["success"] is True
                assert data["hlsUrl"] == "https://cdn.test/live/main.m3u8?token=abc"
                assert data["alternatives"] == [
                    {"url": f"{_PRIMARY}/vod/backup.mp4", "type": "mp4"}
                ]

                streams = client.get("/api/streams/alpha/m-1").json()
                assert streams[0]["embedUrl"] == f"{_PRIMARY}/embed/alpha/m-1/1"
                assert streams[0]["originBase"] == _API_A

                status = client.get("/api/embed-domain").json()
                assert status["currentDomain"] == _PRIMARY
