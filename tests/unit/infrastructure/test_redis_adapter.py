"""Tests for RedisAdapter against a mocked redis.asyncio client."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from streamfinder.infrastructure.cache.codec import decode_document, encode_document
from streamfinder.infrastructure.cache.redis_adapter import RedisAdapter

_FROM_URL = "streamfinder.infrastructure.cache.redis_adapter.Redis.from_url"


@pytest.fixture()
def client() -> AsyncMock:
    mock = AsyncMock()
    mock.get = AsyncMock(return_value=None)
    mock.delete = AsyncMock(return_value=1)
    return mock


@pytest.fixture()
async def adapter(client: AsyncMock) -> RedisAdapter:
    with patch(_FROM_URL, return_value=client):
        async with RedisAdapter(url="redis://cache.test:6379/0", ttl_seconds=60) as opened:
            yield opened


class TestCodec:
    def test_compact_sorted_text(self) -> None:
        assert encode_document({"b": 1, "a": "x"}) == '{"a":"x","b":1}'

    def test_unencodable_value_raises(self) -> None:
        with pytest.raises(TypeError):
            encode_document({"a": object()})

    @pytest.mark.parametrize("raw", [None, "", "nope", "[1]", "42"])
    def test_non_documents_decode_to_none(self, raw: str | None) -> None:
        assert decode_document(raw, key="k") is None


class TestRedisAdapter:
    @pytest.mark.asyncio()
    async def test_open_pings_with_text_responses(self, client: AsyncMock) -> None:
        with patch(_FROM_URL, return_value=client) as from_url:
            async with RedisAdapter(url="redis://cache.test:6379/0"):
                pass

        assert from_url.call_args.kwargs == {"decode_responses": True}
        client.ping.assert_awaited_once()
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_unreachable_server_raises_and_closes(self, client: AsyncMock) -> None:
        client.ping.side_effect = RedisConnectionError("refused")

        with patch(_FROM_URL, return_value=client):
            with pytest.raises(RedisConnectionError):
                async with RedisAdapter():
                    pytest.fail("adapter must not open")

        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_set_json_prefixes_key_and_applies_ttl(self, adapter, client) -> None:
        await adapter.set_json("embed:working_domain", {"domain": "https://e.test"})

        key, payload = client.set.call_args.args
        assert key == "streamfinder:embed:working_domain"
        assert json.loads(payload) == {"domain": "https://e.test"}
        assert client.set.call_args.kwargs == {"ex": 60}

    @pytest.mark.asyncio()
    async def test_get_json_decodes(self, adapter, client) -> None:
        client.get.return_value = '{"domain":"https://e.test"}'

        assert await adapter.get_json("marker") == {"domain": "https://e.test"}
        client.get.assert_awaited_once_with("streamfinder:marker")

    @pytest.mark.asyncio()
    async def test_errors_read_as_miss(self, adapter, client) -> None:
        client.get.side_effect = RedisConnectionError("reset")
        client.delete.side_effect = RedisConnectionError("reset")

        assert await adapter.get_json("marker") is None
        assert await adapter.delete("marker") is False

    @pytest.mark.asyncio()
    async def test_set_error_absorbed(self, adapter, client) -> None:
        client.set.side_effect = RedisConnectionError("reset")

        await adapter.set_json("marker", {"domain": "x"}, ttl=5)

        assert client.set.call_args.kwargs == {"ex": 5}

    @pytest.mark.asyncio()
    async def test_delete_counts(self, adapter, client) -> None:
        client.delete.return_value = 0

        assert await adapter.delete("marker") is False
        client.delete.assert_awaited_once_with("streamfinder:marker")
