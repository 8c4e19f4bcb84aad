"""Redis adapter - JSON documents shared between streamfinder processes."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from streamfinder.infrastructure.cache.codec import decode_document, encode_document

log = structlog.get_logger(__name__)


class RedisAdapter:
    """CachePort on ``redis.asyncio``.

    Keys are namespaced with ``key_prefix`` so several deployments can
    share one database.  Once connected, Redis errors are logged and read
    as misses: a lost marker only costs one extra domain check.

    Args:
        url: Redis URL, e.g. ``redis://localhost:6379/0``.
        ttl_seconds: Expiry used by ``set_json`` without an explicit ttl.
        max_concurrent: Parallel Redis commands.
        key_prefix: Prepended to every key.

    Raises:
        RedisError: On open, when the server does not answer PING.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        ttl_seconds: int = 3600,
        max_concurrent: int = 50,
        key_prefix: str = "streamfinder:",
    ) -> None:
        self.url = url
        self.default_ttl = ttl_seconds
        self.key_prefix = key_prefix
        self._client: Redis | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> RedisAdapter:
        if self._client is not None:
            return self
        client = Redis.from_url(self.url, decode_responses=True)
        try:
            await client.ping()
        except RedisError as exc:
            log.error("redis_connection_failed", url=self.url, error=str(exc))
            await client.aclose()
            raise
        self._client = client
        log.info("redis_connected", url=self.url, key_prefix=self.key_prefix)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.aclose()
        log.info("redis_closed")

    def _opened(self) -> Redis:
        if self._client is None:
            raise RuntimeError("RedisAdapter used before 'async with cache:'")
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get_json(self, key: str) -> dict[str, Any] | None:
        client = self._opened()
        async with self._semaphore:
            try:
                raw = await client.get(self._key(key))
            except RedisError as exc:
                log.warning("redis_get_error", key=key, error=str(exc))
                return None
        log.debug("redis_get", key=key, hit=raw is not None)
        return decode_document(raw, key=key)

    async def set_json(
        self, key: str, value: Mapping[str, Any], *, ttl: int | None = None
    ) -> None:
        client = self._opened()
        expire = self.default_ttl if ttl is None else ttl
        payload = encode_document(value)
        async with self._semaphore:
            try:
                await client.set(self._key(key), payload, ex=expire)
            except RedisError as exc:
                log.warning("redis_set_error", key=key, error=str(exc))
                return
        log.debug("redis_set", key=key, ttl=expire)

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return False
        async with self._semaphore:
            try:
                return await self._client.delete(self._key(key)) > 0
            except RedisError as exc:
                log.warning("redis_delete_error", key=key, error=str(exc))
                return False
