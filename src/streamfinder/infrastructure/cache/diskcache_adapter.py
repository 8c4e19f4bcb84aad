"""Diskcache adapter - JSON documents in a local SQLite directory."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar

import structlog
from diskcache import Cache as DiskCache

from streamfinder.infrastructure.cache.codec import decode_document, encode_document

log = structlog.get_logger(__name__)

T = TypeVar("T")


class DiskcacheAdapter:
    """CachePort on top of ``diskcache.Cache``.

    diskcache is synchronous, so each call runs in a worker thread; a
    semaphore keeps the number of concurrent SQLite writers small.
    Documents are stored as JSON text, which diskcache keeps unpickled.

    Args:
        directory: Cache directory (created on open).
        ttl_seconds: Expiry used by ``set_json`` without an explicit ttl.
        max_concurrent: Parallel disk operations.
    """

    def __init__(
        self,
        directory: str | Path = "./.cache/streamfinder",
        ttl_seconds: int = 3600,
        max_concurrent: int = 10,
    ) -> None:
        self.directory = Path(directory)
        self.default_ttl = ttl_seconds
        self._cache: DiskCache | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> DiskcacheAdapter:
        if self._cache is None:
            self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info("diskcache_opened", directory=str(self.directory))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._cache is None:
            return
        cache, self._cache = self._cache, None
        await asyncio.to_thread(cache.close)
        log.info("diskcache_closed", directory=str(self.directory))

    def _opened(self) -> DiskCache:
        if self._cache is None:
            raise RuntimeError("DiskcacheAdapter used before 'async with cache:'")
        return self._cache

    async def _run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        async with self._semaphore:
            return await asyncio.to_thread(func, *args, **kwargs)

    async def get_json(self, key: str) -> dict[str, Any] | None:
        raw = await self._run(self._opened().get, key)
        log.debug("diskcache_get", key=key, hit=raw is not None)
        return decode_document(raw, key=key)

    async def set_json(
        self, key: str, value: Mapping[str, Any], *, ttl: int | None = None
    ) -> None:
        expire = self.default_ttl if ttl is None else ttl
        await self._run(self._opened().set, key, encode_document(value), expire=expire)
        log.debug("diskcache_set", key=key, ttl=expire)

    async def delete(self, key: str) -> bool:
        if self._cache is None:
            return False
        return bool(await self._run(self._cache.delete, key))
