"""Cache Port - persistent JSON document store with per-key TTL."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class CachePort(Protocol):
    """Port for a small persistent store of JSON documents.

    Values are JSON objects; encoding happens inside the adapter, so
    callers only ever see dicts.  A document that cannot be decoded reads
    as missing.

    Implementations:
      - DiskcacheAdapter (local SQLite directory, no daemon)
      - RedisAdapter (shared across processes)

    Adapters are async context managers:
        async with cache:
            await cache.set_json("key", {"a": 1})
    """

    async def get_json(self, key: str) -> dict[str, Any] | None:
        """Stored document, or None when missing, expired or undecodable."""
        ...

    async def set_json(
        self, key: str, value: Mapping[str, Any], *, ttl: int | None = None
    ) -> None:
        """Store *value* under *key*; ``ttl=None`` uses the adapter default."""
        ...

    async def delete(self, key: str) -> bool:
        """True when a document was removed."""
        ...

    async def aclose(self) -> None: ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
