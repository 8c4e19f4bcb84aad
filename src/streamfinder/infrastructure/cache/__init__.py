"""Cache infrastructure - persistent document stores and the in-memory TTL cache."""

from .cache_factory import CacheBackend, create_cache
from .codec import decode_document, encode_document
from .diskcache_adapter import DiskcacheAdapter
from .redis_adapter import RedisAdapter
from .ttl_cache import CacheEntry, TtlCache

__all__ = [
    "CacheBackend",
    "CacheEntry",
    "DiskcacheAdapter",
    "RedisAdapter",
    "TtlCache",
    "create_cache",
    "decode_document",
    "encode_document",
]
