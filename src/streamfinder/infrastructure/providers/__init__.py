from .failover import (
    ProviderFailoverResolver,
    extract_items,
    iter_endpoints,
    normalize_item,
)

__all__ = [
    "ProviderFailoverResolver",
    "extract_items",
    "iter_endpoints",
    "normalize_item",
]
