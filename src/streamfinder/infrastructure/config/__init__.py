from __future__ import annotations

from .load import load_config
from .schema import (
    AppConfig,
    CacheConfig,
    EmbedConfig,
    EnvOverrides,
    ExtractionConfig,
    ProvidersConfig,
)

__all__ = [
    "AppConfig",
    "CacheConfig",
    "EmbedConfig",
    "EnvOverrides",
    "ExtractionConfig",
    "ProvidersConfig",
    "load_config",
]
