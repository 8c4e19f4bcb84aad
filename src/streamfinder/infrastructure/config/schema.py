"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from streamfinder.domain.entities import EmbedDomain, ProviderEndpoint, UrlFormat

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


def _require_positive(name: str, v: float) -> float:
    if v <= 0:
        raise ValueError(f"{name} must be > 0")
    return v


class CacheConfig(BaseSettings):
    """Persistent cache configuration (backend-agnostic)."""

    backend: Literal["diskcache", "redis"] = Field(
        default="diskcache",
        description="Cache backend: 'diskcache' (SQLite) or 'redis'",
    )

    # Diskcache settings
    directory: Path = Field(
        default=Path("./.cache/streamfinder"),
        alias="dir",
        description="Diskcache SQLite DB path",
    )

    # Redis settings
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (only when backend=redis)",
    )

    # Shared settings
    ttl_seconds: int = Field(
        default=3600,
        description="Default TTL for cache entries (seconds)",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel cache ops (semaphore limit)",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",  # Env vars: CACHE_BACKEND, CACHE_REDIS_URL, ...
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_directory(cls, v: Any) -> Path:
        return _normalize_path(v)


class ExtractionConfig(BaseModel):
    """Embed page extraction: intermediary service, proxies, outcome TTLs."""

    intermediary_url: Optional[str] = Field(
        default=None,
        description=(
            "Server-side extraction endpoint (POST {embedUrl} -> {hlsUrl}). "
            "Unset = client-side path only."
        ),
    )
    proxies: list[str] = Field(
        default_factory=list,
        description="Forwarding proxy prefixes tried in order ('' = direct fetch).",
    )
    timeout_seconds: float = Field(
        default=10.0,
        description="Timeout per page fetch / intermediary call.",
    )
    success_ttl_seconds: float = Field(
        default=600,
        description="How long a found stream is served from cache.",
    )
    failure_ttl_seconds: float = Field(
        default=300,
        description="How long a failed extraction is remembered (shorter).",
    )
    follow_iframes: bool = Field(
        default=True,
        description="Follow one nested <iframe> when a page yields no stream.",
    )

    @field_validator("timeout_seconds", "success_ttl_seconds", "failure_ttl_seconds")
    @classmethod
    def _validate_positive(cls, v: float, info: Any) -> float:
        return _require_positive(info.field_name, v)

    @model_validator(mode="after")
    def _validate_ttls(self) -> "ExtractionConfig":
        if self.failure_ttl_seconds >= self.success_ttl_seconds:
            raise ValueError(
                "extraction.failure_ttl_seconds must be shorter than "
                "extraction.success_ttl_seconds"
            )
        return self


class ProvidersConfig(BaseModel):
    """Provider API mirrors and stream aggregation settings."""

    bases: list[str] = Field(
        default_factory=list,
        description="Provider API base URLs, tried in order.",
    )
    templates: list[str] = Field(
        default_factory=list,
        description="Endpoint templates with {source} and {match_id} placeholders.",
    )
    proxies: list[str] = Field(
        default_factory=list,
        description="Forwarding proxy prefixes retried after all direct endpoints fail.",
    )
    timeout_seconds: float = Field(
        default=3.0,
        description="Timeout per provider request.",
    )
    results_ttl_seconds: float = Field(
        default=900,
        description="How long aggregated stream listings are cached.",
    )
    empty_ttl_seconds: float = Field(
        default=300,
        description="How long an empty listing is cached (shorter).",
    )
    source_priority: dict[str, int] = Field(
        default_factory=dict,
        description="Source ranking (lower = tried first). Unknown sources last.",
    )
    fallback_sources: list[str] = Field(
        default_factory=list,
        description="Sources used for placeholder records when a match lists none.",
    )

    @field_validator("timeout_seconds", "results_ttl_seconds", "empty_ttl_seconds")
    @classmethod
    def _validate_positive(cls, v: float, info: Any) -> float:
        return _require_positive(info.field_name, v)

    @model_validator(mode="after")
    def _validate_ttls(self) -> "ProvidersConfig":
        if self.empty_ttl_seconds >= self.results_ttl_seconds:
            raise ValueError(
                "providers.empty_ttl_seconds must be shorter than "
                "providers.results_ttl_seconds"
            )
        return self

    def endpoint_pairs(self) -> list[ProviderEndpoint]:
        """Direct endpoints base-major, template-minor; then each proxy pass."""
        return [
            ProviderEndpoint(base_url=b, endpoint_template=t, proxy=p)
            for p in ("", *(x for x in self.proxies if x))
            for b in self.bases
            for t in self.templates
        ]


class EmbedDomainConfig(BaseModel):
    url: str
    url_format: UrlFormat = UrlFormat.QUERY_PARAMS

    @field_validator("url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def to_domain(self) -> EmbedDomain:
        return EmbedDomain(url=self.url, url_format=self.url_format)


class EmbedConfig(BaseModel):
    """Embed-hosting domains (priority order) and fallback bookkeeping."""

    domains: list[EmbedDomainConfig] = Field(
        default_factory=list,
        description="Embed domains: primary first, then fallbacks.",
    )
    verify_timeout_seconds: float = Field(
        default=3.0,
        description="HEAD check timeout when verifying a domain.",
    )
    marker_ttl_seconds: int = Field(
        default=300,
        description="Lifetime of the persisted working-domain marker.",
    )
    failed_ttl_seconds: float = Field(
        default=300,
        description="How long a domain stays in the failed set.",
    )
    verify_strict_status: bool = Field(
        default=False,
        description="Treat 5xx check responses as unreachable.",
    )

    @field_validator("verify_timeout_seconds", "marker_ttl_seconds", "failed_ttl_seconds")
    @classmethod
    def _validate_positive(cls, v: float, info: Any) -> float:
        return _require_positive(info.field_name, v)

    def embed_domains(self) -> list[EmbedDomain]:
        return [d.to_domain() for d in self.domains]


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned
      (http/logging/cache/extraction/providers/embed).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="streamfinder", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Default HTTP timeout in seconds.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
        description="Follow HTTP redirects.",
    )
    http_user_agent: str = Field(
        default="streamfinder/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent header for outgoing requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    cache: CacheConfig = Field(default_factory=CacheConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    embed: EmbedConfig = Field(default_factory=EmbedConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        return _require_positive("http_timeout_seconds", v)

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "dir": str(self.cache.directory),
                "backend": self.cache.backend,
                "redis_url": self.cache.redis_url,
                "ttl_seconds": self.cache.ttl_seconds,
                "max_concurrent": self.cache.max_concurrent,
            },
            "extraction": self.extraction.model_dump(),
            "providers": self.providers.model_dump(),
            "embed": self.embed.model_dump(mode="json"),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read STREAMFINDER_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - STREAMFINDER_LOG_LEVEL
    - STREAMFINDER_CACHE_BACKEND
    - STREAMFINDER_EXTRACTION_INTERMEDIARY_URL
    - STREAMFINDER_PROVIDER_BASES='["https://a/api", "https://b/api"]'
    """

    model_config = SettingsConfigDict(
        env_prefix="STREAMFINDER_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_backend: Optional[Literal["diskcache", "redis"]] = None
    cache_dir: Optional[Path] = None
    cache_redis_url: Optional[str] = None
    cache_ttl_seconds: Optional[int] = None

    extraction_intermediary_url: Optional[str] = None
    extraction_proxies: Optional[list[str]] = None
    extraction_timeout_seconds: Optional[float] = None

    provider_bases: Optional[list[str]] = None
    provider_templates: Optional[list[str]] = None
    provider_proxies: Optional[list[str]] = None
    provider_timeout_seconds: Optional[float] = None

    embed_verify_timeout_seconds: Optional[float] = None
    embed_verify_strict_status: Optional[bool] = None

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
