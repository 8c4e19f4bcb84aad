"""Provider failover: aggregate stream listings across API mirrors.

Every ``(base, template)`` pair is an independent endpoint.  Endpoints are
tried direct first, base-major and template-minor, then again behind each
forwarding proxy.  Any single failure (timeout, transport, non-2xx,
unrecognized JSON) is logged and skipped.  Records are deduplicated by
embed URL across all endpoints.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

import httpx
import structlog

from streamfinder.domain.entities.streams import (
    FetchPolicy,
    ProviderEndpoint,
    StreamDefaults,
    StreamRecord,
)
from streamfinder.domain.exceptions import ConfigurationError
from streamfinder.infrastructure.cache.ttl_cache import TtlCache

log = structlog.get_logger(__name__)

# Object fields that may hold the stream list
_LIST_FIELDS = ("streams", "data", "sources", "results", "items")

# Keys that make an object a single stream descriptor (first wins)
_EMBED_KEYS = ("embedUrl", "embed", "url")

_FALSE_STRINGS = frozenset({"", "0", "false", "no", "off"})

_CacheKey = tuple[str, str, FetchPolicy]

# Answered provider payloads: (origin base, raw items) per endpoint
_Batches = tuple[tuple[str, tuple[Any, ...]], ...]


def iter_endpoints(
    bases: Sequence[str],
    templates: Sequence[str],
    proxies: Sequence[str] = (),
) -> Iterator[ProviderEndpoint]:
    """Yield every endpoint: direct ones first, then each proxy in turn.

    Within one pass the order is base-major, template-minor.
    """
    for proxy in ("", *(p for p in proxies if p)):
        for base in bases:
            for template in templates:
                yield ProviderEndpoint(
                    base_url=base, endpoint_template=template, proxy=proxy
                )


def extract_items(data: Any) -> list[Any] | None:
    """Return the stream items of a provider payload, or None if unrecognized."""
    if isinstance(data, list):
        return data
    if not isinstance(data, Mapping):
        return None
    for field in _LIST_FIELDS:
        value = data.get(field)
        if isinstance(value, list):
            return value
    if any(data.get(key) for key in _EMBED_KEYS):
        return [data]
    return None


def _first_str(item: Mapping[str, Any], keys: Sequence[str]) -> str | None:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _as_bool(value: Any, default: bool) -> bool:
    """Provider flags arrive as bools, ints or strings like ``"false"``."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def normalize_item(
    item: Any,
    *,
    source: str,
    match_id: str,
    stream_index: int,
    defaults: StreamDefaults,
    origin_base: str = "",
) -> StreamRecord | None:
    """Turn one provider item into a StreamRecord, filling gaps from *defaults*.

    Returns None when the item is not an object or no embed URL can be
    determined.
    """
    if not isinstance(item, Mapping):
        return None

    index = item.get("streamNo")
    if not isinstance(index, int) or isinstance(index, bool) or index < 1:
        index = stream_index

    record_source = _first_str(item, ("source",)) or source
    record_id = _first_str(item, ("id",)) or match_id

    embed_url = _first_str(item, _EMBED_KEYS)
    if embed_url is None and defaults.embed_url_factory is not None:
        embed_url = defaults.embed_url_factory(record_source, record_id, index)
    if not embed_url:
        return None

    return StreamRecord(
        embed_url=embed_url,
        source=record_source,
        match_id=record_id,
        stream_index=index,
        language=_first_str(item, ("language", "lang")) or defaults.language,
        is_hd=_as_bool(item.get("hd", item.get("isHd")), defaults.is_hd),
        origin_base=origin_base,
    )


class _Collector:
    """Accumulates normalized records, unique by embed URL."""

    def __init__(self, *, source: str, match_id: str, defaults: StreamDefaults) -> None:
        self._source = source
        self._match_id = match_id
        self._defaults = defaults
        self._seen: set[str] = set()
        self.records: list[StreamRecord] = []

    def add(self, origin_base: str, items: Sequence[Any]) -> int:
        added = 0
        for item in items:
            record = normalize_item(
                item,
                source=self._source,
                match_id=self._match_id,
                stream_index=len(self.records) + 1,
                defaults=self._defaults,
                origin_base=origin_base,
            )
            if record is None or record.embed_url in self._seen:
                continue
            self._seen.add(record.embed_url)
            self.records.append(record)
            added += 1
        return added


class ProviderFailoverResolver:
    """Fetches stream listings from the first working provider mirrors.

    The raw provider answers are memoized per ``(source, match_id, policy)``:
    listings with items for ``results_ttl`` seconds, empty ones for the
    shorter ``empty_ttl``.  Records are rebuilt from the memoized items on
    every call, so caller defaults (notably the embed URL factory) always
    apply to the current state.

    The last endpoint that produced records is remembered and tried first
    in ``FIRST_SUCCESS`` mode; a failure of that endpoint forgets it.

    Raises:
        ConfigurationError: No provider bases or no endpoint templates.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        bases: Sequence[str],
        templates: Sequence[str],
        proxies: Sequence[str] = (),
        timeout: float = 3.0,
        results_ttl: float = 900,
        empty_ttl: float = 300,
    ) -> None:
        if not bases:
            raise ConfigurationError("No provider API bases configured")
        if not templates:
            raise ConfigurationError("No provider endpoint templates configured")
        self._http_client = http_client
        self._bases = tuple(bases)
        self._templates = tuple(templates)
        self._proxies = tuple(proxies)
        self._timeout = timeout
        self._preferred: ProviderEndpoint | None = None
        self._cache: TtlCache[_Batches] = TtlCache(
            positive_ttl=results_ttl, negative_ttl=empty_ttl
        )

    @property
    def preferred_endpoint(self) -> ProviderEndpoint | None:
        return self._preferred

    def endpoints(
        self, policy: FetchPolicy = FetchPolicy.COLLECT_ALL
    ) -> Iterator[ProviderEndpoint]:
        """Endpoint order for *policy*; the remembered one leads in FIRST_SUCCESS."""
        preferred = self._preferred if policy is FetchPolicy.FIRST_SUCCESS else None
        if preferred is not None:
            yield preferred
        for endpoint in iter_endpoints(self._bases, self._templates, self._proxies):
            if endpoint != preferred:
                yield endpoint

    def clear_cache(self) -> None:
        self._cache.clear()
        self._preferred = None
        log.info("provider_cache_cleared")

    async def fetch_from_providers(
        self,
        match_id: str,
        source: str,
        *,
        policy: FetchPolicy = FetchPolicy.COLLECT_ALL,
        defaults: StreamDefaults | None = None,
        force: bool = False,
    ) -> list[StreamRecord]:
        """Aggregate records for *source*/*match_id*; ``[]`` = no streams found."""
        collector = _Collector(
            source=source, match_id=match_id, defaults=defaults or StreamDefaults()
        )
        key: _CacheKey = (source, match_id, policy)
        if not force:
            cached = self._cache.get(key)
            if cached is not None:
                for origin_base, items in cached.value or ():
                    collector.add(origin_base, items)
                log.debug(
                    "provider_cache_hit",
                    source=source,
                    match_id=match_id,
                    count=len(collector.records),
                )
                return collector.records

        batches: list[tuple[str, tuple[Any, ...]]] = []
        answered: set[ProviderEndpoint] = set()
        failures = 0

        for endpoint in self.endpoints(policy):
            if endpoint.direct() in answered:
                continue
            items = await self._fetch_items(endpoint, source=source, match_id=match_id)
            if items is None:
                failures += 1
                if endpoint == self._preferred:
                    log.info("provider_preferred_forgotten", base=endpoint.base_url)
                    self._preferred = None
                continue

            answered.add(endpoint.direct())
            batches.append((endpoint.base_url, tuple(items)))
            added = collector.add(endpoint.base_url, items)
            log.debug(
                "provider_endpoint_ok",
                base=endpoint.base_url,
                template=endpoint.endpoint_template,
                proxy=endpoint.proxy or None,
                items=len(items),
                added=added,
            )
            if added:
                self._preferred = endpoint
                if policy is FetchPolicy.FIRST_SUCCESS:
                    break

        if collector.records:
            log.info(
                "provider_streams_found",
                source=source,
                match_id=match_id,
                count=len(collector.records),
                failed_endpoints=failures,
            )
        else:
            log.warning(
                "provider_no_streams",
                source=source,
                match_id=match_id,
                failed_endpoints=failures,
            )
        self._cache.put(
            key, tuple(batches), is_success=any(items for _, items in batches)
        )
        return collector.records

    async def _fetch_items(
        self, endpoint: ProviderEndpoint, *, source: str, match_id: str
    ) -> list[Any] | None:
        url = endpoint.request_url(source=source, match_id=match_id)
        try:
            resp = await self._http_client.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException:
            log.warning("provider_timeout", url=url)
            return None
        except httpx.HTTPError as exc:
            log.warning("provider_http_error", url=url, error=str(exc))
            return None
        except ValueError:
            log.warning("provider_bad_json", url=url)
            return None

        items = extract_items(data)
        if items is None:
            log.warning("provider_unrecognized_shape", url=url, type=type(data).__name__)
        return items
