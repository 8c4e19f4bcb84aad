"""Stream extractor: resolves an embed page URL to a direct HLS/MP4 URL.

Resolution order:
1. URL already points at media (``.m3u8`` / ``.mp4``) -> returned as-is.
2. Cached outcome (success or failure) while fresh.
3. Intermediary extraction service (POST ``{"embedUrl"}`` -> ``{"hlsUrl"}``).
4. Client-side: fetch the page through forwarding proxies, scan it for
   media URLs, follow one nested iframe when the page itself has none.
5. Cache the outcome and return it.
"""

from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import quote

import httpx
import structlog

from streamfinder.domain.entities.streams import ExtractedStream, StreamKind
from streamfinder.domain.exceptions import ConfigurationError
from streamfinder.infrastructure.cache.ttl_cache import TtlCache
from streamfinder.infrastructure.extraction.patterns import (
    extract_candidates,
    find_nested_iframe,
    rank_candidates,
    select_best,
)
from streamfinder.infrastructure.extraction.urls import is_absolute_url, to_absolute

log = structlog.get_logger(__name__)

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_Candidate = tuple[str, StreamKind]


def direct_stream(url: str) -> ExtractedStream | None:
    """Return *url* as a stream when it already names a media file."""
    kind = StreamKind.from_url(url)
    if kind is StreamKind.UNKNOWN:
        return None
    return ExtractedStream(url=url, kind=kind)


class StreamExtractor:
    """Finds playable media URLs inside opaque embed pages.

    Outcomes are memoized per embed URL: successes for ``success_ttl``
    seconds, failures for the shorter ``failure_ttl``.

    Args:
        http_client: Shared client owned by the composition root.
        intermediary_url: Server-side extraction endpoint, or None.
        proxies: Forwarding proxy prefixes tried in order; ``""`` fetches
            the page directly.
        timeout: Per-request timeout in seconds.
        follow_iframes: Scan one nested ``<iframe>`` when the page has no
            stream of its own.

    Raises:
        ConfigurationError: Neither an intermediary nor a proxy is set.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        intermediary_url: str | None = None,
        proxies: Sequence[str] = (),
        timeout: float = 10.0,
        success_ttl: float = 600,
        failure_ttl: float = 300,
        follow_iframes: bool = True,
        user_agent: str = _DEFAULT_USER_AGENT,
    ) -> None:
        if not intermediary_url and not proxies:
            raise ConfigurationError(
                "Stream extraction needs an intermediary_url or at least one proxy"
            )
        self._http_client = http_client
        self._intermediary_url = intermediary_url or None
        self._proxies = tuple(proxies)
        self._timeout = timeout
        self._follow_iframes = follow_iframes
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
        }
        self._cache: TtlCache[ExtractedStream] = TtlCache(
            positive_ttl=success_ttl, negative_ttl=failure_ttl
        )

    @property
    def cache(self) -> TtlCache[ExtractedStream]:
        return self._cache

    def clear_cache(self) -> None:
        self._cache.clear()
        log.info("extraction_cache_cleared")

    async def resolve(
        self, embed_url: str, *, force: bool = False
    ) -> ExtractedStream | None:
        """Resolve *embed_url* to its best stream, or None if none is found."""
        direct = direct_stream(embed_url)
        if direct is not None:
            log.debug("extract_direct_media", url=embed_url, kind=direct.kind.value)
            return direct

        if not force:
            cached = self._cache.get(embed_url)
            if cached is not None:
                log.debug(
                    "extract_cache_hit", url=embed_url, found=cached.is_success
                )
                return cached.value

        stream = None
        if self._intermediary_url:
            stream = await self._via_intermediary(self._intermediary_url, embed_url)

        if stream is None and self._proxies:
            best = select_best(await self._client_side_candidates(embed_url))
            if best is not None:
                stream = ExtractedStream(url=best[0], kind=best[1])

        if stream is None:
            log.info("extract_no_stream", url=embed_url)
        else:
            log.info(
                "extract_success", url=embed_url, stream=stream.url, kind=stream.kind.value
            )
        self._cache.put(embed_url, stream, is_success=stream is not None)
        return stream

    async def extract_all(self, embed_url: str) -> list[ExtractedStream]:
        """Every stream the page exposes, best first. Uncached, no intermediary."""
        direct = direct_stream(embed_url)
        if direct is not None:
            return [direct]
        if not self._proxies:
            return []
        ranked = rank_candidates(await self._client_side_candidates(embed_url))
        return [ExtractedStream(url=url, kind=kind) for url, kind in ranked]

    async def _via_intermediary(
        self, intermediary_url: str, embed_url: str
    ) -> ExtractedStream | None:
        try:
            resp = await self._http_client.post(
                intermediary_url,
                json={"embedUrl": embed_url},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException:
            log.warning("extract_intermediary_timeout", url=embed_url)
            return None
        except httpx.HTTPError as exc:
            log.warning("extract_intermediary_http_error", url=embed_url, error=str(exc))
            return None
        except ValueError:
            log.warning("extract_intermediary_bad_json", url=embed_url)
            return None

        hls_url = data.get("hlsUrl") if isinstance(data, dict) else None
        if not isinstance(hls_url, str) or not hls_url:
            log.debug("extract_intermediary_empty", url=embed_url)
            return None

        absolute = to_absolute(hls_url, embed_url)
        if absolute is None or not is_absolute_url(absolute):
            log.warning("extract_intermediary_bad_url", url=embed_url, hls_url=hls_url)
            return None
        return ExtractedStream(url=absolute, kind=StreamKind.from_url(absolute))

    async def _client_side_candidates(self, embed_url: str) -> list[_Candidate]:
        text = await self._fetch_page(embed_url)
        if text is None:
            log.warning("extract_page_unavailable", url=embed_url)
            return []

        candidates = self._normalized(text, embed_url)
        if candidates or not self._follow_iframes:
            return candidates

        iframe_src = find_nested_iframe(text)
        if iframe_src is None:
            return []
        iframe_url = to_absolute(iframe_src, embed_url)
        if iframe_url is None or iframe_url == embed_url or not is_absolute_url(iframe_url):
            return []

        log.debug("extract_follow_iframe", url=embed_url, iframe=iframe_url)
        nested = await self._fetch_page(iframe_url)
        if nested is None:
            return []
        return self._normalized(nested, iframe_url)

    @staticmethod
    def _normalized(text: str, base_url: str) -> list[_Candidate]:
        """Absolute, deduplicated candidates in discovery order."""
        seen: set[str] = set()
        out: list[_Candidate] = []
        for raw, kind in extract_candidates(text):
            url = to_absolute(raw, base_url)
            if url is None or not is_absolute_url(url) or url in seen:
                continue
            seen.add(url)
            out.append((url, kind))
        return out

    async def _fetch_page(self, url: str) -> str | None:
        """Fetch *url* through the proxies in order; first non-empty 2xx wins."""
        for prefix in self._proxies:
            target = f"{prefix}{quote(url, safe='')}" if prefix else url
            try:
                resp = await self._http_client.get(
                    target, headers=self._headers, timeout=self._timeout
                )
            except httpx.TimeoutException:
                log.debug("extract_proxy_timeout", proxy=prefix, url=url)
                continue
            except httpx.HTTPError as exc:
                log.debug("extract_proxy_http_error", proxy=prefix, url=url, error=str(exc))
                continue

            if not resp.is_success:
                log.debug("extract_proxy_status", proxy=prefix, url=url, status=resp.status_code)
                continue
            if not resp.text.strip():
                log.debug("extract_proxy_empty", proxy=prefix, url=url)
                continue
            return resp.text
        return None
