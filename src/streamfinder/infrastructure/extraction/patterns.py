"""Media URL pattern matching for embed page content.

Scans raw HTML/JS for HLS (m3u8) and MP4 URLs that surface in common
player-configuration idioms (JWPlayer, Video.js, hls.js, Plyr, Clappr,
Flowplayer), JSON key/value pairs and tag attributes, plus base64 payloads
wrapped in ``atob()``-style decode calls.

Pure functions over text: no I/O and no shared state.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from streamfinder.domain.entities.streams import StreamKind

# Shorter matches are JS artifacts, never real URLs
_MIN_URL_LENGTH = 10

_HLS = r"""([^"']*\.m3u8[^"']*)"""
_MP4 = r"""([^"']*\.mp4[^"']*)"""

# Ordered most specific first; the generic scans at the end are last resort.
_STREAM_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        # Field assignment / key-value in player configs
        rf"""source["\s]*[:=]["\s]*["']{_HLS}['"]""",
        rf"""src["\s]*[:=]["\s]*["']{_HLS}['"]""",
        rf"""file["\s]*[:=]["\s]*["']{_HLS}['"]""",
        rf"""playlist["\s]*[:=]["\s]*["']{_HLS}['"]""",
        rf"""hls\s*[:=]\s*["']{_HLS}['"]""",
        # JWPlayer
        rf"""jwplayer\s*\([^)]*\)\s*\.setup\s*\(\s*\{{[^}}]*file\s*:\s*["']{_HLS}['"]""",
        rf"""jwplayer\s*\([^)]*\)\s*\.setup\s*\(\s*\{{[^}}]*sources\s*:\s*\[[^\]]*["']{_HLS}['"]""",
        # Video.js
        rf"""videojs\s*\([^)]*\)[^}}]*sources\s*:\s*\[[^\]]*["']{_HLS}['"]""",
        rf"""videojs\s*\([^)]*\)[^}}]*src\s*:\s*["']{_HLS}['"]""",
        # hls.js
        rf"""\.loadSource\s*\(\s*["']{_HLS}['"]""",
        # Plyr
        rf"""plyr\.source\s*=\s*\{{[^}}]*src\s*:\s*["']{_HLS}['"]""",
        # Clappr
        rf"""new\s+Clappr(?:\.Player)?\s*\([^)]*source\s*:\s*["']{_HLS}['"]""",
        # Flowplayer
        rf"""flowplayer\s*\([^)]*\)\s*\.\s*load\s*\(\s*["']{_HLS}['"]""",
        # Variable assignment
        rf"""(?:var|let|const)\s+\w+\s*=\s*["']{_HLS}['"]""",
        rf"""(?:streamUrl|videoUrl|video_url|hlsUrl|m3u8Url)\s*[:=]\s*["']{_HLS}['"]""",
        # JSON-like
        r'"(?:url|src|file|stream|source)"\s*:\s*"([^"]*\.m3u8[^"]*)"',
        r"'(?:url|src|file|stream|source)'\s*:\s*'([^']*\.m3u8[^']*)'",
        # HTML5 tags
        rf"""<source[^>]*src=["']{_HLS}["'][^>]*>""",
        rf"""<video[^>]*src=["']{_HLS}["'][^>]*>""",
        # Generic HLS (last resort for m3u8)
        r"""["']([^"']*\.m3u8(?:\?[^"']*)?)['"]""",
        # MP4
        rf"""source["\s]*[:=]["\s]*["']{_MP4}['"]""",
        rf"""src["\s]*[:=]["\s]*["']{_MP4}['"]""",
        rf"""file["\s]*[:=]["\s]*["']{_MP4}['"]""",
        rf"""<source[^>]*src=["']{_MP4}["'][^>]*>""",
        # Generic video (any quoted string with a media extension)
        r"""["']([^"']*\.(?:m3u8|mp4|webm|ogg)[^"']*)['"]""",
    )
)

# decode("<base64>") wrappers: atob, decodeURIComponent(escape(atob(..))),
# PHP-style base64_decode, Base64.decode
_BASE64_PATTERN = re.compile(
    r"""(?:atob|base64_decode|Base64\.decode)\s*\(\s*["']([A-Za-z0-9+/=_-]{8,})["']\s*\)"""
)

_MEDIA_MARKERS = (".m3u8", ".mp4")


def decode_base64(data: str) -> str | None:
    """Decode standard or URL-safe base64 with padding fix.

    Returns None when *data* is not valid base64 or not UTF-8 text.
    """
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    try:
        if "-" in data or "_" in data:
            raw = base64.urlsafe_b64decode(data)
        else:
            raw = base64.b64decode(data, validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, ValueError):
        return None


def _scan_base64(text: str) -> Iterator[str]:
    for m in _BASE64_PATTERN.finditer(text):
        decoded = decode_base64(m.group(1))
        if decoded is None:
            continue
        decoded = decoded.strip()
        if any(marker in decoded for marker in _MEDIA_MARKERS):
            yield decoded


def _scan_patterns(text: str) -> Iterator[str]:
    for pattern in _STREAM_PATTERNS:
        for m in pattern.finditer(text):
            url = m.group(1)
            if url and len(url) > _MIN_URL_LENGTH:
                yield url


@dataclass(frozen=True)
class Candidates:
    """Lazy, restartable sequence of ``(raw_url, kind)`` found in *text*.

    Each iteration re-scans the text; base64 payloads first, then the
    direct patterns.  A raw URL is yielded once per scan.
    """

    text: str

    def __iter__(self) -> Iterator[tuple[str, StreamKind]]:
        seen: set[str] = set()
        for source in (_scan_base64(self.text), _scan_patterns(self.text)):
            for url in source:
                if url in seen:
                    continue
                seen.add(url)
                yield url, StreamKind.from_url(url)


def extract_candidates(text: str) -> Candidates:
    """Return every media URL candidate in *text* in discovery order."""
    return Candidates(text)


def select_best(
    candidates: Iterable[tuple[str, StreamKind]],
) -> tuple[str, StreamKind] | None:
    """Pick the preferred candidate: hls > mp4 > unknown, first wins ties."""
    best: tuple[str, StreamKind] | None = None
    for candidate in candidates:
        if best is None or candidate[1].priority > best[1].priority:
            best = candidate
    return best


def rank_candidates(
    candidates: Iterable[tuple[str, StreamKind]],
) -> list[tuple[str, StreamKind]]:
    """Order candidates by kind priority, keeping discovery order per kind."""
    # sorted() is stable, so first-discovered stays first within a kind
    return sorted(candidates, key=lambda c: -c[1].priority)


_IFRAME_RE = re.compile(r"""<iframe[^>]*\ssrc=["']([^"']+)["']""", re.IGNORECASE)


def find_nested_iframe(text: str) -> str | None:
    """Return the ``src`` of the first ``<iframe>`` in *text*, if any."""
    m = _IFRAME_RE.search(text)
    return m.group(1) if m else None
