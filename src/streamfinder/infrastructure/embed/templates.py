"""Embed URL templates and match slugs."""

from __future__ import annotations

import re
from collections.abc import Sequence
from urllib.parse import quote

from streamfinder.domain.entities.streams import EmbedDomain, UrlFormat

_VS_RE = re.compile(r"\s+v(?:s)?\.?\s+", re.IGNORECASE)
_NON_SLUG_RE = re.compile(r"[^a-z0-9-]")
_DASHES_RE = re.compile(r"-+")


def build_embed_url(
    domain: EmbedDomain, source: str, match_id: str, stream_no: int = 1
) -> str:
    """Render the embed URL for *domain* in the domain's URL format."""
    base = domain.url.rstrip("/")
    if domain.url_format is UrlFormat.PATH_SEGMENTS:
        return (
            f"{base}/embed/{quote(source, safe='')}/"
            f"{quote(match_id, safe='')}/{stream_no}"
        )
    return (
        f"{base}/?id={quote(match_id, safe='')}"
        f"&source={quote(source, safe='')}&streamNo={stream_no}"
    )


def match_slug(title: str) -> str:
    """URL-friendly slug for a match title.

    >>> match_slug("Northwestern State vs. Houston Christian")
    'northwestern-state-vs-houston-christian'
    """
    slug = _VS_RE.sub("-vs-", title.lower())
    slug = _NON_SLUG_RE.sub("-", slug)
    slug = _DASHES_RE.sub("-", slug)
    return slug.strip("-")


def domain_of(embed_url: str, domains: Sequence[EmbedDomain]) -> EmbedDomain | None:
    """Return the configured domain *embed_url* was built on, if any."""
    for domain in domains:
        base = domain.url.rstrip("/")
        if embed_url == base or embed_url.startswith(base + "/"):
            return domain
    return None
