"""Resolve scraped media URLs to absolute form against their embed page."""

from __future__ import annotations

import re
from urllib.parse import urlparse

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")

# JS/JSON escapes seen around scraped URLs
_UNESCAPES: tuple[tuple[str, str], ...] = (
    ('\\"', '"'),
    ("\\'", "'"),
    ("\\/", "/"),
    ("\\u002F", "/"),
    ("\\u002f", "/"),
    ("\\x2F", "/"),
    ("\\x2f", "/"),
)


def clean_url(raw: str) -> str:
    """Strip backslash escaping of quotes/slashes and surrounding whitespace."""
    cleaned = raw
    for escaped, plain in _UNESCAPES:
        cleaned = cleaned.replace(escaped, plain)
    return cleaned.strip().rstrip("\\")


def _origin(base_url: str) -> str | None:
    try:
        parsed = urlparse(base_url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def to_absolute(candidate: str, base_url: str) -> str | None:
    """Resolve *candidate* against *base_url*.

    Returns None only when *base_url* is not an absolute URL.  Otherwise
    always returns a best-effort absolute string:

    - already absolute → unchanged
    - ``//host/...`` → ``https://host/...``
    - ``/path`` → origin of *base_url* + path
    - anything else → relative to the directory of *base_url*
    """
    origin = _origin(base_url)
    if origin is None:
        return None

    url = clean_url(candidate)
    if _SCHEME_RE.match(url):
        return url
    if url.startswith("//"):
        return "https:" + url
    if url.startswith("/"):
        return origin + url

    # Directory portion: path up to and including the last "/"
    path = urlparse(base_url).path
    directory = path[: path.rfind("/") + 1] or "/"
    return origin + directory + url


def is_absolute_url(url: str) -> bool:
    """True for syntactically valid http(s) URLs with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
