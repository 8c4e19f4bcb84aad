"""Domain entities for stream resolution.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from urllib.parse import quote


class StreamKind(str, Enum):
    """Media kind of an extracted stream URL."""

    HLS = "hls"
    MP4 = "mp4"
    UNKNOWN = "unknown"

    @property
    def priority(self) -> int:
        """Selection rank (higher = preferred)."""
        return _KIND_PRIORITY[self]

    @classmethod
    def from_url(cls, url: str) -> StreamKind:
        """Derive the kind from the media extension found in *url*."""
        lowered = url.lower()
        if ".m3u8" in lowered:
            return cls.HLS
        if ".mp4" in lowered:
            return cls.MP4
        return cls.UNKNOWN


_KIND_PRIORITY: dict[StreamKind, int] = {
    StreamKind.HLS: 2,
    StreamKind.MP4: 1,
    StreamKind.UNKNOWN: 0,
}


@dataclass(frozen=True)
class ExtractedStream:
    """A playable media URL found for an embed page.

    ``url`` is always absolute when handed to a caller.
    """

    url: str
    kind: StreamKind = StreamKind.UNKNOWN

    @property
    def is_hls(self) -> bool:
        return self.kind is StreamKind.HLS


class UrlFormat(str, Enum):
    """How an embed domain expects match parameters."""

    QUERY_PARAMS = "query_params"  # <domain>/?id=..&source=..&streamNo=..
    PATH_SEGMENTS = "path_segments"  # <domain>/embed/<source>/<id>/<n>


@dataclass(frozen=True)
class EmbedDomain:
    """An embed-hosting domain and its URL template."""

    url: str
    url_format: UrlFormat = UrlFormat.QUERY_PARAMS


@dataclass(frozen=True)
class ProviderEndpoint:
    """One (base, template) pair addressing a provider's stream listing.

    ``proxy`` is a forwarding-proxy prefix; empty means a direct request.
    """

    base_url: str
    endpoint_template: str
    proxy: str = ""

    def render(self, *, source: str, match_id: str) -> str:
        """Build the provider URL for a (source, match_id) pair."""
        path = self.endpoint_template.format(source=source, match_id=match_id)
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def request_url(self, *, source: str, match_id: str) -> str:
        """URL actually requested: the provider URL, behind ``proxy`` if set."""
        target = self.render(source=source, match_id=match_id)
        if not self.proxy:
            return target
        return f"{self.proxy}{quote(target, safe='')}"

    def direct(self) -> ProviderEndpoint:
        return self if not self.proxy else replace(self, proxy="")


@dataclass(frozen=True)
class StreamRecord:
    """A single stream listing aggregated from the providers.

    Unique by ``embed_url`` within one resolution call.
    """

    embed_url: str
    source: str
    match_id: str
    stream_index: int = 1
    language: str = "EN"
    is_hd: bool = True
    origin_base: str = ""


# (source, match_id, stream_index) -> embed URL
EmbedUrlFactory = Callable[[str, str, int], str]


@dataclass(frozen=True)
class StreamDefaults:
    """Caller-supplied defaults for fields a provider item leaves out."""

    language: str = "EN"
    is_hd: bool = True
    embed_url_factory: EmbedUrlFactory | None = None


@dataclass(frozen=True)
class MatchSource:
    """One provider listing of a match."""

    source: str
    id: str


@dataclass(frozen=True)
class PlaybackTarget:
    """What the player should load for a stream record.

    When ``stream`` is ``None`` the caller embeds ``embed_url`` instead.
    """

    record: StreamRecord
    embed_url: str
    stream: ExtractedStream | None = None

    @property
    def is_direct(self) -> bool:
        return self.stream is not None


class FetchPolicy(str, Enum):
    """How far provider failover proceeds after a success."""

    COLLECT_ALL = "collect_all"  # aggregate across every endpoint
    FIRST_SUCCESS = "first_success"  # stop at the first accepted endpoint
