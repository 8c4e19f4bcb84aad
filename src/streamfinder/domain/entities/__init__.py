from .streams import (
    EmbedDomain,
    EmbedUrlFactory,
    ExtractedStream,
    FetchPolicy,
    MatchSource,
    PlaybackTarget,
    ProviderEndpoint,
    StreamDefaults,
    StreamKind,
    StreamRecord,
    UrlFormat,
)

__all__ = [
    "EmbedDomain",
    "EmbedUrlFactory",
    "ExtractedStream",
    "FetchPolicy",
    "MatchSource",
    "PlaybackTarget",
    "ProviderEndpoint",
    "StreamDefaults",
    "StreamKind",
    "StreamRecord",
    "UrlFormat",
]
