"""Port for resolving embed page URLs to playable media URLs."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from streamfinder.domain.entities.streams import ExtractedStream


@runtime_checkable
class StreamExtractorPort(Protocol):
    """Resolves an embed page URL to a direct HLS/MP4 stream URL."""

    async def resolve(
        self, embed_url: str, *, force: bool = False
    ) -> ExtractedStream | None:
        """Resolve *embed_url* to a playable stream.

        Returns None when no stream is currently available.  ``force``
        bypasses cached outcomes.
        """
        ...
