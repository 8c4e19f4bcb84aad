"""Port for fetching stream listings from upstream providers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from streamfinder.domain.entities.streams import (
    FetchPolicy,
    StreamDefaults,
    StreamRecord,
)


@runtime_checkable
class ProviderResolverPort(Protocol):
    """Aggregates stream records for a (match, source) pair across mirrors."""

    async def fetch_from_providers(
        self,
        match_id: str,
        source: str,
        *,
        policy: FetchPolicy = FetchPolicy.COLLECT_ALL,
        defaults: StreamDefaults | None = None,
        force: bool = False,
    ) -> list[StreamRecord]:
        """Return deduplicated records; an empty list means no streams found."""
        ...
