"""Match streams use case.

Match sources -> provider failover per source (bounded concurrency)
-> dedupe by embed URL -> placeholder records for silent sources.
Playback: record -> stream extractor -> direct stream or embed fallback.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Protocol

import structlog

from streamfinder.domain.entities.streams import (
    FetchPolicy,
    MatchSource,
    PlaybackTarget,
    StreamDefaults,
    StreamRecord,
)
from streamfinder.domain.ports.provider_resolver import ProviderResolverPort
from streamfinder.domain.ports.stream_extractor import StreamExtractorPort

log = structlog.get_logger(__name__)

# Rank given to sources missing from the priority table
_UNRANKED = 1_000


class _EmbedDomains(Protocol):
    """What this use case needs from the embed domain manager."""

    async def current_domain(self) -> str: ...

    async def mark_failed(self, url: str) -> None: ...

    def next_after(self, url: str) -> str | None: ...

    def domain_for(self, embed_url: str) -> str | None: ...

    def embed_url(
        self, url: str, source: str, match_id: str, stream_no: int = 1
    ) -> str: ...


class MatchStreamsUseCase:
    """Lists the streams of a match and resolves them for playback."""

    def __init__(
        self,
        *,
        providers: ProviderResolverPort,
        extractor: StreamExtractorPort,
        domains: _EmbedDomains,
        source_priority: Mapping[str, int] | None = None,
        fallback_sources: Sequence[str] = (),
        max_concurrent: int = 5,
    ) -> None:
        self._providers = providers
        self._extractor = extractor
        self._domains = domains
        self._source_priority = dict(source_priority or {})
        self._fallback_sources = tuple(fallback_sources)
        self._max_concurrent = max_concurrent

    def sort_sources(self, sources: Sequence[MatchSource]) -> list[MatchSource]:
        """Order sources by configured rank; unknown sources keep their order, last."""
        return sorted(
            sources,
            key=lambda s: self._source_priority.get(s.source.lower(), _UNRANKED),
        )

    async def list_streams(
        self, match_id: str, sources: Sequence[MatchSource]
    ) -> list[StreamRecord]:
        """Aggregate stream records for every source of a match."""
        domain = await self._domains.current_domain()

        if not sources:
            log.info(
                "match_streams_no_sources",
                match_id=match_id,
                fallback_sources=list(self._fallback_sources),
            )
            return [
                self._placeholder(domain, source, match_id)
                for source in self._fallback_sources
            ]

        ordered = self.sort_sources(sources)
        defaults = StreamDefaults(
            embed_url_factory=lambda source, mid, n: self._domains.embed_url(
                domain, source, mid, n
            )
        )
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _fetch(ms: MatchSource) -> list[StreamRecord]:
            async with semaphore:
                return await self._providers.fetch_from_providers(
                    ms.id,
                    ms.source,
                    policy=FetchPolicy.COLLECT_ALL,
                    defaults=defaults,
                )

        per_source = await asyncio.gather(*(_fetch(ms) for ms in ordered))

        records: list[StreamRecord] = []
        seen: set[str] = set()
        for ms, found in zip(ordered, per_source):
            if not found:
                found = [self._placeholder(domain, ms.source, ms.id)]
            for record in found:
                if record.embed_url in seen:
                    continue
                seen.add(record.embed_url)
                records.append(record)

        log.info(
            "match_streams_listed",
            match_id=match_id,
            sources=len(ordered),
            streams=len(records),
        )
        return records

    async def resolve_playback(self, record: StreamRecord) -> PlaybackTarget:
        """Direct stream for *record* when one can be extracted, else its embed."""
        stream = await self._extractor.resolve(record.embed_url)
        if stream is None:
            log.info("playback_embed_fallback", embed_url=record.embed_url)
        return PlaybackTarget(record=record, embed_url=record.embed_url, stream=stream)

    async def fallback_embed(self, record: StreamRecord) -> StreamRecord | None:
        """Re-template *record* on the next domain after its domain failed.

        Returns None when the record's domain is not a managed embed domain
        or every later domain has failed too.
        """
        failed = self._domains.domain_for(record.embed_url)
        if failed is None:
            log.info("playback_fallback_unmanaged", embed_url=record.embed_url)
            return None

        await self._domains.mark_failed(failed)
        nxt = self._domains.next_after(failed)
        if nxt is None:
            log.warning("playback_fallback_exhausted", failed=failed)
            return None

        log.info("playback_fallback_domain", failed=failed, next=nxt)
        return replace(
            record,
            embed_url=self._domains.embed_url(
                nxt, record.source, record.match_id, record.stream_index
            ),
        )

    def _placeholder(self, domain: str, source: str, match_id: str) -> StreamRecord:
        return StreamRecord(
            embed_url=self._domains.embed_url(domain, source, match_id, 1),
            source=source,
            match_id=match_id,
            stream_index=1,
            origin_base=domain,
        )
