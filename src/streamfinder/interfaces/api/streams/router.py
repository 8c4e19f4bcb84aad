"""Stream listing endpoints backed by provider failover."""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from streamfinder.domain.entities.streams import (
    FetchPolicy,
    MatchSource,
    StreamDefaults,
    StreamRecord,
)
from streamfinder.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["streams"])


def record_to_dict(record: StreamRecord) -> dict[str, Any]:
    """camelCase JSON shape of a StreamRecord."""
    return {
        "id": record.match_id,
        "source": record.source,
        "streamNo": record.stream_index,
        "language": record.language,
        "hd": record.is_hd,
        "embedUrl": record.embed_url,
        "originBase": record.origin_base,
    }


def _parse_sources(match_id: str, raw: Any) -> list[MatchSource]:
    if not isinstance(raw, list):
        raise HTTPException(status_code=400, detail="sources must be a list")
    sources: list[MatchSource] = []
    for item in raw:
        if isinstance(item, str):
            sources.append(MatchSource(source=item, id=match_id))
        elif isinstance(item, dict) and isinstance(item.get("source"), str):
            sources.append(
                MatchSource(source=item["source"], id=str(item.get("id") or match_id))
            )
        else:
            raise HTTPException(status_code=400, detail=f"Invalid source entry: {item!r}")
    return sources


@router.get("/streams/{source}/{match_id}")
async def list_source_streams(
    source: str, match_id: str, request: Request, single: bool = False
) -> JSONResponse:
    """Streams of one (source, match) pair.

    ``single=true`` stops at the first provider endpoint that answers.
    """
    state = cast(AppState, request.app.state)
    domains = state.embed_domains
    domain = await domains.current_domain()

    records = await state.providers.fetch_from_providers(
        match_id,
        source,
        policy=FetchPolicy.FIRST_SUCCESS if single else FetchPolicy.COLLECT_ALL,
        defaults=StreamDefaults(
            embed_url_factory=lambda s, mid, n: domains.embed_url(domain, s, mid, n)
        ),
    )
    if not records:
        log.info("streams_not_found", source=source, match_id=match_id)
        raise HTTPException(status_code=404, detail="No streams currently available")
    return JSONResponse([record_to_dict(r) for r in records])


@router.post("/matches/{match_id}/streams")
async def list_match_streams(match_id: str, request: Request) -> JSONResponse:
    """Aggregated streams over all sources of a match (placeholders included)."""
    state = cast(AppState, request.app.state)

    try:
        body = await request.json()
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from e
    raw_sources = body.get("sources", []) if isinstance(body, dict) else body
    sources = _parse_sources(match_id, raw_sources)

    records = await state.match_streams_uc.list_streams(match_id, sources)
    if not records:
        raise HTTPException(status_code=404, detail="No streams currently available")
    return JSONResponse([record_to_dict(r) for r in records])
