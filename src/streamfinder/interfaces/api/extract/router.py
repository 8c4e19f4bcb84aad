"""Extraction endpoint: embed page URL -> direct stream URL.

Serves the intermediary contract (POST ``{"embedUrl"}`` ->
``{"hlsUrl", ...}``).  Uses only the client-side path of the extractor so
that a deployment pointing its intermediary at itself cannot loop.
"""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from streamfinder.domain.entities.streams import ExtractedStream
from streamfinder.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["extract"])

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
}

_MAX_ALTERNATIVES = 4


def _stream_dict(stream: ExtractedStream) -> dict[str, str]:
    return {"url": stream.url, "type": stream.kind.value}


@router.post("/extract")
async def extract_stream(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)

    try:
        body = await request.json()
    except ValueError:
        body = None
    embed_url = body.get("embedUrl") if isinstance(body, dict) else None
    if not isinstance(embed_url, str) or not embed_url.strip():
        return JSONResponse(
            {"success": False, "error": "embedUrl is required"},
            status_code=400,
            headers=_CORS_HEADERS,
        )

    embed_url = embed_url.strip()
    log.info("extract_request", embed_url=embed_url)
    streams = await state.extractor.extract_all(embed_url)

    if not streams:
        return JSONResponse(
            {
                "success": False,
                "error": "No stream URLs found in embed page",
                "alternatives": [],
            },
            headers=_CORS_HEADERS,
        )

    best, rest = streams[0], streams[1 : 1 + _MAX_ALTERNATIVES]
    content: dict[str, Any] = {
        "success": True,
        "hlsUrl": best.url,
        "streamUrl": best.url,
        "type": best.kind.value,
        "alternatives": [_stream_dict(s) for s in rest],
    }
    return JSONResponse(content, headers=_CORS_HEADERS)
