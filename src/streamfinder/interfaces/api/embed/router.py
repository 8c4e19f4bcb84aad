"""Embed domain management endpoints."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from streamfinder.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/embed-domain", tags=["embed"])


@router.get("")
async def embed_domain_status(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    status = await state.embed_domains.status()
    return JSONResponse(
        {
            "currentDomain": status.current_domain,
            "failedDomains": status.failed_domains,
            "availability": status.availability,
        }
    )


@router.post("/resolve")
async def resolve_embed_domain(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    domain = await state.embed_domains.resolve_working_domain()
    return JSONResponse({"domain": domain})


@router.post("/failed")
async def mark_embed_domain_failed(request: Request) -> JSONResponse:
    """Demote a domain; answers with the next domain to try (or null)."""
    state = cast(AppState, request.app.state)

    try:
        body = await request.json()
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from e
    domain = body.get("domain") if isinstance(body, dict) else None
    if not isinstance(domain, str) or not domain:
        raise HTTPException(status_code=400, detail="domain is required")

    manager = state.embed_domains
    await manager.mark_failed(domain)
    return JSONResponse({"failed": domain, "next": manager.next_after(domain)})


@router.post("/reset")
async def reset_embed_domains(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    await state.embed_domains.reset()
    return JSONResponse({"currentDomain": await state.embed_domains.current_domain()})
