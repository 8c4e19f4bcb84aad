"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from starlette.responses import Response

from streamfinder.infrastructure.config import AppConfig
from streamfinder.interfaces.app_state import AppState
from streamfinder.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration only, no resource initialization.

    Resources (HTTP client, cache, resolvers) are created in lifespan().
    """
    app = FastAPI(
        title="Streamfinder",
        description="Live sports stream resolution service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from streamfinder.interfaces.api.embed.router import router as embed_router
    from streamfinder.interfaces.api.extract.router import router as extract_router
    from streamfinder.interfaces.api.streams.router import router as streams_router

    app.include_router(extract_router, prefix="/api")
    app.include_router(streams_router, prefix="/api")
    app.include_router(embed_router, prefix="/api")

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        """Liveness check; returns 200 as long as the process is running."""
        return {"status": "ok"}

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        start = time.perf_counter()
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            status_code = getattr(locals().get("response", None), "status_code", 500)

            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                query=str(request.url.query),
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
