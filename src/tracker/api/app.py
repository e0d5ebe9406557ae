"""FastAPI application factory for the market-data query API."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tracker.api.routes import coins, market_data, status
from tracker.exceptions import (
    InvalidQueryError,
    StoreUnavailableError,
    UnknownSymbolError,
    UpstreamUnavailableError,
)

log = structlog.get_logger(__name__)


async def _invalid_query(request: Request, exc: InvalidQueryError) -> JSONResponse:
    return JSONResponse(content={"error": str(exc)}, status_code=400)


async def _unknown_symbol(request: Request, exc: UnknownSymbolError) -> JSONResponse:
    return JSONResponse(content={"error": str(exc), "symbol": exc.symbol}, status_code=404)


async def _upstream_unavailable(
    request: Request, exc: UpstreamUnavailableError
) -> JSONResponse:
    log.warning("upstream_unavailable", symbol=exc.symbol, statuses=exc.statuses)
    return JSONResponse(
        content={"error": str(exc), "symbol": exc.symbol, "statuses": exc.statuses},
        status_code=502,
    )


async def _store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    log.error("store_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(content={"error": "storage unavailable"}, status_code=503)


def create_api_app(lifespan: Any = None, cors_origins: list[str] | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.
        cors_origins: Origins allowed to call the API from a browser.

    Returns:
        Configured FastAPI application. Route handlers read their
        collaborators (query_service, scheduler, store, registry) from
        app.state.
    """
    app = FastAPI(
        title="Market Metrics Tracker",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if cors_origins is not None else ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidQueryError, _invalid_query)
    app.add_exception_handler(UnknownSymbolError, _unknown_symbol)
    app.add_exception_handler(UpstreamUnavailableError, _upstream_unavailable)
    app.add_exception_handler(StoreUnavailableError, _store_unavailable)

    app.include_router(market_data.router, prefix="/api")
    app.include_router(coins.router, prefix="/api")
    app.include_router(status.router, prefix="/api")

    return app
