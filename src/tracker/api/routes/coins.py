"""Tracked-symbol endpoints backed by the symbol registry."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

log = structlog.get_logger(__name__)

router = APIRouter()


class CoinIn(BaseModel):
    symbol: str = Field(min_length=1)


@router.get("/coins")
async def list_coins(request: Request) -> JSONResponse:
    """Tracked symbols in the order they were added."""
    registry = request.app.state.registry
    coins = await registry.list_coins()
    return JSONResponse(
        content=[{"symbol": c.symbol, "added_at": c.added_at} for c in coins]
    )


@router.post("/coins")
async def add_coin(request: Request, body: CoinIn) -> JSONResponse:
    """Start tracking a symbol. Re-adding an existing symbol is harmless."""
    registry = request.app.state.registry
    try:
        symbol = await registry.add_symbol(body.symbol)
    except ValueError as e:
        return JSONResponse(content={"error": str(e)}, status_code=400)
    return JSONResponse(content={"symbol": symbol}, status_code=201)


@router.delete("/coins/{symbol}")
async def remove_coin(request: Request, symbol: str) -> JSONResponse:
    """Stop tracking a symbol; its samples are removed with it."""
    registry = request.app.state.registry
    symbol = symbol.strip().upper()
    removed = await registry.remove_symbol(symbol)
    if not removed:
        return JSONResponse(
            content={"error": f"Symbol {symbol} is not tracked"}, status_code=404
        )
    return JSONResponse(content={"symbol": symbol})
