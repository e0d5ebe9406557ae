"""Market-data endpoints: paginated history, range slices, writes and fetch-now."""

from __future__ import annotations

from decimal import Decimal

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from tracker.models import MAX_TIMESTAMP_MS, MarketDataPoint, Sample

log = structlog.get_logger(__name__)

router = APIRouter()


def _normalize_symbol(value: str) -> str:
    value = value.strip().upper()
    if not value:
        raise ValueError("symbol must not be blank")
    return value


class SampleIn(BaseModel):
    """Body of a sample write, using the chart client's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    symbol: str = Field(min_length=1)
    timestamp: int = Field(ge=0, le=MAX_TIMESTAMP_MS)
    open_interest: Decimal = Field(alias="openInterest")
    funding_rate: Decimal = Field(alias="fundingRate")
    price: Decimal

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, value: str) -> str:
        return _normalize_symbol(value)


class FetchRequest(BaseModel):
    symbol: str = Field(min_length=1)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, value: str) -> str:
        return _normalize_symbol(value)


@router.get("/market-data")
async def get_market_data(
    request: Request,
    symbol: str = "",
    limit: int | None = None,
    before: int | None = None,
) -> JSONResponse:
    """Latest page of samples, or the page immediately older than ``before``.

    Query params:
        symbol: Tracked symbol (e.g., "BTCUSDT"). Required.
        limit: Page size, clamped to the configured maximum.
        before: Optional cursor in epoch ms; only samples strictly older
            are returned.

    Returns:
        JSON array of points in ascending timestamp order.
    """
    query_service = request.app.state.query_service
    points = await query_service.page(symbol, limit=limit, before=before)
    return JSONResponse(content=[p.to_dict() for p in points])


@router.get("/market-data/range")
async def get_market_data_range(
    request: Request, start: int, end: int, symbol: str = ""
) -> JSONResponse:
    """All samples with start <= timestamp <= end, ascending."""
    query_service = request.app.state.query_service
    points = await query_service.range(symbol, start, end)
    return JSONResponse(content=[p.to_dict() for p in points])


@router.api_route("/market-data", methods=["PUT", "POST"])
async def put_market_data(request: Request, body: SampleIn) -> JSONResponse:
    """Idempotently store one sample. A repeated key is acknowledged, not overwritten."""
    store = request.app.state.store
    sample = Sample(
        symbol=body.symbol,
        timestamp=body.timestamp,
        price=body.price,
        open_interest=body.open_interest,
        funding_rate=body.funding_rate,
    )
    inserted = await store.upsert(sample)
    return JSONResponse(
        content={"symbol": sample.symbol, "timestamp": sample.timestamp, "inserted": inserted},
        status_code=201 if inserted else 200,
    )


@router.post("/market-data/fetch")
async def fetch_now(request: Request, body: FetchRequest) -> JSONResponse:
    """Fetch and store a fresh sample for ``symbol`` outside the schedule."""
    scheduler = request.app.state.scheduler
    sample = await scheduler.fetch_now(body.symbol)
    log.info("fetch_now_served", symbol=body.symbol, timestamp=sample.timestamp)
    return JSONResponse(content=MarketDataPoint.from_sample(sample).to_dict())
