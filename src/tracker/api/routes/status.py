"""Operational status endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Scheduler state, last cycle report and stored data totals."""
    scheduler = request.app.state.scheduler
    store = request.app.state.store
    return JSONResponse(
        content={
            "scheduler": scheduler.get_status(),
            "data": await store.get_data_status(),
        }
    )
