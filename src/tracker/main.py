"""Entry point for the market metrics tracker.

Wires all components together and serves the query API. When the API is
enabled (default), the ingestion scheduler and the API share a single
asyncio event loop via uvicorn's programmatic API and FastAPI's lifespan
context manager.

Handles SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. MarketDatabase (shared aiosqlite connection)
4. TimeSeriesStore and SqliteSymbolRegistry
5. MarketDataClient (Binance USD-M via ccxt)
6. SampleFetcher
7. RetentionSweeper
8. IngestionScheduler
9. QueryService
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from tracker.config import AppSettings
from tracker.exchange.binance_client import BinanceFuturesClient
from tracker.ingestion.fetcher import SampleFetcher
from tracker.ingestion.retention import RetentionSweeper
from tracker.ingestion.scheduler import IngestionScheduler
from tracker.logging import get_logger, setup_logging
from tracker.query.service import QueryService
from tracker.storage.database import MarketDatabase
from tracker.storage.registry import SqliteSymbolRegistry
from tracker.storage.store import TimeSeriesStore


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Note: Does NOT connect the database or start the scheduler -- that
    happens in the lifespan (API mode) or run() (headless mode).
    """
    database = MarketDatabase(settings.storage.db_path)
    store = TimeSeriesStore(database)
    registry = SqliteSymbolRegistry(database)
    exchange_client = BinanceFuturesClient(settings.exchange)
    fetcher = SampleFetcher(
        exchange_client,
        timeout_seconds=settings.ingestion.fetch_timeout_seconds,
    )
    sweeper = RetentionSweeper(store, retention_days=settings.ingestion.retention_days)
    scheduler = IngestionScheduler(
        registry=registry,
        fetcher=fetcher,
        store=store,
        sweeper=sweeper,
        interval_seconds=settings.ingestion.interval_seconds,
        startup_delay_seconds=settings.ingestion.startup_delay_seconds,
    )
    query_service = QueryService(store, settings.query)

    return {
        "database": database,
        "store": store,
        "registry": registry,
        "exchange_client": exchange_client,
        "fetcher": fetcher,
        "sweeper": sweeper,
        "scheduler": scheduler,
        "query_service": query_service,
    }


def _setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """Register SIGINT/SIGTERM to set ``stop_event``.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("tracker.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: connects the database (schema failures propagate and abort
    startup), prepares the exchange client, starts the scheduler.

    On shutdown: stops the scheduler, closes the exchange client and the
    database.
    """
    logger = get_logger("tracker.main")
    settings: AppSettings = app.state.settings
    components = app.state.components

    app.state.store = components["store"]
    app.state.registry = components["registry"]
    app.state.scheduler = components["scheduler"]
    app.state.query_service = components["query_service"]

    await components["database"].connect()
    try:
        await components["exchange_client"].connect()
        if settings.ingestion.enabled:
            await components["scheduler"].start()

        logger.info("lifespan_started", ingestion_enabled=settings.ingestion.enabled)
        yield
    finally:
        await components["scheduler"].stop()
        await components["exchange_client"].close()
        await components["database"].close()
        logger.info("market_tracker_stopped")


async def run() -> None:
    """Run the tracker.

    When the API is enabled (API_ENABLED=true, the default) uvicorn serves
    the FastAPI app and the lifespan owns component startup/shutdown.
    Otherwise the scheduler runs headless until SIGINT/SIGTERM.
    """
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("tracker.main")

    components = _build_components(settings)

    if settings.api.enabled:
        from tracker.api.app import create_api_app

        app = create_api_app(lifespan=lifespan, cors_origins=settings.api.cors_origins)
        app.state.settings = settings
        app.state.components = components

        logger.info("starting_with_api", host=settings.api.host, port=settings.api.port)

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
        return

    stop_event = asyncio.Event()
    _setup_signal_handlers(stop_event)
    logger.info("starting_headless", interval_seconds=settings.ingestion.interval_seconds)

    await components["database"].connect()
    try:
        await components["exchange_client"].connect()
        await components["scheduler"].start()
        await stop_event.wait()
    finally:
        await components["scheduler"].stop()
        await components["exchange_client"].close()
        await components["database"].close()
        logger.info("market_tracker_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
