"""Shared test fixtures for the market metrics tracker."""

from collections.abc import AsyncIterator
from decimal import Decimal

import pytest
import pytest_asyncio

from tracker.config import AppSettings, IngestionSettings, QuerySettings, StorageSettings
from tracker.models import Sample
from tracker.storage.database import MarketDatabase
from tracker.storage.registry import SqliteSymbolRegistry
from tracker.storage.store import TimeSeriesStore


def make_sample(
    symbol: str = "BTCUSDT",
    timestamp: int = 1000,
    price: str = "50000",
    open_interest: str = "1000",
    funding_rate: str = "0.0001",
) -> Sample:
    return Sample(
        symbol=symbol,
        timestamp=timestamp,
        price=Decimal(price),
        open_interest=Decimal(open_interest),
        funding_rate=Decimal(funding_rate),
    )


@pytest.fixture
def sample_factory():
    """Factory building Samples with BTCUSDT defaults."""
    return make_sample


@pytest.fixture
def mock_settings(tmp_path) -> AppSettings:
    """Return AppSettings with test defaults (temp database, no startup delay)."""
    return AppSettings(
        log_level="DEBUG",
        storage=StorageSettings(db_path=str(tmp_path / "market_data.db")),
        ingestion=IngestionSettings(
            interval_seconds=0.05,
            startup_delay_seconds=0.0,
            fetch_timeout_seconds=1.0,
        ),
        query=QuerySettings(),
    )


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncIterator[MarketDatabase]:
    """Connected MarketDatabase backed by a temp file."""
    async with MarketDatabase(str(tmp_path / "market_data.db")) as db:
        yield db


@pytest.fixture
def store(database: MarketDatabase) -> TimeSeriesStore:
    return TimeSeriesStore(database)


@pytest.fixture
def registry(database: MarketDatabase) -> SqliteSymbolRegistry:
    return SqliteSymbolRegistry(database)
