"""Async SQLite database manager for the market-data time series.

Uses aiosqlite for non-blocking database operations with WAL mode so the
ingestion loop and API readers can share one database concurrently.
"""

import os
from typing import Self

import aiosqlite

from tracker.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

# Decimal columns are TEXT so values round-trip exactly.
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS coins (
    symbol TEXT PRIMARY KEY,
    added_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS market_data (
    symbol TEXT NOT NULL REFERENCES coins(symbol) ON DELETE CASCADE,
    timestamp INTEGER NOT NULL,
    open_interest TEXT NOT NULL,
    funding_rate TEXT NOT NULL,
    price TEXT NOT NULL,
    UNIQUE (symbol, timestamp)
);
"""

_CREATE_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_market_data_timestamp
    ON market_data(timestamp);
"""


class MarketDatabase:
    """Async SQLite connection manager for market data.

    Owns the single shared connection used by the store, the symbol
    registry and the query path. Manages schema creation, pragmas and
    clean resource cleanup.

    Usage:
        async with MarketDatabase("data/market_data.db") as database:
            store = TimeSeriesStore(database)
    """

    def __init__(self, db_path: str = "data/market_data.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Open the connection, configure pragmas, and create the schema.

        Any failure here is fatal for the caller: the API must not serve
        traffic against an uninitialized schema.
        """
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)

        if self._db_path != ":memory:":
            await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")
        # Required for ON DELETE CASCADE from coins to market_data
        await self._connection.execute("PRAGMA foreign_keys=ON")

        await self._create_tables()
        await self._ensure_schema_version()

        logger.info("market_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("market_db_closed", db_path=self._db_path)

    async def _create_tables(self) -> None:
        assert self._connection is not None
        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.executescript(_CREATE_INDEXES_SQL)
        await self._connection.commit()

    async def _ensure_schema_version(self) -> None:
        assert self._connection is not None
        cursor = await self._connection.execute(
            "SELECT version FROM schema_version LIMIT 1"
        )
        row = await cursor.fetchone()
        if row is None:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            await self._connection.commit()
            logger.info("schema_version_set", version=SCHEMA_VERSION)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
