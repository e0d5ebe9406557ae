"""Typed SQLite read/write abstraction for the market-data time series.

Provides TimeSeriesStore with idempotent insert, ordered range scans and
bulk delete-by-age. All SQL touching market_data is isolated here.

CRITICAL: Decimal values are stored as TEXT in SQLite and restored as Decimal
on read. Every read returns samples in ascending timestamp order.
"""

import sqlite3
from collections.abc import Iterable
from decimal import Decimal

from tracker.exceptions import StoreUnavailableError, UnknownSymbolError
from tracker.logging import get_logger
from tracker.models import Sample
from tracker.storage.database import MarketDatabase

logger = get_logger(__name__)

_SELECT_COLUMNS = "SELECT symbol, timestamp, price, open_interest, funding_rate FROM market_data"


def _row_to_sample(row: Iterable) -> Sample:
    symbol, timestamp, price, open_interest, funding_rate = row
    return Sample(
        symbol=symbol,
        timestamp=timestamp,
        price=Decimal(price),
        open_interest=Decimal(open_interest),
        funding_rate=Decimal(funding_rate),
    )


class TimeSeriesStore:
    """Async SQLite store for per-symbol market-data samples.

    Deduplication relies solely on the UNIQUE(symbol, timestamp) constraint:
    a second write with an existing key is ignored, so the first write wins.
    The store performs no application-level dedup or locking.

    Usage:
        async with MarketDatabase("data/market_data.db") as database:
            store = TimeSeriesStore(database)
            await store.upsert(sample)
            recent = await store.latest("BTCUSDT", 100)
    """

    def __init__(self, database: MarketDatabase) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def upsert(self, sample: Sample) -> bool:
        """Insert a sample, ignoring an existing (symbol, timestamp) row.

        Returns True when a new row was written and False when the key was
        already present. Duplicates never raise.

        Raises:
            UnknownSymbolError: The symbol is not registered in coins.
            StoreUnavailableError: The database could not be written.
        """
        try:
            cursor = await self._database.db.execute(
                "INSERT OR IGNORE INTO market_data "
                "(symbol, timestamp, open_interest, funding_rate, price) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    sample.symbol,
                    sample.timestamp,
                    str(sample.open_interest),
                    str(sample.funding_rate),
                    str(sample.price),
                ),
            )
            await self._database.db.commit()
        except sqlite3.IntegrityError as e:
            # OR IGNORE does not cover foreign key violations
            raise UnknownSymbolError(sample.symbol) from e
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"upsert failed: {e}") from e

        inserted = cursor.rowcount == 1
        logger.debug(
            "sample_upserted",
            symbol=sample.symbol,
            timestamp=sample.timestamp,
            inserted=inserted,
        )
        return inserted

    async def prune_older_than(self, cutoff_ms: int) -> int:
        """Delete samples of every symbol with timestamp < cutoff_ms.

        Returns the number of rows removed.
        """
        try:
            cursor = await self._database.db.execute(
                "DELETE FROM market_data WHERE timestamp < ?", (cutoff_ms,)
            )
            await self._database.db.commit()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"prune failed: {e}") from e
        return cursor.rowcount

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def latest(self, symbol: str, limit: int) -> list[Sample]:
        """Return up to ``limit`` most recent samples, ascending."""
        rows = await self._fetch(
            f"{_SELECT_COLUMNS} WHERE symbol = ? ORDER BY timestamp DESC LIMIT ?",
            (symbol, limit),
        )
        rows.reverse()
        return [_row_to_sample(row) for row in rows]

    async def before(self, symbol: str, cursor_ms: int, limit: int) -> list[Sample]:
        """Return up to ``limit`` samples with timestamp < cursor_ms, ascending.

        The slice is the one closest to the cursor, not the oldest: rows are
        selected newest-first so LIMIT cuts at the far end, then reversed.
        Feeding the earliest returned timestamp back as the next cursor walks
        history with no gaps and no overlap.
        """
        rows = await self._fetch(
            f"{_SELECT_COLUMNS} WHERE symbol = ? AND timestamp < ? "
            "ORDER BY timestamp DESC LIMIT ?",
            (symbol, cursor_ms, limit),
        )
        rows.reverse()
        return [_row_to_sample(row) for row in rows]

    async def range(self, symbol: str, start_ms: int, end_ms: int) -> list[Sample]:
        """Return every sample with start_ms <= timestamp <= end_ms, ascending.

        Unbounded in count; callers bound the span.
        """
        rows = await self._fetch(
            f"{_SELECT_COLUMNS} WHERE symbol = ? AND timestamp >= ? AND timestamp <= ? "
            "ORDER BY timestamp ASC",
            (symbol, start_ms, end_ms),
        )
        return [_row_to_sample(row) for row in rows]

    async def get_data_status(self) -> dict:
        """Aggregate counts for the status endpoint.

        Returns dict with total_symbols, total_samples, earliest_ms, latest_ms.
        """
        [(total_symbols,)] = await self._fetch("SELECT COUNT(*) FROM coins", ())
        [(total_samples, earliest_ms, latest_ms)] = await self._fetch(
            "SELECT COUNT(*), MIN(timestamp), MAX(timestamp) FROM market_data", ()
        )

        return {
            "total_symbols": total_symbols,
            "total_samples": total_samples,
            "earliest_ms": earliest_ms,
            "latest_ms": latest_ms,
        }

    async def _fetch(self, query: str, params: tuple) -> list:
        try:
            cursor = await self._database.db.execute(query, params)
            return list(await cursor.fetchall())
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"query failed: {e}") from e
