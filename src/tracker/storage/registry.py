"""Symbol registry: the set of symbols sampled each ingestion cycle.

The ingestion scheduler depends only on the SymbolRegistry protocol and
reads one snapshot per cycle. SqliteSymbolRegistry is the concrete
implementation backed by the coins table.
"""

import time
from typing import Protocol

from tracker.logging import get_logger
from tracker.models import TrackedSymbol
from tracker.storage.database import MarketDatabase

logger = get_logger(__name__)


class SymbolRegistry(Protocol):
    """Read-side contract used by the ingestion scheduler."""

    async def list_symbols(self) -> list[str]:
        """Return a snapshot of all currently tracked symbols."""
        ...


class SqliteSymbolRegistry:
    """Tracked symbols stored in the coins table.

    Removing a symbol cascades to its market_data rows.
    """

    def __init__(self, database: MarketDatabase) -> None:
        self._database = database

    async def list_symbols(self) -> list[str]:
        cursor = await self._database.db.execute(
            "SELECT symbol FROM coins ORDER BY added_at, symbol"
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def list_coins(self) -> list[TrackedSymbol]:
        cursor = await self._database.db.execute(
            "SELECT symbol, added_at FROM coins ORDER BY added_at, symbol"
        )
        rows = await cursor.fetchall()
        return [TrackedSymbol(symbol=row[0], added_at=row[1]) for row in rows]

    async def add_symbol(self, symbol: str) -> str:
        """Track a symbol. Upper-cases it; re-adding is a no-op.

        Returns the normalized symbol.
        """
        normalized = symbol.strip().upper()
        if not normalized:
            raise ValueError("symbol must not be empty")
        now_ms = int(time.time() * 1000)
        cursor = await self._database.db.execute(
            "INSERT OR IGNORE INTO coins (symbol, added_at) VALUES (?, ?)",
            (normalized, now_ms),
        )
        await self._database.db.commit()
        if cursor.rowcount == 1:
            logger.info("symbol_tracked", symbol=normalized)
        return normalized

    async def remove_symbol(self, symbol: str) -> bool:
        """Stop tracking a symbol and drop its samples.

        Returns True if the symbol was tracked.
        """
        symbol = symbol.strip().upper()
        cursor = await self._database.db.execute(
            "DELETE FROM coins WHERE symbol = ?", (symbol,)
        )
        await self._database.db.commit()
        removed = cursor.rowcount == 1
        if removed:
            logger.info("symbol_untracked", symbol=symbol)
        return removed
