"""Time-series persistence layer.

Provides SQLite database management, the typed sample store and the symbol
registry backed by the same connection.
"""

from tracker.storage.database import MarketDatabase
from tracker.storage.registry import SqliteSymbolRegistry, SymbolRegistry
from tracker.storage.store import TimeSeriesStore

__all__ = [
    "MarketDatabase",
    "SqliteSymbolRegistry",
    "SymbolRegistry",
    "TimeSeriesStore",
]
