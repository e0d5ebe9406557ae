"""Custom exceptions for the market metrics tracker.

Ingestion, storage and query exceptions live here so the API layer can
translate them into responses without importing component internals.
"""


class TrackerError(Exception):
    """Base exception for all tracker errors."""


class UpstreamUnavailableError(TrackerError):
    """Raised when one or more market-data endpoints failed for a symbol.

    ``statuses`` maps each endpoint name to "ok" or the failure label, e.g.
    ``{"price": "ok", "open_interest": "BadSymbol", "funding_rate": "ok"}``.
    The labels are diagnostic only.
    """

    def __init__(self, symbol: str, statuses: dict[str, str]) -> None:
        self.symbol = symbol
        self.statuses = statuses
        detail = ", ".join(f"{name}:{status}" for name, status in statuses.items())
        super().__init__(f"Market data request failed for {symbol} ({detail})")


class StoreUnavailableError(TrackerError):
    """Raised when the time-series database cannot be read or written."""


class UnknownSymbolError(TrackerError):
    """Raised when writing a sample for a symbol that is not tracked."""

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"Symbol {symbol} is not tracked")


class InvalidQueryError(TrackerError):
    """Raised when query input is rejected before reaching the store."""
