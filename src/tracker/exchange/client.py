"""Abstract market-data client interface.

Defines the contract for the external market-data source. The sample
fetcher depends only on this interface, keeping Binance-specific details
isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod


class MarketDataClient(ABC):
    """Abstract base class for public market-data API clients.

    Each fetch method issues exactly one request for one symbol and returns
    the raw response payload. Failures surface as exceptions; pagination,
    retries and normalization are the caller's concern.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Prepare the underlying HTTP session."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_price(self, symbol: str) -> dict:
        """Fetch the latest traded price.

        Returns a dict with at least a ``price`` key.
        """
        ...

    @abstractmethod
    async def fetch_open_interest(self, symbol: str) -> dict:
        """Fetch current open interest.

        Returns a dict with at least an ``openInterest`` key.
        """
        ...

    @abstractmethod
    async def fetch_funding_rate(self, symbol: str) -> dict:
        """Fetch the premium index for a perpetual.

        Returns a dict with at least a ``lastFundingRate`` key.
        """
        ...
