"""Binance USD-M futures market-data client via ccxt async.

Uses ccxt's implicit (raw endpoint) API on binanceusdm so symbols are the
exchange ids the user tracks (e.g. "BTCUSDT") rather than ccxt unified
symbols, and no market loading is needed before the first request.

Endpoints:
- GET /fapi/v1/ticker/price
- GET /fapi/v1/openInterest
- GET /fapi/v1/premiumIndex (lastFundingRate)
"""

import ccxt.async_support as ccxt_async

from tracker.config import ExchangeSettings
from tracker.exchange.client import MarketDataClient
from tracker.logging import get_logger

logger = get_logger(__name__)


class BinanceFuturesClient(MarketDataClient):
    """Public-endpoint Binance USD-M futures client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings
        self._exchange = ccxt_async.binanceusdm(
            {
                "enableRateLimit": True,
                "timeout": settings.request_timeout_ms,
            }
        )
        if settings.testnet:
            self._exchange.set_sandbox_mode(True)

    @property
    def exchange(self) -> ccxt_async.binanceusdm:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        # Implicit endpoints need no markets; the session opens lazily.
        logger.info("binance_client_ready", testnet=self._settings.testnet)

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        await self._exchange.close()
        logger.info("binance_connection_closed")

    async def fetch_price(self, symbol: str) -> dict:
        return await self._exchange.fapiPublicGetTickerPrice({"symbol": symbol})

    async def fetch_open_interest(self, symbol: str) -> dict:
        return await self._exchange.fapiPublicGetOpenInterest({"symbol": symbol})

    async def fetch_funding_rate(self, symbol: str) -> dict:
        return await self._exchange.fapiPublicGetPremiumIndex({"symbol": symbol})
