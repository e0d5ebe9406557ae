"""Exchange client layer -- Binance USD-M market data via ccxt."""

from tracker.exchange.binance_client import BinanceFuturesClient
from tracker.exchange.client import MarketDataClient

__all__ = ["BinanceFuturesClient", "MarketDataClient"]
