"""Core data models for tracked symbols and market-data samples.

CRITICAL: Stored values use Decimal. Conversion to float only happens at the
query boundary (MarketDataPoint), never before persistence.
"""

from dataclasses import dataclass
from decimal import Decimal

# Largest value a SQLite INTEGER column can hold
MAX_TIMESTAMP_MS = 2**63 - 1


@dataclass(frozen=True)
class Sample:
    """One observation of price, open interest and funding rate for a symbol.

    ``timestamp`` is the capture time in epoch milliseconds assigned by the
    fetcher, not any timestamp reported by the exchange. (symbol, timestamp)
    is the identity of a sample.
    """

    symbol: str
    timestamp: int
    price: Decimal
    open_interest: Decimal
    funding_rate: Decimal


@dataclass(frozen=True)
class TrackedSymbol:
    """A symbol registered for periodic sampling."""

    symbol: str
    added_at: int  # epoch ms


@dataclass
class MarketDataPoint:
    """Client-facing rendition of a Sample with float fields.

    Precision loss from Decimal to float is accepted here; the store keeps
    exact values.
    """

    timestamp: int
    open_interest: float
    funding_rate: float
    price: float

    @classmethod
    def from_sample(cls, sample: Sample) -> "MarketDataPoint":
        return cls(
            timestamp=sample.timestamp,
            open_interest=float(sample.open_interest),
            funding_rate=float(sample.funding_rate),
            price=float(sample.price),
        )

    def to_dict(self) -> dict:
        """Serialize with the camelCase keys the chart client expects."""
        return {
            "timestamp": self.timestamp,
            "openInterest": self.open_interest,
            "fundingRate": self.funding_rate,
            "price": self.price,
        }
