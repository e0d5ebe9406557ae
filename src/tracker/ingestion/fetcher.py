"""Sample fetcher -- one concurrent three-endpoint read per symbol.

Price, open interest and funding rate come from three independent requests.
They are launched together and the sample is built only if all three
succeed. The capture timestamp is read from the fetcher's clock once all
responses have resolved, so the three metrics share one logical instant
regardless of per-endpoint timestamps reported by the exchange.

No retries here: a failed symbol is simply picked up again by the next
ingestion cycle.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from decimal import Decimal, InvalidOperation

from tracker.exceptions import UpstreamUnavailableError
from tracker.exchange.client import MarketDataClient
from tracker.logging import get_logger
from tracker.models import Sample

logger = get_logger(__name__)

STATUS_OK = "ok"
STATUS_TIMEOUT = "Timeout"
STATUS_MALFORMED = "MalformedResponse"

# endpoint name -> field holding the value in the raw payload
_FIELDS = {
    "price": "price",
    "open_interest": "openInterest",
    "funding_rate": "lastFundingRate",
}


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _status_of(result: object) -> str:
    if isinstance(result, asyncio.TimeoutError):
        return STATUS_TIMEOUT
    if isinstance(result, BaseException):
        return type(result).__name__
    return STATUS_OK


def _parse_decimal(payload: object, field: str) -> Decimal | None:
    if not isinstance(payload, dict):
        return None
    raw = payload.get(field)
    if raw is None or raw == "":
        return None
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


class SampleFetcher:
    """Builds one normalized Sample per symbol from the market-data client.

    Args:
        client: Market-data API client.
        timeout_seconds: Upper bound for each of the three requests.
        clock: Returns the capture time in epoch ms. Injectable for tests.
    """

    def __init__(
        self,
        client: MarketDataClient,
        timeout_seconds: float = 10.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._client = client
        self._timeout = timeout_seconds
        self._clock = clock

    async def fetch(self, symbol: str) -> Sample:
        """Fetch price, open interest and funding rate for ``symbol``.

        Raises:
            UpstreamUnavailableError: Any request failed, timed out or
                returned an unusable payload. ``statuses`` holds one label
                per endpoint.
        """
        results = await asyncio.gather(
            self._bounded(self._client.fetch_price(symbol)),
            self._bounded(self._client.fetch_open_interest(symbol)),
            self._bounded(self._client.fetch_funding_rate(symbol)),
            return_exceptions=True,
        )
        captured_at = self._clock()

        statuses = {
            name: _status_of(result) for name, result in zip(_FIELDS, results)
        }
        values: dict[str, Decimal] = {}
        for (name, field), result in zip(_FIELDS.items(), results):
            if statuses[name] != STATUS_OK:
                continue
            value = _parse_decimal(result, field)
            if value is None:
                statuses[name] = STATUS_MALFORMED
            else:
                values[name] = value

        if any(status != STATUS_OK for status in statuses.values()):
            raise UpstreamUnavailableError(symbol, statuses)

        return Sample(
            symbol=symbol,
            timestamp=captured_at,
            price=values["price"],
            open_interest=values["open_interest"],
            funding_rate=values["funding_rate"],
        )

    async def _bounded(self, request: Awaitable[dict]) -> dict:
        return await asyncio.wait_for(request, timeout=self._timeout)
