"""Query service -- validated, paginated read access to the time series.

Sits between the HTTP layer and TimeSeriesStore. It validates and clamps
input so that no request can turn into an unbounded scan, then converts
stored Decimal samples into float MarketDataPoints.

Pagination model:
- no cursor: the most recent ``limit`` points
- ``before`` cursor: the ``limit`` points immediately older than the cursor
- range: every point in [start, end], with the span capped
"""

from tracker.config import QuerySettings
from tracker.exceptions import InvalidQueryError
from tracker.logging import get_logger
from tracker.models import MAX_TIMESTAMP_MS, MarketDataPoint
from tracker.storage.store import TimeSeriesStore

logger = get_logger(__name__)

_MS_PER_DAY = 86_400 * 1000


class QueryService:
    """Read-side facade over the store with input validation."""

    def __init__(self, store: TimeSeriesStore, settings: QuerySettings) -> None:
        self._store = store
        self._settings = settings

    @property
    def max_limit(self) -> int:
        return self._settings.max_limit

    def _check_symbol(self, symbol: str | None) -> str:
        if symbol is None or not symbol.strip():
            raise InvalidQueryError("symbol is required")
        return symbol.strip().upper()

    def _check_timestamp(self, name: str, value: int) -> int:
        if not 0 <= value <= MAX_TIMESTAMP_MS:
            raise InvalidQueryError(
                f"{name} must be between 0 and {MAX_TIMESTAMP_MS}, got {value}"
            )
        return value

    def clamp_limit(self, limit: int | None) -> int:
        """Resolve the effective page size.

        None falls back to the default; values above the cap are clamped;
        values below 1 are rejected.
        """
        if limit is None:
            return min(self._settings.default_limit, self._settings.max_limit)
        if limit < 1:
            raise InvalidQueryError(f"limit must be >= 1, got {limit}")
        return min(limit, self._settings.max_limit)

    async def latest(self, symbol: str, limit: int | None = None) -> list[MarketDataPoint]:
        """Most recent points for ``symbol``, ascending."""
        symbol = self._check_symbol(symbol)
        samples = await self._store.latest(symbol, self.clamp_limit(limit))
        return [MarketDataPoint.from_sample(s) for s in samples]

    async def before(
        self, symbol: str, cursor_ms: int, limit: int | None = None
    ) -> list[MarketDataPoint]:
        """Points strictly older than ``cursor_ms``, closest first, ascending."""
        symbol = self._check_symbol(symbol)
        self._check_timestamp("before", cursor_ms)
        samples = await self._store.before(symbol, cursor_ms, self.clamp_limit(limit))
        return [MarketDataPoint.from_sample(s) for s in samples]

    async def page(
        self, symbol: str, limit: int | None = None, before: int | None = None
    ) -> list[MarketDataPoint]:
        """Latest page when ``before`` is None, otherwise the next older page."""
        if before is None:
            return await self.latest(symbol, limit)
        return await self.before(symbol, before, limit)

    async def range(self, symbol: str, start_ms: int, end_ms: int) -> list[MarketDataPoint]:
        """All points with start_ms <= timestamp <= end_ms, ascending.

        Raises InvalidQueryError for an inverted range or a span wider than
        ``max_range_days``.
        """
        symbol = self._check_symbol(symbol)
        self._check_timestamp("start", start_ms)
        self._check_timestamp("end", end_ms)
        if start_ms > end_ms:
            raise InvalidQueryError(f"start ({start_ms}) must not be after end ({end_ms})")
        max_span = self._settings.max_range_days * _MS_PER_DAY
        if end_ms - start_ms > max_span:
            raise InvalidQueryError(
                f"range spans more than {self._settings.max_range_days} days"
            )
        samples = await self._store.range(symbol, start_ms, end_ms)
        logger.debug("range_query", symbol=symbol, start_ms=start_ms, end_ms=end_ms, count=len(samples))
        return [MarketDataPoint.from_sample(s) for s in samples]
