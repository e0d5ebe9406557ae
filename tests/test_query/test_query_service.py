"""Tests for QueryService validation, clamping and float conversion."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from tracker.config import QuerySettings
from tracker.exceptions import InvalidQueryError
from tracker.models import MAX_TIMESTAMP_MS, MarketDataPoint
from tracker.query.service import QueryService
from tracker.storage.registry import SqliteSymbolRegistry
from tracker.storage.store import TimeSeriesStore

DAY_MS = 86_400 * 1000


@pytest.fixture
def settings() -> QuerySettings:
    return QuerySettings(default_limit=100, max_limit=500, max_range_days=7)


@pytest_asyncio.fixture
async def service(
    store: TimeSeriesStore, registry: SqliteSymbolRegistry, settings: QuerySettings
) -> QueryService:
    await registry.add_symbol("BTCUSDT")
    return QueryService(store, settings)


async def _seed(store: TimeSeriesStore, sample_factory, timestamps) -> None:
    for ts in timestamps:
        await store.upsert(sample_factory(timestamp=ts))


class TestClampLimit:
    def test_default_when_missing(self, settings: QuerySettings) -> None:
        assert QueryService(AsyncMock(), settings).clamp_limit(None) == 100

    def test_clamped_to_max(self, settings: QuerySettings) -> None:
        assert QueryService(AsyncMock(), settings).clamp_limit(10_000) == 500

    def test_within_bounds_untouched(self, settings: QuerySettings) -> None:
        assert QueryService(AsyncMock(), settings).clamp_limit(42) == 42

    @pytest.mark.parametrize("limit", [0, -1, -500])
    def test_below_one_rejected(self, settings: QuerySettings, limit: int) -> None:
        with pytest.raises(InvalidQueryError):
            QueryService(AsyncMock(), settings).clamp_limit(limit)

    def test_default_never_exceeds_max(self) -> None:
        settings = QuerySettings(default_limit=1000, max_limit=50)
        assert QueryService(AsyncMock(), settings).clamp_limit(None) == 50


class TestLatest:
    @pytest.mark.asyncio
    async def test_scenario_two_cycles_same_values(
        self, service: QueryService, store: TimeSeriesStore, sample_factory
    ) -> None:
        await _seed(store, sample_factory, [1000, 2000])

        points = await service.latest("BTCUSDT", 10)

        assert points == [
            MarketDataPoint(timestamp=1000, open_interest=1000.0, funding_rate=0.0001, price=50000.0),
            MarketDataPoint(timestamp=2000, open_interest=1000.0, funding_rate=0.0001, price=50000.0),
        ]

    @pytest.mark.asyncio
    async def test_huge_limit_returns_at_most_cap(
        self, service: QueryService, store: TimeSeriesStore, sample_factory
    ) -> None:
        await _seed(store, sample_factory, range(1, 521))

        points = await service.latest("BTCUSDT", 10_000)

        assert len(points) == 500
        assert points[0].timestamp == 21
        assert points[-1].timestamp == 520

    @pytest.mark.asyncio
    async def test_store_receives_clamped_limit(self, settings: QuerySettings) -> None:
        store = AsyncMock()
        store.latest = AsyncMock(return_value=[])
        await QueryService(store, settings).latest("BTCUSDT", 10_000)
        store.latest.assert_awaited_once_with("BTCUSDT", 500)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("symbol", ["", "   ", None])
    async def test_blank_symbol_rejected_before_store(
        self, settings: QuerySettings, symbol
    ) -> None:
        store = AsyncMock()
        with pytest.raises(InvalidQueryError):
            await QueryService(store, settings).latest(symbol, 10)
        store.latest.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_symbol_normalized_before_store(self, settings: QuerySettings) -> None:
        store = AsyncMock()
        store.latest = AsyncMock(return_value=[])
        await QueryService(store, settings).latest(" btcusdt ", 10)
        store.latest.assert_awaited_once_with("BTCUSDT", 10)

    @pytest.mark.asyncio
    async def test_values_converted_to_float(
        self, service: QueryService, store: TimeSeriesStore, sample_factory
    ) -> None:
        await store.upsert(
            sample_factory(timestamp=1, price="65432.5", open_interest="12.25", funding_rate="-0.000125")
        )
        [point] = await service.latest("BTCUSDT")
        assert isinstance(point.price, float)
        assert point.price == 65432.5
        assert point.open_interest == 12.25
        assert point.funding_rate == -0.000125


class TestBefore:
    @pytest.mark.asyncio
    async def test_page_without_cursor_is_latest(
        self, service: QueryService, store: TimeSeriesStore, sample_factory
    ) -> None:
        await _seed(store, sample_factory, [1000, 2000, 3000])
        points = await service.page("BTCUSDT", limit=2)
        assert [p.timestamp for p in points] == [2000, 3000]

    @pytest.mark.asyncio
    async def test_backward_pagination_walks_history(
        self, service: QueryService, store: TimeSeriesStore, sample_factory
    ) -> None:
        all_ts = list(range(1000, 13000, 1000))  # 12 samples
        await _seed(store, sample_factory, all_ts)

        pages = [await service.page("BTCUSDT", limit=5)]
        while True:
            page = await service.page("BTCUSDT", limit=5, before=pages[0][0].timestamp)
            if not page:
                break
            pages.insert(0, page)

        assert [len(p) for p in pages] == [2, 5, 5]
        flattened = [p.timestamp for page in pages for p in page]
        assert flattened == all_ts

    @pytest.mark.asyncio
    async def test_negative_cursor_rejected(self, service: QueryService) -> None:
        with pytest.raises(InvalidQueryError):
            await service.before("BTCUSDT", -1, 10)

    @pytest.mark.asyncio
    async def test_cursor_above_integer_range_rejected(self, service: QueryService) -> None:
        with pytest.raises(InvalidQueryError):
            await service.before("BTCUSDT", MAX_TIMESTAMP_MS + 1, 10)

    @pytest.mark.asyncio
    async def test_cursor_at_integer_max_accepted(
        self, service: QueryService, store: TimeSeriesStore, sample_factory
    ) -> None:
        await _seed(store, sample_factory, [1000])
        points = await service.before("BTCUSDT", MAX_TIMESTAMP_MS, 10)
        assert [p.timestamp for p in points] == [1000]


class TestRange:
    @pytest.mark.asyncio
    async def test_range_inclusive(
        self, service: QueryService, store: TimeSeriesStore, sample_factory
    ) -> None:
        await _seed(store, sample_factory, [1000, 2000, 3000])
        points = await service.range("BTCUSDT", 1000, 2000)
        assert [p.timestamp for p in points] == [1000, 2000]

    @pytest.mark.asyncio
    async def test_inverted_range_rejected(self, service: QueryService) -> None:
        with pytest.raises(InvalidQueryError):
            await service.range("BTCUSDT", 2000, 1000)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "start, end",
        [(MAX_TIMESTAMP_MS + 1, MAX_TIMESTAMP_MS + 2), (-5, 0)],
    )
    async def test_bounds_outside_integer_range_rejected(
        self, service: QueryService, start: int, end: int
    ) -> None:
        with pytest.raises(InvalidQueryError):
            await service.range("BTCUSDT", start, end)

    @pytest.mark.asyncio
    async def test_span_over_limit_rejected(self, service: QueryService) -> None:
        with pytest.raises(InvalidQueryError):
            await service.range("BTCUSDT", 0, 7 * DAY_MS + 1)

    @pytest.mark.asyncio
    async def test_span_at_limit_accepted(self, service: QueryService) -> None:
        assert await service.range("BTCUSDT", 0, 7 * DAY_MS) == []


class TestMarketDataPoint:
    def test_to_dict_uses_camel_case(self, sample_factory) -> None:
        point = MarketDataPoint.from_sample(sample_factory(timestamp=5))
        assert point.to_dict() == {
            "timestamp": 5,
            "openInterest": 1000.0,
            "fundingRate": 0.0001,
            "price": 50000.0,
        }

    def test_from_sample_keeps_sign(self, sample_factory) -> None:
        sample = sample_factory(funding_rate="-0.0003")
        assert MarketDataPoint.from_sample(sample).funding_rate == float(Decimal("-0.0003"))
