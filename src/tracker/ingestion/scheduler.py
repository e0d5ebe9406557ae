"""Ingestion scheduler -- the recurring fetch, store and prune cycle.

Each cycle:
  1. SNAPSHOT: Read the tracked symbol set once from the registry
  2. INGEST: Fetch and upsert every symbol concurrently; a failing symbol
     is logged and skipped without affecting the others
  3. PRUNE: Run the retention sweeper once all symbols have settled,
     even when every fetch failed
  4. WAIT: Sleep the configured interval, measured from cycle completion

Cycles never overlap: the next sleep starts only after the current cycle
finishes, and a cycle lock guards run_cycle() against concurrent callers.
A failed symbol is not queued anywhere; it reappears in the next snapshot.
"""

import asyncio
import time
from dataclasses import asdict, dataclass, field
from enum import Enum

import structlog

from tracker.exceptions import UpstreamUnavailableError
from tracker.ingestion.fetcher import SampleFetcher, now_ms
from tracker.ingestion.retention import RetentionSweeper
from tracker.logging import get_logger
from tracker.models import Sample
from tracker.storage.registry import SymbolRegistry
from tracker.storage.store import TimeSeriesStore

logger = get_logger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class CycleReport:
    """Outcome of one ingestion cycle."""

    started_at: int
    symbols: int = 0
    stored: int = 0
    duplicates: int = 0
    failed: list[str] = field(default_factory=list)
    pruned: int = 0
    skipped: bool = False  # symbol snapshot could not be read
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


class IngestionScheduler:
    """Background loop sampling every tracked symbol on a fixed cadence.

    Args:
        registry: Source of the tracked symbol set.
        fetcher: Builds one Sample per symbol.
        store: Time-series store receiving samples.
        sweeper: Retention sweeper run at the end of each cycle.
        interval_seconds: Delay between the end of one cycle and the next.
        startup_delay_seconds: Delay before the first cycle so schema and
            connection setup can finish.
    """

    def __init__(
        self,
        registry: SymbolRegistry,
        fetcher: SampleFetcher,
        store: TimeSeriesStore,
        sweeper: RetentionSweeper,
        interval_seconds: float = 60.0,
        startup_delay_seconds: float = 5.0,
    ) -> None:
        self._registry = registry
        self._fetcher = fetcher
        self._store = store
        self._sweeper = sweeper
        self._interval = interval_seconds
        self._startup_delay = startup_delay_seconds
        self._state = SchedulerState.IDLE
        self._cycle_lock = asyncio.Lock()
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._cycles_completed = 0
        self._last_report: CycleReport | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def last_report(self) -> CycleReport | None:
        return self._last_report

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def start(self) -> None:
        """Begin the ingestion loop in the background."""
        if self._running:
            logger.warning("ingestion_scheduler_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "ingestion_scheduler_started",
            interval_seconds=self._interval,
            startup_delay_seconds=self._startup_delay,
        )

    async def stop(self) -> None:
        """Stop the loop, cancelling any in-flight cycle."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("ingestion_scheduler_stopped")

    async def _run_loop(self) -> None:
        await asyncio.sleep(self._startup_delay)
        while self._running:
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.error("ingestion_cycle_error", exc_info=True)
            if self._running:
                await asyncio.sleep(self._interval)

    # ──────────────────────────────────────────────
    # Cycle
    # ──────────────────────────────────────────────

    async def run_cycle(self) -> CycleReport:
        """Run one full cycle and return its report."""
        async with self._cycle_lock:
            self._state = SchedulerState.RUNNING
            try:
                report = await self._cycle()
            finally:
                self._state = SchedulerState.IDLE
            self._cycles_completed += 1
            self._last_report = report
            return report

    async def _cycle(self) -> CycleReport:
        started = time.monotonic()
        report = CycleReport(started_at=now_ms())

        try:
            symbols = await self._registry.list_symbols()
        except Exception:
            logger.error("symbol_snapshot_failed", exc_info=True)
            report.skipped = True
            report.duration_seconds = round(time.monotonic() - started, 3)
            return report

        report.symbols = len(symbols)
        outcomes = await asyncio.gather(
            *(self._ingest_symbol(symbol) for symbol in symbols),
            return_exceptions=True,
        )

        for symbol, outcome in zip(symbols, outcomes):
            if isinstance(outcome, UpstreamUnavailableError):
                logger.warning(
                    "symbol_fetch_failed",
                    symbol=symbol,
                    statuses=outcome.statuses,
                )
                report.failed.append(symbol)
            elif isinstance(outcome, BaseException):
                logger.error(
                    "symbol_ingest_failed",
                    symbol=symbol,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                report.failed.append(symbol)
            elif outcome:
                report.stored += 1
            else:
                report.duplicates += 1

        try:
            report.pruned = await self._sweeper.sweep()
        except Exception:
            logger.error("retention_sweep_failed", exc_info=True)

        report.duration_seconds = round(time.monotonic() - started, 3)
        logger.info(
            "ingestion_cycle_complete",
            symbols=report.symbols,
            stored=report.stored,
            duplicates=report.duplicates,
            failed=len(report.failed),
            pruned=report.pruned,
            duration_seconds=report.duration_seconds,
        )
        return report

    async def _ingest_symbol(self, symbol: str) -> bool:
        # gather() runs each coroutine in its own task, so the binding is per symbol
        with structlog.contextvars.bound_contextvars(symbol=symbol):
            sample = await self._fetcher.fetch(symbol)
            inserted = await self._store.upsert(sample)
            logger.debug("sample_stored", timestamp=sample.timestamp, inserted=inserted)
            return inserted

    async def fetch_now(self, symbol: str) -> Sample:
        """Fetch and store one sample immediately, outside the schedule.

        Used when a symbol has just been tracked and has no history yet.
        Errors propagate to the caller.
        """
        sample = await self._fetcher.fetch(symbol)
        inserted = await self._store.upsert(sample)
        logger.info(
            "on_demand_sample_stored",
            symbol=symbol,
            timestamp=sample.timestamp,
            inserted=inserted,
        )
        return sample

    def get_status(self) -> dict:
        return {
            "state": self._state.value,
            "running": self._running,
            "interval_seconds": self._interval,
            "cycles_completed": self._cycles_completed,
            "last_cycle": self._last_report.to_dict() if self._last_report else None,
        }
