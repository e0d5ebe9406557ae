"""Retention sweeper -- deletes samples older than a fixed horizon."""

from collections.abc import Callable

from tracker.ingestion.fetcher import now_ms
from tracker.logging import get_logger
from tracker.storage.store import TimeSeriesStore

logger = get_logger(__name__)

_MS_PER_DAY = 86_400 * 1000


class RetentionSweeper:
    """Prunes every symbol's samples with timestamp < now - horizon.

    Stateless between invocations: the cutoff is derived from the clock on
    each call.
    """

    def __init__(
        self,
        store: TimeSeriesStore,
        retention_days: int = 7,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._horizon_ms = retention_days * _MS_PER_DAY
        self._clock = clock

    @property
    def horizon_ms(self) -> int:
        return self._horizon_ms

    def cutoff(self, at_ms: int | None = None) -> int:
        """Return the oldest timestamp that survives a sweep at ``at_ms``."""
        return (self._clock() if at_ms is None else at_ms) - self._horizon_ms

    async def sweep(self) -> int:
        """Delete expired samples. Returns the number of rows removed."""
        cutoff = self.cutoff()
        deleted = await self._store.prune_older_than(cutoff)
        if deleted:
            logger.info("retention_pruned", deleted=deleted, cutoff_ms=cutoff)
        return deleted
