"""Ingestion layer -- sample fetching, the recurring cycle and retention."""

from tracker.ingestion.fetcher import SampleFetcher
from tracker.ingestion.retention import RetentionSweeper
from tracker.ingestion.scheduler import CycleReport, IngestionScheduler, SchedulerState

__all__ = [
    "CycleReport",
    "IngestionScheduler",
    "RetentionSweeper",
    "SampleFetcher",
    "SchedulerState",
]
