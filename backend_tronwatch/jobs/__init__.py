"""Periodic jobs: summation aggregation, retention purge, and their scheduler."""

from backend_tronwatch.jobs.purge import PurgeJob, PurgeResult
from backend_tronwatch.jobs.scheduler import JobScheduler
from backend_tronwatch.jobs.summation import AggregationState, SummationJob, summarize_range

__all__ = [
    "AggregationState",
    "JobScheduler",
    "PurgeJob",
    "PurgeResult",
    "SummationJob",
    "summarize_range",
]
