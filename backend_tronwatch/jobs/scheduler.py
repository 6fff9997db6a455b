"""
Periodic job scheduling via APScheduler (background thread, UTC).

Two independent interval jobs: summation (fixed wall-clock interval) and
purge (purgeFrequencyHours, rescheduled when settings change). Each job
allows one instance at a time and coalesces missed runs.
"""

from __future__ import annotations

from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from pytz import utc

from backend_tronwatch.jobs.purge import PurgeJob
from backend_tronwatch.jobs.summation import SummationJob
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

SUMMATION_JOB_ID = "tronwatch_summation"
PURGE_JOB_ID = "tronwatch_purge"


class JobScheduler:
    def __init__(
        self,
        summation_job: SummationJob,
        purge_job: PurgeJob,
        *,
        summation_interval_sec: float,
        purge_hours: Callable[[], int],
    ) -> None:
        self._summation_job = summation_job
        self._purge_job = purge_job
        self._summation_interval_sec = summation_interval_sec
        self._purge_hours = purge_hours
        self._scheduler = BackgroundScheduler(timezone=utc)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        if self._scheduler.running:
            return
        purge_hours = max(1, int(self._purge_hours()))
        self._scheduler.add_job(
            self._summation_job.run_safe,
            "interval",
            seconds=self._summation_interval_sec,
            id=SUMMATION_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._purge_job.run_safe,
            "interval",
            hours=purge_hours,
            id=PURGE_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "job_scheduler_started",
            summation_interval_sec=self._summation_interval_sec,
            purge_hours=purge_hours,
        )

    def reschedule_purge(self, hours: int) -> None:
        """Apply a new purge frequency; no-op until the scheduler has started."""
        hours = max(1, int(hours))
        if not self._scheduler.running:
            return
        self._scheduler.reschedule_job(PURGE_JOB_ID, trigger="interval", hours=hours)
        logger.info("purge_job_rescheduled", purge_hours=hours)

    def shutdown(self, wait: bool = False) -> None:
        if not self._scheduler.running:
            return
        self._scheduler.shutdown(wait=wait)
        logger.info("job_scheduler_stopped")
