"""Scheduled job that drives the match reminder scan."""

import asyncio
from datetime import datetime, timezone

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from matchtracker.core.config import settings
from matchtracker.schemas.notification import ScanResult
from matchtracker.services.reminder_service import MatchReminderService

JOB_ID = "check_upcoming_matches"


class ReminderScheduler:
    """
    Runs :meth:`MatchReminderService.run_scan_once` on a fixed interval.

    ``start()`` schedules the first scan immediately and returns the job
    handle; ``stop(handle)`` cancels future ticks but lets a scan that is
    already running finish.
    """

    def __init__(
        self,
        reminder_service: MatchReminderService,
        *,
        interval_seconds: int | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.reminder_service = reminder_service
        self.interval_seconds = interval_seconds or settings.SCAN_INTERVAL_SECONDS
        self.scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self._in_flight: set[asyncio.Task] = set()

    async def _tick(self) -> None:
        """Job body: one scan, never raising into the scheduler."""
        logger.info("Running scheduled match reminder check...")
        scan = asyncio.ensure_future(self.reminder_service.run_scan_once())
        self._in_flight.add(scan)
        scan.add_done_callback(self._in_flight.discard)

        try:
            # Shielded so scheduler shutdown cannot cancel a scan midway
            result = await asyncio.shield(scan)
        except Exception as e:
            logger.error(f"Error in match reminder job: {e}")
            return

        if result.notified:
            logger.info(f"Sent {result.notified} match reminders")

    def start(self) -> Job:
        """Schedule the recurring scan, run the first one now, and return its handle."""
        job = self.scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Check upcoming matches",
            replace_existing=True,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Scheduled: match reminder check every {self.interval_seconds} seconds")

        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")
        return job

    def stop(self, handle: Job) -> None:
        """
        Cancel future ticks of ``handle`` and shut the scheduler down without waiting.

        A scan already running is left to finish; await :meth:`shutdown` to
        wait for it. The scheduler keeps running while it still has other jobs.
        """
        try:
            handle.remove()
        except JobLookupError:
            logger.debug(f"Job {handle.id} was already removed")
        logger.info("Match reminder job stopped")

        if self.scheduler.running and not self.scheduler.get_jobs():
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    async def trigger_now(self) -> ScanResult:
        """Run one scan right away, independent of the recurring job."""
        logger.info("Running manual match reminder check...")
        return await self.reminder_service.run_scan_once()

    async def shutdown(self) -> None:
        """Shut the scheduler down if still running, then wait for running scans."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
