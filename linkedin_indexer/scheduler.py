"""Cron scheduling for fetch cycles.

Scheduled and manual runs both go through the orchestrator, so a cron tick
that lands during a manual cycle is a logged no-op.
"""

import asyncio
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from linkedin_indexer.jobs.fetch_cycle_job import FetchOrchestrator

logger = logging.getLogger(__name__)

JOB_ID = "fetch-cycle"


class FetchScheduler:
    """Runs a fetch cycle at minute 0 of every ``interval_hours``-th hour (UTC)."""

    def __init__(self, orchestrator: FetchOrchestrator, interval_hours: int = 6):
        if not 1 <= interval_hours <= 23:
            raise ValueError("interval_hours must be between 1 and 23")
        self.orchestrator = orchestrator
        self.interval_hours = interval_hours
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.scheduler.add_job(
            self._tick,
            CronTrigger(minute=0, hour=f"*/{interval_hours}", timezone="UTC"),
            id=JOB_ID,
            name="LinkedIn fetch cycle",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """Start the scheduler on the running event loop."""
        self.scheduler.start()
        logger.info(f"Scheduler started: fetch cycle every {self.interval_hours}h (cron 0 */{self.interval_hours} * * *)")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def next_run_time(self) -> Optional[str]:
        job = self.scheduler.get_job(JOB_ID)
        next_run = getattr(job, "next_run_time", None) if job else None
        return next_run.isoformat() if next_run else None

    def trigger_now(self) -> asyncio.Task:
        """Start a cycle immediately, outside the cron schedule."""
        logger.info("Manual fetch cycle triggered")
        return self.orchestrator.trigger()

    async def _tick(self) -> None:
        logger.info("Scheduled fetch cycle starting")
        await self.orchestrator.run_cycle()
