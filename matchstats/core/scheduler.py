"""
Periodic backup scheduler.

Runs ``StatsEngine.create_backup("scheduled")`` every
``BACKUP_INTERVAL_HOURS`` hours inside the API process.

Scheduler: APScheduler (lightweight, FastAPI-compatible)
"""
import asyncio
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from matchstats.core.exceptions import StatsError

logger = logging.getLogger(__name__)


class BackupScheduler:
    """
    Scheduler for the periodic backup job.

    Args:
        engine: StatsEngine whose store is backed up
        interval_hours: Hours between backups (0 disables the job)
    """

    def __init__(self, engine, interval_hours: int = 24):
        self.engine = engine
        self.interval_hours = interval_hours
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        if self.interval_hours <= 0:
            logger.info("Periodic backups disabled (BACKUP_INTERVAL_HOURS=0)")
            return

        self.scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,
                "misfire_grace_time": 300,
            },
        )
        self._schedule_backup()

        self.scheduler.start()
        self.running = True
        logger.info("Scheduler started with %d jobs", len(self.scheduler.get_jobs()))

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Scheduler stopped")

    def _schedule_backup(self):
        """
        Schedule: Full database backup.

        Frequency: every ``interval_hours`` hours
        Purpose: point-in-time copies independent of destructive operations
        """
        self.scheduler.add_job(
            self.run_backup,
            trigger=IntervalTrigger(hours=self.interval_hours),
            id="periodic_backup",
            name="Periodic stats backup",
        )
        logger.info(f"Scheduled: Periodic backup (every {self.interval_hours}h)")

    async def run_backup(self):
        """Take one backup in a worker thread; failures are logged, not raised."""
        try:
            info = await asyncio.to_thread(self.engine.create_backup, "scheduled")
            logger.info(f"Scheduled backup: {info.name}")
        except StatsError as e:
            logger.error(f"Scheduled backup failed: {e}")


# Global scheduler instance
_scheduler: Optional[BackupScheduler] = None


async def start_scheduler(engine, interval_hours: int = 24) -> BackupScheduler:
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = BackupScheduler(engine, interval_hours=interval_hours)
        await _scheduler.start()
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
