"""Background scheduler for periodic reconciliation"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from timelink.config import settings
from timelink.dates import DateRange

logger = logging.getLogger(__name__)

JOB_ID = "reconcile_pass"


class ReconcileScheduler:
    """Scheduler running a full reconciliation pass on an interval"""

    def __init__(self, open_reconciler=None):
        self.scheduler = AsyncIOScheduler()
        # Injected for tests; defaults to the configured Toggl/Jira accounts.
        self._open_reconciler = open_reconciler

    def start(self):
        """Start the scheduler"""
        self.scheduler.start()
        logger.info("Reconcile scheduler started")
        if settings.sync_enabled:
            self.schedule(settings.sync_interval_minutes)

    def stop(self):
        """Stop the scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Reconcile scheduler stopped")

    def schedule(self, interval_minutes: int):
        """(Re)schedule the periodic pass"""
        self.scheduler.add_job(
            func=self._reconcile_job,
            trigger=IntervalTrigger(minutes=interval_minutes),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Scheduled reconciliation every {interval_minutes} minutes")

    def unschedule(self):
        if self.scheduler.get_job(JOB_ID) is not None:
            self.scheduler.remove_job(JOB_ID)
            logger.info("Unscheduled reconciliation")

    async def _reconcile_job(self):
        """Job function: reconcile the last ``sync_lookback_days`` days"""
        open_reconciler = self._open_reconciler
        if open_reconciler is None:
            from timelink.services import open_reconciler
        date_range = DateRange.last_days(settings.sync_lookback_days)
        try:
            logger.info(f"Running scheduled reconciliation for {date_range}")
            async with open_reconciler() as reconciler:
                result = await reconciler.run_pass(date_range)
            logger.info(f"Scheduled reconciliation completed: {result}")
        except Exception as e:
            logger.error(f"Scheduled reconciliation failed: {e}")


# Global scheduler instance
scheduler = ReconcileScheduler()
