import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import Settings
from pipeline.runner import run_sync

logger = logging.getLogger(__name__)


class SyncScheduler:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.scheduler = AsyncIOScheduler()

    async def run_sync_job(self):
        """Job to run one version-gated sync"""
        logger.info("Scheduler: Starting sync job")
        try:
            report = await run_sync(self.settings)
            logger.info(f"Scheduler: Sync job finished (ran={report.ran}, version={report.version})")
        except Exception as e:
            logger.error(f"Scheduler: Sync job failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_sync_job,
            trigger=IntervalTrigger(minutes=self.settings.SYNC_INTERVAL_MINUTES),
            id="sync_job",
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(f"Sync Scheduler started (every {self.settings.SYNC_INTERVAL_MINUTES} minutes)")

    def stop(self):
        self.scheduler.shutdown()
        logger.info("Sync Scheduler stopped")
