# teamdesk/services/scheduler.py
"""
Scheduler for periodic maintenance jobs
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.triggers.cron import CronTrigger
import logging

from teamdesk.config import settings
from teamdesk.database import SessionLocal
from teamdesk.services.project_progress import recompute_all

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """Runs the project progress recompute in the background"""

    def __init__(self):
        self.scheduler = AsyncIOScheduler()
        self.is_running = False

    def start(self):
        """Start the scheduler"""
        if self.is_running:
            return

        self.scheduler.add_job(
            self.recompute_project_progress,
            trigger=IntervalTrigger(minutes=settings.PROGRESS_RECOMPUTE_MINUTES),
            id="recompute_project_progress",
            name="Recompute Project Progress",
            replace_existing=True,
        )

        # Nightly full pass in case the interval job was skipped
        self.scheduler.add_job(
            self.recompute_project_progress,
            trigger=CronTrigger(hour=0, minute=15),
            id="nightly_project_progress",
            name="Nightly Project Progress",
            replace_existing=True,
        )

        self.scheduler.start()
        self.is_running = True
        logger.info("Scheduler started; progress recompute every %s minutes", settings.PROGRESS_RECOMPUTE_MINUTES)

    def stop(self):
        """Stop the scheduler"""
        if self.is_running:
            self.scheduler.shutdown()
            self.is_running = False
            logger.info("Scheduler stopped")

    async def recompute_project_progress(self):
        db = SessionLocal()
        try:
            count = recompute_all(db)
            logger.info("Scheduled progress recompute finished for %s projects", count)
        except Exception:
            logger.exception("Scheduled progress recompute failed")
            db.rollback()
        finally:
            db.close()

    def get_status(self) -> dict:
        return {
            "is_running": self.is_running,
            "jobs": [
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                }
                for job in self.scheduler.get_jobs()
            ],
        }


maintenance_scheduler = MaintenanceScheduler()
