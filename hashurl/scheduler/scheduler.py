"""Scheduler implementation for the URL shortener application.

This module provides a scheduler service that runs the expiry sweep in the
background using APScheduler.
"""

import logging
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from hashurl.core.config import settings
from hashurl.core.redis import redis_manager
from hashurl.db.session import SessionManager
from hashurl.models.mapping import utcnow
from hashurl.repositories.mapping_repository import MappingRepository
from hashurl.services.cache import URLCache
from hashurl.services.cleanup import CleanupService
from hashurl.services.exceptions import ServiceError

logger = logging.getLogger(__name__)

EXPIRY_SWEEP_JOB_ID = "deactivate_expired_mappings"


async def expiry_sweep_job() -> Dict[str, Any]:
    """
    Job to deactivate expired mappings.

    Runs in its own transaction so a failed sweep leaves no partial update.
    """
    logger.info("Starting scheduled expiry sweep")
    try:
        async with SessionManager.transaction_context() as session:
            cleanup_service = CleanupService(
                MappingRepository(),
                URLCache(redis_manager.get_client, settings.cache_config()),
            )
            result = await cleanup_service.deactivate_expired(db=session)
        logger.info(
            f"Scheduled expiry sweep completed: Deactivated={result['deactivated']}, "
            f"CacheInvalidated={result['cache_invalidated']}"
        )
        return result
    except ServiceError as e:
        logger.error(f"Error in scheduled expiry sweep: {e}")
        return {
            "status": "error",
            "error": str(e),
            "timestamp": utcnow().isoformat(),
        }


class SchedulerService:
    """
    Scheduler service for managing background tasks.

    Wraps an in-memory APScheduler ``AsyncIOScheduler``; jobs are registered
    again on every start.
    """

    def __init__(self, interval_minutes: int = 60, run_on_startup: bool = False):
        self.interval_minutes = interval_minutes
        self.run_on_startup = run_on_startup
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.is_running = False
        self.jobs: List[Dict[str, Any]] = []

    def initialize(self) -> None:
        """Create the APScheduler instance without starting it."""
        if self.scheduler:
            logger.warning("Scheduler already initialized")
            return

        self.scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": settings.SCHEDULER_JOB_COALESCE,
                "max_instances": settings.SCHEDULER_JOB_MAX_INSTANCES,
                "misfire_grace_time": settings.SCHEDULER_MISFIRE_GRACE_TIME,
            },
            timezone="UTC",
        )
        logger.info("Scheduler initialized successfully")

    def start(self) -> None:
        """Start the scheduler and register the expiry sweep."""
        if not self.scheduler:
            self.initialize()

        if self.is_running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.add_job(
            expiry_sweep_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes, timezone="UTC"),
            id=EXPIRY_SWEEP_JOB_ID,
            name="Deactivate Expired Mappings",
            replace_existing=True,
        )
        self.jobs = [{
            "id": EXPIRY_SWEEP_JOB_ID,
            "name": "Deactivate Expired Mappings",
            "interval": f"{self.interval_minutes} minutes",
            "function": "expiry_sweep_job",
        }]

        if self.run_on_startup:
            logger.info("Running expiry sweep on startup")
            self.scheduler.add_job(
                expiry_sweep_job,
                id="expiry_sweep_startup",
                name="Startup Expiry Sweep",
                replace_existing=True,
            )

        self.scheduler.start()
        self.is_running = True
        logger.info(f"Scheduler started with {len(self.jobs)} jobs")

    def shutdown(self) -> None:
        """Shutdown the scheduler, waiting for running jobs."""
        if not self.scheduler or not self.is_running:
            logger.warning("Scheduler not running, nothing to shut down")
            return

        self.scheduler.shutdown(wait=True)
        self.is_running = False
        self.scheduler = None
        logger.info("Scheduler shut down successfully")

    def get_status(self) -> Dict[str, Any]:
        """
        Get the current status of the scheduler.

        Returns:
            Dict with information about the scheduler status and jobs
        """
        job_details = []
        if self.scheduler and self.is_running:
            for job in self.scheduler.get_jobs():
                job_details.append({
                    "job_id": job.id,
                    "name": job.name,
                    "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                })

        return {
            "running": self.is_running,
            "jobs": self.jobs,
            "scheduler_jobs_status": job_details,
        }


# Create global instance of the scheduler service
scheduler_service = SchedulerService(
    interval_minutes=settings.EXPIRY_SWEEP_INTERVAL_MINUTES,
    run_on_startup=settings.EXPIRY_SWEEP_ON_STARTUP,
)
