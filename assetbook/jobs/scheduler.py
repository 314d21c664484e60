"""
APScheduler Configuration

Background job scheduler for the automatic depreciation run.

Architecture:
- A single interval job polls the auto-depreciation settings row
- The settings row (frequency, time, timezone) decides when a tick executes
- Failures are logged and never stop the scheduler
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from assetbook.config import settings

logger = logging.getLogger(__name__)

# Job stores
jobstores = {
    'default': MemoryJobStore()
}

# Executors
executors = {
    'default': AsyncIOExecutor(),
}

# Job defaults
job_defaults = {
    'coalesce': True,  # Combine multiple pending executions into one
    'max_instances': 1,  # Only one instance of each job at a time
    'misfire_grace_time': 60,  # Allow 60 seconds grace time for misfires
}

# Create scheduler
scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone=settings.TIMEZONE
)


async def run_depreciation_tick():
    """Wrapper called by APScheduler around the depreciation poll."""
    from assetbook.jobs.depreciation_jobs import run_scheduled_depreciation

    try:
        await run_scheduled_depreciation()
    except Exception as e:
        logger.error(f"Scheduled depreciation check failed: {e}")


def start_scheduler():
    """Start the background job scheduler."""
    if not scheduler.running:
        # Poll the auto-depreciation schedule
        scheduler.add_job(
            run_depreciation_tick,
            'interval',
            seconds=settings.SCHEDULER_POLL_SECONDS,
            id='auto_depreciation',
            name='Auto Depreciation Schedule Check',
            replace_existing=True,
        )

        scheduler.start()
        logger.info("Background job scheduler started")

        for job in scheduler.get_jobs():
            logger.info(f"Scheduled job: {job.name} - Next run: {job.next_run_time}")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")


def get_job_status():
    """Get status of all scheduled jobs."""
    jobs = scheduler.get_jobs()
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': str(job.next_run_time) if job.next_run_time else None,
            'trigger': str(job.trigger),
        }
        for job in jobs
    ]
