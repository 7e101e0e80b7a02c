"""
Scheduled Job Configuration

Configures the weekly league close-out using APScheduler. By default the
job runs every Monday at 00:05 UTC, shortly after the previous league week
ended, and closes every league whose week is over.

Execution Context:
    The scheduler runs IN-PROCESS with FastAPI. It is started/stopped via
    FastAPI's lifespan context manager in vocab_progress/main.py when
    LEAGUE_CLOSE_OUT_ENABLED is set.

    Close-out is idempotent per league, so a run that was interrupted (or
    a missed run picked up late) simply finishes the remaining leagues.

Limitations:
    - Single instance only: each replica runs its own scheduler. Duplicate
      runs are harmless because a closed league is skipped, but they do
      duplicate work.

Usage:
    # Automatic (via FastAPI lifespan in main.py):
    start_scheduler()  # On app startup
    stop_scheduler()   # On app shutdown

    # Manual trigger:
    from vocab_progress.services.scheduler import trigger_job_now
    trigger_job_now(CLOSE_OUT_JOB_ID)
"""

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from vocab_progress.config import settings

logger = logging.getLogger(__name__)

CLOSE_OUT_JOB_ID = "league_close_out"

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone="UTC")


async def run_league_close_out() -> int:
    """Close all finished leagues. Returns the number closed."""
    # Deferred imports: avoid creating the DB engine at scheduler import time.
    from vocab_progress.db.base import async_session_maker
    from vocab_progress.db.repository import SQLAlchemyLeagueRepository
    from vocab_progress.services.league import LeagueService

    async with async_session_maker() as db:
        service = LeagueService(SQLAlchemyLeagueRepository(db))
        closed = await service.close_out_due_leagues()

    logger.info(f"Scheduled league close-out complete: {len(closed)} leagues closed")
    return len(closed)


def setup_scheduled_jobs() -> None:
    """Configure the weekly close-out job."""
    scheduler.add_job(
        run_league_close_out,
        CronTrigger(
            day_of_week=settings.LEAGUE_CLOSE_OUT_CRON_DAY,
            hour=settings.LEAGUE_CLOSE_OUT_CRON_HOUR,
            minute=settings.LEAGUE_CLOSE_OUT_CRON_MINUTE,
            timezone="UTC",
        ),
        id=CLOSE_OUT_JOB_ID,
        name="Weekly League Close-Out",
        replace_existing=True,
        misfire_grace_time=3600,  # Allow 1 hour grace period
        coalesce=True,
    )

    logger.info(
        f"Scheduled league close-out: {settings.LEAGUE_CLOSE_OUT_CRON_DAY} "
        f"{settings.LEAGUE_CLOSE_OUT_CRON_HOUR:02d}:"
        f"{settings.LEAGUE_CLOSE_OUT_CRON_MINUTE:02d} UTC"
    )


def start_scheduler() -> None:
    """Start the scheduler and configure jobs."""
    if scheduler.running:
        logger.warning("Scheduler already running")
        return

    setup_scheduled_jobs()
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler() -> None:
    """Stop the scheduler gracefully."""
    if not scheduler.running:
        logger.warning("Scheduler not running")
        return

    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")


def get_scheduled_jobs() -> list[dict]:
    """Get list of scheduled jobs with their next run times."""
    jobs = []
    for job in scheduler.get_jobs():
        # Jobs added before start() have no next_run_time yet
        next_run = getattr(job, "next_run_time", None)
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
            }
        )
    return jobs


def trigger_job_now(job_id: str) -> bool:
    """
    Manually trigger a scheduled job immediately.

    Args:
        job_id: ID of the job to trigger

    Returns:
        True if triggered successfully
    """
    job = scheduler.get_job(job_id)
    if job:
        job.modify(next_run_time=datetime.now(timezone.utc))
        logger.info(f"Manually triggered job: {job_id}")
        return True

    logger.warning(f"Job not found: {job_id}")
    return False
