"""Background task scheduler using APScheduler."""

import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None

HRIS_SYNC_JOB_ID = "hris_sync"
SCHEDULE_TIMEZONE = "UTC"


def hris_trigger(frequency: str) -> CronTrigger:
    """Midnight daily, on Sundays, or on the first of the month.

    Raises:
        ValueError: If the frequency is unknown
    """
    if frequency == "daily":
        return CronTrigger(hour=0, minute=0, timezone=SCHEDULE_TIMEZONE)
    if frequency == "weekly":
        return CronTrigger(day_of_week="sun", hour=0, minute=0, timezone=SCHEDULE_TIMEZONE)
    if frequency == "monthly":
        return CronTrigger(day=1, hour=0, minute=0, timezone=SCHEDULE_TIMEZONE)
    raise ValueError(f"Unknown HRIS sync frequency: {frequency}")


def next_fire_time(frequency: str, now: datetime) -> datetime | None:
    """When the schedule fires next after ``now``."""
    return hris_trigger(frequency).get_next_fire_time(None, now)


async def hris_sync_job() -> None:
    """Background job that syncs HRIS employee data to the directory."""
    from onboarding_api.database import async_session_maker
    from onboarding_api.services.hris_sync_service import HrisSyncService

    logger.info("Starting scheduled HRIS sync")

    async with async_session_maker() as session:
        try:
            result = await HrisSyncService(session).run_scheduled()
            logger.info(f"Scheduled HRIS sync completed: {result.applied} updated, {result.failed} failed")
        except Exception as e:
            logger.error(f"Scheduled HRIS sync failed: {e}")
            await session.rollback()


async def start_scheduler() -> None:
    """Start the background task scheduler."""
    global _scheduler

    _scheduler = AsyncIOScheduler(timezone=SCHEDULE_TIMEZONE)
    _scheduler.start()
    logger.info("Background scheduler started")

    await initialize_hris_schedule()


async def stop_scheduler() -> None:
    """Stop the background task scheduler."""
    global _scheduler

    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Background scheduler stopped")


async def update_hris_schedule(enabled: bool, frequency: str) -> None:
    """Replace the HRIS sync job.

    Args:
        enabled: Whether the scheduled sync runs at all
        frequency: daily, weekly or monthly
    """
    if not _scheduler:
        logger.warning("Cannot update HRIS schedule: scheduler not running")
        return

    if _scheduler.get_job(HRIS_SYNC_JOB_ID):
        _scheduler.remove_job(HRIS_SYNC_JOB_ID)
        logger.debug("Removed existing HRIS schedule")

    if enabled:
        _scheduler.add_job(
            hris_sync_job,
            trigger=hris_trigger(frequency),
            id=HRIS_SYNC_JOB_ID,
            name="HRIS to directory sync",
            replace_existing=True,
        )
        logger.info(f"HRIS schedule updated: {frequency}")
    else:
        logger.info("HRIS schedule disabled")


async def initialize_hris_schedule() -> None:
    """Initialize the HRIS schedule from stored settings."""
    from onboarding_api.database import async_session_maker
    from onboarding_api.services.settings_service import SettingsService

    async with async_session_maker() as session:
        try:
            schedule = await SettingsService(session).get_hris_schedule()
            if schedule.enabled:
                await update_hris_schedule(True, schedule.frequency)
        except Exception as e:
            logger.warning(f"Failed to initialize HRIS schedule: {e}")
