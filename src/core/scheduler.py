"""Scheduler for automated jobs (task reminders)."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.services.reminder_service import send_task_reminders


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def run_reminder_sweep() -> None:
    """Scheduler entry point for the reminder sweep."""
    try:
        await send_task_reminders()
    except Exception:
        logger.exception("Reminder sweep failed")


def start_scheduler() -> None:
    """Start the scheduler and register all jobs.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    scheduler.add_job(
        run_reminder_sweep,
        trigger=CronTrigger(minute="*"),
        id="task_reminders",
        name="Send Task Ending Reminders",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Scheduled task reminders job: every minute")

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
