"""Reminder sweep: email owners of open tasks that are about to end.

Runs once a minute from the scheduler. Only owners with a verified email are
reminded. A task is reminded at most once per ``(task id, end time)``; moving
the end time makes it eligible again.
"""

import logging
from datetime import datetime, timedelta

from src.core import db_client
from src.core.config import constants
from src.core.logging import span
from src.core.time_window import utc_now
from src.domain.task import Task
from src.domain.user import User
from src.interface.email_sender import send_task_reminder_email
from src.services import user_service


logger = logging.getLogger(__name__)


ReminderKey = tuple[str, str]


class SentReminderCache:
    """In-memory record of reminders already sent.

    Entries older than the retention period are evicted on every sweep, so
    the cache stays bounded by the tasks ending within that period.
    """

    def __init__(self, retention: timedelta | None = None) -> None:
        self._sent: dict[ReminderKey, datetime] = {}
        self._retention = retention or timedelta(minutes=constants.REMINDER_RETENTION_MINUTES)

    @staticmethod
    def key_for(task: Task) -> ReminderKey:
        return task.id, task.end_time.isoformat()

    def was_sent(self, task: Task) -> bool:
        return self.key_for(task) in self._sent

    def mark_sent(self, task: Task, now: datetime) -> None:
        self._sent[self.key_for(task)] = now

    def evict_stale(self, now: datetime) -> int:
        """Drop entries recorded before ``now - retention``; returns how many."""
        cutoff = now - self._retention
        stale = [key for key, sent_at in self._sent.items() if sent_at < cutoff]
        for key in stale:
            del self._sent[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._sent)


# Global cache instance (in-memory, per process)
sent_reminders = SentReminderCache()


async def find_tasks_ending_soon(now: datetime) -> list[Task]:
    """Open tasks whose end time falls in ``[now, now + lead]``."""
    window_end = now + timedelta(minutes=constants.REMINDER_LEAD_MINUTES)
    records = await db_client.get_full_list(
        collection="tasks",
        filter_query=(
            f'is_completed = "false" && is_deleted = "false" '
            f'&& end_time >= "{now.isoformat()}" && end_time <= "{window_end.isoformat()}"'
        ),
        sort="end_time ASC",
    )
    return [Task(**record) for record in records]


async def send_task_reminders(now: datetime | None = None, cache: SentReminderCache | None = None) -> int:
    """Run one reminder sweep.

    Failures are logged and never raised so the scheduler keeps running.

    Returns:
        Number of reminders sent
    """
    now = now or utc_now()
    cache = cache if cache is not None else sent_reminders

    with span("reminder_service.send_task_reminders"):
        evicted = cache.evict_stale(now)
        if evicted:
            logger.debug("Evicted stale reminder keys", extra={"count": evicted})

        try:
            tasks = await find_tasks_ending_soon(now)
        except db_client.DatabaseError:
            logger.exception("Reminder sweep could not load tasks")
            return 0

        owners: dict[str, User | None] = {}
        sent_count = 0

        for task in tasks:
            if cache.was_sent(task):
                continue

            if task.owner_id not in owners:
                owners[task.owner_id] = await user_service.get_user(user_id=task.owner_id)
            owner = owners[task.owner_id]
            if owner is None:
                logger.warning("Task owner not found for reminder", extra={"task_id": task.id})
                continue
            if not owner.email_verified:
                logger.debug("Skipping reminder for unverified email", extra={"task_id": task.id})
                continue

            try:
                result = await send_task_reminder_email(
                    to_email=owner.email,
                    user_name=owner.name,
                    task_title=task.title,
                    end_time=task.end_time,
                )
            except ValueError as e:
                logger.error("Reminder email misconfigured", extra={"task_id": task.id, "error": str(e)})
                continue

            if not result.success:
                logger.warning("Failed to send reminder", extra={"task_id": task.id, "error": result.error})
                continue

            cache.mark_sent(task, now)
            sent_count += 1

        logger.info("Completed reminder sweep", extra={"candidates": len(tasks), "sent": sent_count})
        return sent_count
