"""Analytics service for a user's task history.

Key Concepts:
- Completed: tasks with the completion flag set, whatever their time window.
- Failed: uncompleted tasks whose end time has passed, deleted or not.
- Deleted: soft-deleted tasks.
- Active: uncompleted, undeleted tasks that have not ended yet.
- Success rate: completed share of all tasks, as a whole percentage.

The categories are independent dashboard counters, not a partition.
"""

import logging
import math
from collections.abc import Iterable
from datetime import datetime

from src.core.logging import span
from src.domain.task import Task
from src.models.service_models import TaskAnalytics


logger = logging.getLogger(__name__)


def success_rate(*, completed: int, total: int) -> int:
    """Completed share of total as a percentage, rounded half up; 0 for no tasks."""
    if total <= 0:
        return 0
    return math.floor(completed * 100 / total + 0.5)


def compute_task_analytics(tasks: Iterable[Task], now: datetime) -> TaskAnalytics:
    """Reduce a user's full task set (deleted included) to dashboard counters."""
    with span("analytics_service.compute_task_analytics"):
        total = completed = failed = deleted = active = 0

        for task in tasks:
            total += 1
            if task.is_completed:
                completed += 1
            if not task.is_completed and task.end_time < now:
                failed += 1
            if task.is_deleted:
                deleted += 1
            if not task.is_completed and not task.is_deleted and task.end_time >= now:
                active += 1

        analytics = TaskAnalytics(
            total=total,
            completed=completed,
            failed=failed,
            deleted=deleted,
            active=active,
            success_rate=success_rate(completed=completed, total=total),
        )
        logger.debug("Computed task analytics", extra=analytics.model_dump())
        return analytics
