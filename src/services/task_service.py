"""Task service: creation, listing, updates, soft deletion and analytics.

Every operation is scoped to ``(task_id, owner_id)``. Validation and
lifecycle checks all run before anything is written.
"""

import logging
from datetime import datetime
from typing import Any

from src.core import db_client
from src.core.errors import TaskNotFoundError
from src.core.logging import log_with_user_context, span
from src.core.recurrence import expand_occurrences, parse_recurrence_dates
from src.core.time_window import (
    app_timezone,
    utc_now,
    validate_creation_window,
    validate_time_range,
    validate_update_window,
)
from src.domain.create_models import TaskCreate
from src.domain.task import Priority, RecurrenceType, Task, TaskView
from src.domain.update_models import TaskUpdate
from src.models.service_models import RecurringTasksCreated, TaskAnalytics
from src.services import analytics_service
from src.services.task_state_machine import (
    TaskAction,
    actions_for_update,
    check_transition,
    resolve_status,
)


logger = logging.getLogger(__name__)

COLLECTION = "tasks"


def to_view(task: Task, now: datetime) -> TaskView:
    """Attach the status resolved at ``now``."""
    return TaskView(**task.model_dump(), status=resolve_status(task, now))


async def get_owned_task(*, task_id: str, owner_id: str) -> Task:
    """Fetch a task only if it belongs to ``owner_id``.

    Raises:
        TaskNotFoundError: If the task does not exist or belongs to someone else
    """
    if not db_client.is_record_id(task_id):
        raise TaskNotFoundError()

    record = await db_client.get_first_record(
        collection=COLLECTION,
        filter_query=(
            f'id = "{db_client.sanitize_param(task_id)}" && owner_id = "{db_client.sanitize_param(owner_id)}"'
        ),
    )
    if record is None:
        raise TaskNotFoundError()
    return Task(**record)


def _base_record(*, owner_id: str, request: TaskCreate) -> dict[str, Any]:
    return {
        "owner_id": owner_id,
        "title": request.title,
        "description": request.description,
        "priority": request.priority or Priority.MEDIUM,
        "is_completed": False,
        "is_deleted": False,
    }


async def create_task(
    *,
    owner_id: str,
    request: TaskCreate,
    now: datetime | None = None,
) -> TaskView | RecurringTasksCreated:
    """Create a single task, or every occurrence of a recurring one.

    Returns:
        The created task, or a count of created occurrences for recurring requests

    Raises:
        InvalidRecurrenceDateError: If a custom recurrence date cannot be parsed
        InvalidTimeRangeError: If end is not after start
        InvalidTimeWindowError: If start is outside the admissible window
        NoValidOccurrencesError: If a recurring request yields nothing inside the horizon
    """
    with span("task_service.create_task"):
        now = now or utc_now()
        recurrence = request.recurrence

        custom_dates = None
        if recurrence is not None and recurrence.type == RecurrenceType.CUSTOM:
            custom_dates = parse_recurrence_dates(recurrence.dates or [])

        validate_time_range(request.start_time, request.end_time)
        validate_creation_window(request.start_time, now, is_recurring=request.is_recurring)

        if not request.is_recurring:
            record = await db_client.create_record(
                collection=COLLECTION,
                data={
                    **_base_record(owner_id=owner_id, request=request),
                    "start_time": request.start_time,
                    "end_time": request.end_time,
                },
            )
            task = Task(**record)
            log_with_user_context(logger, "info", "Created task", user_id=owner_id, task_id=task.id)
            return to_view(task, now)

        occurrences = expand_occurrences(
            base_start=request.start_time,
            base_end=request.end_time,
            recurrence_type=recurrence.type,
            now=now,
            tz=app_timezone(),
            custom_dates=custom_dates,
        )
        base = _base_record(owner_id=owner_id, request=request)
        created = await db_client.create_records(
            collection=COLLECTION,
            records=[{**base, "start_time": o.start, "end_time": o.end} for o in occurrences],
        )

        log_with_user_context(
            logger,
            "info",
            "Created recurring tasks",
            user_id=owner_id,
            recurrence=recurrence.type,
            requested=len(occurrences),
            created=len(created),
        )
        return RecurringTasksCreated(message="Recurring tasks created", count=len(created))


async def list_tasks(*, owner_id: str, now: datetime | None = None) -> list[TaskView]:
    """All of the owner's tasks, deleted included, newest-created first."""
    with span("task_service.list_tasks"):
        now = now or utc_now()
        records = await db_client.get_full_list(
            collection=COLLECTION,
            filter_query=f'owner_id = "{db_client.sanitize_param(owner_id)}"',
            sort="id DESC",
        )
        return [to_view(Task(**record), now) for record in records]


async def update_task(
    *,
    task_id: str,
    owner_id: str,
    request: TaskUpdate,
    now: datetime | None = None,
) -> TaskView:
    """Apply a partial update after ownership, lifecycle and window checks.

    A request that only sets ``isCompleted: true`` skips the window checks.

    Raises:
        TaskNotFoundError: If the task is absent or not owned by the caller
        TaskLockedError, CannotUncompleteError, TaskNotStartedError, TaskExpiredError:
            If the lifecycle guard rejects the change
        InvalidTimeRangeError, InvalidTimeWindowError: If new times are not admissible
    """
    with span("task_service.update_task"):
        now = now or utc_now()
        task = await get_owned_task(task_id=task_id, owner_id=owner_id)
        changes = request.changes()

        check_transition(task, actions_for_update(changes), now)

        if not request.is_completion_toggle_only:
            new_start = changes.get("start_time")
            new_end = changes.get("end_time")
            if new_start is not None or new_end is not None:
                validate_time_range(new_start or task.start_time, new_end or task.end_time)
            validate_update_window(now, start=new_start, end=new_end)

        if not changes:
            return to_view(task, now)

        record = await db_client.update_record(collection=COLLECTION, record_id=task.id, data=changes)
        updated = Task(**record)

        log_with_user_context(
            logger, "info", "Updated task", user_id=owner_id, task_id=task.id, fields=sorted(changes)
        )
        return to_view(updated, now)


async def delete_task(*, task_id: str, owner_id: str, now: datetime | None = None) -> None:
    """Soft-delete a task. Expired tasks are kept as failed instead.

    Raises:
        TaskNotFoundError: If the task is absent or not owned by the caller
        TaskExpiredError: If the task has already ended, deleted or not
        TaskLockedError: If the task is already deleted and has not ended
    """
    with span("task_service.delete_task"):
        now = now or utc_now()
        task = await get_owned_task(task_id=task_id, owner_id=owner_id)

        check_transition(task, {TaskAction.DELETE}, now)

        await db_client.update_record(collection=COLLECTION, record_id=task.id, data={"is_deleted": True})
        log_with_user_context(logger, "info", "Deleted task", user_id=owner_id, task_id=task.id)


async def get_task_analytics(*, owner_id: str, now: datetime | None = None) -> TaskAnalytics:
    """Dashboard counters over every task the owner has ever created."""
    with span("task_service.get_task_analytics"):
        now = now or utc_now()
        records = await db_client.get_full_list(
            collection=COLLECTION,
            filter_query=f'owner_id = "{db_client.sanitize_param(owner_id)}"',
        )
        return analytics_service.compute_task_analytics((Task(**record) for record in records), now)
