"""Pure state functions for task lifecycle management.

A task's lifecycle state is derived from its stored flags and the clock.
Every mutation is one of a small set of actions, and the transition table
below decides, per state, which actions are allowed and which error each
rejected action raises.
"""

from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

from src.core.errors import (
    AppError,
    CannotUncompleteError,
    TaskExpiredError,
    TaskLockedError,
    TaskNotStartedError,
)
from src.domain.task import Task, TaskStatus


class LifecycleState(StrEnum):
    """Guard-side view of a task."""

    UPCOMING = "upcoming"  # active, start in the future
    STARTED = "started"  # active, start <= now <= end
    COMPLETED = "completed"
    COMPLETED_EXPIRED = "completed_expired"
    FAILED = "failed"
    DELETED = "deleted"
    DELETED_EXPIRED = "deleted_expired"  # deleted, end in the past


class TaskAction(StrEnum):
    """Mutations a request can ask for."""

    UNCOMPLETE = "uncomplete"
    COMPLETE = "complete"
    EDIT = "edit"
    DELETE = "delete"


def _locked() -> AppError:
    return TaskLockedError()


def _deleted() -> AppError:
    return TaskLockedError("Cannot modify a deleted task")


def _cannot_uncomplete() -> AppError:
    return CannotUncompleteError()


def _not_started() -> AppError:
    return TaskNotStartedError()


def _expired_edit() -> AppError:
    return TaskExpiredError("Cannot update an expired task")


def _expired_uncomplete() -> AppError:
    return TaskExpiredError("Cannot uncomplete an expired task")


def _expired_delete() -> AppError:
    return TaskExpiredError("Cannot delete an expired task")


# None means allowed; otherwise the factory of the error to raise.
TRANSITIONS: dict[LifecycleState, dict[TaskAction, Callable[[], AppError] | None]] = {
    LifecycleState.UPCOMING: {
        TaskAction.UNCOMPLETE: None,
        TaskAction.COMPLETE: _not_started,
        TaskAction.EDIT: None,
        TaskAction.DELETE: None,
    },
    LifecycleState.STARTED: {
        TaskAction.UNCOMPLETE: None,
        TaskAction.COMPLETE: None,
        TaskAction.EDIT: None,
        TaskAction.DELETE: None,
    },
    LifecycleState.COMPLETED: {
        TaskAction.UNCOMPLETE: _cannot_uncomplete,
        TaskAction.COMPLETE: _locked,
        TaskAction.EDIT: _locked,
        TaskAction.DELETE: None,
    },
    LifecycleState.COMPLETED_EXPIRED: {
        TaskAction.UNCOMPLETE: _cannot_uncomplete,
        TaskAction.COMPLETE: _locked,
        TaskAction.EDIT: _locked,
        TaskAction.DELETE: _expired_delete,
    },
    LifecycleState.FAILED: {
        TaskAction.UNCOMPLETE: _expired_uncomplete,
        TaskAction.COMPLETE: None,
        TaskAction.EDIT: _expired_edit,
        TaskAction.DELETE: _expired_delete,
    },
    LifecycleState.DELETED: {
        TaskAction.UNCOMPLETE: _deleted,
        TaskAction.COMPLETE: _deleted,
        TaskAction.EDIT: _deleted,
        TaskAction.DELETE: _deleted,
    },
    # Deleting past the end time reports expiry, as it does for any expired task
    LifecycleState.DELETED_EXPIRED: {
        TaskAction.UNCOMPLETE: _deleted,
        TaskAction.COMPLETE: _deleted,
        TaskAction.EDIT: _deleted,
        TaskAction.DELETE: _expired_delete,
    },
}

# Order in which a multi-action request is checked; the first rejection wins.
ACTION_PRECEDENCE: tuple[TaskAction, ...] = (
    TaskAction.UNCOMPLETE,
    TaskAction.COMPLETE,
    TaskAction.EDIT,
    TaskAction.DELETE,
)


def resolve_status(task: Task, now: datetime) -> TaskStatus:
    """Derive the display status of a task at ``now``.

    Deleted beats completed, which beats the time-based failed/active split.
    """
    if task.is_deleted:
        return TaskStatus.DELETED
    if task.is_completed:
        return TaskStatus.COMPLETED
    if now > task.end_time:
        return TaskStatus.FAILED
    return TaskStatus.ACTIVE


def resolve_lifecycle_state(task: Task, now: datetime) -> LifecycleState:
    """Refine the display status into the states the guard distinguishes."""
    status = resolve_status(task, now)
    if status == TaskStatus.DELETED:
        return LifecycleState.DELETED_EXPIRED if now > task.end_time else LifecycleState.DELETED
    if status == TaskStatus.COMPLETED:
        return LifecycleState.COMPLETED_EXPIRED if now > task.end_time else LifecycleState.COMPLETED
    if status == TaskStatus.FAILED:
        return LifecycleState.FAILED
    if task.start_time > now:
        return LifecycleState.UPCOMING
    return LifecycleState.STARTED


def actions_for_update(changes: dict[str, object]) -> set[TaskAction]:
    """Translate the supplied update fields into lifecycle actions."""
    actions: set[TaskAction] = set()
    if "is_completed" in changes:
        actions.add(TaskAction.COMPLETE if changes["is_completed"] else TaskAction.UNCOMPLETE)
    if changes.keys() - {"is_completed"}:
        actions.add(TaskAction.EDIT)
    # An empty body is checked as an edit
    if not actions:
        actions.add(TaskAction.EDIT)
    return actions


def check_transition(task: Task, actions: set[TaskAction], now: datetime) -> LifecycleState:
    """Raise the first lifecycle error any requested action triggers.

    Returns:
        The lifecycle state the task was in when checked

    Raises:
        TaskLockedError, CannotUncompleteError, TaskNotStartedError, TaskExpiredError
    """
    state = resolve_lifecycle_state(task, now)
    rules = TRANSITIONS[state]
    for action in ACTION_PRECEDENCE:
        if action not in actions:
            continue
        reject = rules[action]
        if reject is not None:
            raise reject()
    return state
