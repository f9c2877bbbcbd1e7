"""Task API router."""

from fastapi import APIRouter, Depends, status

from src.domain.create_models import TaskCreate
from src.domain.task import TaskView
from src.domain.update_models import TaskUpdate
from src.domain.user import User
from src.interface.session import require_user
from src.models.service_models import MessageResponse, RecurringTasksCreated, TaskAnalytics
from src.services import task_service


router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    request: TaskCreate,
    user: User = Depends(require_user),
) -> TaskView | RecurringTasksCreated:
    """Create a task, or all occurrences of a recurring task."""
    return await task_service.create_task(owner_id=user.id, request=request)


@router.get("")
async def list_tasks(user: User = Depends(require_user)) -> list[TaskView]:
    """List the caller's tasks, newest first, with their current status."""
    return await task_service.list_tasks(owner_id=user.id)


@router.get("/analytics")
async def get_analytics(user: User = Depends(require_user)) -> TaskAnalytics:
    """Dashboard counters over all of the caller's tasks."""
    return await task_service.get_task_analytics(owner_id=user.id)


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    request: TaskUpdate,
    user: User = Depends(require_user),
) -> TaskView:
    """Partially update a task."""
    return await task_service.update_task(task_id=task_id, owner_id=user.id, request=request)


@router.delete("/{task_id}")
async def delete_task(task_id: str, user: User = Depends(require_user)) -> MessageResponse:
    """Soft-delete a task."""
    await task_service.delete_task(task_id=task_id, owner_id=user.id)
    return MessageResponse(message="Task deleted successfully")
