"""Domain models and DTOs."""

from src.domain.create_models import Recurrence, TaskCreate, UserCreate, UserLogin
from src.domain.task import Priority, RecurrenceType, Task, TaskStatus, TaskView
from src.domain.update_models import PasswordChange, ProfileUpdate, TaskUpdate
from src.domain.user import Theme, User


__all__ = [
    "PasswordChange",
    "Priority",
    "ProfileUpdate",
    "Recurrence",
    "RecurrenceType",
    "Task",
    "TaskCreate",
    "TaskStatus",
    "TaskUpdate",
    "TaskView",
    "Theme",
    "User",
    "UserCreate",
    "UserLogin",
]
