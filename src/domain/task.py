"""Task domain models and enums."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.core.time_window import to_utc


class Priority(StrEnum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    NONE = "none"


class TaskStatus(StrEnum):
    """Derived display status. Never stored, always recomputed from flags and the clock."""

    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    DELETED = "deleted"


class RecurrenceType(StrEnum):
    """How a creation request repeats."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class Task(BaseModel):
    """Task data transfer object.

    Built from a stored record (snake_case keys) and serialised to clients in camelCase.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Unique task ID from database")
    owner_id: str = Field(..., description="Owning user ID")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Free-text description")
    start_time: datetime = Field(..., description="Start of the time box (UTC)")
    end_time: datetime = Field(..., description="End of the time box (UTC)")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    is_completed: bool = Field(default=False, description="Completion flag (monotonic)")
    is_deleted: bool = Field(default=False, description="Soft-delete marker (terminal)")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def normalise_to_utc(cls, v: datetime | None) -> datetime | None:
        """Store and compare every timestamp in UTC."""
        return to_utc(v) if v is not None else None


class TaskView(Task):
    """Task as returned by the API, with its status resolved at read time."""

    status: TaskStatus = Field(..., description="Status derived from flags and the current time")
