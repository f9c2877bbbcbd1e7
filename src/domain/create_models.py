"""Pydantic models for creation requests."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.core.config import constants
from src.core.time_window import to_utc
from src.domain.task import Priority, RecurrenceType
from src.domain.user import normalize_email


class Recurrence(BaseModel):
    """Recurrence request embedded in a task creation body.

    ``dates`` stays as raw strings here; they are parsed right before
    expansion so an unparseable date surfaces as its own error.
    """

    type: RecurrenceType = Field(default=RecurrenceType.NONE, description="none, daily, weekly or custom")
    dates: list[str] | None = Field(default=None, description="Calendar dates (YYYY-MM-DD) for custom recurrence")

    @model_validator(mode="after")
    def require_dates_for_custom(self) -> "Recurrence":
        """Custom recurrence needs a non-empty date list."""
        if self.type == RecurrenceType.CUSTOM and not self.dates:
            raise ValueError("recurrence.dates must be a non-empty array for custom")
        return self

    @property
    def is_recurring(self) -> bool:
        return self.type != RecurrenceType.NONE


class TaskCreate(BaseModel):
    """Body of ``POST /tasks``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=constants.TITLE_MAX_LENGTH)
    description: str | None = None
    start_time: datetime
    end_time: datetime
    priority: Priority | None = None
    recurrence: Recurrence | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("start_time", "end_time")
    @classmethod
    def normalise_to_utc(cls, v: datetime) -> datetime:
        return to_utc(v)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None and self.recurrence.is_recurring


class UserCreate(BaseModel):
    """Body of ``POST /auth/register``."""

    email: str = Field(..., description="Login email address")
    password: str = Field(..., min_length=constants.PASSWORD_MIN_LENGTH)
    name: str = Field(..., description="Display name")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Require a usable display name."""
        v = v.strip()
        if len(v) < constants.USER_NAME_MIN_LENGTH:
            raise ValueError(f"Name must be at least {constants.USER_NAME_MIN_LENGTH} characters")
        return v


class UserLogin(BaseModel):
    """Body of ``POST /auth/login``."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)
