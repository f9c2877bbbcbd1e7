"""Update models for database operations."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.core.config import constants
from src.core.time_window import to_utc
from src.domain.task import Priority
from src.domain.user import Theme, normalize_email


# Fields whose presence makes an update more than a completion toggle
TASK_CONTENT_FIELDS = frozenset({"title", "description", "start_time", "end_time", "priority"})

# Fields that may be cleared by sending null
TASK_NULLABLE_FIELDS = frozenset({"description"})


class TaskUpdate(BaseModel):
    """Body of ``PUT /tasks/{id}``: any subset of the editable fields."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str | None = Field(default=None, min_length=1, max_length=constants.TITLE_MAX_LENGTH)
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    is_completed: bool | None = None
    priority: Priority | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("start_time", "end_time")
    @classmethod
    def normalise_to_utc(cls, v: datetime | None) -> datetime | None:
        return to_utc(v) if v is not None else None

    @model_validator(mode="after")
    def reject_null_for_required_fields(self) -> "TaskUpdate":
        """Only nullable fields may be sent as null; the rest must be omitted instead."""
        nulled = sorted(
            name for name in self.model_fields_set - TASK_NULLABLE_FIELDS if getattr(self, name) is None
        )
        if nulled:
            raise ValueError(f"{to_camel(nulled[0])} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """Fields the client actually supplied, keyed by storage name.

        A supplied null survives, so ``{"description": null}`` clears the description.
        """
        return self.model_dump(exclude_unset=True)

    @property
    def is_completion_toggle_only(self) -> bool:
        """True when the request does nothing but set isCompleted to true."""
        changes = self.changes()
        return changes.get("is_completed") is True and not (TASK_CONTENT_FIELDS & changes.keys())


class ProfileUpdate(BaseModel):
    """Body of ``PUT /users/profile``."""

    name: str | None = None
    email: str | None = None
    theme: Theme | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) < constants.USER_NAME_MIN_LENGTH:
            raise ValueError(f"Name must be at least {constants.USER_NAME_MIN_LENGTH} characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return normalize_email(v) if v is not None else None


class PasswordChange(BaseModel):
    """Body of ``PUT /users/password``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_password: str
    new_password: str = Field(..., min_length=constants.PASSWORD_MIN_LENGTH)
