"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.domain.user import User


class TaskAnalytics(BaseModel):
    """Completion counters for a user's dashboard.

    The counters overlap: an expired, uncompleted, deleted task is both
    ``failed`` and ``deleted``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int
    completed: int
    failed: int
    deleted: int
    active: int
    success_rate: int


class RecurringTasksCreated(BaseModel):
    """Result of a recurring creation request."""

    message: str
    count: int


class MessageResponse(BaseModel):
    """Plain acknowledgement body."""

    message: str


class AuthResponse(BaseModel):
    """Body returned by register/login."""

    message: str
    user: User
