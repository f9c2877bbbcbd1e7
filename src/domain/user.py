"""User domain models and enums."""

import re
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: str) -> str:
    """Trim, lower-case and validate an email address."""
    email = value.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email address")
    return email


class Theme(StrEnum):
    """UI theme preference."""

    LIGHT = "light"
    DARK = "dark"


class User(BaseModel):
    """Public view of a user. Never carries authentication material."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Unique user ID from database")
    email: str = Field(..., description="Login email address")
    name: str = Field(..., description="Display name")
    theme: Theme = Field(default=Theme.LIGHT, description="UI theme preference")
    email_verified: bool = Field(default=False, description="Whether the address was confirmed by link")
    created_at: datetime | None = Field(default=None, description="Registration timestamp")
