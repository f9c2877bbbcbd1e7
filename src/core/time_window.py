"""Clock helpers and the admissible time-window policy for tasks."""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from src.core.config import constants, settings
from src.core.errors import InvalidTimeRangeError, InvalidTimeWindowError


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def app_timezone() -> ZoneInfo:
    """Timezone used for naive input and for recurrence time-of-day."""
    return ZoneInfo(settings.timezone)


def to_utc(value: datetime) -> datetime:
    """Normalise a datetime to aware UTC, reading naive values in the app timezone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=app_timezone())
    return value.astimezone(UTC)


def admissible_start_window(now: datetime, *, is_recurring: bool) -> tuple[datetime, datetime]:
    """Return the inclusive [start, end] window a new task's start time must fall in."""
    window_start = now - timedelta(days=constants.START_WINDOW_PAST_DAYS)
    if is_recurring:
        window_end = now + timedelta(days=constants.RECURRENCE_HORIZON_DAYS)
    else:
        window_end = now + timedelta(days=constants.START_WINDOW_FUTURE_DAYS)
    return window_start, window_end


def validate_time_range(start: datetime, end: datetime) -> None:
    """Raise InvalidTimeRangeError unless end is strictly after start."""
    if end <= start:
        raise InvalidTimeRangeError()


def validate_creation_window(start: datetime, now: datetime, *, is_recurring: bool) -> None:
    """Raise InvalidTimeWindowError if a new task's start is outside the admissible window."""
    window_start, window_end = admissible_start_window(now, is_recurring=is_recurring)
    if start < window_start or start > window_end:
        raise InvalidTimeWindowError()


def validate_update_window(
    now: datetime,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> None:
    """Check updated times against the +/-7 day start window and the end-not-in-past rule.

    Recurrence does not apply on update, so the one-off window is always used.
    """
    if start is not None:
        validate_creation_window(start, now, is_recurring=False)
    if end is not None and end < now:
        raise InvalidTimeWindowError("End time must be now or later")
