"""Recurrence expansion: one recurring request into concrete task occurrences.

Occurrences that end before they start, start in the past, or start beyond
the horizon are dropped without error. An unparseable custom date is an
error for the whole request, and so is an expansion that leaves nothing.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from dateutil import parser as dateutil_parser

from src.core.config import constants
from src.core.errors import InvalidRecurrenceDateError, NoValidOccurrencesError
from src.domain.task import RecurrenceType


logger = logging.getLogger(__name__)


STEP_DAYS_BY_TYPE: dict[RecurrenceType, int] = {
    RecurrenceType.DAILY: 1,
    RecurrenceType.WEEKLY: 7,
}


@dataclass(frozen=True)
class Occurrence:
    """One concrete (start, end) pair, both aware UTC."""

    start: datetime
    end: datetime


def horizon_cutoff(now: datetime) -> datetime:
    """Latest admissible occurrence start."""
    return now + timedelta(days=constants.RECURRENCE_HORIZON_DAYS)


def parse_recurrence_dates(raw_dates: list[str]) -> list[date]:
    """Parse custom recurrence dates, failing the whole request on the first bad one.

    Raises:
        InvalidRecurrenceDateError: If any entry is not a parseable ISO date
    """
    parsed = []
    for raw in raw_dates:
        try:
            parsed.append(dateutil_parser.isoparse(raw.strip()).date())
        except (ValueError, OverflowError, AttributeError) as e:
            raise InvalidRecurrenceDateError(f"Invalid date in recurrence.dates: {raw!r}") from e
    return parsed


def project_onto_date(moment: datetime, on: date, tz: ZoneInfo) -> datetime:
    """Place the local time-of-day of ``moment`` on calendar date ``on``."""
    local_time = moment.astimezone(tz).timetz().replace(tzinfo=None)
    return datetime.combine(on, local_time, tzinfo=tz).astimezone(moment.tzinfo)


def _candidate_dates(
    *,
    base_start: datetime,
    recurrence_type: RecurrenceType,
    custom_dates: list[date] | None,
    cutoff: datetime,
    tz: ZoneInfo,
) -> list[date]:
    if recurrence_type == RecurrenceType.CUSTOM:
        return list(custom_dates or [])

    step_days = STEP_DAYS_BY_TYPE.get(recurrence_type)
    if step_days is None:
        msg = f"Recurrence type {recurrence_type} does not expand"
        raise ValueError(msg)

    # Local calendar dates, so a DST change neither skips nor repeats a day
    dates = []
    day = base_start.astimezone(tz).date()
    while project_onto_date(base_start, day, tz) <= cutoff:
        dates.append(day)
        day += timedelta(days=step_days)
    return dates


def expand_occurrences(
    *,
    base_start: datetime,
    base_end: datetime,
    recurrence_type: RecurrenceType,
    now: datetime,
    tz: ZoneInfo,
    custom_dates: list[date] | None = None,
) -> list[Occurrence]:
    """Materialise the occurrences of a recurring task inside the horizon.

    Args:
        base_start: Start of the first requested occurrence (its time-of-day is reused)
        base_end: End of the first requested occurrence (its time-of-day is reused)
        recurrence_type: daily, weekly or custom
        now: Current time
        tz: Timezone in which time-of-day is projected onto calendar dates
        custom_dates: Already-parsed dates for custom recurrence

    Returns:
        Occurrences ordered by start time

    Raises:
        NoValidOccurrencesError: If every candidate was filtered out
        ValueError: If called with RecurrenceType.NONE
    """
    cutoff = horizon_cutoff(now)
    candidates = _candidate_dates(
        base_start=base_start,
        recurrence_type=recurrence_type,
        custom_dates=custom_dates,
        cutoff=cutoff,
        tz=tz,
    )

    occurrences: list[Occurrence] = []
    for day in candidates:
        start = project_onto_date(base_start, day, tz)
        end = project_onto_date(base_end, day, tz)
        if end <= start or start < now or start > cutoff:
            continue
        occurrences.append(Occurrence(start=start, end=end))

    logger.debug(
        "Expanded recurrence",
        extra={"type": recurrence_type, "candidates": len(candidates), "kept": len(occurrences)},
    )

    if not occurrences:
        raise NoValidOccurrencesError()

    return sorted(occurrences, key=lambda occurrence: occurrence.start)
