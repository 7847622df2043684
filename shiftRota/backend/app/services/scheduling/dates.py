"""
Calendar-day normalisation.

Every date that keys a schedule goes through normalize() first. Timestamps
are never compared directly for that purpose.
"""

import calendar
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

DateLike = Union[date, datetime, str]

_DATE_ONLY = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def normalize(value: DateLike) -> date:
    """
    Reduce a date, datetime or ISO string to its calendar day.

    Aware datetimes are converted to UTC before the day is taken; naive
    datetimes keep their own day. Raises ValueError for anything unparseable.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        match = _DATE_ONLY.match(text)
        if match:
            try:
                return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            except ValueError:
                raise ValueError(f"Invalid date: {value!r}")
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}")
        return normalize(parsed)
    raise ValueError(f"Invalid date: {value!r}")


def month_range(month: int, year: int) -> tuple[date, date]:
    """First and last calendar day of a month, both inclusive."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def day_anchor(day: date) -> datetime:
    """Noon UTC of the day, used when a calendar day must be placed on the timeline."""
    return datetime.combine(day, time(12, 0), tzinfo=timezone.utc)


def is_last_minute(
    day: date,
    past_hours: int,
    ahead_hours: int,
    now: Optional[datetime] = None,
) -> bool:
    """True when the day falls inside [now - past_hours, now + ahead_hours]."""
    now = now or datetime.now(timezone.utc)
    anchor = day_anchor(day)
    return now - timedelta(hours=past_hours) <= anchor <= now + timedelta(hours=ahead_hours)
