"""
Calendar Date Primitives

All dates in the engine are plain calendar dates: no time of day and no
timezone. A datetime coming from the store is cut down to its date part
as written, never converted to local time first. "2025-01-10T23:30:00Z"
is 2025-01-10, everywhere.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional


def _normalize(value: Any) -> str:
    """Lower-case string form of an enum member or plain string."""
    return str(getattr(value, "value", value)).strip().lower()


def parse_calendar_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date, returning None on failure.

    Accepts date, datetime, "YYYY-MM-DD" and ISO datetime strings.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    # Date part only. "2025-01-10T23:30:00+05:00" is the 10th.
    if "T" in text:
        text = text.split("T", 1)[0]
    elif " " in text:
        text = text.split(" ", 1)[0]
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def days_between(start: date, end: date) -> int:
    """Whole calendar days from `start` to `end` (negative if end is earlier)."""
    return (end - start).days


def add_months(d: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


_MONTHS_PER_FREQUENCY = {
    "monthly": 1,
    "quarterly": 3,
    "yearly": 12,
}


def advance_by_frequency(d: date, frequency: Any) -> Optional[date]:
    """
    Next occurrence of a recurring date.

    Returns None for one-time frequencies (there is no next occurrence).
    """
    key = _normalize(frequency)
    if key == "weekly":
        return d + timedelta(days=7)
    if key in _MONTHS_PER_FREQUENCY:
        return add_months(d, _MONTHS_PER_FREQUENCY[key])
    if key in ("one_time", "one-time"):
        return None
    raise ValueError(f"Unknown frequency: {frequency!r}")


def period_end(start: date, period: Any) -> date:
    """Last calendar day covered by a budget period starting on `start`."""
    following = advance_by_frequency(start, period)
    if following is None:
        raise ValueError(f"Budget periods must recur, got {period!r}")
    return following - timedelta(days=1)
