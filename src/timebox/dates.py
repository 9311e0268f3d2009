"""Day identifiers, wall-clock minute formatting and month-view calendar weeks.

Day identifiers are local calendar dates formatted ``YYYY-MM-DD``; no
timezone conversion is ever applied.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

# Sunday-first, matching the picker header (Sun..Sat).
_SUNDAY_FIRST = calendar.Calendar(firstweekday=calendar.SUNDAY)


def format_date(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` day identifier; raise ``ValueError`` otherwise."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValueError(f"Invalid date {value!r}; expected YYYY-MM-DD")
    return datetime.strptime(value, "%Y-%m-%d").date()


def is_day_id(value: object) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parse_date(value)
    except ValueError:
        return False
    return True


def today() -> str:
    return format_date(date.today())


def add_days(day: str, days: int) -> str:
    return format_date(parse_date(day) + timedelta(days=days))


def shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    """Return ``(year, month)`` moved by *months* (negative goes back)."""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def month_weeks(year: int, month: int) -> list[list[int | None]]:
    """Weeks of *month* as rows of seven day numbers, ``None`` outside the month."""
    return [
        [day or None for day in week]
        for week in _SUNDAY_FIRST.monthdayscalendar(year, month)
    ]


def format_time(total_minutes: int) -> str:
    """Minutes since midnight as 24-hour ``HH:MM``."""
    h, m = divmod(total_minutes, 60)
    return f"{h:02d}:{m:02d}"


def parse_time(value: str) -> int:
    """Parse ``HH:MM`` into minutes since midnight."""
    match = _TIME_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time {value!r}; expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time {value!r}; out of range")
    return hours * 60 + minutes
