"""Date range parsing for the sync command."""

import re
from datetime import date, datetime, time, timedelta

from tikkle.errors import InvalidDateRangeError

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DATE_RANGE_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})\.\.(\d{4}-\d{2}-\d{2})$")

RANGE_KEYWORDS = ("today", "yesterday", "week", "month")

DAY_START = time(0, 0, 0, 0)
DAY_END = time(23, 59, 59, 999000)


def _parse_date(value: str, original: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidDateRangeError(f'Invalid date "{original}"') from None


def parse_range(value: str, today: date | None = None) -> tuple[date, date]:
    """Parse a sync range expression into inclusive start and end days.

    Args:
        value: "today", "yesterday", "week", "month", "YYYY-MM-DD" or
            "YYYY-MM-DD..YYYY-MM-DD".
        today: Reference day, defaults to the current local day.

    Returns:
        Tuple of (start, end) days.

    Raises:
        InvalidDateRangeError: If the expression is not understood.
    """
    today = today or date.today()
    value = value.strip()

    if value == "today":
        return today, today
    if value == "yesterday":
        day = today - timedelta(days=1)
        return day, day
    if value == "week":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if value == "month":
        start = today.replace(day=1)
        next_month = (start + timedelta(days=32)).replace(day=1)
        return start, next_month - timedelta(days=1)
    if DATE_PATTERN.match(value):
        day = _parse_date(value, value)
        return day, day

    match = DATE_RANGE_PATTERN.match(value)
    if match:
        start = _parse_date(match.group(1), value)
        end = _parse_date(match.group(2), value)
        if start > end:
            raise InvalidDateRangeError(f'Range "{value}" ends before it starts')
        return start, end

    raise InvalidDateRangeError(
        f'Invalid date range "{value}". Use a date (YYYY-MM-DD), a date range '
        '(YYYY-MM-DD..YYYY-MM-DD), "today", "yesterday", "week" or "month".'
    )


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Normalize a day range to local-time datetimes.

    Returns:
        Start at 00:00:00.000 and end at 23:59:59.999, both timezone-aware.
    """
    return (
        datetime.combine(start, DAY_START).astimezone(),
        datetime.combine(end, DAY_END).astimezone(),
    )
