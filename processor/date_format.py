"""Human-readable labels for calendar days and instants."""
import logging
import re
from datetime import date, datetime
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

CALENDAR_DAY_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

NO_DATE_LABEL = 'Date not available'
INVALID_DATE_LABEL = 'Invalid date'
NO_TIME_LABEL = 'Time not available'


def parse_calendar_day(value: Optional[str]) -> Optional[date]:
    """
    Parse a "YYYY-MM-DD" string as a plain calendar day.

    The result carries no time or zone, so it can never drift to the
    previous day the way a UTC-midnight timestamp does west of Greenwich.

    Args:
        value: Calendar-day string

    Returns:
        date object or None if the string is not a valid calendar day
    """
    if not value or not CALENDAR_DAY_PATTERN.match(value.strip()):
        logger.warning(f"Invalid or non-YYYY-MM-DD date string: {value!r}")
        return None

    try:
        return datetime.strptime(value.strip(), '%Y-%m-%d').date()
    except ValueError:
        logger.warning(f"Invalid date string after parsing: {value!r}")
        return None


def _month_day(day: date) -> str:
    return f"{day:%b} {day.day}"


def format_range(days: Sequence[str]) -> str:
    """
    Format a sequence of calendar days as a range label.

    Only the first and last entries are considered, e.g.
    ["2024-08-15", "2024-08-18"] -> "Aug 15 - 18, 2024" and
    ["2024-12-28", "2025-01-02"] -> "Dec 28, 2024 - Jan 2, 2025".
    """
    if not days:
        return NO_DATE_LABEL

    start = parse_calendar_day(days[0])
    if start is None:
        return INVALID_DATE_LABEL

    end = parse_calendar_day(days[-1])
    if end is None or end == start:
        return f"{_month_day(start)}, {start.year}"

    if (start.year, start.month) == (end.year, end.month):
        return f"{_month_day(start)} - {end.day}, {start.year}"

    if start.year != end.year:
        return f"{_month_day(start)}, {start.year} - {_month_day(end)}, {end.year}"

    return f"{_month_day(start)} - {_month_day(end)}, {end.year}"


def format_display_instant(instant: Optional[datetime], zone=None) -> str:
    """Render an instant as e.g. "Aug 17, 2024 7:00 PM" in the given zone."""
    if instant is None:
        return NO_TIME_LABEL

    local = instant.astimezone(zone) if zone is not None else instant
    hour = local.hour % 12 or 12
    return f"{_month_day(local)}, {local.year} {hour}:{local:%M %p}"
