"""Pre-filled Google Calendar links for normalized events."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

from processor.models import DayRange

logger = logging.getLogger(__name__)

CALENDAR_RENDER_URL = 'https://www.google.com/calendar/render'
INSTANT_FORMAT = '%Y%m%dT%H%M%SZ'
DAY_FORMAT = '%Y%m%d'


def _template_url(title: str, dates: str, source_url: str, location: str) -> str:
    params = {
        'action': 'TEMPLATE',
        'text': title,
        'dates': dates,
        'details': f"View event details at: {source_url}",
        'location': location,
    }
    return f"{CALENDAR_RENDER_URL}?{urlencode(params)}"


def build_timed_link(title: str, start: Optional[datetime], end: Optional[datetime],
                     source_url: str, location: str) -> Optional[str]:
    """
    Build a calendar link for an event with precise start and end instants.

    Args:
        title: Event title
        start: Timezone-aware start instant
        end: Timezone-aware end instant
        source_url: Detail page linked from the calendar entry
        location: Venue or city

    Returns:
        Calendar URL, or None if either instant is missing
    """
    if start is None or end is None:
        return None

    dates = (
        f"{start.astimezone(timezone.utc).strftime(INSTANT_FORMAT)}/"
        f"{end.astimezone(timezone.utc).strftime(INSTANT_FORMAT)}"
    )
    return _template_url(title, dates, source_url, location)


def build_all_day_link(title: str, day_range: Optional[DayRange],
                       source_url: str, location: str) -> Optional[str]:
    """
    Build an all-day calendar link for a range of calendar days.

    The calendar treats the end date of an all-day entry as exclusive, so one
    day is added to the last day of the range.
    """
    if day_range is None:
        return None

    end_exclusive = day_range.last_day + timedelta(days=1)
    dates = (
        f"{day_range.first_day.strftime(DAY_FORMAT)}/"
        f"{end_exclusive.strftime(DAY_FORMAT)}"
    )
    return _template_url(title, dates, source_url, location)
