"""Free-text date interpretation for scraped event listings.

Listing pages describe an event with strings such as
``"Sat, Aug 17, 7:00 PM - 11:00 PM PDT"``. The year is never present, so the
caller supplies a reference year. Events that logically fall in the following
year (a December listing read in January, or the reverse) are parsed into the
reference year anyway; no rollover is attempted.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

from dateutil import tz

from processor.models import Interval

logger = logging.getLogger(__name__)

TIMEZONE_ABBREVIATIONS: Mapping[str, str] = {
    'PDT': 'America/Los_Angeles',
    'PST': 'America/Los_Angeles',
    'EDT': 'America/New_York',
    'EST': 'America/New_York',
    'CDT': 'America/Chicago',
    'CST': 'America/Chicago',
    'MDT': 'America/Denver',
    'MST': 'America/Denver',
}

DEFAULT_ZONE = 'UTC'
DEFAULT_DURATION = timedelta(hours=2)

DATE_TIME_PATTERN = re.compile(
    r'\b(?:(?P<weekday>[A-Za-z]{3}),\s*)?'
    r'\b(?P<month>[A-Za-z]{3})\s+(?P<day>\d{1,2})\b'
    r'(?:,?\s*(?P<start>\d{1,2}:\d{2}\s*[AaPp][Mm]))?'
    r'(?:\s*[-–]\s*(?P<end>\d{1,2}:\d{2}\s*[AaPp][Mm]))?'
    r'(?:\s+(?P<zone>[A-Za-z]{3})\b)?'
)

TIME_FORMAT = '%I:%M %p'


def resolve_zone(abbreviation: Optional[str],
                 table: Mapping[str, str] = TIMEZONE_ABBREVIATIONS):
    """Map a US timezone abbreviation to a tzinfo, defaulting to UTC."""
    name = table.get((abbreviation or '').upper(), DEFAULT_ZONE)
    return tz.gettz(name)


def _parse_clock(value: str) -> datetime:
    # Accept "7:00PM" as well as "7:00 PM"
    compact = re.sub(r'\s+', '', value).upper()
    return datetime.strptime(f"{compact[:-2]} {compact[-2:]}", TIME_FORMAT)


def interpret(text: Optional[str], reference_year: int,
              zones: Mapping[str, str] = TIMEZONE_ABBREVIATIONS) -> Interval:
    """
    Interpret a free-text date string as a start/end instant pair.

    Args:
        text: Date text from a listing, e.g. "Sat, Aug 17, 7:00 PM - 11:00 PM PDT"
        reference_year: Year to combine with the month and day
        zones: Abbreviation to IANA zone table

    Returns:
        Interval with UTC-aware start and end, or an empty Interval if the
        text cannot be interpreted
    """
    if not text:
        return Interval()

    match = DATE_TIME_PATTERN.search(text)
    if not match:
        logger.warning(f"Could not find a date in string: {text!r}")
        return Interval()

    try:
        day = datetime.strptime(
            f"{match.group('month').title()} {match.group('day')} {reference_year}",
            '%b %d %Y'
        )

        start_text = match.group('start')
        end_text = match.group('end')

        if start_text:
            clock = _parse_clock(start_text)
            local_start = day.replace(hour=clock.hour, minute=clock.minute)
        else:
            local_start = day

        if end_text:
            clock = _parse_clock(end_text)
            local_end = day.replace(hour=clock.hour, minute=clock.minute)
        elif start_text:
            local_end = local_start + DEFAULT_DURATION
        else:
            local_end = day.replace(hour=23, minute=59)

        zone = resolve_zone(match.group('zone'), zones)
        start = local_start.replace(tzinfo=zone).astimezone(timezone.utc)
        end = local_end.replace(tzinfo=zone).astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        logger.warning(f"Date parsing failed for string {text!r}: {e}")
        return Interval()

    if end < start:
        logger.warning(f"End precedes start in date string: {text!r}")
        return Interval()

    return Interval(start=start, end=end)
