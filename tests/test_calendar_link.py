"""Unit tests for calendar link synthesis."""
from datetime import date, datetime, timezone
from urllib.parse import parse_qs, urlparse

from dateutil import tz

from processor.calendar_link import build_all_day_link, build_timed_link
from processor.models import DayRange


def _query(url):
    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == \
        "https://www.google.com/calendar/render"
    return {key: values[0] for key, values in parse_qs(parsed.query).items()}


class TestBuildTimedLink:
    """Test cases for build_timed_link()."""

    def test_encodes_utc_instants(self):
        """Test instants are rendered in UTC basic format."""
        pacific = tz.gettz('America/Los_Angeles')
        url = build_timed_link(
            "Salsa & Bachata Night",
            datetime(2024, 8, 17, 19, 0, tzinfo=pacific),
            datetime(2024, 8, 17, 23, 0, tzinfo=pacific),
            "https://www.danceplace.com/events/salsa-night",
            "Oakland, CA"
        )

        query = _query(url)
        assert query['action'] == 'TEMPLATE'
        assert query['text'] == "Salsa & Bachata Night"
        assert query['dates'] == "20240818T020000Z/20240818T060000Z"
        assert query['details'] == \
            "View event details at: https://www.danceplace.com/events/salsa-night"
        assert query['location'] == "Oakland, CA"

    def test_special_characters_are_percent_encoded(self):
        """Test reserved characters do not leak into the query string."""
        url = build_timed_link(
            "Zouk #1 & More",
            datetime(2024, 8, 17, 19, 0, tzinfo=timezone.utc),
            datetime(2024, 8, 17, 21, 0, tzinfo=timezone.utc),
            "https://example.com/e?id=1",
            "Room 5"
        )

        assert '#' not in url
        assert '%26' in url
        assert _query(url)['text'] == "Zouk #1 & More"

    def test_missing_instant(self):
        """Test no link is produced without both instants."""
        start = datetime(2024, 8, 17, 19, 0, tzinfo=timezone.utc)

        assert build_timed_link("Title", start, None, "u", "l") is None
        assert build_timed_link("Title", None, start, "u", "l") is None


class TestBuildAllDayLink:
    """Test cases for build_all_day_link()."""

    def test_end_date_is_exclusive(self):
        """Test one day is added to the last day."""
        url = build_all_day_link(
            "Kizomba Festival",
            DayRange(date(2024, 8, 15), date(2024, 8, 18)),
            "https://www.danceplace.com/events/kizomba-fest",
            "Orlando, FL"
        )

        assert _query(url)['dates'] == "20240815/20240819"

    def test_single_day_across_year_end(self):
        """Test the exclusive end rolls over the year."""
        url = build_all_day_link(
            "NYE Social",
            DayRange(date(2024, 12, 31), date(2024, 12, 31)),
            "",
            ""
        )

        assert _query(url)['dates'] == "20241231/20250101"

    def test_missing_range(self):
        assert build_all_day_link("Title", None, "u", "l") is None
