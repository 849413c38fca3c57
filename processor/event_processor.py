"""Event processor for normalizing, filtering, sorting and grouping events."""
import hashlib
import logging
from datetime import datetime, time, timezone
from typing import Dict, List, Optional, Sequence, Set
from urllib.parse import urlparse

from dateutil import tz

from processor.calendar_link import build_all_day_link, build_timed_link
from processor.classifier import resolve_categories
from processor.date_format import format_range, parse_calendar_day
from processor.date_interpreter import interpret
from processor.models import (
    DayRange,
    NormalizedEvent,
    PipelineResult,
    RawEventRecord,
    ScheduledListing,
    ScrapedListing,
)

logger = logging.getLogger(__name__)


class EventProcessor:
    """Processor turning raw listings into sorted, categorized events."""

    NO_DATE_TEXT = 'Date TBD'
    END_OF_DAY = time(23, 59)

    def __init__(self, local_tz=None, reference_year: Optional[int] = None):
        """
        Initialize the processor.

        Args:
            local_tz: Zone used for "today" and for calendar-day strings
                (default: host local zone)
            reference_year: Year applied to free-text dates without one
                (default: current year in local_tz)
        """
        self.local_tz = local_tz or tz.tzlocal()
        self.reference_year = reference_year

    def process(self, records: Sequence[RawEventRecord],
                now: Optional[datetime] = None) -> PipelineResult:
        """
        Normalize records, drop past events, sort and group by category.

        Args:
            records: Raw listings from either collaborator
            now: Current time (default: datetime.now in local_tz)

        Returns:
            PipelineResult with categorized upcoming events and counts
        """
        now = now or datetime.now(self.local_tz)
        today_start = datetime.combine(
            now.astimezone(self.local_tz).date(), time.min, tzinfo=self.local_tz
        )
        reference_year = self.reference_year or today_start.year

        events = self.normalize_all(records, reference_year)

        upcoming = []
        past_count = 0
        for event in events:
            if self.is_past(event, today_start):
                past_count += 1
            else:
                upcoming.append(event)

        upcoming = self.sort_events(upcoming)
        categorized = self.group_by_category(upcoming)

        logger.info(
            f"Processed {len(records)} records: {len(upcoming)} upcoming, "
            f"{past_count} past, {len(categorized)} categories"
        )
        return PipelineResult(
            categorized=categorized,
            upcoming_count=len(upcoming),
            past_count=past_count
        )

    def normalize_all(self, records: Sequence[RawEventRecord],
                      reference_year: int) -> List[NormalizedEvent]:
        """Normalize every record, skipping those missing required fields."""
        events = []
        emitted_ids: Set[str] = set()

        for record in records:
            try:
                event = self.normalize(record, reference_year)
            except Exception as e:
                logger.warning(
                    f"Failed to normalize event '{getattr(record, 'title', '')}': {e}"
                )
                continue
            if event is None:
                continue

            event.event_id = self.unique_id(event.event_id, emitted_ids)
            emitted_ids.add(event.event_id)
            events.append(event)

        return events

    @staticmethod
    def unique_id(base_id: str, taken: Set[str]) -> str:
        """Suffix base_id with -2, -3, ... until it is not in taken."""
        candidate = base_id
        suffix = 1
        while candidate in taken:
            suffix += 1
            candidate = f"{base_id}-{suffix}"
        return candidate

    def normalize(self, record: RawEventRecord,
                  reference_year: int) -> Optional[NormalizedEvent]:
        """
        Normalize a single record.

        Args:
            record: ScheduledListing or ScrapedListing
            reference_year: Year for free-text dates

        Returns:
            NormalizedEvent or None if a required field is missing
        """
        if not record.title or not record.title.strip():
            logger.warning("Event missing required field: title")
            return None

        if isinstance(record, ScrapedListing):
            return self._normalize_scraped(record, reference_year)
        if isinstance(record, ScheduledListing):
            return self._normalize_scheduled(record)
        raise TypeError(f"Unsupported record type: {type(record).__name__}")

    def _normalize_scraped(self, record: ScrapedListing,
                           reference_year: int) -> Optional[NormalizedEvent]:
        if not record.event_url or not record.event_url.strip():
            logger.warning(f"Event '{record.title}' missing required field: event_url")
            return None

        event_id = record.id or self.id_from_url(record.event_url)
        if not event_id:
            logger.warning(f"Event '{record.title}' has no identifier")
            return None

        title = record.title.strip()
        interval = interpret(record.raw_date_str, reference_year)
        if interval.is_empty and record.raw_date_str:
            logger.warning(
                f"Unparseable date for event '{title}': {record.raw_date_str}"
            )

        return NormalizedEvent(
            event_id=event_id,
            title=title,
            location=record.location,
            start=interval.start,
            end=interval.end,
            source_url=record.event_url,
            categories=resolve_categories(title),
            date_label=record.raw_date_str or self.NO_DATE_TEXT,
            calendar_link=build_timed_link(
                title, interval.start, interval.end,
                record.event_url, record.location
            )
        )

    def _normalize_scheduled(self, record: ScheduledListing) -> NormalizedEvent:
        title = record.title.strip()
        day_range = self._day_range(record)

        start = end = None
        if day_range is not None:
            start = datetime.combine(
                day_range.first_day, time.min, tzinfo=self.local_tz
            ).astimezone(timezone.utc)
            end = datetime.combine(
                day_range.last_day, self.END_OF_DAY, tzinfo=self.local_tz
            ).astimezone(timezone.utc)

        first_day = record.dates[0] if record.dates else ''

        return NormalizedEvent(
            event_id=self.generate_event_id(title, first_day, record.url),
            title=title,
            location=record.location,
            start=start,
            end=end,
            source_url=record.url,
            categories=resolve_categories(title, record.styles or []),
            date_label=format_range(record.dates),
            calendar_link=build_all_day_link(
                title, day_range, record.url, record.location
            ),
            day_range=day_range
        )

    def _day_range(self, record: ScheduledListing) -> Optional[DayRange]:
        if not record.dates:
            logger.warning(f"Event '{record.title}' has no dates")
            return None

        first_day = parse_calendar_day(record.dates[0])
        last_day = parse_calendar_day(record.dates[-1])
        if first_day is None or last_day is None:
            return None

        if last_day < first_day:
            logger.warning(
                f"Event '{record.title}' ends before it starts: {record.dates}"
            )
            return None

        return DayRange(first_day=first_day, last_day=last_day)

    @staticmethod
    def is_past(event: NormalizedEvent, today_start: datetime) -> bool:
        """An event is past when its end is unknown or before the start of today."""
        return event.end is None or event.end < today_start

    @staticmethod
    def sort_events(events: List[NormalizedEvent]) -> List[NormalizedEvent]:
        """Sort by start instant; events without a start keep input order at the end."""
        return sorted(
            events,
            key=lambda e: (e.start is None, e.start or datetime.min.replace(tzinfo=timezone.utc))
        )

    @staticmethod
    def group_by_category(events: List[NormalizedEvent]) -> Dict[str, List[NormalizedEvent]]:
        """Bucket events by category, buckets ordered by label."""
        buckets: Dict[str, List[NormalizedEvent]] = {}
        for event in events:
            for category in event.categories:
                buckets.setdefault(category, []).append(event)
        return {label: buckets[label] for label in sorted(buckets)}

    @staticmethod
    def id_from_url(url: str) -> str:
        """Derive an identifier from the last path segment of a URL."""
        path = urlparse(url).path.rstrip('/')
        return path.rsplit('/', 1)[-1] if path else ''

    def generate_event_id(self, title: str, date: str, url: str) -> str:
        """
        Generate identifier for an event using hash of title + date + url.

        Args:
            title: Event title
            date: First calendar day as given by the source
            url: Event detail URL

        Returns:
            SHA256 hex digest
        """
        composite = f"{title}|{date}|{url}"
        return hashlib.sha256(composite.encode('utf-8')).hexdigest()
