"""Data models for event normalization."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, FrozenSet, List, Optional, Union


@dataclass(frozen=True)
class ScheduledListing:
    """Event returned by the AI collaborator, dated by calendar days."""
    title: str
    dates: List[str]
    location: str
    styles: List[str] = field(default_factory=list)
    url: str = ''


@dataclass(frozen=True)
class ScrapedListing:
    """Event scraped from a listing page, dated by free text."""
    title: str
    location: str
    raw_date_str: str
    event_url: str
    id: str


RawEventRecord = Union[ScheduledListing, ScrapedListing]


@dataclass(frozen=True)
class Interval:
    """Start/end instant pair; both absent when the date is unparseable."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.start is None or self.end is None


@dataclass(frozen=True)
class DayRange:
    """Inclusive range of calendar days."""
    first_day: date
    last_day: date


@dataclass
class NormalizedEvent:
    """Canonical event produced by the pipeline."""
    event_id: str
    title: str
    location: str
    start: Optional[datetime]
    end: Optional[datetime]
    source_url: str
    categories: FrozenSet[str]
    date_label: str
    calendar_link: Optional[str] = None
    day_range: Optional[DayRange] = None

    @property
    def all_day(self) -> bool:
        return self.day_range is not None

    def to_dict(self) -> dict:
        return {
            'id': self.event_id,
            'title': self.title,
            'location': self.location,
            'start': self.start.isoformat() if self.start else None,
            'end': self.end.isoformat() if self.end else None,
            'all_day': self.all_day,
            'date_label': self.date_label,
            'source_url': self.source_url,
            'calendar_link': self.calendar_link,
            'categories': sorted(self.categories),
        }


@dataclass
class PipelineResult:
    """Result of a pipeline run."""
    categorized: Dict[str, List[NormalizedEvent]]
    upcoming_count: int
    past_count: int
