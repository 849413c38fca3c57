"""Conversion of collaborator dictionaries into raw listing records."""
import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urljoin

from processor.models import ScheduledListing, ScrapedListing

logger = logging.getLogger(__name__)

NO_LOCATION_TEXT = 'Location TBD'


def _text(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip()


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    return []


def scheduled_listing_from_dict(data: Dict[str, Any]) -> Optional[ScheduledListing]:
    """
    Build a ScheduledListing from an AI event object.

    Args:
        data: Object with title, dates, location, styles and url keys

    Returns:
        ScheduledListing or None if the title is missing
    """
    title = _text(data.get('title'))
    if not title:
        logger.warning("Skipping AI event without a title")
        return None

    return ScheduledListing(
        title=title,
        dates=_string_list(data.get('dates')),
        location=_text(data.get('location')),
        styles=_string_list(data.get('styles')),
        url=_text(data.get('url'))
    )


def scraped_listings_from_dicts(items: Iterable[Dict[str, Any]],
                                base_url: str = '') -> List[ScrapedListing]:
    """
    Build ScrapedListing records from scraper output.

    Each item carries title, location, raw_date_str, event_url and id.
    Relative event URLs are resolved against base_url. Items without a
    title or URL are dropped.
    """
    listings = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning(f"Skipping non-object listing: {item!r}")
            continue

        title = _text(item.get('title'))
        path = _text(item.get('event_url'))
        if not title or not path:
            logger.warning(
                f"Skipping listing missing title or URL: {title or '<untitled>'}"
            )
            continue

        listings.append(ScrapedListing(
            title=title,
            location=_text(item.get('location')) or NO_LOCATION_TEXT,
            raw_date_str=_text(item.get('raw_date_str')),
            event_url=urljoin(base_url, path) if base_url else path,
            id=_text(item.get('id'))
        ))

    logger.info(f"Accepted {len(listings)} scraped listings")
    return listings
