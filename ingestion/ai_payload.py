"""Decoding of JSON event payloads returned by the AI collaborator."""
import json
import logging
import re
from typing import Any, Dict, List, Union

from ingestion.listings import scheduled_listing_from_dict
from processor.models import ScheduledListing

logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r'^```(?:json)?\s*\n?(.*?)\n?\s*```$', re.DOTALL)


class PayloadError(Exception):
    """Raised when a payload cannot be turned into a batch of events."""


def extract_json_text(text: str) -> str:
    """
    Isolate the JSON document inside a free-form model response.

    Handles Markdown code fences and leading or trailing chatter around the
    first array or object.

    Raises:
        PayloadError: If no JSON array or object is present
    """
    text = (text or '').strip()
    if not text:
        raise PayloadError("AI response was empty or blocked.")

    match = FENCE_PATTERN.match(text)
    if match:
        return match.group(1).strip()

    starts = [i for i in (text.find('['), text.find('{')) if i != -1]
    end = max(text.rfind(']'), text.rfind('}'))
    if not starts or end == -1:
        raise PayloadError(
            "AI response did not contain a valid JSON object or array."
        )

    return text[min(starts):end + 1]


def unwrap_events(data: Any) -> List[Any]:
    """
    Accept a bare array, an {"events": [...]} envelope or a single event object.

    Raises:
        PayloadError: If the data matches none of the accepted shapes
    """
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get('events'), list):
            return data['events']
        if data.get('title'):
            return [data]
    raise PayloadError(
        "Invalid data structure in AI response. Expected an array of events "
        "or an object containing an 'events' array."
    )


def parse_event_payload(payload: Union[str, bytes, list, dict]) -> List[ScheduledListing]:
    """
    Parse an AI payload into scheduled listings.

    Args:
        payload: Raw response text, or an already decoded JSON value

    Returns:
        List of ScheduledListing objects; malformed entries are skipped

    Raises:
        PayloadError: If the payload as a whole is unusable
    """
    if isinstance(payload, bytes):
        payload = payload.decode('utf-8')

    if isinstance(payload, str):
        try:
            data = json.loads(extract_json_text(payload))
        except json.JSONDecodeError as e:
            raise PayloadError(
                "Failed to parse data from the AI. The response was not valid JSON."
            ) from e
    else:
        data = payload

    entries = unwrap_events(data)

    listings = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning(f"Skipping non-object event entry at index {index}")
            continue
        listing = scheduled_listing_from_dict(entry)
        if listing:
            listings.append(listing)

    logger.info(f"Decoded {len(listings)} listings out of {len(entries)} entries")
    return listings


def parse_sources(raw_sources: Any) -> List[Dict[str, str]]:
    """
    Keep the web citations that grounded an AI response.

    Entries look like {"web": {"uri": ..., "title": ...}} or {"uri": ..., "title": ...}.
    Entries without a uri are dropped; a missing title falls back to the uri.
    """
    if not isinstance(raw_sources, list):
        return []

    sources = []
    for source in raw_sources:
        if not isinstance(source, dict):
            continue
        web = source.get('web') if isinstance(source.get('web'), dict) else source
        uri = str(web.get('uri') or '').strip()
        if not uri:
            continue
        title = str(web.get('title') or '').strip()
        sources.append({'uri': uri, 'title': title or uri})
    return sources
