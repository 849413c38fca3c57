"""AWS Lambda handler for the dance event normalization pipeline."""
import json
import logging
import os
import time
from typing import Dict, Any

from dateutil import tz

from ingestion.ai_payload import PayloadError, parse_event_payload, parse_sources
from ingestion.listings import scraped_listings_from_dicts
from processor.date_format import format_display_instant
from processor.event_processor import EventProcessor


# Attributes present on every LogRecord; anything else came in through extra=
RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord('', logging.INFO, '', 0, '', (), None))
) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """JSON formatter that also emits fields passed through extra=."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def _load_records(event: Dict[str, Any], base_url: str):
    source = event.get('source', 'ai')
    if source == 'ai':
        payload = event.get('response_text')
        if payload is None:
            payload = event.get('events')
        if payload is None:
            raise PayloadError("AI payload is missing 'response_text' or 'events'.")
        return parse_event_payload(payload)
    if source == 'scrape':
        return scraped_listings_from_dicts(event.get('listings') or [], base_url)
    raise ValueError(f"Unknown source: {source}")


def _reference_year(event: Dict[str, Any]):
    value = event.get('reference_year')
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid reference_year: {value!r}")


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler: normalize a fetched batch of event listings.

    Args:
        event: Payload with 'source' ("ai" or "scrape") and its data
        context: Lambda context object

    Returns:
        Response dict with statusCode and categorized events
    """
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    zone_name = os.environ.get('LOCAL_TIMEZONE', '')
    base_url = os.environ.get('SOURCE_BASE_URL', 'https://www.danceplace.com')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    local_tz = tz.gettz(zone_name) if zone_name else tz.tzlocal()
    if local_tz is None:
        logger.warning(f"Unknown LOCAL_TIMEZONE {zone_name!r}, using host zone")
        local_tz = tz.tzlocal()

    logger.info(
        "Pipeline execution started",
        extra={'source': event.get('source', 'ai'), 'local_timezone': zone_name}
    )

    try:
        try:
            records = _load_records(event, base_url)
            reference_year = _reference_year(event)
        except PayloadError as e:
            logger.error(f"Rejected event payload: {e}")
            return _response(422, {
                'message': 'Invalid event payload',
                'error': str(e),
                'duration_seconds': round(time.time() - start_time, 2)
            })
        except ValueError as e:
            logger.error(str(e))
            return _response(400, {'message': str(e)})

        processor = EventProcessor(local_tz=local_tz, reference_year=reference_year)
        result = processor.process(records)

        duration = time.time() - start_time
        logger.info(
            "Pipeline execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'upcoming_count': result.upcoming_count,
                'past_count': result.past_count
            }
        )

        categorized = {}
        for label, events in result.categorized.items():
            categorized[label] = []
            for item in events:
                data = item.to_dict()
                data['starts_label'] = format_display_instant(item.start, local_tz)
                categorized[label].append(data)

        return _response(200, {
            'message': 'Events processed successfully',
            'categorized': categorized,
            'upcoming_count': result.upcoming_count,
            'past_count': result.past_count,
            'sources': parse_sources(event.get('sources')),
            'duration_seconds': round(duration, 2)
        })

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Pipeline execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _response(500, {
            'message': 'Processing failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })
