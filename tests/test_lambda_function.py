"""Integration tests for Lambda handler."""
import json
import logging
import os
from datetime import datetime
from unittest.mock import Mock, patch

import pytest
from dateutil import tz

from lambda_function import JsonFormatter, lambda_handler, setup_logging


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'LOG_LEVEL': 'INFO',
        'LOCAL_TIMEZONE': 'America/Los_Angeles',
        'SOURCE_BASE_URL': 'https://www.danceplace.com'
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.aws_request_id = 'test-request-id'
    return context


@pytest.fixture
def fixed_now():
    """Pin 'now' for the processor."""
    now = datetime(2024, 8, 10, 12, 0, tzinfo=tz.gettz('America/Los_Angeles'))
    with patch('processor.event_processor.datetime') as mock_datetime:
        mock_datetime.now.return_value = now
        mock_datetime.combine.side_effect = datetime.combine
        mock_datetime.min = datetime.min
        yield now


class TestLambdaHandler:
    """Test cases for Lambda handler."""

    def test_ai_response_text(self, mock_env, mock_context, fixed_now):
        """Test fenced AI output is decoded, processed and serialized."""
        events = {
            "events": [
                {
                    "title": "Kizomba Fest",
                    "dates": ["2024-08-15", "2024-08-18"],
                    "location": "Orlando, FL",
                    "styles": ["Kizomba", "Zouk"],
                    "url": "https://www.danceplace.com/events/kizomba-fest"
                },
                {
                    "title": "Old Salsa Congress",
                    "dates": ["2024-07-01", "2024-07-03"],
                    "location": "Miami, FL",
                    "styles": ["Salsa"],
                    "url": "https://www.danceplace.com/events/old"
                }
            ]
        }
        event = {
            'source': 'ai',
            'response_text': f"```json\n{json.dumps(events)}\n```"
        }

        response = lambda_handler(event, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['upcoming_count'] == 1
        assert body['past_count'] == 1
        assert list(body['categorized']) == ['Kizomba', 'Zouk']
        item = body['categorized']['Kizomba'][0]
        assert item['title'] == 'Kizomba Fest'
        assert item['date_label'] == 'Aug 15 - 18, 2024'
        assert item['all_day'] is True
        assert item['starts_label'] == 'Aug 15, 2024 12:00 AM'
        assert 'duration_seconds' in body

    def test_scraped_listings(self, mock_env, mock_context, fixed_now):
        """Test scraped listings are resolved and categorized by title."""
        event = {
            'source': 'scrape',
            'reference_year': 2024,
            'listings': [
                {
                    'title': 'Salsa & Bachata Night',
                    'location': 'Oakland, CA',
                    'raw_date_str': 'Sat, Aug 17, 7:00 PM - 11:00 PM PDT',
                    'event_url': '/events/sb-night',
                    'id': 'sb-night'
                },
                {
                    'title': 'Mystery Social',
                    'location': 'Oakland, CA',
                    'raw_date_str': 'TBD',
                    'event_url': '/events/mystery',
                    'id': 'mystery'
                }
            ]
        }

        response = lambda_handler(event, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['upcoming_count'] == 1
        assert body['past_count'] == 1
        item = body['categorized']['Salsa'][0]
        assert item['source_url'] == 'https://www.danceplace.com/events/sb-night'
        assert item['starts_label'] == 'Aug 17, 2024 7:00 PM'
        assert item['calendar_link'].startswith('https://www.google.com/calendar/render?')

    def test_invalid_payload(self, mock_env, mock_context):
        """Test a malformed payload aborts the run with a single message."""
        event = {'source': 'ai', 'response_text': 'Sorry, no events today.'}

        response = lambda_handler(event, mock_context)

        assert response['statusCode'] == 422
        body = json.loads(response['body'])
        assert body['message'] == 'Invalid event payload'
        assert 'JSON' in body['error']

    def test_missing_ai_payload(self, mock_env, mock_context):
        response = lambda_handler({'source': 'ai'}, mock_context)

        assert response['statusCode'] == 422

    def test_unknown_source(self, mock_env, mock_context):
        response = lambda_handler({'source': 'rss'}, mock_context)

        assert response['statusCode'] == 400
        assert 'rss' in json.loads(response['body'])['message']

    @patch('lambda_function.EventProcessor')
    def test_unexpected_failure(self, mock_processor_class, mock_env, mock_context):
        """Test unexpected errors are reported as a 500."""
        mock_processor_class.return_value.process.side_effect = RuntimeError('boom')

        response = lambda_handler({'source': 'ai', 'events': []}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['error'] == 'boom'
        assert body['error_type'] == 'RuntimeError'

    def test_invalid_reference_year(self, mock_env, mock_context):
        """Test a malformed reference year is rejected as client input."""
        event = {'source': 'ai', 'events': [], 'reference_year': 'abc'}

        response = lambda_handler(event, mock_context)

        assert response['statusCode'] == 400
        assert 'reference_year' in json.loads(response['body'])['message']

    def test_sources_are_passed_through(self, mock_env, mock_context):
        """Test grounding citations from the AI call reach the response."""
        event = {
            'source': 'ai',
            'events': [],
            'sources': [
                {'web': {'uri': 'https://www.danceplace.com/events', 'title': 'DancePlace'}},
                {'web': {'uri': 'https://example.com/salsa'}},
                {'web': {'title': 'No link'}}
            ]
        }

        response = lambda_handler(event, mock_context)

        assert json.loads(response['body'])['sources'] == [
            {'uri': 'https://www.danceplace.com/events', 'title': 'DancePlace'},
            {'uri': 'https://example.com/salsa', 'title': 'https://example.com/salsa'}
        ]

    def test_empty_batch(self, mock_env, mock_context):
        response = lambda_handler({'source': 'ai', 'events': []}, mock_context)

        body = json.loads(response['body'])
        assert response['statusCode'] == 200
        assert body['categorized'] == {}
        assert body['upcoming_count'] == 0
        assert body['past_count'] == 0


class TestLogging:
    """Test cases for logging setup."""

    def test_setup_logging_installs_json_formatter(self):
        setup_logging('DEBUG')

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert isinstance(root_logger.handlers[0].formatter, JsonFormatter)

    def test_json_formatter_output(self):
        record = logging.LogRecord(
            'test', logging.WARNING, __file__, 1, 'hello %s', ('world',), None
        )

        data = json.loads(JsonFormatter().format(record))

        assert data['level'] == 'WARNING'
        assert data['message'] == 'hello world'
        assert data['logger'] == 'test'

    def test_json_formatter_includes_extra_fields(self):
        record = logging.LogRecord(
            'test', logging.INFO, __file__, 1, 'done', (), None
        )
        record.upcoming_count = 3
        record.duration_seconds = 0.25

        data = json.loads(JsonFormatter().format(record))

        assert data['upcoming_count'] == 3
        assert data['duration_seconds'] == 0.25
        assert 'args' not in data
        assert 'levelno' not in data
