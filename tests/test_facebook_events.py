"""Unit tests for the Facebook ICS source."""
from urllib.parse import parse_qs, urlparse

import pytest
import responses

from processor.models import EventsSourceParams, TzState
from sources.base import BadRequestError, HttpError
from sources.facebook_events import FacebookEventsSource

FEED_URL = 'https://www.facebook.com/events/ical/upcoming/'

FEED = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Facebook//NONSGML Facebook Events V1.0//EN
BEGIN:VEVENT
UID:e1@facebook.com
SUMMARY:June Rally
DTSTART:20240610T170000Z
DTEND:20240610T190000Z
LOCATION:Civic Center, San Francisco
DESCRIPTION:More at https://example.com/rally
URL:https://www.facebook.com/events/1/
END:VEVENT
BEGIN:VEVENT
UID:e2@facebook.com
SUMMARY:August Picnic
DTSTART:20240810T170000Z
DTEND:20240810T190000Z
END:VEVENT
END:VCALENDAR
"""


class TestFacebookEventsSource:
    """Test cases for FacebookEventsSource."""

    @responses.activate
    def test_fetch_events(self):
        responses.add(responses.GET, FEED_URL, body=FEED, status=200)

        response = FacebookEventsSource(timeout=5).fetch_events(EventsSourceParams(id='12345-secretkey'))

        query = parse_qs(urlparse(responses.calls[0].request.url).query)
        assert query == {'uid': ['12345'], 'key': ['secretkey']}

        assert len(response.events) == 2
        rally = response.events[0]
        assert rally.id == 'e1@facebook.com'
        assert rally.start == '2024-06-10T17:00:00Z'
        assert rally.end == '2024-06-10T19:00:00Z'
        assert rally.tz == TzState.TIME_IS_ACCURATE
        assert rally.description_urls == ['https://example.com/rally']
        assert rally.original_event_url == 'https://www.facebook.com/events/1/'
        assert response.source.id == '12345-secretkey'

    @responses.activate
    def test_time_bounds_filter(self):
        responses.add(responses.GET, FEED_URL, body=FEED, status=200)

        response = FacebookEventsSource(timeout=5).fetch_events(EventsSourceParams(
            id='12345-secretkey',
            time_min='2024-06-01T00:00:00Z',
            time_max='2024-07-01T00:00:00Z'
        ))

        assert [e.name for e in response.events] == ['June Rally']

    def test_invalid_id(self):
        with pytest.raises(BadRequestError):
            FacebookEventsSource().fetch_events(EventsSourceParams(id='nodashkey'))

    @responses.activate
    def test_empty_feed(self):
        responses.add(responses.GET, FEED_URL, body='', status=200)
        with pytest.raises(HttpError) as exc_info:
            FacebookEventsSource(timeout=5).fetch_events(EventsSourceParams(id='1-k'))
        assert exc_info.value.status == 502
