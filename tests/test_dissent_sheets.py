"""Unit tests for the Dissent Google Sheets source."""
import os
import re
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
import responses

from processor.models import EventsSourceParams, TzState
from sources.base import ConfigurationError, HttpError, NotFoundError
from sources.dissent_sheets import DissentGoogleSheetsSource, record_to_event, rows_to_records

SHEET_PATTERN = re.compile(r'https://sheets\.googleapis\.com/v4/spreadsheets/.+/values/.+')

HEADER = ['Name', 'Date', 'Time', 'Address', 'City', 'State', 'Zip', 'Country', 'Link', 'Info', 'ADA Accessible']

PREAMBLE = [
    ['We The People Dissent'],
    ['Protest listings'],
    [],
    ['Submit events at the form'],
    [],
    ['Last updated'],
]

ROWS = [
    ['Oakland Rally', '6/14/2025', '10am - 1pm', '1 Frank Ogawa Plaza', 'Oakland', 'CA', '94612', 'USA',
     'https://www.mobilize.us/event/1', 'Bring signs https://example.org/signs', 'Yes'],
    ['Reno March', '6/14/2025', 'noon', '', 'Reno', 'NV', '', '', 'http://example.org/reno'],
    ['', '6/14/2025', '10am', '', 'Nowhere', 'XX', '', '', 'https://example.org/nameless'],
    ['Oakland Rally Again', '6/14/2025', '2pm', '', 'Oakland', 'CA', '', '', 'https://www.mobilize.us/event/1'],
    ['No Date', 'TBD', '', '', '', '', '', '', 'https://example.org/nodate'],
    ['Somewhere Vigil', '6/14/2025', '7pm', '', '', '', '', '', 'https://example.org/vigil'],
]

SHEET_VALUES = {'values': PREAMBLE + [HEADER] + ROWS}


@pytest.fixture
def mock_env():
    """Provide the Google API key."""
    with patch.dict(os.environ, {'GOOGLE_CALENDAR_API_KEY': 'test-key'}):
        yield


class TestSheetRecords:
    """Test cases for row-to-event helpers."""

    def test_rows_to_records_pads_short_rows(self):
        records = rows_to_records(PREAMBLE + [HEADER] + [['Only Name']])
        assert records == [{header: ('Only Name' if header == 'Name' else '') for header in HEADER}]

    def test_record_to_event(self):
        record = rows_to_records(PREAMBLE + [HEADER] + ROWS[:1])[0]
        event = record_to_event(record)

        assert event.id == 'www.mobilize.us/event/1'
        assert event.name == 'Oakland Rally'
        assert event.start == '2025-06-14T10:00:00Z'
        assert event.end == '2025-06-14T13:00:00Z'
        assert event.tz == TzState.REINTERPRET_UTC_TO_LOCAL
        assert event.location == '1 Frank Ogawa Plaza, Oakland, CA, 94612, USA'
        assert event.description == '6/14/2025 10am - 1pm Bring signs https://example.org/signs'
        assert event.description_urls == ['https://example.org/signs']
        assert event.original_event_url == 'https://www.mobilize.us/event/1'
        assert event.note == 'ADA: Yes'
        # 2025-06-14T10:00:00Z
        assert event.start_secs == 1749895200

    def test_record_without_name_rejected(self):
        record = rows_to_records(PREAMBLE + [HEADER] + ROWS[2:3])[0]
        with pytest.raises(ValueError):
            record_to_event(record)


class TestDissentGoogleSheetsSource:
    """Test cases for DissentGoogleSheetsSource."""

    @responses.activate
    def test_fetch_events(self, mock_env):
        responses.add(responses.GET, SHEET_PATTERN, json=SHEET_VALUES, status=200)

        response = DissentGoogleSheetsSource(timeout=5).fetch_events(EventsSourceParams(id='june14protests'))

        request_url = responses.calls[0].request.url
        assert '/values/June%2014%20Protests%20' in request_url
        assert parse_qs(urlparse(request_url).query)['key'] == ['test-key']

        # nameless and undated rows skipped, duplicate link dropped
        assert [e.name for e in response.events] == ['Oakland Rally', 'Reno March', 'Somewhere Vigil']
        assert response.events[1].id == 'example.org/reno'
        assert response.events[1].note is None

        assert response.source.name == 'We The People Dissent June 14 Protests'
        assert response.source.id == 'june14protests'
        assert response.source.total_count == 3
        assert response.source.unknown_locations_count == 1

    def test_unknown_tab(self, mock_env):
        with pytest.raises(NotFoundError):
            DissentGoogleSheetsSource().fetch_events(EventsSourceParams(id='july4protests'))

    def test_missing_api_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError):
                DissentGoogleSheetsSource().fetch_events(EventsSourceParams(id='june14protests'))

    @responses.activate
    def test_no_data(self, mock_env):
        responses.add(responses.GET, SHEET_PATTERN, json={'values': PREAMBLE}, status=200)

        with pytest.raises(HttpError) as exc_info:
            DissentGoogleSheetsSource(timeout=5).fetch_events(EventsSourceParams(id='oct18nokings'))
        assert exc_info.value.status == 503

    @responses.activate
    def test_malformed_payload(self, mock_env):
        responses.add(responses.GET, SHEET_PATTERN, body='not json', status=200)

        with pytest.raises(HttpError) as exc_info:
            DissentGoogleSheetsSource(timeout=5).fetch_events(EventsSourceParams(id='oct18nokings'))
        assert exc_info.value.status == 500

    @responses.activate
    def test_upstream_status_propagates(self, mock_env):
        responses.add(responses.GET, SHEET_PATTERN, json={'error': 'forbidden'}, status=403)

        with pytest.raises(HttpError) as exc_info:
            DissentGoogleSheetsSource(timeout=5).fetch_events(EventsSourceParams(id='june6protests'))
        assert exc_info.value.status == 403
