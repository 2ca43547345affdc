"""We The People Dissent protest listings from a public Google Sheet."""
import logging
import re
from typing import Dict, List
from urllib.parse import quote

from config import get_google_api_key
from processor.date_parsing import parse_sheet_date_time
from processor.models import CmfEvent, EventsSource, EventsSourceParams, EventsSourceResponse, TzState
from processor.timezones import convert_utc_string_to_secs
from sources.base import (
    ConfigurationError,
    EventsSourceHandler,
    HttpError,
    NotFoundError,
    build_response,
    extract_urls,
    http_get,
    join_location,
)

logger = logging.getLogger(__name__)

SHEET_BASE_URL = 'https://sheets.googleapis.com/v4/spreadsheets/'
SHEET_ID = '1f-30Rsg6N_ONQAulO-yVXTKpZxXchRRB2kD3Zhkpe_A'

# Source id -> sheet tab title, trailing spaces included as they appear in the sheet
SHEET_TABS: Dict[str, str] = {
    'june14protests': 'June 14 Protests ',
    'june14-no-kings': 'June 14 Protests ',
    'june6protests': 'June 6 Protests ',
    'oct18protests': 'No Kings - October 18 ',
    'oct18nokings': 'No Kings - October 18',
}

HEADER_ROW_INDEX = 6
SCHEME_PATTERN = re.compile(r'https?://')


def rows_to_records(values: List[List[str]], header_index: int = HEADER_ROW_INDEX) -> List[Dict[str, str]]:
    """
    Zip the header row onto every row below it.

    Short rows are padded with empty strings.

    Args:
        values: Sheet values, a list of rows
        header_index: Index of the header row

    Returns:
        One dict per data row
    """
    headers = [str(h).strip() for h in values[header_index]]
    records = []
    for row in values[header_index + 1:]:
        records.append({
            header: (row[idx] if idx < len(row) and row[idx] is not None else '')
            for idx, header in enumerate(headers)
        })
    return records


def record_to_event(record: Dict[str, str]) -> CmfEvent:
    """
    Build an event from one sheet record.

    Raises:
        ValueError: If the record has no name, link or usable date
    """
    name = record.get('Name', '').strip()
    link = record.get('Link', '').strip()
    date_text = record.get('Date', '')
    time_text = record.get('Time', '')

    start, end = parse_sheet_date_time(date_text, time_text)
    if not start:
        logger.info(f"NO DATE: {date_text!r} {time_text!r}")
    if not (start and name and link):
        raise ValueError('missing Name, Link or Date')

    info = record.get('Info', '')
    ada = record.get('ADA Accessible', '').strip()
    return CmfEvent(
        id=SCHEME_PATTERN.sub('', link),
        name=name,
        start=start,
        end=end,
        location=join_location([
            record.get('Address'),
            record.get('City'),
            record.get('State'),
            record.get('Zip'),
            record.get('Country'),
        ]),
        description=f"{date_text} {time_text} {info}",
        description_urls=extract_urls(info),
        original_event_url=link,
        tz=TzState.REINTERPRET_UTC_TO_LOCAL,
        start_secs=convert_utc_string_to_secs(start),
        note=f"ADA: {ada}" if ada else None
    )


class DissentGoogleSheetsSource(EventsSourceHandler):
    """
    Protest listings from one tab of the Dissent spreadsheet, id names the tab.

    Sheet times are local wall-clock times with no zone, so events are
    emitted for reinterpretation once their location is geocoded.
    """

    type = EventsSource(
        prefix='dissent',
        name='We The People Dissent',
        url='https://www.wethepeopledissent.net/'
    )

    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        sheet_tab = SHEET_TABS.get(params.id)
        if sheet_tab is None:
            logger.info(f"Unknown sheet id: {params.id}. Known ids: {', '.join(SHEET_TABS)}")
            raise NotFoundError(f"id \"{params.id}\" not found in sheet tabs")

        api_key = get_google_api_key()
        if not api_key:
            raise ConfigurationError('GOOGLE_CALENDAR_API_KEY is not set')

        sheet_url = f"{SHEET_BASE_URL}{SHEET_ID}/values/{quote(sheet_tab, safe='')}"
        logger.info(f"Fetching events from Google Sheets tab {sheet_tab!r}")

        try:
            values = http_get(sheet_url, self.timeout, params={'key': api_key}).json().get('values')
            if not values or len(values) <= HEADER_ROW_INDEX:
                logger.info(f"No data found in Google Sheet tab {sheet_tab!r}")
                raise HttpError(503, 'No data found in Google Sheet')

            events: List[CmfEvent] = []
            seen_ids = set()
            for record in rows_to_records(values):
                try:
                    event = record_to_event(record)
                except ValueError as e:
                    logger.debug(f"Skipping sheet row ({e}): {record}")
                    continue
                if event.id in seen_ids:
                    continue
                seen_ids.add(event.id)
                events.append(event)
        except HttpError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch or parse Google Sheets: {e}")
            raise HttpError(500, 'Failed to fetch or parse Google Sheets') from e

        unknown = sum(1 for event in events if not event.location)
        logger.info(f"Returning {len(events)} events from Google Sheets ({unknown} without location)")
        return build_response(
            self.type,
            params.id,
            events,
            unknown_locations_count=unknown,
            name=f"{self.type.name} {sheet_tab.strip()}"
        )
