"""Protest listings from the pol-rev.com Mobilizon GraphQL API."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from processor.models import CmfEvent, EventsSource, EventsSourceParams, EventsSourceResponse, TzState
from sources.base import EventsSourceHandler, HttpError, build_response, extract_urls, http_post_json, join_location

logger = logging.getLogger(__name__)

API_URL = 'https://events.pol-rev.com/api'
EVENT_URL = 'https://events.pol-rev.com/events/{uuid}'

PAGE_SIZE = 100
MAX_PAGES = 100
DEFAULT_WINDOW = timedelta(days=30)

REQUEST_HEADERS = {
    'Accept': '*/*',
    'Origin': 'https://events.pol-rev.com',
    'Referer': 'https://events.pol-rev.com/events/calendar',
}

SEARCH_EVENTS_QUERY = """query SearchEvents($beginsOn: DateTime, $endsOn: DateTime, $eventPage: Int, $limit: Int) {
  searchEvents(
    beginsOn: $beginsOn
    endsOn: $endsOn
    page: $eventPage
    limit: $limit
    longEvents: false
  ) {
    total
    elements {
      id
      title
      uuid
      beginsOn
      endsOn
      status
      physicalAddress {
        description
        street
        locality
        postalCode
        region
        country
        url
      }
      options {
        isOnline
      }
    }
  }
}"""


def default_time_window(now: Optional[datetime] = None) -> Dict[str, str]:
    """Start of today through the end of the day 30 days out, in UTC."""
    now = now or datetime.now(timezone.utc)
    return {
        'beginsOn': now.strftime('%Y-%m-%dT00:00:00.000Z'),
        'endsOn': (now + DEFAULT_WINDOW).strftime('%Y-%m-%dT23:59:59.999Z'),
    }


def format_location(address: Optional[Dict[str, Any]]) -> str:
    if not address:
        return ''
    return join_location([
        address.get('street'),
        address.get('locality'),
        address.get('region'),
        address.get('postalCode'),
        address.get('country'),
    ])


def convert_protest_event(item: Dict[str, Any]) -> CmfEvent:
    """
    Build an event from one searchEvents element.

    Raises:
        KeyError: If id, uuid or beginsOn is missing
    """
    address = item.get('physicalAddress') or {}
    description = address.get('description') or ''
    return CmfEvent(
        id=str(item['id']),
        name=item.get('title') or '',
        start=item['beginsOn'],
        end=item.get('endsOn') or item['beginsOn'],
        location=format_location(address),
        description=description,
        description_urls=extract_urls(description),
        original_event_url=EVENT_URL.format(uuid=item['uuid']),
        tz=TzState.TIME_IS_ACCURATE
    )


class ProtestsEventsSource(EventsSourceHandler):
    """Events from the pol-rev.com protest calendar, fetched page by page."""

    type = EventsSource(prefix='protest', name='Protests from pol-rev.com', url='https://events.pol-rev.com/')

    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        window = default_time_window()
        begins_on = params.time_min or window['beginsOn']
        ends_on = params.time_max or window['endsOn']
        logger.info(f"Fetching protest events from {begins_on} to {ends_on}")

        events: List[CmfEvent] = []
        page = 1
        while page <= MAX_PAGES:
            result = self._search_events(begins_on, ends_on, page)
            elements = result.get('elements') or []
            total = result.get('total') or 0

            for item in elements:
                try:
                    events.append(convert_protest_event(item))
                except (KeyError, TypeError) as e:
                    logger.warning(f"Skipping malformed protest event {item.get('id')}: {e}")

            logger.info(f"Protest page {page}: {len(elements)} events, total {total}")
            if len(elements) < PAGE_SIZE or page * PAGE_SIZE >= total:
                break
            page += 1

        logger.info(f"Converted {len(events)} protest events")
        return build_response(self.type, params.id or 'protests', events)

    def _search_events(self, begins_on: str, ends_on: str, page: int) -> Dict[str, Any]:
        payload = {
            'operationName': 'SearchEvents',
            'variables': {
                'limit': PAGE_SIZE,
                'beginsOn': begins_on,
                'endsOn': ends_on,
                'eventPage': page,
            },
            'query': SEARCH_EVENTS_QUERY,
        }
        body = http_post_json(API_URL, payload, self.timeout, headers=REQUEST_HEADERS).json()

        search = ((body or {}).get('data') or {}).get('searchEvents')
        if search is None:
            errors = (body or {}).get('errors')
            logger.error(f"Unexpected SearchEvents response: {errors or body}")
            raise HttpError(502, 'Unexpected response from protests API')
        return search
