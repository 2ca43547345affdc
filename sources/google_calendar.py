"""Google Calendar API v3 event source."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

from dateutil.relativedelta import relativedelta

from config import get_google_api_key
from processor.models import CmfEvent, EventsSource, EventsSourceParams, EventsSourceResponse, TzState
from processor.timezones import is_valid_timezone
from sources.base import ConfigurationError, EventsSourceHandler, build_response, extract_urls, http_get

logger = logging.getLogger(__name__)


class GoogleCalendarEventsSource(EventsSourceHandler):
    """Public Google Calendars, id is the calendar id (usually an email address)."""

    API_BASE = 'https://www.googleapis.com/calendar/v3/calendars'
    PUBLIC_URL_BASE = 'https://calendar.google.com/calendar/embed?src='
    MAX_RESULTS = 2500  # API maximum

    type = EventsSource(prefix='gc', name='Google Calendar', url='https://calendar.google.com/')

    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        calendar_data = self._fetch_calendar(params.id, params.time_min, params.time_max)
        calendar_tz = calendar_data.get('timeZone')

        events = []
        for item in calendar_data.get('items', []):
            try:
                events.append(self._to_cmf_event(item, calendar_tz))
            except Exception as e:
                logger.warning(f"Failed to parse Google Calendar event {item.get('id')}: {e}")

        return build_response(
            self.type,
            params.id,
            events,
            name=f"Google Calendar: {calendar_data.get('summary', params.id)}",
            url=f"{self.PUBLIC_URL_BASE}{quote(params.id, safe='')}"
        )

    def _fetch_calendar(
        self,
        calendar_id: str,
        time_min: Optional[str],
        time_max: Optional[str]
    ) -> Dict[str, Any]:
        """
        Fetch one calendar's events.

        Args:
            calendar_id: Google Calendar id
            time_min: Start of window (default: one month ago)
            time_max: End of window (default: three months from now)

        Returns:
            Decoded API response

        Raises:
            ConfigurationError: If GOOGLE_CALENDAR_API_KEY is not set
        """
        api_key = get_google_api_key()
        if not api_key:
            logger.error('Google Calendar API key is not configured, not fetching events')
            raise ConfigurationError('GOOGLE_CALENDAR_API_KEY is not configured')

        now = datetime.now(timezone.utc)
        query = {
            'key': api_key,
            'timeMin': time_min or (now - relativedelta(months=1)).strftime('%Y-%m-%dT00:00:00Z'),
            'timeMax': time_max or (now + relativedelta(months=3)).strftime('%Y-%m-%dT23:59:59Z'),
            'singleEvents': 'true',
            'orderBy': 'startTime',
            'maxResults': self.MAX_RESULTS
        }
        api_url = f"{self.API_BASE}/{quote(calendar_id, safe='')}/events"
        logger.info(
            f"Fetching Google Calendar {calendar_id}",
            extra={'time_min': query['timeMin'], 'time_max': query['timeMax']}
        )

        data = http_get(api_url, self.timeout, params=query).json()
        logger.info(f"Google Calendar {calendar_id} returned {len(data.get('items', []))} events")
        return data

    def _to_cmf_event(self, item: Dict[str, Any], calendar_tz: Optional[str]) -> CmfEvent:
        start = item.get('start', {})
        end = item.get('end', {})
        description = item.get('description') or ''

        # dateTime values carry an offset, so the instant is already correct
        tz = start.get('timeZone') or calendar_tz
        if not tz or not is_valid_timezone(tz):
            tz = TzState.TIME_IS_ACCURATE

        return CmfEvent(
            id=item['id'],
            name=item.get('summary', ''),
            start=start.get('dateTime') or start.get('date') or '',
            end=end.get('dateTime') or end.get('date') or '',
            location=item.get('location') or '',
            description=description,
            description_urls=extract_urls(description),
            original_event_url=item.get('htmlLink'),
            tz=tz
        )
