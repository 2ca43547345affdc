"""Facebook upcoming-events ICS feed source."""
import logging
from datetime import datetime
from typing import Optional

from processor.ics_parser import parse_ics_content
from processor.models import CmfEvent, EventsSource, EventsSourceParams, EventsSourceResponse, TzState
from processor.timezones import convert_utc_string_to_secs
from sources.base import BadRequestError, EventsSourceHandler, HttpError, build_response, extract_urls, http_get

logger = logging.getLogger(__name__)


def _iso_utc(value: datetime) -> str:
    return value.isoformat(timespec='seconds').replace('+00:00', 'Z')


class FacebookEventsSource(EventsSourceHandler):
    """
    A user's upcoming Facebook events, id is '<uid>-<key>'.

    The feed ignores time bounds, so results are filtered after parsing.
    """

    FEED_URL = 'https://www.facebook.com/events/ical/upcoming/'

    type = EventsSource(prefix='fb', name='Facebook Events', url='https://www.facebook.com/events/')

    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        uid, _, key = (params.id or '').partition('-')
        if not uid or not key:
            logger.warning(f"Invalid Facebook event source id: {params.id!r}")
            raise BadRequestError(f"Invalid Facebook event source id: {params.id}")

        logger.info(f"Fetching Facebook events for uid {uid}")
        response = http_get(self.FEED_URL, self.timeout, params={'uid': uid, 'key': key})
        if not response.text or not response.text.strip():
            logger.warning('Empty response from Facebook Events')
            raise HttpError(502, 'Empty response from Facebook Events')

        parsed = parse_ics_content(response.text)
        logger.info(f"Parsed {len(parsed)} events from Facebook")

        time_min = self._bound(params.time_min)
        time_max = self._bound(params.time_max)

        events = []
        for item in parsed:
            if time_min is not None and item.start.timestamp() < time_min:
                continue
            if time_max is not None and item.end.timestamp() > time_max:
                continue
            events.append(CmfEvent(
                id=item.id,
                name=item.summary,
                start=_iso_utc(item.start),
                end=_iso_utc(item.end),
                location=item.location or '',
                description=item.description,
                description_urls=extract_urls(item.description),
                original_event_url=item.url or '',
                tz=TzState.TIME_IS_ACCURATE
            ))

        logger.info(f"Returning {len(events)} filtered Facebook events")
        return build_response(self.type, params.id, events)

    @staticmethod
    def _bound(value: Optional[str]) -> Optional[int]:
        if not value:
            return None
        try:
            return convert_utc_string_to_secs(value)
        except ValueError as e:
            raise BadRequestError(f"Invalid time bound: {value}") from e
