"""No Kings events from the cached Mobilize feed."""
import logging

from processor.models import EventsSource, EventsSourceParams, EventsSourceResponse
from sources.base import EventsSourceHandler, build_response, http_get
from sources.mobilize import convert_page, parse_time_bound

logger = logging.getLogger(__name__)


class NoKingsEventsSource(EventsSourceHandler):
    """Upcoming in-person No Kings events, served as one page by a feed cache."""

    FEED_URL = 'https://mobilize-feed-cache.vercel.app/data-42198.json'
    FEED_PARAMS = {
        'timeslot_start': 'gte_now',
        'per_page': '100',
        'approval_status': 'APPROVED',
        'is_virtual': 'false',
    }

    type = EventsSource(prefix='nokings', name='No Kings', url='https://nokings.org/')

    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        time_min = parse_time_bound(params.time_min)
        time_max = parse_time_bound(params.time_max)

        logger.info('Fetching No Kings events from the Mobilize feed cache')
        data = http_get(self.FEED_URL, self.timeout, params=self.FEED_PARAMS).json()
        items = data.get('data') or []
        logger.info(f"Retrieved {len(items)} events (total: {data.get('count')})")

        events = convert_page(self.type.prefix, items, time_min, time_max)
        logger.info(f"Converted {len(events)} No Kings events")
        return build_response(self.type, params.id or 'all', events)
