"""Mobilize.us public events API source."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from processor.models import CmfEvent, EventsSource, EventsSourceParams, EventsSourceResponse, Location, TzState
from processor.timezones import (
    convert_utc_secs_to_string,
    convert_utc_string_to_secs,
    get_timezone_from_lat_lng,
)
from sources.base import (
    BadRequestError,
    EventsSourceHandler,
    build_response,
    extract_urls,
    http_get,
    join_location,
)

logger = logging.getLogger(__name__)

# Well-known ids mapped to (organization id, organization name)
KNOWN_ORGANIZATIONS: Dict[str, Tuple[str, str]] = {
    'nokings': ('42198', 'No Kings'),
}
DEFAULT_ORGANIZATION = ('1', 'Public Events')

MAX_PAGES = 50


def resolve_organization(source_id: str) -> Tuple[str, str]:
    """
    Map a source id to (organization id, display name).

    An empty id is the public events organization, a known alias maps to its
    organization and anything else is used as the organization id itself.
    """
    if not source_id:
        return DEFAULT_ORGANIZATION
    return KNOWN_ORGANIZATIONS.get(source_id, (source_id, source_id))


def mobilize_location(location: Optional[Dict[str, Any]]) -> Tuple[str, Location]:
    """
    Address string and resolved location for a Mobilize location object.

    Coordinates from Mobilize are trusted as-is; the street address may be
    incomplete or the private placeholder.

    Returns:
        (location string, Location)
    """
    if not location:
        return '', Location.unresolved('')

    address = join_location([
        location.get('venue'),
        *(location.get('address_lines') or []),
        location.get('locality'),
        location.get('region'),
        location.get('postal_code'),
        location.get('country'),
    ])

    coordinates = location.get('location') or {}
    lat = coordinates.get('latitude')
    lng = coordinates.get('longitude')
    if lat is None or lng is None:
        return address, Location.unresolved(address)

    return address, Location.resolved(
        lat=lat,
        lng=lng,
        formatted_address=address,
        location_tz=get_timezone_from_lat_lng(lat, lng),
        original_location=address
    )


def convert_mobilize_event(prefix: str, item: Dict[str, Any], timeslot: Dict[str, Any]) -> CmfEvent:
    """
    Build one event for a single timeslot of a Mobilize event.

    Args:
        prefix: Id prefix, e.g. 'mobilize'
        item: Mobilize event object
        timeslot: One entry of the event's timeslots

    Returns:
        CmfEvent whose id is '<prefix>-<event id>-<timeslot id>'
    """
    address, resolved = mobilize_location(item.get('location'))
    start_secs = int(timeslot['start_date'])
    end_secs = int(timeslot['end_date'])

    description = '\n\n'.join(
        part for part in (item.get('summary'), item.get('description'), timeslot.get('instructions'))
        if part
    )

    return CmfEvent(
        id=f"{prefix}-{item['id']}-{timeslot['id']}",
        name=item.get('title') or '',
        start=convert_utc_secs_to_string(start_secs),
        end=convert_utc_secs_to_string(end_secs),
        location=address,
        description=description,
        description_urls=extract_urls(description),
        original_event_url=item.get('browser_url') or '',
        tz=item.get('timezone') or TzState.TIME_IS_ACCURATE,
        resolved_location=resolved
    )


def in_time_range(event: CmfEvent, time_min: Optional[int], time_max: Optional[int]) -> bool:
    """True when the event starts within [time_min, time_max]; missing bounds are open."""
    start = convert_utc_string_to_secs(event.start)
    if time_min is not None and start < time_min:
        return False
    if time_max is not None and start > time_max:
        return False
    return True


def parse_time_bound(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return convert_utc_string_to_secs(value)
    except ValueError as e:
        raise BadRequestError(f"Invalid time bound: {value}") from e


def convert_page(
    prefix: str,
    items: List[Dict[str, Any]],
    time_min: Optional[int],
    time_max: Optional[int]
) -> List[CmfEvent]:
    """Expand every event's timeslots, skipping malformed ones and those out of range."""
    events = []
    for item in items:
        for timeslot in item.get('timeslots') or []:
            try:
                event = convert_mobilize_event(prefix, item, timeslot)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed Mobilize timeslot for event {item.get('id')}: {e}")
                continue
            if in_time_range(event, time_min, time_max):
                events.append(event)
    return events


class MobilizeEventsSource(EventsSourceHandler):
    """
    Public events of a Mobilize organization, id is the organization id.

    Each timeslot of a Mobilize event becomes its own event.
    """

    API_URL = 'https://api.mobilize.us/v1/events'
    PER_PAGE = 100

    type = EventsSource(prefix='mobilize', name='Mobilize', url='https://www.mobilize.us/')

    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        organization_id, organization_name = resolve_organization(params.id)
        time_min = parse_time_bound(params.time_min)
        time_max = parse_time_bound(params.time_max)

        query: Dict[str, Any] = {'organization_id': organization_id, 'per_page': self.PER_PAGE}
        if time_min is not None:
            query['timeslot_start'] = f"gte_{time_min}"
        if time_max is not None:
            query['timeslot_end'] = f"lte_{time_max}"

        logger.info(f"Fetching Mobilize events for organization {organization_id} ({organization_name})")

        events: List[CmfEvent] = []
        url: Optional[str] = self.API_URL
        request_params: Optional[Dict[str, Any]] = query
        pages = 0
        while url and pages < MAX_PAGES:
            data = http_get(url, self.timeout, params=request_params).json()
            items = data.get('data') or []
            events.extend(convert_page(self.type.prefix, items, time_min, time_max))
            pages += 1
            # The 'next' link already carries every query parameter
            url = data.get('next')
            request_params = None

        if url:
            logger.warning(f"Stopped Mobilize pagination after {MAX_PAGES} pages")

        logger.info(f"Converted {len(events)} Mobilize events for organization {organization_id}")
        return build_response(
            self.type,
            organization_id,
            events,
            name=f"Mobilize: {organization_name}"
        )
