"""Scraper for Plura community event listings (plra.io city pages)."""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlparse

from bs4 import BeautifulSoup, Tag

from processor.date_parsing import month_number, to_hour24
from processor.models import CmfEvent, EventsSource, EventsSourceParams, EventsSourceResponse, TzState
from sources.base import EventsSourceHandler, HttpError, build_response, http_get

logger = logging.getLogger(__name__)

PLURA_DOMAIN = 'https://plra.io'

# Short card locations that geocode poorly on their own
VALID_LOCATIONS: Dict[str, str] = {
    'Berkeley': 'Berkeley, CA',
    'La Jolla': 'La Jolla, CA',
    'Los Angeles': 'Los Angeles, CA',
    'Oakland': 'Oakland, CA',
    'Portland': 'Portland, OR',
    'San Francisco': 'San Francisco, CA',
    'Seattle': 'Seattle, WA',
}

ONLINE_LOCATION = 'zoom online'
NEXT_PAGE_TEXT = 'Next Page'
EVENT_DURATION = timedelta(hours=1)
MAX_PAGES_PER_CITY = 100
CACHE_TTL_SECONDS = 172800  # 48 hours

# 'Wednesday, May 14th at 1:30am', 'May 14th at 1:30am', 'May 14th, 2025 at 1:30am'
DATE_PATTERN = re.compile(
    r'(?:([A-Za-z]+),\s+)?([A-Za-z]+)\s+(\d+)(?:st|nd|rd|th)(?:,\s+(\d{4}))?'
    r'(?:\s+at\s+(\d+)(?::(\d+))?([ap]m))?',
    re.IGNORECASE
)


def convert_city_name_to_url(city_name: str, domain: str = '', option: int = 1) -> str:
    """
    City page URL for a city name.

    Option 1: 'Oakland, CA' -> '<domain>/events/city/Oakland_CA'
    Option 2: 'Amsterdam, NL' -> '<domain>/events/city/Amsterdam__NL'
    """
    domain = domain or PLURA_DOMAIN
    separator = '_' if option == 1 else '__'
    path = re.sub(r'\s+', '%20', re.sub(r',\s*', separator, city_name))
    return f"{domain}/events/city/{path}"


def convert_city_name_to_key(city_name: str) -> str:
    """Normalized dict key for a city name, 'Oakland, CA' -> 'oakland_ca'."""
    return re.sub(r'\s+', ' ', re.sub(r',\s*', '_', city_name)).lower()


def convert_url_to_city_name(url: str) -> str:
    """'.../events/city/Oakland_CA' -> 'Oakland, CA'."""
    if not url:
        return ''
    last_part = url.rstrip('/').split('/')[-1]
    if not last_part:
        return url
    return unquote(last_part).replace('_', ', ')


def parse_plura_date(date_text: str, reference_year: Optional[int] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Parse a city-page card date, which is in UTC.

    Args:
        date_text: e.g. 'Saturday, Jun 14th at 4:30pm'
        reference_year: Year for dates without one (default: current UTC year)

    Returns:
        (start, start + 1 hour) as aware UTC datetimes, or (None, None)
    """
    match = DATE_PATTERN.search(date_text or '')
    if not match:
        logger.warning(f"Failed to parse Plura date string: {date_text!r}")
        return None, None

    _, month, day, year, hour, minute, meridiem = match.groups()
    try:
        start = datetime(
            int(year) if year else (reference_year or datetime.now(timezone.utc).year),
            month_number(month),
            int(day),
            to_hour24(int(hour), meridiem or 'am') if hour else 0,
            int(minute) if minute else 0,
            tzinfo=timezone.utc
        )
    except ValueError as e:
        logger.warning(f"Invalid Plura date {date_text!r}: {e}")
        return None, None
    return start, start + EVENT_DURATION


def improve_location(location_text: str, city_name: str, known_city_keys: Iterable[str] = ()) -> str:
    """
    Make a card's address geocodable.

    No address means an online event. Known short names are expanded, known
    city names pass through, and anything else gets the city page's
    ', ST' or ', Region, CC' suffix unless it already has it.
    """
    if not location_text:
        return ONLINE_LOCATION

    if location_text in VALID_LOCATIONS:
        return VALID_LOCATIONS[location_text]

    if convert_city_name_to_key(location_text) in set(known_city_keys):
        return location_text

    if not city_name or ',' not in city_name:
        return location_text

    city_suffix = city_name[city_name.index(','):]
    if city_suffix in location_text or location_text.endswith(city_suffix.strip()):
        return location_text
    return f"{location_text}{city_suffix}"


def _page_number(url: str) -> int:
    values = parse_qs(urlparse(url).query).get('page')
    try:
        return int(values[0]) if values else 1
    except ValueError:
        return 1


@dataclass
class _FetchContext:
    """Scratch state for one fetch_events call."""
    events: Dict[str, CmfEvent] = field(default_factory=dict)
    city_to_event_ids: Dict[str, List[str]] = field(default_factory=dict)
    known_city_keys: List[str] = field(default_factory=list)
    total_pages: int = 0


class PluraEventsSource(EventsSourceHandler):
    """
    Plura community events, id is a city like 'Oakland, CA' or 'all'.

    Card times on city pages are UTC and have no end time, so every event
    gets a one hour duration and a note saying so.
    """

    type = EventsSource(prefix='plura', name='Plura Community Events', url=PLURA_DOMAIN)

    def get_cache_ttl(self) -> Optional[int]:
        return CACHE_TTL_SECONDS

    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        city = params.id or 'all'
        logger.info(f"Fetching Plura events for city={city}")
        context = _FetchContext()

        if city == 'all':
            try:
                city_names = self.scrape_city_names()
            except HttpError as e:
                logger.error(f"Failed to fetch Plura city index: {e}")
                city_names = []
            context.known_city_keys = [convert_city_name_to_key(name) for name in city_names]
            logger.info(f"Fetching Plura events from {len(city_names)} cities")
            for city_name in city_names:
                try:
                    self._fetch_city_events(city_name, context)
                except HttpError as e:
                    logger.warning(f"Skipping Plura city {city_name}: {e}")
        else:
            self._fetch_city_events(city, context)

        events = list(context.events.values())
        logger.info(
            f"Plura done: {len(events)} unique events, {len(context.city_to_event_ids)} cities, "
            f"{context.total_pages} pages"
        )
        return build_response(
            self.type,
            city,
            events,
            name=f"Plura Events - {city if city != 'all' else 'Global'}"
        )

    def scrape_city_names(self) -> List[str]:
        """City names linked from the city index page."""
        soup = BeautifulSoup(http_get(f"{PLURA_DOMAIN}/events/city", self.timeout).text, 'html.parser')
        city_names: Dict[str, str] = {}
        for link in soup.select('li > a'):
            name = link.get_text(strip=True)
            if '/events/city/' in (link.get('href') or ''):
                city_names[convert_city_name_to_key(name)] = name
            else:
                logger.debug(f"Found non-city link {name!r}")
        if not city_names:
            logger.warning(f"No city links found on {PLURA_DOMAIN}, page structure may have changed")
        return list(city_names.values())

    def _fetch_city_events(self, city_name: str, context: _FetchContext) -> None:
        city_events = self._process_city_with_pagination(city_name, context)
        if not city_events:
            # Some cities only resolve with the double-underscore URL form
            alternative_url = convert_city_name_to_url(city_name, option=2)
            if alternative_url != convert_city_name_to_url(city_name):
                logger.info(f"No events for {city_name}, trying {alternative_url}")
                city_events = self._process_city_with_pagination(city_name, context, alternative_url)

        added = 0
        for event_id, event in city_events.items():
            if event_id in context.events:
                logger.debug(f"Duplicate Plura event {event_id} in {city_name}")
                continue
            context.events[event_id] = event
            added += 1
        context.city_to_event_ids[convert_city_name_to_key(city_name)] = list(city_events)
        logger.info(f"Plura city {city_name} added {added} new events")

    def _process_city_with_pagination(
        self,
        city_name: str,
        context: _FetchContext,
        city_url: str = ''
    ) -> Dict[str, CmfEvent]:
        current_url = city_url or convert_city_name_to_url(city_name)
        city_events: Dict[str, CmfEvent] = {}
        visited = set()
        last_url = current_url

        while current_url and current_url not in visited and len(visited) < MAX_PAGES_PER_CITY:
            visited.add(current_url)
            last_url = current_url
            next_url, page_events = self._process_single_page(current_url, city_name, context)
            for event in page_events:
                if event.id in city_events:
                    logger.warning(f"Duplicate Plura event {event.id} across pages of {city_name}")
                    continue
                city_events[event.id] = event
            current_url = next_url

        context.total_pages += _page_number(last_url)
        logger.info(f"Plura {city_name}: {len(city_events)} events in {_page_number(last_url)} pages")
        return city_events

    def _process_single_page(
        self,
        page_url: str,
        city_name: str,
        context: _FetchContext
    ) -> Tuple[str, List[CmfEvent]]:
        soup = BeautifulSoup(http_get(page_url, self.timeout).text, 'html.parser')

        events = []
        for section in soup.find_all('section'):
            link = section.select_one('a[href*="/events/"]')
            if link is None:
                logger.warning(f"No event link found in section on {page_url}")
                continue
            href = link['href']
            event_url = href if href.startswith('http') else f"{PLURA_DOMAIN}{href}"
            event = self.create_event_from_card(section, event_url, city_name, context.known_city_keys)
            if event is not None:
                events.append(event)

        next_url = ''
        for span in soup.select('a > button > span'):
            if span.get_text(strip=True) == NEXT_PAGE_TEXT:
                anchor = span.find_parent('a')
                next_url = anchor.get('href', '') if anchor else ''
                if next_url.startswith('/'):
                    next_url = f"{PLURA_DOMAIN}{next_url}"
                break

        logger.debug(f"Plura page {page_url}: {len(events)} events, next={next_url!r}")
        return next_url, events

    @staticmethod
    def create_event_from_card(
        section: Tag,
        event_url: str,
        city_name: str,
        known_city_keys: Iterable[str] = ()
    ) -> Optional[CmfEvent]:
        """
        Build an event from a city page card.

        Returns:
            CmfEvent, or None if the card has no id or usable date
        """
        event_id = event_url.rstrip('/').split('/')[-1]
        if not event_id:
            return None

        title_tag = section.find(['h3', 'h2'])
        address_tag = section.select_one('li[title="Address"] span')
        date_tag = section.select_one('li[title="Date"] span')
        date_text = date_tag.get_text(strip=True) if date_tag else ''

        start, end = parse_plura_date(date_text)
        if start is None:
            logger.warning(f"No date found in {city_name} card for {event_url}")
            return None

        return CmfEvent(
            id=event_id,
            name=title_tag.get_text(strip=True) if title_tag else '',
            start=start.strftime('%Y-%m-%dT%H:%M:%SZ'),
            end=end.strftime('%Y-%m-%dT%H:%M:%SZ'),
            location=improve_location(
                address_tag.get_text(strip=True) if address_tag else '',
                city_name,
                known_city_keys
            ),
            original_event_url=event_url,
            tz=TzState.TIME_IS_ACCURATE,
            note=f"End Time is Estimated, Start Date UTC: {date_text}"
        )
