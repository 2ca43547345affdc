"""Scraper for 19hz.info electronic music listings."""
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, NamedTuple, Optional, Set
from urllib.parse import urlparse
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup, Tag

from processor.date_parsing import parse_19hz_date_range
from processor.filters import apply_date_filter
from processor.models import CmfEvent, EventsSource, EventsSourceParams, EventsSourceResponse
from processor.venue_parsing import clean_location, extract_venue_and_city
from sources.base import (
    EventsSourceHandler,
    NotFoundError,
    build_response,
    ensure_unique_id,
    extract_urls,
    http_get,
)

logger = logging.getLogger(__name__)

VENUE_PATTERN = re.compile(r'<a[^>]*>([^<]+)</a>\s*-\s*([^<]+)<br')
EVENT_NAME_PATTERN = re.compile(r'^(.+?)\s*@')

DEFAULT_REGION = 'BayArea'
DEFAULT_WINDOW = timedelta(days=90)


class Region(NamedTuple):
    name: str
    timezone: str
    state: str


REGIONS: Dict[str, Region] = {
    'BayArea': Region('Bay Area', 'America/Los_Angeles', 'CA'),
    'LosAngeles': Region('Los Angeles', 'America/Los_Angeles', 'CA'),
    'Seattle': Region('Seattle', 'America/Los_Angeles', 'WA'),
    'ORE': Region('Portland', 'America/Los_Angeles', 'OR'),
    'LasVegas': Region('Las Vegas', 'America/Los_Angeles', 'NV'),
    'Denver': Region('Denver', 'America/Denver', 'CO'),
    'Phoenix': Region('Phoenix', 'America/Phoenix', 'AZ'),
    'Texas': Region('Texas', 'America/Chicago', 'TX'),
    'CHI': Region('Chicago', 'America/Chicago', 'IL'),
    'Detroit': Region('Detroit', 'America/Detroit', 'MI'),
    'Atlanta': Region('Atlanta', 'America/New_York', 'GA'),
    'Miami': Region('Miami', 'America/New_York', 'FL'),
    'DC': Region('Washington', 'America/New_York', 'DC'),
    'Massachusetts': Region('Massachusetts', 'America/New_York', 'MA'),
    'PHL': Region('Philadelphia', 'America/New_York', 'PA'),
}


@dataclass
class ListingRow:
    date_time: str
    title: str
    url: str
    tags: str
    price_age: str
    organizers: str
    links: str
    venue: str


@dataclass
class _FetchContext:
    """Scratch state for one fetch_events call."""
    region: Region
    venue_cache: Dict[str, str] = field(default_factory=dict)
    seen_ids: Set[str] = field(default_factory=set)


def _cell_text(cell: Tag) -> str:
    return ' '.join(cell.get_text(' ').split())


def build_event_id(event_url: str, event_name: str) -> str:
    """Id from the event URL's host and path, else from the name."""
    parsed = urlparse(event_url) if event_url else None
    if parsed is not None and parsed.netloc:
        host = re.sub(r'[^a-zA-Z0-9-]', '', parsed.netloc.replace('.', '-'))
        path = re.sub(r'[^a-zA-Z0-9-]', '', '-'.join(p for p in parsed.path.split('/') if p))
        return f"{host}-{path}" if path else host
    return re.sub(r'[^a-zA-Z0-9]', '', event_name).lower()


class NineteenHzEventsSource(EventsSourceHandler):
    """
    19hz.info listings, id is the region code (default BayArea).

    Listing times carry no zone; every row on a region page is taken to be
    in that region's zone, even the occasional out-of-region event.
    """

    LISTING_URL = 'https://19hz.info/eventlisting_{code}.php'

    type = EventsSource(prefix='19hz', name='19hz Music Events', url='https://19hz.info/')

    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        region_code = params.id or DEFAULT_REGION
        region = REGIONS.get(region_code)
        if region is None:
            raise NotFoundError(f"Unknown 19hz region: {region_code}")

        now = datetime.now(timezone.utc)
        date_range = (
            params.time_min or now.isoformat(timespec='seconds'),
            params.time_max or (now + DEFAULT_WINDOW).isoformat(timespec='seconds')
        )
        url = self.LISTING_URL.format(code=region_code)
        logger.info(f"Fetching 19hz events for {region.name} ({url})")

        soup = BeautifulSoup(http_get(url, self.timeout).text, 'html.parser')
        context = _FetchContext(region=region)
        self._build_venue_cache(soup, context)
        today = datetime.now(ZoneInfo(region.timezone)).date()

        events = []
        for row in soup.select('table tr'):
            try:
                listing = self._parse_row(row, context)
                if listing is None:
                    continue
                event = self._to_cmf_event(listing, today, context)
            except Exception as e:
                logger.warning(f"Failed to parse 19hz row: {e}")
                continue

            if not apply_date_filter(event, date_range):
                logger.debug(f"Skipping event outside date range: {event.id}")
                continue
            events.append(event)

        logger.info(f"Parsed {len(events)} 19hz events for {region.name}")
        return build_response(
            self.type,
            region_code,
            events,
            name=f"{self.type.name} - {region.name}",
            url=url
        )

    def _build_venue_cache(self, soup: BeautifulSoup, context: _FetchContext) -> None:
        venue_list = soup.find(id='venueList')
        if venue_list is None or venue_list.parent is None:
            return
        for name, address in VENUE_PATTERN.findall(str(venue_list.parent)):
            context.venue_cache[name.strip().lower()] = address.strip()
        logger.info(f"Built venue cache with {len(context.venue_cache)} venues")

    def _parse_row(self, row: Tag, context: _FetchContext) -> Optional[ListingRow]:
        cells = row.find_all('td')
        if len(cells) < 6:
            return None

        title = _cell_text(cells[1])
        link = cells[1].find('a')
        links = []
        for anchor in cells[5].find_all('a'):
            text = anchor.get_text(strip=True)
            href = anchor.get('href') or ''
            if text and href:
                links.append(f"{text}: {href}")

        region = context.region
        venue = extract_venue_and_city(title, region.state, region.name, context.venue_cache)
        return ListingRow(
            date_time=_cell_text(cells[0]),
            title=title,
            url=link.get('href', '') if link else '',
            tags=_cell_text(cells[2]),
            price_age=_cell_text(cells[3]),
            organizers=_cell_text(cells[4]),
            links=', '.join(links),
            venue=clean_location(venue) if venue else ''
        )

    def _to_cmf_event(self, listing: ListingRow, today: date, context: _FetchContext) -> CmfEvent:
        region = context.region
        parsed = parse_19hz_date_range(listing.date_time, today, region.timezone)

        parts = [
            listing.title,
            f"Tags: {listing.tags}" if listing.tags else '',
            f"Price/Age: {listing.price_age}" if listing.price_age else '',
            f"Organizers: {listing.organizers}" if listing.organizers else '',
            f"Links: {listing.links}" if listing.links else '',
        ]
        description = ' | '.join(p for p in parts if p)
        if parsed.recurring:
            description += ' (Recurring)'

        name_match = EVENT_NAME_PATTERN.match(listing.title)
        name = name_match.group(1).strip() if name_match else listing.title
        event_id = ensure_unique_id(build_event_id(listing.url, name), context.seen_ids)

        return CmfEvent(
            id=event_id,
            name=name,
            start=parsed.start,
            end=parsed.end,
            location=listing.venue,
            description=description,
            description_urls=extract_urls(description),
            original_event_url=listing.url,
            tz=region.timezone
        )
