"""Scraper for the foopee.com punk show list (Bay Area)."""
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Set
from urllib.parse import urljoin
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup, NavigableString, Tag

from processor.date_parsing import resolve_yearless_date
from processor.models import CmfEvent, EventsSource, EventsSourceParams, EventsSourceResponse
from sources.base import EventsSourceHandler, build_response, ensure_unique_id, extract_urls, http_get

logger = logging.getLogger(__name__)

FOOPEE_TIMEZONE = 'America/Los_Angeles'

DATE_RANGE_PATTERN = re.compile(
    r'\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2}\s*-\s*'
    r'(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)?\s*\d{1,2}\b',
    re.IGNORECASE
)
DAY_HEADER_PATTERN = re.compile(
    r'\b(Mon|Tue|Wed|Thu|Fri|Sat|Sun)\s+'
    r'(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+(\d{1,2})\b',
    re.IGNORECASE
)
TIME_PATTERN = re.compile(r'(\d{1,2}):?(\d{2})?\s*(pm|am)', re.IGNORECASE)

# Site legend, each symbol gets its meaning appended in brackets
LEGEND = [
    (re.compile(r'\ba/a\b'), 'a/a[all ages]'),
    (re.compile(r'#(?!\d)'), '#[no ins/outs]'),
    (re.compile(r'\$(?=\s|$)'), '$[will probably sell out]'),
    (re.compile(r'(?<!\S)\*(?!\S)'), '*[recommendable shows]'),
    (re.compile(r'(?<!\S)\^(?!\S)'), '^[under 21 must buy drink tickets]'),
    (re.compile(r'(?<!\S)@(?!\S)'), '@[pit warning]'),
]

DEFAULT_START = time(20, 0)
SHOW_DURATION = timedelta(hours=4)
FALLBACK_TITLE = 'Punk Show'


def _today_local() -> date:
    return datetime.now(ZoneInfo(FOOPEE_TIMEZONE)).date()


def apply_legend(text: str) -> str:
    """Append the legend meaning after each symbol, e.g. 'a/a' -> 'a/a[all ages]'."""
    for pattern, replacement in LEGEND:
        text = pattern.sub(replacement, text)
    return text


def parse_show_time(text: str) -> time:
    """First 'H[:MM] am/pm' in text, or 8pm."""
    match = TIME_PATTERN.search(text)
    if not match:
        return DEFAULT_START
    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    meridiem = match.group(3).lower()
    if meridiem == 'pm' and hour != 12:
        hour += 12
    if meridiem == 'am' and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        return DEFAULT_START
    return time(hour, minute)


def resolve_header_date(month_name: str, day: int, today: date) -> date:
    """
    Date for a 'Mon Oct 6' header, which carries no year.

    Assumes the current year, rolling to next year when that would put the
    date more than two weeks in the past.
    """
    return resolve_yearless_date(month_name, day, today)


def _own_text(li: Tag) -> str:
    """Text of an <li> without its nested lists."""
    parts = []
    for child in li.children:
        if isinstance(child, Tag) and child.name in ('ul', 'ol'):
            continue
        parts.append(child.get_text(' ') if isinstance(child, Tag) else str(child))
    return ' '.join(' '.join(parts).split())


@dataclass
class _FetchContext:
    """Scratch state for one fetch_events call."""
    today: date
    visited_urls: Set[str] = field(default_factory=set)
    seen_ids: Set[str] = field(default_factory=set)


class FoopeeEventsSource(EventsSourceHandler):
    """Punk shows listed on foopee.com, crawled across its date-range pages."""

    BASE_URL = 'http://www.foopee.com/punk/the-list/'

    type = EventsSource(prefix='foopee', name='Foopee Punk Shows', url=BASE_URL)

    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        logger.info('Fetching punk show listings from foopee.com')
        context = _FetchContext(today=_today_local())

        index_html = http_get(self.BASE_URL, self.timeout).text
        page_urls = self._extract_date_page_urls(index_html)
        logger.info(f"Found {len(page_urls)} date pages to process")

        events = []
        for page_url in page_urls:
            if page_url in context.visited_urls:
                continue
            context.visited_urls.add(page_url)
            try:
                page_events = self._process_date_page(page_url, context)
            except Exception as e:
                logger.warning(f"Failed to process date page {page_url}: {e}")
                continue
            logger.info(f"Processed {page_url}, found {len(page_events)} events")
            events.extend(page_events)

        logger.info(f"Successfully parsed {len(events)} foopee events")
        return build_response(self.type, params.id or 'default', events)

    def _extract_date_page_urls(self, html_content: str) -> List[str]:
        soup = BeautifulSoup(html_content, 'html.parser')
        urls = []
        for link in soup.find_all('a', href=True):
            if DATE_RANGE_PATTERN.search(link.get_text(' ', strip=True)):
                url = urljoin(self.BASE_URL, link['href'])
                if url not in urls:
                    urls.append(url)
        return urls

    def _process_date_page(self, url: str, context: _FetchContext) -> List[CmfEvent]:
        soup = BeautifulSoup(http_get(url, self.timeout).text, 'html.parser')
        events = []
        current_date: Optional[date] = None
        event_index = 0

        for li in soup.find_all('li'):
            header = DAY_HEADER_PATTERN.search(_own_text(li))
            if header:
                try:
                    current_date = resolve_header_date(header.group(2), int(header.group(3)), context.today)
                except ValueError as e:
                    logger.warning(f"Bad date header {header.group(0)!r} on {url}: {e}")
                    current_date = None
                continue

            if current_date is None or li.find('a') is None:
                continue

            try:
                event = self._parse_show(li, current_date, event_index, context)
            except Exception as e:
                logger.warning(f"Failed to parse show on {url}: {e}")
                continue
            events.append(event)
            event_index += 1

        return events

    def _parse_show(self, li: Tag, show_date: date, index: int, context: _FetchContext) -> CmfEvent:
        """
        Build one event from a show line.

        The first link is the venue, 'by-band' links are the performers and
        the text after the last link holds price, age and time details.
        """
        anchors = li.find_all('a', recursive=False) or li.find_all('a')
        venue = anchors[0].get_text(' ', strip=True)
        bands = [
            a.get_text(' ', strip=True)
            for a in anchors[1:]
            if 'by-band' in (a.get('href') or '') and a.get_text(strip=True)
        ]
        details = self._trailing_text(anchors[-1])
        description = apply_legend(details)

        start_time = parse_show_time(details)
        zone = ZoneInfo(FOOPEE_TIMEZONE)
        start = datetime.combine(show_date, start_time, tzinfo=zone)
        end = (start + SHOW_DURATION).astimezone(zone)

        location = venue if venue.endswith(', CA, USA') else f"{venue}, CA, USA".replace(',,', ',')
        slug = re.sub(r'[^a-zA-Z0-9]', '', location).lower()
        event_id = ensure_unique_id(f"foopee-{slug}-{show_date.isoformat()}-{index}", context.seen_ids)

        return CmfEvent(
            id=event_id,
            name=', '.join(bands) if bands else FALLBACK_TITLE,
            start=start.isoformat(timespec='seconds'),
            end=end.isoformat(timespec='seconds'),
            location=location,
            description=description,
            description_urls=extract_urls(description),
            original_event_url=self.BASE_URL,
            tz=FOOPEE_TIMEZONE
        )

    @staticmethod
    def _trailing_text(last_anchor: Tag) -> str:
        parts: List[str] = []
        for sibling in last_anchor.next_siblings:
            if isinstance(sibling, Tag) and sibling.name in ('ul', 'ol', 'li'):
                break
            text = str(sibling) if isinstance(sibling, NavigableString) else sibling.get_text(' ')
            parts.append(text)
        return ' '.join(' '.join(parts).split()).lstrip(', ')
