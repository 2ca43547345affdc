"""Venue and city extraction from 'Event @ Venue (City)' listing titles."""
import logging
import re
from typing import Mapping, Optional

from processor.timezones import get_city_state_from_city

logger = logging.getLogger(__name__)

TITLE_PATTERN = re.compile(r'^(.+?)\s*@\s*([^(]+?)(?:\s*\(([^)]+)\))?$')
CITY_STATE_PATTERN = re.compile(r'^(.+?),\s*([A-Z]{2})$')
TRAILING_CITY_PATTERN = re.compile(r'\(([^)]+)\)$')
STATE_SUFFIX_PATTERN = re.compile(r',\s*([A-Za-z]{2})$')


def infer_state_from_city_name(city_name: str) -> Optional[str]:
    """Two-letter state for a known city, e.g. 'Oakland' -> 'CA'."""
    city_state = get_city_state_from_city(city_name)
    if not city_state:
        return None
    match = STATE_SUFFIX_PATTERN.search(city_state)
    return match.group(1) if match else None


def get_state_from_region(region_name: str) -> Optional[str]:
    """State of a listing region such as 'Bay Area' or 'Chicago'."""
    for candidate in (f"{region_name}, CA", f"{region_name}, IL", f"{region_name}, OR",
                      f"{region_name}, NV", region_name):
        city_state = get_city_state_from_city(candidate)
        if city_state:
            match = STATE_SUFFIX_PATTERN.search(city_state)
            return match.group(1).upper() if match else None
    return None


def clean_location(location: str) -> str:
    """Collapse whitespace and repeated commas."""
    location = re.sub(r'\s+', ' ', location)
    location = re.sub(r'\s+,', ',', location)
    location = re.sub(r',+', ',', location)
    return location.strip()


def extract_venue_and_city(
    title: str,
    default_state: str,
    region_name: str,
    venue_cache: Optional[Mapping[str, str]] = None
) -> str:
    """
    Build a geocodable location from a listing title.

    'Night @ The Midway (San Francisco)' -> 'The Midway, San Francisco, CA'.
    A venue found in ``venue_cache`` (lowercased name -> address) returns its
    address. An explicit 'City, ST' is kept. A bare city gets its state from
    the known-city table, else the region's default state when the region
    is known, else no state.

    Args:
        title: Listing title
        default_state: State of the listing region, e.g. 'CA'
        region_name: Listing region, e.g. 'Bay Area'
        venue_cache: Optional venue addresses

    Returns:
        Location string, or '' if the title has no venue or city
    """
    match = TITLE_PATTERN.match(title.strip())
    if match:
        venue = (match.group(2) or '').strip()
        city_and_state = (match.group(3) or '').strip()

        if venue_cache:
            cached = venue_cache.get(venue.lower())
            if cached:
                return cached

        city = ''
        state: Optional[str] = None
        if city_and_state:
            explicit = CITY_STATE_PATTERN.match(city_and_state)
            if explicit:
                city = explicit.group(1).strip()
                state = explicit.group(2)
            else:
                city = city_and_state
                state = infer_state_from_city_name(city)
                if state is None and get_state_from_region(region_name) is not None:
                    state = default_state

        if venue.lower() == 'tba' and city:
            return f"{city}, {state}" if state else city
        if venue and city:
            return f"{venue}, {city}, {state}" if state else f"{venue}, {city}"

        logger.info(f"Unexpected venue and city for event: {title}")
        return f"{venue}, {city}, {state}, USA" if state else f"{venue}, {city}, USA"

    trailing_city = TRAILING_CITY_PATTERN.search(title)
    if trailing_city:
        return f"{trailing_city.group(1).strip()}, {default_state}"

    logger.info(f"Unexpected venue and city formatting for event: {title}")
    return ''
