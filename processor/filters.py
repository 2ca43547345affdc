"""Predicates for narrowing an event list by date, text, map bounds and location state."""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from processor.models import CmfEvent, RESOLVED
from processor.timezones import convert_utc_string_to_secs

logger = logging.getLogger(__name__)

UNRESOLVED_KEYWORD = 'unresolved'


@dataclass(frozen=True)
class MapBounds:
    north: float
    south: float
    east: float
    west: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east


def has_resolved_location(event: CmfEvent) -> bool:
    location = event.resolved_location
    return location is not None and location.is_resolved


def _event_span(event: CmfEvent) -> Tuple[int, int]:
    start = event.start_secs if event.start_secs is not None else convert_utc_string_to_secs(event.start)
    end = event.end_secs if event.end_secs is not None else convert_utc_string_to_secs(event.end)
    return start, end


def apply_date_filter(event: CmfEvent, date_range: Optional[Tuple[str, str]] = None) -> bool:
    """
    Keep events that overlap the range.

    Args:
        event: Event to test
        date_range: (start, end) ISO 8601 strings, or None for no filtering

    Returns:
        True if the event overlaps the range or either side is unparseable
    """
    if not date_range:
        return True
    range_start, range_end = date_range
    try:
        event_start, event_end = _event_span(event)
        start_secs = convert_utc_string_to_secs(range_start) if range_start else None
        end_secs = convert_utc_string_to_secs(range_end) if range_end else None
    except ValueError as e:
        logger.debug(f"Date filter skipped for event {event.id}: {e}")
        return True
    if start_secs is not None and event_end < start_secs:
        return False
    if end_secs is not None and event_start > end_secs:
        return False
    return True


def apply_search_filter(event: CmfEvent, search_query: Optional[str] = None) -> bool:
    """
    Case-insensitive substring search.

    The keyword 'unresolved' instead keeps events without a resolved location.
    """
    if not search_query or not search_query.strip():
        return True

    query = search_query.strip().lower()
    if query == UNRESOLVED_KEYWORD:
        return event.resolved_location is None or event.resolved_location.status != RESOLVED

    fields = [event.name, event.location, event.description]
    if event.resolved_location is not None:
        fields.append(event.resolved_location.formatted_address)
    return any(query in field.lower() for field in fields if field)


def apply_map_filter(
    event: CmfEvent,
    bounds: Optional[MapBounds] = None,
    aggregate_center: Optional[Tuple[float, float]] = None
) -> bool:
    """
    Keep events whose marker lies inside the map bounds.

    Unresolved events sit at ``aggregate_center`` (lat, lng); without one
    they are always kept.
    """
    if bounds is None:
        return True
    if has_resolved_location(event):
        return bounds.contains(event.resolved_location.lat, event.resolved_location.lng)
    if aggregate_center is None:
        return True
    return bounds.contains(*aggregate_center)


def apply_unknown_locations_filter(event: CmfEvent, unknown_only: bool = False) -> bool:
    if not unknown_only:
        return True
    return not has_resolved_location(event)


def filter_events(
    events: Iterable[CmfEvent],
    date_range: Optional[Tuple[str, str]] = None,
    search_query: Optional[str] = None,
    bounds: Optional[MapBounds] = None,
    unknown_only: bool = False
) -> List[CmfEvent]:
    """Apply every filter and return the events that pass all of them."""
    return [
        event for event in events
        if apply_date_filter(event, date_range)
        and apply_search_filter(event, search_query)
        and apply_map_filter(event, bounds)
        and apply_unknown_locations_filter(event, unknown_only)
    ]
