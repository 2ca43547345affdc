"""Timezone utilities and the post-geocoding timezone resolution step.

Adapters emit events with a provisional ``tz``: a concrete IANA zone when the
source states one, or a :class:`TzState` sentinel when the zone has to come
from the geocoded location. :func:`validate_tz_update_event_times` runs once
per event after geocoding and settles ``tz``, ``start``/``end`` and the epoch
second caches.
"""
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Dict, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser
from timezonefinder import TimezoneFinder

from processor.models import CmfEvent, TzState, parse_tz

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'America/Los_Angeles'


class TimezoneStateError(RuntimeError):
    """Raised when an event reaches timezone resolution in an impossible state."""


@lru_cache(maxsize=512)
def is_valid_timezone(tz: str) -> bool:
    """
    Check whether a string names a zone in the IANA database.

    Args:
        tz: Zone name, e.g. 'America/Los_Angeles'

    Returns:
        True if the zone can be loaded
    """
    if not tz or not isinstance(tz, str):
        return False
    try:
        ZoneInfo(tz)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def _parse_as_utc(value: str) -> datetime:
    """Parse an ISO 8601 string, treating naive values as UTC."""
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Invalid UTC time: {value}") from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _load_zone(target_timezone: str) -> ZoneInfo:
    try:
        return ZoneInfo(str(target_timezone))
    except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
        raise ValueError(f"Invalid target timezone: {target_timezone}") from e


def reinterpret_utc_tz(utc_time: Union[str, int], target_timezone: str) -> Union[str, int]:
    """
    Keep the wall-clock digits of a UTC time and anchor them in another zone.

    '2024-06-10T17:00:00Z' in America/Los_Angeles becomes
    '2024-06-10T17:00:00-07:00'. Epoch seconds are handled the same way and
    returned as epoch seconds.

    Args:
        utc_time: ISO 8601 string or epoch seconds
        target_timezone: IANA zone name

    Returns:
        ISO 8601 string with the target offset, or epoch seconds

    Raises:
        ValueError: If the time or the zone cannot be parsed
    """
    if isinstance(utc_time, bool):
        raise ValueError(f"Invalid UTC time: {utc_time}")
    if isinstance(utc_time, (int, float)):
        try:
            from_utc = datetime.fromtimestamp(utc_time, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"Invalid UTC time: {utc_time}") from e
    else:
        from_utc = _parse_as_utc(utc_time)

    zone = _load_zone(target_timezone)
    reinterpreted = from_utc.replace(tzinfo=zone)

    if isinstance(utc_time, (int, float)):
        return int(reinterpreted.timestamp())
    return reinterpreted.isoformat(timespec='seconds')


def convert_utc_string_to_secs(utc_iso_string: str) -> int:
    """
    Convert an ISO 8601 string to epoch seconds.

    Args:
        utc_iso_string: e.g. '2024-06-10T17:00:00Z'

    Returns:
        Epoch seconds, floored
    """
    return int(_parse_as_utc(utc_iso_string).timestamp() // 1)


def convert_utc_secs_to_string(epoch_seconds: int) -> str:
    """Convert epoch seconds to an ISO 8601 UTC string ending in 'Z'."""
    try:
        dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError, TypeError) as e:
        raise ValueError(f"Invalid epoch seconds: {epoch_seconds}") from e
    return dt.isoformat(timespec='seconds').replace('+00:00', 'Z')


def validate_tz_update_event_times(event: CmfEvent) -> CmfEvent:
    """
    Settle an event's timezone and times once its location has been geocoded.

    REINTERPRET_UTC_TO_LOCAL events get their wall-clock digits re-anchored in
    the location's zone. TIME_IS_ACCURATE events only get the zone attached.
    Events that already carry a zone pass through. Epoch seconds are filled
    in if still unset. A second call on the same event does nothing.

    Args:
        event: Event to update in place

    Returns:
        The same event

    Raises:
        TimezoneStateError: If the event has no tz, is UNKNOWN_TZ before
            lookup, or is a REINTERPRET event with missing times or zone
    """
    if event.tz_finalized:
        return event

    if event.tz == TzState.UNKNOWN_TZ:
        raise TimezoneStateError(
            f"Event {event.id} has UNKNOWN_TZ before location lookup"
        )
    if not event.tz:
        raise TimezoneStateError(
            f"Event {event.id} has no timezone, expected a zone or a TzState"
        )

    location = event.resolved_location

    if event.tz == TzState.REINTERPRET_UTC_TO_LOCAL:
        if location is None:
            event.tz = TzState.UNKNOWN_TZ
            logger.warning(
                f"Event {event.id} with REINTERPRET_UTC_TO_LOCAL has no resolved_location, "
                f"setting UNKNOWN_TZ"
            )
        elif location.location_tz == TzState.UNKNOWN_TZ:
            event.tz = TzState.UNKNOWN_TZ
            logger.info(f"Event {event.id} with REINTERPRET_UTC_TO_LOCAL got UNKNOWN_TZ")
        else:
            _reinterpret_event(event, location.location_tz)
            logger.debug(f"Event {event.id} reinterpreted to {event.tz}")

    elif event.tz == TzState.TIME_IS_ACCURATE:
        if location is None:
            event.tz = TzState.UNKNOWN_TZ
            logger.warning(
                f"Event {event.id} with TIME_IS_ACCURATE has no resolved_location, "
                f"setting UNKNOWN_TZ"
            )
        elif not location.location_tz or location.location_tz == TzState.UNKNOWN_TZ:
            logger.info(f"Event {event.id} with TIME_IS_ACCURATE keeps it, location_tz unknown")
        else:
            event.tz = parse_tz(str(location.location_tz))

    elif not is_valid_timezone(str(event.tz)):
        logger.warning(f"Event {event.id} has unrecognized tz '{event.tz}'")

    if event.start_secs is None and event.start:
        event.start_secs = convert_utc_string_to_secs(event.start)
    if event.end_secs is None and event.end:
        event.end_secs = convert_utc_string_to_secs(event.end)

    event.tz_finalized = True
    return event


def _reinterpret_event(event: CmfEvent, location_tz: Optional[str]) -> None:
    if not location_tz or not event.start or not event.end:
        raise TimezoneStateError(
            f"Event {event.id} with REINTERPRET_UTC_TO_LOCAL is missing "
            f"start, end or location_tz (start={event.start!r}, end={event.end!r}, "
            f"location_tz={location_tz!r})"
        )
    zone = str(location_tz)
    try:
        start_secs = event.start_secs
        if start_secs is None:
            start_secs = convert_utc_string_to_secs(event.start)
        end_secs = event.end_secs
        if end_secs is None:
            end_secs = convert_utc_string_to_secs(event.end)

        event.start_secs = reinterpret_utc_tz(start_secs, zone)
        event.end_secs = reinterpret_utc_tz(end_secs, zone)
        event.start = reinterpret_utc_tz(event.start, zone)
        event.end = reinterpret_utc_tz(event.end, zone)
    except ValueError as e:
        raise TimezoneStateError(f"Event {event.id} cannot be reinterpreted: {e}") from e
    event.tz = zone


@lru_cache(maxsize=1)
def _timezone_finder() -> TimezoneFinder:
    return TimezoneFinder()


def get_timezone_from_lat_lng(lat: float, lng: float) -> str:
    """
    Look up the IANA zone containing a coordinate.

    Args:
        lat: Latitude
        lng: Longitude

    Returns:
        Zone name, or 'UNKNOWN_TZ' if none is found or the lookup fails
    """
    try:
        tz = _timezone_finder().timezone_at(lng=float(lng), lat=float(lat))
    except (ValueError, TypeError) as e:
        logger.warning(f"Timezone lookup failed for ({lat}, {lng}): {e}")
        return TzState.UNKNOWN_TZ.value
    return tz or TzState.UNKNOWN_TZ.value


CITY_TO_TIMEZONE: Dict[str, str] = {
    'Amsterdam, NL': 'Europe/Amsterdam',
    'Asbury Park, NJ': 'America/New_York',
    'Atlanta, GA': 'America/New_York',
    'Austin, TX': 'America/Chicago',
    'Bay Area, CA': 'America/Los_Angeles',
    'Berkeley, CA': 'America/Los_Angeles',
    'Boston, MA': 'America/New_York',
    'Boulder, CO': 'America/Denver',
    'Brooklyn, NY': 'America/New_York',
    'Cabo San Lucas, BCS, MX': 'America/Mazatlan',
    'Cambridge, MA': 'America/New_York',
    'Cambridge, England, GB': 'Europe/London',
    'Chicago, IL': 'America/Chicago',
    'Dallas, TX': 'America/Chicago',
    'Denver, CO': 'America/Denver',
    'Detroit, MI': 'America/Detroit',
    'Eugene, OR': 'America/Los_Angeles',
    'Fort Lauderdale, FL': 'America/New_York',
    'Fremont, CA': 'America/Los_Angeles',
    'Houston, TX': 'America/Chicago',
    'Indianapolis, IN': 'America/Indiana/Indianapolis',
    'La Jolla, CA': 'America/Los_Angeles',
    'Las Vegas, NV': 'America/Los_Angeles',
    'Lisboa, PT': 'Europe/Lisbon',
    'Long Beach, CA': 'America/Los_Angeles',
    'Los Angeles, CA': 'America/Los_Angeles',
    'Miami, FL': 'America/New_York',
    'Montreal, QC': 'America/Toronto',
    'Nashville, TN': 'America/Chicago',
    'New York, NY': 'America/New_York',
    'Oakland, CA': 'America/Los_Angeles',
    'Philadelphia, PA': 'America/New_York',
    'Phoenix, AZ': 'America/Phoenix',
    'Portland, OR': 'America/Los_Angeles',
    'Reno, NV': 'America/Los_Angeles',
    'Sacramento, CA': 'America/Los_Angeles',
    'Salt Lake City, UT': 'America/Denver',
    'San Antonio, TX': 'America/Chicago',
    'San Diego, CA': 'America/Los_Angeles',
    'San Francisco, CA': 'America/Los_Angeles',
    'San Jose, CA': 'America/Los_Angeles',
    'Santa Cruz, CA': 'America/Los_Angeles',
    'Santa Rosa, CA': 'America/Los_Angeles',
    'Seattle, WA': 'America/Los_Angeles',
    'Southfield, MI': 'America/Detroit',
    'Toronto, ON, CA': 'America/Toronto',
    'Vancouver, BC, CA': 'America/Vancouver',
    'Washington, DC': 'America/New_York',
    'West Hollywood, CA': 'America/Los_Angeles',
}


def _find_city_key(city_name: str) -> Optional[str]:
    """
    Table key for a city name.

    An exact key wins, then a key starting with the name at a comma
    boundary ('cambridge, england'), then any key containing the name.
    """
    needle = city_name.strip().lower()
    if not needle:
        return None
    keys = [(key, key.lower()) for key in CITY_TO_TIMEZONE]
    for key, lowered in keys:
        if lowered == needle:
            return key
    for key, lowered in keys:
        if lowered.startswith(needle + ','):
            return key
    for key, lowered in keys:
        if needle in lowered:
            return key
    return None


def get_timezone_from_city(city_name: str) -> str:
    """Zone for a known city name, defaulting to America/Los_Angeles."""
    key = _find_city_key(city_name)
    if key is None:
        return DEFAULT_TIMEZONE
    return CITY_TO_TIMEZONE[key]


def get_city_state_from_city(city_name: str) -> str:
    """
    Expand a bare city name to its 'City, ST' form.

    Args:
        city_name: e.g. 'oakland'

    Returns:
        The matching table key, e.g. 'Oakland, CA', or '' if unknown
    """
    return _find_city_key(city_name) or ''
