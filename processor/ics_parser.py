"""ICS (iCalendar) feed parsing."""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional, Union

from icalendar import Calendar

logger = logging.getLogger(__name__)


@dataclass
class ParsedIcsEvent:
    """One VEVENT with times normalized to aware UTC datetimes."""
    id: str
    summary: str
    description: str
    start: datetime
    end: datetime
    location: Optional[str] = None
    url: Optional[str] = None


def _to_utc(value: Union[date, datetime]) -> datetime:
    # All-day and floating values are taken as UTC
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def _text(component, name: str) -> Optional[str]:
    value = component.get(name)
    if value is None:
        return None
    return str(value)


def parse_ics_content(ics_content: Union[str, bytes]) -> List[ParsedIcsEvent]:
    """
    Parse every VEVENT in an ICS document.

    Args:
        ics_content: Raw ICS text

    Returns:
        Parsed events; an unparseable document yields an empty list
    """
    try:
        calendar = Calendar.from_ical(ics_content)
    except ValueError as e:
        logger.error(f"Error parsing ICS content: {e}")
        return []

    events = []
    for component in calendar.walk('VEVENT'):
        try:
            start = _to_utc(component.decoded('DTSTART'))
            if 'DTEND' in component:
                end = _to_utc(component.decoded('DTEND'))
            else:
                end = start
            events.append(ParsedIcsEvent(
                id=_text(component, 'UID') or '',
                summary=_text(component, 'SUMMARY') or '',
                description=_text(component, 'DESCRIPTION') or '',
                start=start,
                end=end,
                location=_text(component, 'LOCATION'),
                url=_text(component, 'URL')
            ))
        except Exception as e:
            logger.warning(f"Failed to parse VEVENT {_text(component, 'UID')}: {e}")
            continue

    return events
