"""Free-text date and time parsing for scraped listings."""
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}
WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

DEFAULT_DURATION = timedelta(hours=4)
# Yearless dates further back than this belong to next year
PAST_DATE_WINDOW = timedelta(days=14)


@dataclass
class ParsedDateRange:
    start: str
    end: str
    recurring: bool = False


def to_hour24(hour: int, meridiem: str) -> int:
    """Convert a 12-hour clock hour to 0-23."""
    meridiem = meridiem.lower().replace('.', '')
    if meridiem == 'pm' and hour != 12:
        return hour + 12
    if meridiem == 'am' and hour == 12:
        return 0
    return hour


def month_number(name: str) -> int:
    try:
        return MONTHS[name[:3].lower()]
    except KeyError:
        raise ValueError(f"Unknown month: {name}") from None


def resolve_yearless_date(month_name: str, day: int, reference: date) -> date:
    """
    Date for a month and day listed without a year.

    Assumes the reference year, rolling to next year when that would put the
    date more than two weeks before the reference.

    Raises:
        ValueError: If the month or day is invalid
    """
    candidate = date(reference.year, month_number(month_name), day)
    if candidate < reference - PAST_DATE_WINDOW:
        candidate = date(reference.year + 1, candidate.month, candidate.day)
    return candidate


# 19hz.info listing formats

RECURRING_PATTERN = re.compile(
    r'^(?:(\d+)(?:st|nd|rd|th)(?:/(\d+)(?:st|nd|rd|th))?\s+)?(\w+)s\s*\(([^)]+)\)$'
)
TIME_RANGE_PATTERN = re.compile(
    r'(\d+)(?::(\d+))?([ap]m)(?:-(\d+)(?::(\d+))?([ap]m))?', re.IGNORECASE
)
MULTI_DAY_PATTERN = re.compile(
    r'(\w+):\s*(\w+)\s+(\d+)-(\w+):\s*(\w+)\s+(\d+)(?:,\s*(\d{4}))?\s*\(([^)]+)\)'
)
MULTI_DAY_TIME_PATTERN = re.compile(
    r'(\w+):\s*(\d+)(?::(\d+))?([ap]m)-(\w+):\s*(\d+)(?::(\d+))?([ap]m)', re.IGNORECASE
)
SINGLE_DAY_PATTERN = re.compile(r'(\w+):\s*(\w+)\s+(\d+)(?:,\s*(\d{4}))?\s*\(([^)]+)\)')


def _monthly_occurrence(year: int, month: int, weekday: int, occurrence: int) -> date:
    first = date(year, month, 1)
    first_match = first + timedelta(days=(weekday - first.weekday()) % 7)
    return first_match + timedelta(weeks=occurrence - 1)


def _next_monthly_occurrence(
    reference: date,
    weekday: int,
    occurrence: int,
    second_occurrence: Optional[int] = None
) -> date:
    candidate = _monthly_occurrence(reference.year, reference.month, weekday, occurrence)
    if candidate >= reference:
        return candidate
    if second_occurrence:
        candidate = _monthly_occurrence(reference.year, reference.month, weekday, second_occurrence)
        if candidate >= reference:
            return candidate
    if reference.month == 12:
        return _monthly_occurrence(reference.year + 1, 1, weekday, occurrence)
    return _monthly_occurrence(reference.year, reference.month + 1, weekday, occurrence)


def _day_span(day: date, time_range: str, zone: ZoneInfo) -> Tuple[datetime, datetime]:
    match = TIME_RANGE_PATTERN.search(time_range)
    if not match:
        raise ValueError(f"No time found in {time_range!r}")
    start_hour, start_min, start_ampm, end_hour, end_min, end_ampm = match.groups()

    start = datetime.combine(day, time(to_hour24(int(start_hour), start_ampm), int(start_min or 0)), tzinfo=zone)
    if end_hour and end_ampm:
        end = datetime.combine(day, time(to_hour24(int(end_hour), end_ampm), int(end_min or 0)), tzinfo=zone)
        if end < start:
            # Overnight, ends the next day
            end = datetime.combine(day + timedelta(days=1), end.timetz())
    else:
        end = (start + DEFAULT_DURATION).astimezone(zone)
    return start, end


def parse_19hz_date_range(text: str, reference: date, tz: str) -> ParsedDateRange:
    """
    Parse a 19hz.info date/time cell into zoned start and end times.

    Handles:
        'Fri: Aug 30 (9pm-2am)'
        'Wed: Jan 28, 2026 (8pm)'
        'Fri: Aug 30-Sun: Sep 1 (Fri: 9pm-Sun: 2am)'
        'Mondays (9:30pm-2:30am)'
        '2nd/4th Wednesdays (8pm-12am)'

    A single time gets a four hour duration. Listings without a year use
    the reference year, or the next one if the date is more than two weeks
    past. Recurring listings resolve to their next occurrence
    after the reference date.

    Args:
        text: Cell text
        reference: Today's date in the listing's zone
        tz: IANA zone the listing's wall-clock times are in

    Returns:
        ParsedDateRange with ISO 8601 strings carrying the zone's offset

    Raises:
        ValueError: If the text matches none of the formats
    """
    if not text or not text.strip():
        raise ValueError('Empty date/time text')
    text = text.strip()
    zone = ZoneInfo(tz)

    recurring = RECURRING_PATTERN.match(text)
    if recurring:
        occurrence, second_occurrence, day_name, time_range = recurring.groups()
        day_name = day_name.lower()
        if day_name in WEEKDAYS:
            weekday = WEEKDAYS.index(day_name)
            if occurrence:
                day = _next_monthly_occurrence(
                    reference,
                    weekday,
                    int(occurrence),
                    int(second_occurrence) if second_occurrence else None
                )
            else:
                # Today's listing means next week's occurrence
                day = reference + timedelta(days=((weekday - reference.weekday()) % 7) or 7)
            start, end = _day_span(day, time_range, zone)
            return ParsedDateRange(
                start.isoformat(timespec='seconds'),
                end.isoformat(timespec='seconds'),
                recurring=True
            )

    multi_day = MULTI_DAY_PATTERN.search(text)
    if multi_day:
        _, start_month, start_day, _, end_month, end_day, year, time_range = multi_day.groups()
        times = MULTI_DAY_TIME_PATTERN.search(time_range)
        if times:
            _, start_hour, start_min, start_ampm, _, end_hour, end_min, end_ampm = times.groups()
            if year:
                start_date = date(int(year), month_number(start_month), int(start_day))
            else:
                start_date = resolve_yearless_date(start_month, int(start_day), reference)
            end_date = date(start_date.year, month_number(end_month), int(end_day))
            if end_date < start_date:
                # 'Dec 31-Jan 1' crosses into the next year
                end_date = date(start_date.year + 1, end_date.month, end_date.day)
            start = datetime.combine(
                start_date, time(to_hour24(int(start_hour), start_ampm), int(start_min or 0)), tzinfo=zone
            )
            end = datetime.combine(
                end_date, time(to_hour24(int(end_hour), end_ampm), int(end_min or 0)), tzinfo=zone
            )
            return ParsedDateRange(start.isoformat(timespec='seconds'), end.isoformat(timespec='seconds'))

    single_day = SINGLE_DAY_PATTERN.search(text)
    if single_day:
        _, month, day_of_month, year, time_range = single_day.groups()
        if year:
            day = date(int(year), month_number(month), int(day_of_month))
        else:
            day = resolve_yearless_date(month, int(day_of_month), reference)
        start, end = _day_span(day, time_range, zone)
        return ParsedDateRange(start.isoformat(timespec='seconds'), end.isoformat(timespec='seconds'))

    raise ValueError(f"Unrecognized 19hz date format: {text!r}")


# Spreadsheet date and time columns

SHARED_MERIDIEM_PATTERN = re.compile(
    r'(\d{1,2})(?::(\d{2}))?\s*(?:-|–|to)\s*(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m\.?',
    re.IGNORECASE
)
CLOCK_PATTERN = re.compile(
    r'(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m\b\.?|(\d{1,2}):(\d{2})|\b(noon)\b',
    re.IGNORECASE
)


def _clock_times(time_text: str) -> Tuple[Optional[time], Optional[time]]:
    """Start and optional end time-of-day found in free text."""
    shared = SHARED_MERIDIEM_PATTERN.search(time_text)
    if shared:
        start_hour, start_min, end_hour, end_min, meridiem = shared.groups()
        meridiem = f"{meridiem}m"
        end = time(to_hour24(int(end_hour), meridiem), int(end_min or 0))
        start = time(to_hour24(int(start_hour), meridiem), int(start_min or 0))
        if start > end:
            # '11-1pm' starts in the morning
            start = time(to_hour24(int(start_hour), 'am' if meridiem == 'pm' else 'pm'), int(start_min or 0))
        return start, end

    found = []
    for match in CLOCK_PATTERN.finditer(time_text):
        hour, minute, meridiem, hour24, minute24, noon = match.groups()
        if noon:
            found.append(time(12, 0))
        elif meridiem:
            found.append(time(to_hour24(int(hour), f"{meridiem}m"), int(minute or 0)))
        else:
            found.append(time(int(hour24), int(minute24)))
        if len(found) == 2:
            break
    if not found:
        return None, None
    return found[0], found[1] if len(found) > 1 else None


def _as_utc_string(value: datetime) -> str:
    return value.strftime('%Y-%m-%dT%H:%M:%SZ')


def parse_sheet_date_time(
    date_text: str,
    time_text: str,
    reference_year: Optional[int] = None
) -> Tuple[Optional[str], Optional[str]]:
    """
    Parse spreadsheet 'Date' and 'Time' cells into wall-clock UTC strings.

    The digits are the event's local wall-clock time stamped with 'Z', to be
    reinterpreted once the location's zone is known. A date alone gives
    end == start, a single time gives a one minute event.

    Args:
        date_text: e.g. '6/14/2025' or 'Saturday, June 14'
        time_text: e.g. '10am', '10:00 AM - 1:00 PM', ''
        reference_year: Year for dates without one (default: current year)

    Returns:
        (start, end) ISO strings, or (None, None) if the date is unusable
    """
    if not date_text or not date_text.strip():
        return None, None
    year = reference_year or datetime.now(timezone.utc).year
    try:
        day = date_parser.parse(date_text.strip(), default=datetime(year, 1, 1), fuzzy=True).date()
    except (ValueError, OverflowError) as e:
        logger.debug(f"Unparseable date {date_text!r}: {e}")
        return None, None

    start_time, end_time = _clock_times(time_text or '')
    if start_time is None:
        midnight = datetime.combine(day, time(0, 0))
        return _as_utc_string(midnight), _as_utc_string(midnight)

    start = datetime.combine(day, start_time)
    if end_time is None:
        end = start + timedelta(minutes=1)
    else:
        end = datetime.combine(day, end_time)
        if end < start:
            end += timedelta(days=1)
    return _as_utc_string(start), _as_utc_string(end)
