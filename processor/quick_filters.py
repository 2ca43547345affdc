"""Named date ranges expressed as day offsets from a shared minimum date."""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Union

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuickFilterRange:
    """Inclusive range of day offsets from min_date."""
    start: int
    end: int


@dataclass(frozen=True)
class QuickFilterConfig:
    id: str
    label: str
    calculate: Callable[[int, int, date], QuickFilterRange]


def _clamp(value: int, total_days: int) -> int:
    return max(0, min(value, total_days))


def _js_weekday(day: date) -> int:
    """Weekday numbered Sunday=0 through Saturday=6."""
    return (day.weekday() + 1) % 7


def _past(today_offset: int, total_days: int, min_date: date) -> QuickFilterRange:
    return QuickFilterRange(0, today_offset)


def _future(today_offset: int, total_days: int, min_date: date) -> QuickFilterRange:
    return QuickFilterRange(today_offset, total_days)


def _today(today_offset: int, total_days: int, min_date: date) -> QuickFilterRange:
    return QuickFilterRange(today_offset, today_offset)


def _next_days(days: int) -> Callable[[int, int, date], QuickFilterRange]:
    def calculate(today_offset: int, total_days: int, min_date: date) -> QuickFilterRange:
        return QuickFilterRange(today_offset, min(today_offset + days, total_days))
    return calculate


def _weekend(today_offset: int, total_days: int, min_date: date) -> QuickFilterRange:
    weekday = _js_weekday(min_date + timedelta(days=today_offset))
    if weekday == 0:
        days_to_friday = 5
    elif weekday <= 4:
        days_to_friday = 5 - weekday
    else:
        # Friday or Saturday, the weekend has started
        days_to_friday = 0
    friday = min(today_offset + days_to_friday, total_days)
    sunday = min(friday + 2, total_days)
    return QuickFilterRange(friday, sunday)


QUICK_FILTER_CONFIGS: List[QuickFilterConfig] = [
    QuickFilterConfig('past', 'Past', _past),
    QuickFilterConfig('future', 'Future', _future),
    QuickFilterConfig('today', 'Today', _today),
    QuickFilterConfig('next3days', 'Next 3 days', _next_days(3)),
    QuickFilterConfig('next7days', 'Next 7 days', _next_days(7)),
    QuickFilterConfig('weekend', 'Weekend', _weekend),
]


def get_quick_filter_config(filter_id: str) -> Optional[QuickFilterConfig]:
    """Config for a filter id (case sensitive), or None."""
    for config in QUICK_FILTER_CONFIGS:
        if config.id == filter_id:
            return config
    return None


def calculate_range(
    filter_id: str,
    today_offset: int,
    total_days: int,
    min_date: Optional[date] = None
) -> Optional[QuickFilterRange]:
    """
    Calculate the day-offset range for a named quick filter.

    Args:
        filter_id: One of past, future, today, next3days, next7days, weekend
        today_offset: Offset of today from min_date
        total_days: Offset of the last selectable day
        min_date: Date at offset 0, used to find today's weekday. Defaults
            to today minus today_offset.

    Returns:
        QuickFilterRange clamped to [0, total_days], or None for an
        unknown filter id
    """
    config = get_quick_filter_config(filter_id)
    if config is None:
        logger.debug(f"Unknown quick filter: {filter_id!r}")
        return None

    if min_date is None:
        min_date = date.today() - timedelta(days=today_offset)
    elif isinstance(min_date, datetime):
        min_date = min_date.date()

    result = config.calculate(today_offset, total_days, min_date)
    return QuickFilterRange(
        _clamp(result.start, total_days),
        _clamp(result.end, total_days)
    )


def _to_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.parse(value).date()


def calculate_filter_date_range(
    fsd: Optional[str],
    fed: Optional[str],
    total_days: int,
    min_date: Union[str, date]
) -> Optional[QuickFilterRange]:
    """
    Convert an explicit start/end date pair into day offsets.

    Args:
        fsd: Filter start date, e.g. '2025-06-14'
        fed: Filter end date
        total_days: Offset of the last selectable day
        min_date: Date at offset 0

    Returns:
        QuickFilterRange, or None when a date is missing, unparseable,
        outside [0, total_days] or the range is inverted
    """
    if not fsd or not fed:
        return None

    try:
        anchor = _to_date(min_date)
        start_day = (_to_date(fsd) - anchor).days
        end_day = (_to_date(fed) - anchor).days
    except (ValueError, OverflowError) as e:
        logger.info(f"Invalid filter dates fsd={fsd!r} fed={fed!r}: {e}")
        return None

    if start_day < 0 or end_day < 0 or start_day > total_days or end_day > total_days:
        return None
    if start_day > end_day:
        return None
    return QuickFilterRange(start_day, end_day)
