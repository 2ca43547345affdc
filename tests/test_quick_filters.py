"""Unit tests for quick filter date ranges."""
from datetime import date

from processor.quick_filters import (
    QUICK_FILTER_CONFIGS,
    QuickFilterRange,
    calculate_filter_date_range,
    calculate_range,
    get_quick_filter_config,
)

MONDAY = date(2025, 6, 9)
SUNDAY = date(2025, 6, 8)
FRIDAY = date(2025, 6, 13)
SATURDAY = date(2025, 6, 14)


class TestCalculateRange:
    """Test cases for calculate_range."""

    def test_config_order(self):
        assert [c.id for c in QUICK_FILTER_CONFIGS] == [
            'past', 'future', 'today', 'next3days', 'next7days', 'weekend'
        ]

    def test_simple_filters(self):
        assert calculate_range('past', 5, 30, MONDAY) == QuickFilterRange(0, 5)
        assert calculate_range('future', 5, 30, MONDAY) == QuickFilterRange(5, 30)
        assert calculate_range('today', 5, 30, MONDAY) == QuickFilterRange(5, 5)
        assert calculate_range('next3days', 5, 30, MONDAY) == QuickFilterRange(5, 8)
        assert calculate_range('next7days', 5, 30, MONDAY) == QuickFilterRange(5, 12)

    def test_next7days_clamped(self):
        assert calculate_range('next7days', 5, 10, MONDAY) == QuickFilterRange(5, 10)

    def test_weekend_from_monday(self):
        """Test Monday looks ahead four days to Friday."""
        assert calculate_range('weekend', 0, 30, MONDAY) == QuickFilterRange(4, 6)

    def test_weekend_from_sunday(self):
        """Test Sunday means next weekend."""
        assert calculate_range('weekend', 0, 30, SUNDAY) == QuickFilterRange(5, 7)

    def test_weekend_on_friday_and_saturday(self):
        assert calculate_range('weekend', 0, 30, FRIDAY) == QuickFilterRange(0, 2)
        assert calculate_range('weekend', 0, 30, SATURDAY) == QuickFilterRange(0, 2)

    def test_weekend_uses_today_offset_weekday(self):
        """Test the weekday comes from min_date plus the today offset."""
        # min_date Monday, today is Wednesday
        assert calculate_range('weekend', 2, 30, MONDAY) == QuickFilterRange(4, 6)

    def test_weekend_clamped(self):
        assert calculate_range('weekend', 0, 3, MONDAY) == QuickFilterRange(3, 3)

    def test_unknown_filter(self):
        assert calculate_range('fortnight', 0, 30, MONDAY) is None
        assert get_quick_filter_config('Weekend') is None

    def test_default_min_date(self):
        """Test min_date defaults so that today sits at today_offset."""
        result = calculate_range('today', 3, 30)
        assert result == QuickFilterRange(3, 3)

    def test_config_labels(self):
        assert get_quick_filter_config('next3days').label == 'Next 3 days'


class TestCalculateFilterDateRange:
    """Test cases for calculate_filter_date_range."""

    def test_valid_range(self):
        assert calculate_filter_date_range('2025-06-10', '2025-06-12', 30, '2025-06-01') == QuickFilterRange(9, 11)

    def test_date_min_date(self):
        assert calculate_filter_date_range('2025-06-01', '2025-06-01', 30, date(2025, 6, 1)) == QuickFilterRange(0, 0)

    def test_missing_dates(self):
        assert calculate_filter_date_range(None, '2025-06-12', 30, '2025-06-01') is None
        assert calculate_filter_date_range('2025-06-10', '', 30, '2025-06-01') is None

    def test_inverted_range(self):
        assert calculate_filter_date_range('2025-06-12', '2025-06-10', 30, '2025-06-01') is None

    def test_out_of_range(self):
        assert calculate_filter_date_range('2025-05-30', '2025-06-10', 30, '2025-06-01') is None
        assert calculate_filter_date_range('2025-06-10', '2025-08-01', 30, '2025-06-01') is None

    def test_unparseable(self):
        assert calculate_filter_date_range('someday', '2025-06-10', 30, '2025-06-01') is None
