"""Unit tests for listing date/time parsing."""
from datetime import date

import pytest

from processor.date_parsing import (
    month_number,
    parse_19hz_date_range,
    parse_sheet_date_time,
    resolve_yearless_date,
    to_hour24,
)

LA = 'America/Los_Angeles'


class TestHelpers:
    """Test cases for small parsing helpers."""

    def test_to_hour24(self):
        assert to_hour24(12, 'am') == 0
        assert to_hour24(12, 'pm') == 12
        assert to_hour24(9, 'PM') == 21
        assert to_hour24(9, 'a.m.') == 9

    def test_month_number(self):
        assert month_number('Sep') == 9
        assert month_number('september') == 9
        with pytest.raises(ValueError):
            month_number('Smarch')

    def test_resolve_yearless_date(self):
        assert resolve_yearless_date('Jun', 10, date(2024, 6, 1)) == date(2024, 6, 10)
        assert resolve_yearless_date('May', 20, date(2024, 6, 1)) == date(2024, 5, 20)
        assert resolve_yearless_date('January', 5, date(2024, 12, 20)) == date(2025, 1, 5)
        with pytest.raises(ValueError):
            resolve_yearless_date('Jun', 31, date(2024, 6, 1))


class TestParse19hzDateRange:
    """Test cases for parse_19hz_date_range."""

    def test_single_day_overnight(self):
        """Test an end time before the start rolls to the next day."""
        result = parse_19hz_date_range('Fri: Aug 30 (9pm-2am)', date(2024, 8, 1), LA)
        assert result.start == '2024-08-30T21:00:00-07:00'
        assert result.end == '2024-08-31T02:00:00-07:00'
        assert not result.recurring

    def test_single_time_with_year(self):
        """Test a lone start time gets a four hour duration."""
        result = parse_19hz_date_range('Wed: Jan 28, 2026 (8pm)', date(2025, 12, 1), LA)
        assert result.start == '2026-01-28T20:00:00-08:00'
        assert result.end == '2026-01-29T00:00:00-08:00'

    def test_multi_day(self):
        result = parse_19hz_date_range('Fri: Aug 30-Sun: Sep 1 (Fri: 9pm-Sun: 2am)', date(2024, 8, 1), LA)
        assert result.start == '2024-08-30T21:00:00-07:00'
        assert result.end == '2024-09-01T02:00:00-07:00'

    def test_multi_day_across_new_year(self):
        result = parse_19hz_date_range('Tue: Dec 31-Wed: Jan 1 (Tue: 9pm-Wed: 4am)', date(2024, 12, 1), LA)
        assert result.start == '2024-12-31T21:00:00-08:00'
        assert result.end == '2025-01-01T04:00:00-08:00'

    def test_january_listing_seen_in_december(self):
        """Test a yearless date well before the reference rolls to next year."""
        result = parse_19hz_date_range('Sat: Jan 4 (9pm)', date(2024, 12, 28), LA)
        assert result.start == '2025-01-04T21:00:00-08:00'
        assert result.end == '2025-01-05T01:00:00-08:00'

    def test_recent_past_date_keeps_year(self):
        result = parse_19hz_date_range('Sat: Jun 1 (9pm)', date(2024, 6, 10), LA)
        assert result.start == '2024-06-01T21:00:00-07:00'

    def test_weekly_recurring(self):
        """Test a weekly listing seen on its own weekday resolves to next week."""
        result = parse_19hz_date_range('Mondays (9:30pm-2:30am)', date(2024, 6, 10), LA)
        assert result.start == '2024-06-17T21:30:00-07:00'
        assert result.end == '2024-06-18T02:30:00-07:00'
        assert result.recurring

    def test_monthly_recurring(self):
        result = parse_19hz_date_range('2nd/4th Wednesdays (8pm-12am)', date(2024, 6, 10), LA)
        assert result.start == '2024-06-12T20:00:00-07:00'
        assert result.end == '2024-06-13T00:00:00-07:00'
        assert result.recurring

    def test_other_zone(self):
        result = parse_19hz_date_range('Sat: Jun 15 (10pm-4am)', date(2024, 6, 1), 'America/Chicago')
        assert result.start == '2024-06-15T22:00:00-05:00'

    def test_unrecognized(self):
        with pytest.raises(ValueError):
            parse_19hz_date_range('sometime soon', date(2024, 6, 1), LA)
        with pytest.raises(ValueError):
            parse_19hz_date_range('', date(2024, 6, 1), LA)


class TestParseSheetDateTime:
    """Test cases for parse_sheet_date_time."""

    def test_single_time_is_one_minute(self):
        assert parse_sheet_date_time('6/14/2025', '10am') == ('2025-06-14T10:00:00Z', '2025-06-14T10:01:00Z')

    def test_time_range(self):
        assert parse_sheet_date_time('6/14/2025', '10:00 AM - 1:00 PM') == (
            '2025-06-14T10:00:00Z', '2025-06-14T13:00:00Z'
        )

    def test_shared_meridiem(self):
        assert parse_sheet_date_time('6/14/2025', '7-9pm') == ('2025-06-14T19:00:00Z', '2025-06-14T21:00:00Z')
        assert parse_sheet_date_time('6/14/2025', '10-12pm') == ('2025-06-14T10:00:00Z', '2025-06-14T12:00:00Z')

    def test_noon(self):
        start, _ = parse_sheet_date_time('6/14/2025', 'noon')
        assert start == '2025-06-14T12:00:00Z'

    def test_date_only(self):
        """Test a date without a time gives end equal to start."""
        assert parse_sheet_date_time('Saturday, June 14', '', reference_year=2025) == (
            '2025-06-14T00:00:00Z', '2025-06-14T00:00:00Z'
        )

    def test_missing_or_bad_date(self):
        assert parse_sheet_date_time('', '10am') == (None, None)
        assert parse_sheet_date_time('TBD', '10am') == (None, None)
