"""
Tests for DateService.

Tests cover:
1. Calendar-day normalisation of dates, datetimes and strings
2. Today/yesterday checks
3. Time parsing for the scheduler
"""
import pytest
from datetime import date, datetime, timedelta

from savepoint.services.date_service import DateService
from savepoint.exceptions import InvalidDateException


class TestToCalendarDate:
    """Tests for to_calendar_date"""

    def test_date_passes_through(self):
        assert DateService.to_calendar_date(date(2024, 3, 15)) == date(2024, 3, 15)

    def test_datetime_drops_time(self):
        """Late evening and early morning land on their own days"""
        assert DateService.to_calendar_date(datetime(2024, 3, 15, 23, 59, 59)) == date(2024, 3, 15)
        assert DateService.to_calendar_date(datetime(2024, 3, 16, 0, 0, 1)) == date(2024, 3, 16)

    def test_plain_date_string_is_taken_literally(self):
        """YYYY-MM-DD is never shifted by a timezone"""
        assert DateService.to_calendar_date("2024-03-15") == date(2024, 3, 15)

    def test_naive_timestamp_string(self):
        assert DateService.to_calendar_date("2024-03-15T22:30:00") == date(2024, 3, 15)

    def test_utc_timestamp_string(self):
        """Z-suffixed timestamps convert to the local calendar day"""
        parsed = DateService.to_calendar_date("2024-03-15T12:00:00Z")
        local = datetime.fromisoformat("2024-03-15T12:00:00+00:00").astimezone()
        assert parsed == local.date()

    @pytest.mark.parametrize("value", ["not-a-date", "2024-13-01", "", 42])
    def test_malformed_values_rejected(self, value):
        with pytest.raises(InvalidDateException):
            DateService.to_calendar_date(value)

    def test_missing_value_rejected(self):
        with pytest.raises(InvalidDateException):
            DateService.to_calendar_date(None)


class TestRelativeDays:
    """Tests for days_between and is_today_or_yesterday"""

    def test_days_between(self):
        assert DateService.days_between(date(2024, 2, 28), date(2024, 3, 1)) == 2

    def test_today_and_yesterday(self, today, yesterday):
        assert DateService.is_today_or_yesterday(today, today)
        assert DateService.is_today_or_yesterday(yesterday, today)
        assert not DateService.is_today_or_yesterday(today - timedelta(days=2), today)
        assert not DateService.is_today_or_yesterday(None, today)

    def test_day_range(self):
        start, end = DateService.get_day_range(date(2024, 3, 15))
        assert start == datetime(2024, 3, 15, 0, 0)
        assert end == datetime(2024, 3, 16, 0, 0)


class TestParseTime:
    """Tests for parse_time"""

    def test_valid_time(self):
        assert DateService.parse_time("06:30") == (6, 30)
        assert DateService.parse_time("00:00") == (0, 0)

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon"])
    def test_invalid_time(self, value):
        with pytest.raises(ValueError):
            DateService.parse_time(value)
