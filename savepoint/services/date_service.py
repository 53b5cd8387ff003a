"""
Date calculation and manipulation service.
Handles calendar-day normalisation so habit days are compared by
year/month/day only, never by full timestamps.
"""
from datetime import datetime, timedelta, date
from typing import Optional, Union

from savepoint.exceptions import InvalidDateException

DateInput = Union[date, datetime, str]


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def now() -> datetime:
        """Current local wall-clock time (naive)"""
        return datetime.now()

    @staticmethod
    def today() -> date:
        """Current local calendar day"""
        return datetime.now().date()

    @staticmethod
    def to_naive_local(value: datetime) -> datetime:
        """
        Normalise an instant to naive local time for storage and comparison.

        Aware datetimes are converted to the server's local zone first;
        naive datetimes are assumed to already be local.
        """
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    @staticmethod
    def to_calendar_date(value: Optional[DateInput]) -> date:
        """
        Convert a date-like value to a calendar day.

        Accepts:
            - date: returned as-is
            - datetime: local calendar day of that instant
            - str: "YYYY-MM-DD" (taken literally, no timezone shift)
              or a full ISO-8601 timestamp

        Raises:
            InvalidDateException: If the value is missing or malformed
        """
        if value is None:
            raise InvalidDateException(value, "date is required")

        if isinstance(value, datetime):
            return DateService.to_naive_local(value).date()

        if isinstance(value, date):
            return value

        if isinstance(value, str):
            text = value.strip()
            try:
                if len(text) == 10:
                    return date.fromisoformat(text)
                # "Z" suffix is not accepted by fromisoformat before 3.11
                if text.endswith("Z"):
                    text = text[:-1] + "+00:00"
                return DateService.to_naive_local(datetime.fromisoformat(text)).date()
            except ValueError:
                raise InvalidDateException(value, "expected YYYY-MM-DD or ISO timestamp")

        raise InvalidDateException(value, f"unsupported type {type(value).__name__}")

    @staticmethod
    def days_between(earlier: date, later: date) -> int:
        """Number of calendar days from ``earlier`` to ``later``"""
        return (later - earlier).days

    @staticmethod
    def is_today_or_yesterday(day: Optional[date], today: date) -> bool:
        if day is None:
            return False
        return day == today or day == today - timedelta(days=1)

    @staticmethod
    def get_day_range(target_date: date) -> tuple[datetime, datetime]:
        """
        Get datetime range for a full day (midnight to midnight).

        Args:
            target_date: Date to get range for

        Returns:
            Tuple of (day_start, day_end) datetimes
        """
        day_start = datetime.combine(target_date, datetime.min.time())
        day_end = datetime.combine(target_date + timedelta(days=1), datetime.min.time())
        return day_start, day_end

    @staticmethod
    def parse_time(time_str: str) -> tuple[int, int]:
        """
        Parse time string into hour and minute.

        Args:
            time_str: Time string in "HH:MM" format

        Returns:
            Tuple of (hour, minute)

        Raises:
            ValueError: If time string is invalid
        """
        parts = time_str.split(":")
        hour = int(parts[0])
        minute = int(parts[1])
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Time out of range: {time_str}")
        return hour, minute
