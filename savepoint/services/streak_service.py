"""
Streak calculation.

Two paths produce the same numbers:
- calculate_streaks replays every completion date from scratch and is
  used after any insert or delete at an arbitrary date.
- extend_streak is the cheap check for the common "completed today,
  newest entry" append.
"""
from datetime import date, timedelta
from typing import Iterable, NamedTuple, Optional

from savepoint.services.date_service import DateService


class StreakResult(NamedTuple):
    current: int
    longest: int


def calculate_streaks(dates: Iterable[date], today: date) -> StreakResult:
    """
    Compute current and longest consecutive-day streaks.

    Args:
        dates: Completion days (sorted or not; duplicates are ignored)
        today: Calendar day the current streak is judged against

    Returns:
        StreakResult. ``current`` is the run ending at the newest
        completion if that completion is today or yesterday, else 0.
    """
    days = sorted(set(dates))
    if not days:
        return StreakResult(0, 0)

    run = 1
    longest = 1
    for previous, current in zip(days, days[1:]):
        if DateService.days_between(previous, current) == 1:
            run += 1
        else:
            longest = max(longest, run)
            run = 1
    longest = max(longest, run)

    current = run if DateService.is_today_or_yesterday(days[-1], today) else 0
    return StreakResult(current, longest)


def extend_streak(
    previous_last: Optional[date],
    current: int,
    longest: int,
    new_day: date
) -> StreakResult:
    """
    Streaks after appending ``new_day`` as the newest completion.

    Only valid when ``new_day`` is later than every existing completion
    and ``current`` was computed while ``previous_last`` was live.
    """
    if previous_last is not None and new_day - previous_last == timedelta(days=1):
        current = (current or 0) + 1
    else:
        current = 1
    return StreakResult(current, max(longest or 0, current))
