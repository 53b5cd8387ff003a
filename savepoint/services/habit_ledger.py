"""
Habit completion ledger.
Owns a habit's completion entries and keeps the cached stats in step with them.

Invariants:
- at most one completion per calendar day
- completions stay sorted ascending by date
- stats are recomputable from completions alone
"""
from datetime import date, timedelta
from typing import Optional

from savepoint.models import Habit, HabitCompletion
from savepoint.exceptions import (
    AlreadyCompletedException, NotCompletedException, InvalidDateException
)
from savepoint.services.date_service import DateService
from savepoint.services.streak_service import calculate_streaks, extend_streak


class HabitLedger:
    """Mutations of a habit's completion list"""

    @staticmethod
    def creation_day(habit: Habit) -> Optional[date]:
        if habit.created_at is None:
            return None
        return habit.created_at.date()

    @staticmethod
    def validate_day(habit: Habit, day: date, today: date) -> None:
        """
        Raises:
            InvalidDateException: If the habit did not exist yet on ``day``
                or ``day`` is in the future
        """
        created = HabitLedger.creation_day(habit)
        if created is not None and day < created:
            raise InvalidDateException(
                day.isoformat(), f"habit was created on {created.isoformat()}"
            )
        if day > today:
            raise InvalidDateException(day.isoformat(), "date is in the future")

    @staticmethod
    def complete(
        habit: Habit,
        day: date,
        today: date,
        note: str = "",
        mood: Optional[str] = None
    ) -> HabitCompletion:
        """
        Record a completion for a calendar day.

        Args:
            habit: Habit to complete
            day: Calendar day being completed
            today: Current calendar day
            note: Optional note (max 200 chars)
            mood: Optional mood

        Returns:
            The new completion entry

        Raises:
            AlreadyCompletedException: If ``day`` already has an entry
            InvalidDateException: If ``day`` is outside the habit's lifetime
        """
        HabitLedger.validate_day(habit, day, today)

        if habit.is_completed_on(day):
            raise AlreadyCompletedException(habit.id, day)

        previous_last = habit.completions[-1].date if habit.completions else None

        completion = HabitCompletion(date=day, note=note or "", mood=mood)
        habit.completions.append(completion)
        habit.completions.sort(key=lambda c: c.date)

        habit.total_completions = (habit.total_completions or 0) + 1
        if habit.last_completed_date is None or day > habit.last_completed_date:
            habit.last_completed_date = day

        if HabitLedger._can_extend(habit, previous_last, day, today):
            current, longest = extend_streak(
                previous_last, habit.current_streak, habit.longest_streak, day
            )
            habit.current_streak = current
            habit.longest_streak = longest
        else:
            HabitLedger.recalculate_streaks(habit, today)

        completion.streak_at_completion = habit.current_streak
        return completion

    @staticmethod
    def _can_extend(
        habit: Habit,
        previous_last: Optional[date],
        day: date,
        today: date
    ) -> bool:
        """Whether the append-today shortcut gives the same answer as a full replay"""
        if day != today:
            return False
        if previous_last is None:
            return True
        if previous_last >= day:
            return False
        if previous_last == day - timedelta(days=1):
            # Cached streak must have been live when yesterday was recorded
            return (habit.current_streak or 0) > 0
        return True

    @staticmethod
    def uncomplete(habit: Habit, day: date, today: date) -> HabitCompletion:
        """
        Remove the completion for a calendar day.

        Returns:
            The removed completion entry (carries the points it was worth)

        Raises:
            NotCompletedException: If ``day`` has no entry
        """
        completion = habit.completion_for(day)
        if completion is None:
            raise NotCompletedException(habit.id, day)

        habit.completions.remove(completion)
        habit.total_completions = max(0, (habit.total_completions or 0) - 1)
        habit.last_completed_date = habit.completions[-1].date if habit.completions else None
        HabitLedger.recalculate_streaks(habit, today)
        return completion

    @staticmethod
    def recalculate_streaks(habit: Habit, today: date) -> None:
        """Replay every completion to rebuild current and longest streak"""
        result = calculate_streaks(habit.completion_dates(), today)
        habit.current_streak = result.current
        habit.longest_streak = result.longest

    @staticmethod
    def rebuild_stats(habit: Habit, today: Optional[date] = None) -> None:
        """Recompute every cached stat from the completion list"""
        today = today or DateService.today()
        dates = habit.completion_dates()
        habit.total_completions = len(dates)
        habit.last_completed_date = dates[-1] if dates else None
        HabitLedger.recalculate_streaks(habit, today)
