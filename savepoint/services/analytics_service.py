"""
Analytics service.
Read-only summaries over the habit completion ledger and task history:
heatmap, daily trends, category breakdown, weekly and monthly summaries
and personal records.
"""
import calendar
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Iterator, List, Optional
from sqlalchemy.orm import Session

from savepoint.models import Habit, User
from savepoint.repositories.habit_repository import HabitRepository
from savepoint.repositories.task_repository import TaskRepository
from savepoint.services.date_service import DateService, DateInput
from savepoint.services.habit_service import HabitService
from savepoint.services.points_service import round_half_up
from savepoint.exceptions import ValidationException
from savepoint.constants import (
    HEATMAP_DEFAULT_DAYS, TRENDS_DEFAULT_DAYS, TRENDS_MAX_DAYS, BEST_WEEK_DAYS,
    TASK_STATUS_COMPLETED
)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day from ``start`` to ``end`` inclusive"""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def percentage(part: int, whole: int) -> int:
    return round_half_up(part / whole * 100) if whole else 0


class AnalyticsService:
    """Service for habit and task analytics"""

    def __init__(self, db: Session):
        self.db = db
        self.habit_repo = HabitRepository()
        self.task_repo = TaskRepository()
        self.date_service = DateService()

    def _habits(self, user: User, habit_id: Optional[int] = None) -> List[Habit]:
        """One owned habit when ``habit_id`` is given, otherwise every active habit"""
        if habit_id is not None:
            return [HabitService(self.db).get_habit(user, habit_id)]
        return self.habit_repo.get_active(self.db, user.id)

    def _daily_counts(self, habits: List[Habit], start: date, end: date) -> Counter:
        completions = self.habit_repo.get_completions_for_habits(
            self.db, [habit.id for habit in habits], start, end
        )
        return Counter(completion.date for completion in completions)

    # ===== Heatmap & trends =====

    def get_heatmap(
        self,
        user: User,
        start: Optional[DateInput] = None,
        end: Optional[DateInput] = None,
        habit_id: Optional[int] = None,
        today: Optional[date] = None
    ) -> List[dict]:
        """
        Days with at least one completion, oldest first.

        Defaults to the year ending today. Each day lists the habits
        completed on it with the completion's note and mood.

        Raises:
            InvalidDateException: If a bound is malformed
            ValidationException: If start is after end
        """
        today = today or self.date_service.today()
        end_day = self.date_service.to_calendar_date(end) if end is not None else today
        start_day = (
            self.date_service.to_calendar_date(start) if start is not None
            else end_day - timedelta(days=HEATMAP_DEFAULT_DAYS)
        )
        if start_day > end_day:
            raise ValidationException("start", "must not be after end")

        habits = {habit.id: habit for habit in self._habits(user, habit_id)}
        completions = self.habit_repo.get_completions_for_habits(
            self.db, list(habits), start_day, end_day
        )

        days = {}
        for completion in completions:
            habit = habits[completion.habit_id]
            entry = days.setdefault(completion.date, {"date": completion.date, "count": 0, "habits": []})
            entry["count"] += 1
            entry["habits"].append({
                "id": habit.id,
                "title": habit.title,
                "icon": habit.icon,
                "note": completion.note or "",
                "mood": completion.mood,
            })
        return [days[day] for day in sorted(days)]

    def get_trends(
        self,
        user: User,
        days: int = TRENDS_DEFAULT_DAYS,
        habit_id: Optional[int] = None,
        today: Optional[date] = None
    ) -> List[dict]:
        """Completions and completion rate for each of the last ``days`` days and today"""
        if not 1 <= days <= TRENDS_MAX_DAYS:
            raise ValidationException("days", f"must be between 1 and {TRENDS_MAX_DAYS}")

        today = today or self.date_service.today()
        start = today - timedelta(days=days)
        habits = self._habits(user, habit_id)
        counts = self._daily_counts(habits, start, today)

        return [
            {
                "date": day,
                "completions": counts[day],
                "total_habits": len(habits),
                "completion_rate": percentage(counts[day], len(habits)),
            }
            for day in iter_days(start, today)
        ]

    # ===== Breakdowns =====

    def get_category_breakdown(self, user: User) -> dict:
        """Active habits and all tasks grouped by category"""
        habit_categories = {}
        for habit in self.habit_repo.get_active(self.db, user.id):
            bucket = habit_categories.setdefault(
                habit.category,
                {"count": 0, "completions": 0, "active_streaks": 0, "points": 0}
            )
            bucket["count"] += 1
            bucket["completions"] += habit.total_completions or 0
            if habit.current_streak:
                bucket["active_streaks"] += 1
            bucket["points"] += sum(c.points_awarded or 0 for c in habit.completions)

        task_categories = {}
        for task in self.task_repo.get_for_user(self.db, user.id):
            bucket = task_categories.setdefault(
                task.category,
                {"total": 0, "completed": 0, "in_progress": 0, "todo": 0}
            )
            bucket["total"] += 1
            bucket[task.status.replace("-", "_")] += 1

        return {"habits": habit_categories, "tasks": task_categories}

    # ===== Summaries =====

    def get_weekly_summary(self, user: User, today: Optional[date] = None) -> dict:
        """
        This week (Sunday to Saturday) at a glance.

        Returns:
            Dictionary with the week bounds, per-day habit completions,
            tasks completed during the week and the user's current level,
            points and check-in streak
        """
        today = today or self.date_service.today()
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        week_end = week_start + timedelta(days=6)

        habits = self.habit_repo.get_active(self.db, user.id)
        counts = self._daily_counts(habits, week_start, week_end)
        total_completions = sum(counts.values())
        possible = len(habits) * 7

        start_at, _ = self.date_service.get_day_range(week_start)
        _, end_at = self.date_service.get_day_range(week_end)
        tasks = self.task_repo.get_completed_between(self.db, user.id, start_at, end_at)

        return {
            "week_start": week_start,
            "week_end": week_end,
            "habits": {
                "total_completions": total_completions,
                "possible_completions": possible,
                "completion_rate": percentage(total_completions, possible),
                "daily_breakdown": [
                    {
                        "date": day,
                        "day_name": day.strftime("%a"),
                        "completions": counts[day],
                        "total_habits": len(habits),
                        "completion_rate": percentage(counts[day], len(habits)),
                    }
                    for day in iter_days(week_start, week_end)
                ],
            },
            "tasks": {
                "completed": len(tasks),
                "details": [
                    {
                        "id": task.id,
                        "title": task.title,
                        "priority": task.priority,
                        "completed_at": task.completed_at,
                    }
                    for task in tasks
                ],
            },
            "user": {
                "level": user.level,
                "points": user.points,
                "streak": user.streak_current or 0,
            },
        }

    def get_monthly_summary(
        self,
        user: User,
        year: Optional[int] = None,
        month: Optional[int] = None,
        today: Optional[date] = None
    ) -> dict:
        """Habit completions per day and task completion for one calendar month"""
        today = today or self.date_service.today()
        year = year or today.year
        month = month or today.month
        if not 1 <= month <= 12:
            raise ValidationException("month", "must be between 1 and 12")
        if not 1 <= year <= 9999:
            raise ValidationException("year", "must be between 1 and 9999")

        days_in_month = calendar.monthrange(year, month)[1]
        first = date(year, month, 1)
        last = date(year, month, days_in_month)

        habits = self.habit_repo.get_active(self.db, user.id)
        counts = self._daily_counts(habits, first, last)
        total_completions = sum(counts.values())

        start_at, _ = self.date_service.get_day_range(first)
        _, end_at = self.date_service.get_day_range(last)
        completed = self.task_repo.get_completed_between(self.db, user.id, start_at, end_at)
        all_tasks = self.task_repo.get_for_user(self.db, user.id)

        return {
            "month": first.strftime("%B %Y"),
            "start": first,
            "end": last,
            "habits": {
                "total_habits": len(habits),
                "total_completions": total_completions,
                "average_per_day": round_half_up(total_completions / days_in_month * 10) / 10,
                "daily_data": [
                    {"date": day, "day": day.day, "completions": counts[day]}
                    for day in iter_days(first, last)
                ],
            },
            "tasks": {
                "total": len(all_tasks),
                "completed": len(completed),
                "completion_rate": percentage(len(completed), len(all_tasks)),
            },
        }

    # ===== Records =====

    @staticmethod
    def _record_holder(habits: List[Habit], attribute: str) -> Optional[Habit]:
        """First habit with the highest positive value of ``attribute``"""
        best, best_value = None, 0
        for habit in habits:
            value = getattr(habit, attribute) or 0
            if value > best_value:
                best, best_value = habit, value
        return best

    @staticmethod
    def _best_week(habits: List[Habit]) -> dict:
        """Most completions in any run of consecutive calendar days, earliest on ties"""
        counts = Counter(completion.date for habit in habits for completion in habit.completions)
        best = {"count": 0, "start_date": None}
        for start in sorted(counts):
            total = sum(counts[start + timedelta(days=offset)] for offset in range(BEST_WEEK_DAYS))
            if total > best["count"]:
                best = {"count": total, "start_date": start}
        return best

    def get_personal_records(self, user: User, now: Optional[datetime] = None) -> dict:
        """Personal bests across every habit, archived ones included"""
        now = now or self.date_service.now()
        habits = self.habit_repo.get_for_user(self.db, user.id)
        tasks = self.task_repo.get_for_user(self.db, user.id)

        longest = self._record_holder(habits, "longest_streak")
        most_completed = self._record_holder(habits, "total_completions")
        oldest = min((h for h in habits if h.created_at), key=lambda h: h.created_at, default=None)

        return {
            "longest_streak": {
                "value": user.streak_longest or 0,
                "habit": {
                    "id": longest.id,
                    "title": longest.title,
                    "icon": longest.icon,
                    "streak": longest.longest_streak,
                } if longest else None,
            },
            "most_completed": {
                "id": most_completed.id,
                "title": most_completed.title,
                "icon": most_completed.icon,
                "completions": most_completed.total_completions,
            } if most_completed else None,
            "best_week": self._best_week(habits),
            "highest_level": user.level,
            "total_points": user.points,
            "total_badges": len(user.badges),
            "oldest_habit": {
                "title": oldest.title,
                "created_at": oldest.created_at,
                "days_active": (now - oldest.created_at).days,
            } if oldest else None,
            "total_habits": len(habits),
            "total_tasks": len(tasks),
            "completed_tasks": sum(1 for task in tasks if task.status == TASK_STATUS_COMPLETED),
        }
