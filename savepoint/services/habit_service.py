"""
Habit management service.
Handles habit CRUD, completing and un-completing days, and the points,
check-in streak and badges that follow from each completion.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session

from savepoint.models import Habit, HabitCompletion, User
from savepoint.schemas import HabitCreate, HabitUpdate
from savepoint.database import transaction
from savepoint.achievements import DEFAULT_ACHIEVEMENTS, AchievementDefinition
from savepoint.repositories.habit_repository import HabitRepository
from savepoint.services.date_service import DateService, DateInput
from savepoint.services.habit_ledger import HabitLedger
from savepoint.services.points_service import calculate_habit_points, round_half_up
from savepoint.services.achievement_service import (
    AchievementContext, evaluate_achievements, is_perfect_day
)
from savepoint.exceptions import (
    HabitNotFoundException, NotAuthorizedException, ValidationException
)
from savepoint.constants import EARLY_BIRD_HOUR

logger = logging.getLogger("savepoint.habits")


@dataclass
class HabitCompletionResult:
    habit: Habit
    points_awarded: int
    total_points: int
    level: int
    previous_level: int
    new_badges: List[dict] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.level > self.previous_level


@dataclass
class HabitUncompletionResult:
    habit: Habit
    points_deducted: int
    total_points: int
    level: int
    previous_level: int


class HabitService:
    """Service for habit management"""

    def __init__(self, db: Session, catalog: Optional[Iterable[AchievementDefinition]] = None):
        self.db = db
        self.habit_repo = HabitRepository()
        self.date_service = DateService()
        self.catalog = tuple(catalog) if catalog is not None else DEFAULT_ACHIEVEMENTS

    # ===== Lookup =====

    def get_habit(self, user: User, habit_id: int) -> Habit:
        """
        Get a habit owned by ``user``.

        Raises:
            HabitNotFoundException: If no habit has this id
            NotAuthorizedException: If the habit belongs to someone else
        """
        habit = self.habit_repo.get_by_id(self.db, habit_id)
        if not habit:
            raise HabitNotFoundException(habit_id)
        if habit.user_id != user.id:
            raise NotAuthorizedException("habit", habit_id)
        return habit

    def list_habits(
        self,
        user: User,
        category: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> List[Habit]:
        return self.habit_repo.get_for_user(self.db, user.id, category, is_active)

    # ===== CRUD =====

    def create_habit(self, user: User, habit_data: HabitCreate, now: Optional[datetime] = None):
        """
        Create a habit at the end of the user's list.

        Creating habits counts towards the "habits" achievements, so the
        catalog is evaluated once the habit is staged.

        Returns:
            Tuple of (habit, newly awarded badges)
        """
        now = now or self.date_service.now()
        existing = self.habit_repo.get_for_user(self.db, user.id)

        with transaction(self.db):
            habit = Habit(user_id=user.id, **habit_data.model_dump())
            habit.order = len(existing)
            habit.created_at = now
            habit.updated_at = now
            self.habit_repo.add(self.db, habit)

            habit_count = self.habit_repo.count_active(self.db, user.id)
            new_badges = evaluate_achievements(user, habit_count, self.catalog, now=now)

        self.db.refresh(habit)
        logger.info(f"User {user.id} created habit {habit.id} '{habit.title}'")
        return habit, new_badges

    def update_habit(self, user: User, habit_id: int, habit_data: HabitUpdate) -> Habit:
        habit = self.get_habit(user, habit_id)
        update_data = habit_data.model_dump(exclude_unset=True)

        with transaction(self.db):
            for key, value in update_data.items():
                setattr(habit, key, value)

        self.db.refresh(habit)
        return habit

    def deactivate_habit(self, user: User, habit_id: int) -> Habit:
        """Archive a habit; its completions and stats are kept"""
        habit = self.get_habit(user, habit_id)
        with transaction(self.db):
            habit.is_active = False
        self.db.refresh(habit)
        return habit

    def delete_habit(self, user: User, habit_id: int) -> None:
        habit = self.get_habit(user, habit_id)
        with transaction(self.db):
            self.habit_repo.delete(self.db, habit)
        logger.info(f"User {user.id} deleted habit {habit_id}")

    def reorder_habits(self, user: User, ordered_ids: List[int]) -> List[Habit]:
        """
        Set each listed habit's order to its position in ``ordered_ids``.

        Every id is checked for ownership before anything is written.

        Raises:
            ValidationException: If an id is listed more than once
        """
        if len(set(ordered_ids)) != len(ordered_ids):
            raise ValidationException("habit_ids", "ids must be unique")
        habits = [self.get_habit(user, habit_id) for habit_id in ordered_ids]
        with transaction(self.db):
            for position, habit in enumerate(habits):
                habit.order = position
        return self.list_habits(user)

    # ===== Completions =====

    def complete_habit(
        self,
        user: User,
        habit_id: int,
        day: Optional[DateInput] = None,
        note: str = "",
        mood: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> HabitCompletionResult:
        """
        Complete a habit for a calendar day (today by default).

        One completion updates, in a single commit: the habit's ledger and
        streaks, the user's points and level, the user's check-in streak
        and any badges the new state unlocks.

        Raises:
            HabitNotFoundException, NotAuthorizedException
            AlreadyCompletedException: If the day is already completed
            InvalidDateException: If the day is malformed, in the future
                or before the habit existed
        """
        now = now or self.date_service.now()
        today = now.date()
        habit = self.get_habit(user, habit_id)
        target_day = self.date_service.to_calendar_date(day) if day is not None else today
        previous_level = user.level or 1

        with transaction(self.db):
            completion = HabitLedger.complete(habit, target_day, today, note, mood)

            points = calculate_habit_points(habit.category, habit.current_streak)
            completion.points_awarded = points
            user.add_points(points)
            user.check_in(now)

            context = self._achievement_context(user, now, today)
            habit_count = self.habit_repo.count_active(self.db, user.id)
            new_badges = evaluate_achievements(user, habit_count, self.catalog, context, now)

        logger.info(
            f"User {user.id} completed habit {habit_id} for {target_day.isoformat()}: "
            f"+{points} points (streak {habit.current_streak}, total {user.points})"
        )
        if user.level > previous_level:
            logger.info(f"User {user.id} leveled up: {previous_level} -> {user.level}")

        return HabitCompletionResult(
            habit=habit,
            points_awarded=points,
            total_points=user.points,
            level=user.level,
            previous_level=previous_level,
            new_badges=new_badges,
        )

    def uncomplete_habit(
        self,
        user: User,
        habit_id: int,
        day: Optional[DateInput] = None,
        now: Optional[datetime] = None
    ) -> HabitUncompletionResult:
        """
        Undo a completion and take back exactly the points it awarded.

        Badges already earned are kept.

        Raises:
            NotCompletedException: If the day has no completion
        """
        now = now or self.date_service.now()
        today = now.date()
        habit = self.get_habit(user, habit_id)
        target_day = self.date_service.to_calendar_date(day) if day is not None else today
        previous_level = user.level or 1

        with transaction(self.db):
            removed = HabitLedger.uncomplete(habit, target_day, today)
            deducted = -user.add_points(-(removed.points_awarded or 0))

        logger.info(
            f"User {user.id} un-completed habit {habit_id} for {target_day.isoformat()}: "
            f"-{deducted} points (total {user.points})"
        )

        return HabitUncompletionResult(
            habit=habit,
            points_deducted=deducted,
            total_points=user.points,
            level=user.level,
            previous_level=previous_level,
        )

    def _achievement_context(self, user: User, now: datetime, today: date) -> AchievementContext:
        active = self.habit_repo.get_active(self.db, user.id)
        perfect_day = is_perfect_day(active, today)
        return AchievementContext(
            early_bird=now.hour < EARLY_BIRD_HOUR,
            perfect_day=perfect_day,
        )

    # ===== Stats & history =====

    def get_stats(self, user: User, today: Optional[date] = None) -> dict:
        """
        Summary over the user's active habits.

        Returns:
            Dictionary with total_habits, completed_today, total_completions,
            average_streak, longest_streak and per-category counts
        """
        today = today or self.date_service.today()
        habits = self.habit_repo.get_active(self.db, user.id)

        by_category = {}
        for habit in habits:
            bucket = by_category.setdefault(habit.category, {"count": 0, "completions": 0})
            bucket["count"] += 1
            bucket["completions"] += habit.total_completions or 0

        streaks = [habit.current_streak or 0 for habit in habits]
        return {
            "total_habits": len(habits),
            "completed_today": sum(1 for habit in habits if habit.is_completed_on(today)),
            "total_completions": sum(habit.total_completions or 0 for habit in habits),
            "average_streak": round_half_up(sum(streaks) / len(streaks)) if streaks else 0,
            "longest_streak": max((habit.longest_streak or 0 for habit in habits), default=0),
            "by_category": by_category,
        }

    def get_history(
        self,
        user: User,
        habit_id: int,
        start: Optional[DateInput] = None,
        end: Optional[DateInput] = None,
        limit: Optional[int] = None
    ) -> List[HabitCompletion]:
        """Completions of one habit, newest first, optionally bounded by date"""
        if limit is not None and limit < 1:
            raise ValidationException("limit", "must be at least 1")
        habit = self.get_habit(user, habit_id)
        start_day = self.date_service.to_calendar_date(start) if start is not None else None
        end_day = self.date_service.to_calendar_date(end) if end is not None else None

        completions = self.habit_repo.get_completions_in_range(
            self.db, habit.id, start_day, end_day
        )
        completions.reverse()
        if limit is not None:
            completions = completions[:limit]
        return completions
