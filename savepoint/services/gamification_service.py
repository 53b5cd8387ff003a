"""
Gamification service.
Read side of the points/level/badge system plus on-demand achievement checks.
"""
import logging
from datetime import date, datetime
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session

from savepoint.models import User
from savepoint.database import transaction
from savepoint.achievements import DEFAULT_ACHIEVEMENTS, AchievementDefinition
from savepoint.repositories.user_repository import UserRepository
from savepoint.repositories.habit_repository import HabitRepository
from savepoint.services.date_service import DateService
from savepoint.services.points_service import progress_to_next_level, round_half_up
from savepoint.services.achievement_service import (
    AchievementContext, evaluate_achievements, is_perfect_day
)
from savepoint.constants import LEADERBOARD_DEFAULT_LIMIT, LEADERBOARD_MAX_LIMIT

logger = logging.getLogger("savepoint.gamification")


class GamificationService:
    """Service for points, levels, badges and the leaderboard"""

    def __init__(self, db: Session, catalog: Optional[Iterable[AchievementDefinition]] = None):
        self.db = db
        self.user_repo = UserRepository()
        self.habit_repo = HabitRepository()
        self.date_service = DateService()
        self.catalog = tuple(catalog) if catalog is not None else DEFAULT_ACHIEVEMENTS

    def get_progress(self, user: User) -> dict:
        return progress_to_next_level(user.points or 0, user.level or 1)

    def get_user_stats(self, user: User, today: Optional[date] = None) -> dict:
        """
        Profile summary: points, level, check-in streak, badge count,
        active habit totals and progress to the next level.

        ``completion_rate`` is the share of active habits completed today.
        """
        today = today or self.date_service.today()
        habits = self.habit_repo.get_active(self.db, user.id)
        total = len(habits)
        completed_today = sum(1 for habit in habits if habit.is_completed_on(today))

        return {
            "points": user.points,
            "level": user.level,
            "streak": user.streak,
            "badges": len(user.badges),
            "habits": {
                "total": total,
                "completions": sum(habit.total_completions or 0 for habit in habits),
                "longest_streak": max((habit.longest_streak or 0 for habit in habits), default=0),
                "completion_rate": round_half_up(completed_today / total * 100) if total else 0,
            },
            "progress": self.get_progress(user),
        }

    def get_badges(self, user: User) -> List[dict]:
        """Earned badges in the order they were earned"""
        return [
            {
                "id": badge.badge_id,
                "name": badge.name,
                "description": badge.description,
                "icon": badge.icon,
                "earned_at": badge.earned_at,
            }
            for badge in user.badges
        ]

    def list_achievements(self, user: User) -> List[dict]:
        """Every active catalog entry, flagged with whether ``user`` has earned it"""
        earned_at = {badge.badge_id: badge.earned_at for badge in user.badges}
        return [
            {
                "id": achievement.id,
                "name": achievement.name,
                "description": achievement.description,
                "category": achievement.category,
                "icon": achievement.icon,
                "rarity": achievement.rarity,
                "rarity_color": achievement.rarity_color,
                "requirement": {
                    "type": achievement.requirement.type,
                    "value": achievement.requirement.value,
                },
                "reward_points": achievement.reward_points,
                "earned": achievement.id in earned_at,
                "earned_at": earned_at.get(achievement.id),
            }
            for achievement in self.catalog
            if achievement.is_active
        ]

    def get_leaderboard(self, limit: int = LEADERBOARD_DEFAULT_LIMIT) -> List[dict]:
        """Users ranked by points, highest first"""
        limit = max(1, min(limit, LEADERBOARD_MAX_LIMIT))
        users = self.user_repo.get_top_by_points(self.db, limit)
        return [
            {
                "rank": index + 1,
                "username": user.username,
                "points": user.points,
                "level": user.level,
                "streak": user.streak_current,
            }
            for index, user in enumerate(users)
        ]

    def evaluate_achievements(self, user: User, now: Optional[datetime] = None) -> List[dict]:
        """
        Run the catalog against the user's current state and persist new badges.

        Custom flags come from stored state only: ``perfect_day`` when every
        active habit is completed today. ``early_bird`` belongs to the moment
        of a completion, so a manual check never sets it.
        """
        now = now or self.date_service.now()
        with transaction(self.db):
            active = self.habit_repo.get_active(self.db, user.id)
            context = AchievementContext(perfect_day=is_perfect_day(active, now.date()))
            new_badges = evaluate_achievements(user, len(active), self.catalog, context, now)

        if new_badges:
            logger.info(f"User {user.id} earned {len(new_badges)} badge(s) on manual check")
        return new_badges
