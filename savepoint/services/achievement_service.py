"""
Achievement evaluation.
Matches the achievement catalog against a user's stats and awards each badge at most once.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from savepoint.achievements import AchievementDefinition
from savepoint.constants import (
    REQUIREMENT_COUNT, REQUIREMENT_STREAK, REQUIREMENT_POINTS,
    REQUIREMENT_LEVEL, REQUIREMENT_CUSTOM, ACHIEVEMENT_CATEGORY_HABITS
)

logger = logging.getLogger("savepoint.achievements")


@dataclass
class AchievementContext:
    """Flags the caller derives from time of day and today's completions"""
    early_bird: bool = False
    perfect_day: bool = False


# Custom achievements keyed by the context flag that unlocks them
CUSTOM_ACHIEVEMENT_FLAGS = {
    "early_bird": "early_bird",
    "perfect_day": "perfect_day",
}


def is_perfect_day(habits, day) -> bool:
    """True when there is at least one habit and every one is completed on ``day``"""
    return bool(habits) and all(habit.is_completed_on(day) for habit in habits)


def is_eligible(
    achievement: AchievementDefinition,
    user,
    habit_count: int,
    context: AchievementContext
) -> bool:
    """Check a single achievement's requirement against the user's state"""
    requirement = achievement.requirement

    if requirement.type == REQUIREMENT_COUNT:
        if achievement.category != ACHIEVEMENT_CATEGORY_HABITS:
            return False
        return habit_count >= requirement.value

    if requirement.type == REQUIREMENT_STREAK:
        return (
            (user.streak_current or 0) >= requirement.value
            or (user.streak_longest or 0) >= requirement.value
        )

    if requirement.type == REQUIREMENT_POINTS:
        return (user.points or 0) >= requirement.value

    if requirement.type == REQUIREMENT_LEVEL:
        return (user.level or 1) >= requirement.value

    if requirement.type == REQUIREMENT_CUSTOM:
        flag = CUSTOM_ACHIEVEMENT_FLAGS.get(achievement.id)
        return bool(flag and getattr(context, flag, False))

    return False


def evaluate_achievements(
    user,
    habit_count: int,
    catalog: Iterable[AchievementDefinition],
    context: Optional[AchievementContext] = None,
    now: Optional[datetime] = None
) -> List[dict]:
    """
    Award every newly qualified badge.

    The catalog is scanned once, in order. Reward points go through
    ``user.add_points`` so a badge can itself trigger a level-up, and
    can satisfy a points/level achievement later in the same scan.

    Args:
        user: User receiving badges (mutated in place)
        habit_count: Number of the user's active habits
        catalog: Achievement definitions
        context: Custom achievement flags
        now: Award time

    Returns:
        List of newly awarded badges (empty if none)
    """
    context = context or AchievementContext()
    now = now or datetime.now()
    earned = user.badge_ids
    new_badges = []

    for achievement in catalog:
        if not achievement.is_active or achievement.id in earned:
            continue

        if not is_eligible(achievement, user, habit_count, context):
            continue

        if not user.award_badge(
            badge_id=achievement.id,
            name=achievement.name,
            description=achievement.description,
            icon=achievement.icon,
            earned_at=now
        ):
            continue

        earned.add(achievement.id)
        if achievement.reward_points > 0:
            user.add_points(achievement.reward_points)

        logger.info(
            f"User {user.id} earned badge '{achievement.id}' "
            f"(+{achievement.reward_points} points, level {user.level})"
        )
        new_badges.append({
            "id": achievement.id,
            "name": achievement.name,
            "description": achievement.description,
            "icon": achievement.icon,
            "earned_at": now,
        })

    return new_badges
