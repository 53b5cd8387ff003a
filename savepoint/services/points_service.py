"""
Points and level calculation service.
Handles habit point awards, the level curve and progress towards the next level.

All functions here are pure arithmetic over values already in memory.
"""
import math
from typing import Optional

from savepoint.constants import (
    HABIT_BASE_POINTS,
    HABIT_STREAK_STEP,
    HABIT_STREAK_BONUS_CAP,
    CATEGORY_MULTIPLIERS,
    DEFAULT_CATEGORY_MULTIPLIER,
    POINTS_PER_LEVEL_UNIT,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives"""
    return int(math.floor(value + 0.5))


def calculate_habit_points(category: Optional[str], streak: int) -> int:
    """
    Calculate points for a single habit completion.

    Formula: round((10 + min(streak * 2, 50)) * CategoryMultiplier)

    Args:
        category: Habit category (unknown categories use 1.0)
        streak: Habit's current streak including this completion

    Returns:
        Points earned
    """
    streak_bonus = min(max(streak, 0) * HABIT_STREAK_STEP, HABIT_STREAK_BONUS_CAP)
    multiplier = CATEGORY_MULTIPLIERS.get(category, DEFAULT_CATEGORY_MULTIPLIER)
    return round_half_up((HABIT_BASE_POINTS + streak_bonus) * multiplier)


def level_for_points(points: int) -> int:
    """
    Level reached with the given cumulative points.

    level = floor(sqrt(points / 100)) + 1

    Level 1: 0-99, Level 2: 100-399, Level 3: 400-899, ...
    """
    points = max(0, int(points))
    # isqrt(p // 100) == floor(sqrt(p / 100)) for integers, without float error
    return math.isqrt(points // POINTS_PER_LEVEL_UNIT) + 1


def points_for_level(level: int) -> int:
    """Cumulative points at which a level starts: (level - 1)^2 * 100"""
    return (level - 1) ** 2 * POINTS_PER_LEVEL_UNIT


def progress_to_next_level(points: int, level: int) -> dict:
    """
    Progress inside the current level.

    Args:
        points: User's cumulative points
        level: User's current level

    Returns:
        Dictionary with current/next level, points inside the level,
        points the level spans and completion percentage
    """
    level_floor = points_for_level(level)
    next_floor = points_for_level(level + 1)
    points_needed = next_floor - level_floor
    points_in_level = points - level_floor

    return {
        "current_level": level,
        "next_level": level + 1,
        "points_in_level": max(0, points_in_level),
        "points_needed": points_needed,
        "percentage": round_half_up(points_in_level / points_needed * 100),
    }


def add_points(user, delta: int) -> int:
    """
    Apply a point delta to a user and resync their level.

    Points never go below zero. Level is recomputed on every call,
    so no caller can change points without the level following.

    Args:
        user: Object with ``points`` and ``level`` attributes
        delta: Points to add (negative when reversing an award)

    Returns:
        The delta actually applied after flooring at zero
    """
    before = user.points or 0
    user.points = max(0, before + delta)
    user.level = level_for_points(user.points)
    return user.points - before
