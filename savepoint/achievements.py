"""
Achievement catalog.
Static definitions matched against live user state to unlock badges.
"""
from dataclasses import dataclass

from savepoint.constants import (
    REQUIREMENT_COUNT, REQUIREMENT_STREAK, REQUIREMENT_POINTS,
    REQUIREMENT_LEVEL, REQUIREMENT_CUSTOM, RARITY_COLORS
)


@dataclass(frozen=True)
class Requirement:
    type: str  # count, streak, points, level, custom
    value: int


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    category: str  # habits, streaks, points, levels, special
    icon: str
    requirement: Requirement
    rarity: str = "common"
    reward_points: int = 0
    reward_title: str = ""
    is_active: bool = True

    @property
    def rarity_color(self) -> str:
        return RARITY_COLORS.get(self.rarity, RARITY_COLORS["common"])


DEFAULT_ACHIEVEMENTS = (
    AchievementDefinition(
        id="first_habit", name="Getting Started",
        description="Create your first habit", category="habits", icon="🌱",
        requirement=Requirement(REQUIREMENT_COUNT, 1), rarity="common", reward_points=10,
    ),
    AchievementDefinition(
        id="habit_collector", name="Habit Collector",
        description="Create 5 habits", category="habits", icon="📚",
        requirement=Requirement(REQUIREMENT_COUNT, 5), rarity="common", reward_points=25,
    ),
    AchievementDefinition(
        id="habit_master", name="Habit Master",
        description="Create 10 habits", category="habits", icon="🎯",
        requirement=Requirement(REQUIREMENT_COUNT, 10), rarity="rare", reward_points=50,
    ),
    AchievementDefinition(
        id="streak_starter", name="Streak Starter",
        description="Reach a 3-day streak", category="streaks", icon="🔥",
        requirement=Requirement(REQUIREMENT_STREAK, 3), rarity="common", reward_points=15,
    ),
    AchievementDefinition(
        id="week_warrior", name="Week Warrior",
        description="Reach a 7-day streak", category="streaks", icon="⚡",
        requirement=Requirement(REQUIREMENT_STREAK, 7), rarity="rare", reward_points=35,
    ),
    AchievementDefinition(
        id="consistency_king", name="Consistency King",
        description="Reach a 30-day streak", category="streaks", icon="👑",
        requirement=Requirement(REQUIREMENT_STREAK, 30), rarity="epic", reward_points=100,
    ),
    AchievementDefinition(
        id="century_streak", name="Century Club",
        description="Reach a 100-day streak", category="streaks", icon="💯",
        requirement=Requirement(REQUIREMENT_STREAK, 100), rarity="legendary", reward_points=500,
    ),
    AchievementDefinition(
        id="point_rookie", name="Point Rookie",
        description="Earn 100 points", category="points", icon="⭐",
        requirement=Requirement(REQUIREMENT_POINTS, 100), rarity="common", reward_points=10,
    ),
    AchievementDefinition(
        id="point_veteran", name="Point Veteran",
        description="Earn 500 points", category="points", icon="🌟",
        requirement=Requirement(REQUIREMENT_POINTS, 500), rarity="rare", reward_points=25,
    ),
    AchievementDefinition(
        id="point_legend", name="Point Legend",
        description="Earn 1000 points", category="points", icon="💫",
        requirement=Requirement(REQUIREMENT_POINTS, 1000), rarity="epic", reward_points=50,
    ),
    AchievementDefinition(
        id="level_up", name="Level Up!",
        description="Reach level 2", category="levels", icon="📈",
        requirement=Requirement(REQUIREMENT_LEVEL, 2), rarity="common", reward_points=20,
    ),
    AchievementDefinition(
        id="rising_star", name="Rising Star",
        description="Reach level 5", category="levels", icon="🚀",
        requirement=Requirement(REQUIREMENT_LEVEL, 5), rarity="rare", reward_points=50,
    ),
    AchievementDefinition(
        id="elite_performer", name="Elite Performer",
        description="Reach level 10", category="levels", icon="💎",
        requirement=Requirement(REQUIREMENT_LEVEL, 10), rarity="epic", reward_points=100,
    ),
    AchievementDefinition(
        id="early_bird", name="Early Bird",
        description="Complete a habit before 8 AM", category="special", icon="🌅",
        requirement=Requirement(REQUIREMENT_CUSTOM, 1), rarity="common", reward_points=15,
    ),
    AchievementDefinition(
        id="perfect_day", name="Perfect Day",
        description="Complete all habits in a day", category="special", icon="✨",
        requirement=Requirement(REQUIREMENT_CUSTOM, 1), rarity="rare", reward_points=50,
    ),
)
