"""
Application constants.
Lookup tables for points, enums for categories and statuses, and config defaults.
"""
import os

# ===== LOGGING =====

DEFAULT_LOG_DIRECTORY_PROD = "/var/log/savepoint"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"

# ===== DATABASE =====

DEFAULT_DATABASE_URL = "sqlite:///./savepoint.db"

# ===== CORS =====

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "SAVEPOINT_CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000"
    ).split(",")
    if origin.strip()
]

# ===== SCHEDULER =====

DEFAULT_STREAK_RESET_TIME = "00:00"

# ===== HABITS =====

HABIT_CATEGORIES = (
    "health", "fitness", "productivity", "mindfulness",
    "learning", "social", "creative", "other",
)
HABIT_CATEGORY_DEFAULT = "other"

HABIT_FREQUENCY_DAILY = "daily"
HABIT_FREQUENCY_WEEKLY = "weekly"
HABIT_FREQUENCY_CUSTOM = "custom"
HABIT_FREQUENCIES = (HABIT_FREQUENCY_DAILY, HABIT_FREQUENCY_WEEKLY, HABIT_FREQUENCY_CUSTOM)

HABIT_TIMES_OF_DAY = ("morning", "afternoon", "evening", "anytime")

MOODS = ("great", "good", "okay", "bad", "terrible")

COMPLETION_NOTE_MAX_LENGTH = 200

# Habit points: round((HABIT_BASE_POINTS + min(streak * HABIT_STREAK_STEP, HABIT_STREAK_BONUS_CAP)) * mult)
HABIT_BASE_POINTS = 10
HABIT_STREAK_STEP = 2
HABIT_STREAK_BONUS_CAP = 50

CATEGORY_MULTIPLIERS = {
    "health": 1.2,
    "fitness": 1.2,
    "mindfulness": 1.1,
    "learning": 1.3,
    "productivity": 1.1,
    "social": 1.0,
    "creative": 1.1,
    "other": 1.0,
}
DEFAULT_CATEGORY_MULTIPLIER = 1.0

# Completing a habit before this local hour qualifies for "early_bird"
EARLY_BIRD_HOUR = 8

# ===== TASKS =====

TASK_STATUS_TODO = "todo"
TASK_STATUS_IN_PROGRESS = "in-progress"
TASK_STATUS_COMPLETED = "completed"
TASK_STATUSES = (TASK_STATUS_TODO, TASK_STATUS_IN_PROGRESS, TASK_STATUS_COMPLETED)

# from_status -> statuses reachable in one step
TASK_TRANSITIONS = {
    TASK_STATUS_TODO: (TASK_STATUS_IN_PROGRESS, TASK_STATUS_COMPLETED),
    TASK_STATUS_IN_PROGRESS: (TASK_STATUS_TODO, TASK_STATUS_COMPLETED),
    TASK_STATUS_COMPLETED: (TASK_STATUS_TODO,),
}

TASK_PRIORITIES = ("low", "medium", "high", "urgent")
TASK_PRIORITY_DEFAULT = "medium"

TASK_CATEGORIES = ("work", "personal", "health", "learning", "shopping", "other")

PRIORITY_POINTS = {
    "low": 5,
    "medium": 10,
    "high": 20,
    "urgent": 30,
}

PRIORITY_START_POINTS = {
    "low": 2,
    "medium": 3,
    "high": 5,
    "urgent": 7,
}

# Deadline modifiers
EARLY_POINTS_PER_DAY = 5
EARLY_BONUS_CAP = 50
ON_TIME_BONUS = 15
LATE_PENALTY_PER_DAY = 3

DEADLINE_STATUS_EARLY = "early"
DEADLINE_STATUS_ON_TIME = "on_time"
DEADLINE_STATUS_LATE = "late"
DEADLINE_STATUS_NO_DEADLINE = "no_deadline"

AWARD_TYPE_START = "start"
AWARD_TYPE_COMPLETE = "complete"

# ===== LEVELS =====

# level = floor(sqrt(points / POINTS_PER_LEVEL_UNIT)) + 1
POINTS_PER_LEVEL_UNIT = 100

# ===== ACHIEVEMENTS =====

REQUIREMENT_COUNT = "count"
REQUIREMENT_STREAK = "streak"
REQUIREMENT_POINTS = "points"
REQUIREMENT_LEVEL = "level"
REQUIREMENT_CUSTOM = "custom"

ACHIEVEMENT_CATEGORY_HABITS = "habits"

RARITY_COLORS = {
    "common": "#94a3b8",
    "rare": "#3b82f6",
    "epic": "#a855f7",
    "legendary": "#f59e0b",
}

# ===== LEADERBOARD =====

LEADERBOARD_DEFAULT_LIMIT = 10
LEADERBOARD_MAX_LIMIT = 100

# ===== QUERY WINDOWS =====

UPCOMING_DEFAULT_DAYS = 7
UPCOMING_MAX_DAYS = 365
HISTORY_MAX_LIMIT = 1000

# ===== ANALYTICS =====

HEATMAP_DEFAULT_DAYS = 365
TRENDS_DEFAULT_DAYS = 30
TRENDS_MAX_DAYS = 365
BEST_WEEK_DAYS = 7
