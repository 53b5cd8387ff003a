from pydantic import BaseModel, Field, field_validator
from datetime import datetime, date
from typing import Optional, List, Literal

HabitCategory = Literal[
    "health", "fitness", "productivity", "mindfulness",
    "learning", "social", "creative", "other"
]
HabitFrequency = Literal["daily", "weekly", "custom"]
TimeOfDay = Literal["morning", "afternoon", "evening", "anytime"]
Mood = Literal["great", "good", "okay", "bad", "terrible"]
TaskStatus = Literal["todo", "in-progress", "completed"]
TaskPriority = Literal["low", "medium", "high", "urgent"]
TaskCategory = Literal["work", "personal", "health", "learning", "shopping", "other"]
CalendarDay = date


def reject_null(value):
    """Partial updates may omit a field but not clear a required one"""
    if value is None:
        raise ValueError("may not be null")
    return value


# User schemas
class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[a-zA-Z0-9_-]+$")


class StreakResponse(BaseModel):
    current: int = 0
    longest: int = 0
    last_check_in: Optional[datetime] = None


class BadgeResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    earned_at: datetime


class GamificationResponse(BaseModel):
    points: int
    level: int
    streak: StreakResponse
    badges: List[BadgeResponse]


class UserResponse(BaseModel):
    id: int
    username: str
    created_at: datetime
    gamification: GamificationResponse


# Habit schemas
class HabitBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    category: HabitCategory = "other"
    frequency: HabitFrequency = "daily"
    schedule_days: Optional[List[int]] = None  # 0 = Sunday ... 6 = Saturday
    time_of_day: TimeOfDay = "anytime"
    color: str = Field(default="#8b5cf6", max_length=20)
    icon: str = Field(default="🎯", max_length=16)


class HabitCreate(HabitBase):
    pass


class HabitUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[HabitCategory] = None
    frequency: Optional[HabitFrequency] = None
    schedule_days: Optional[List[int]] = None
    time_of_day: Optional[TimeOfDay] = None
    color: Optional[str] = Field(None, max_length=20)
    icon: Optional[str] = Field(None, max_length=16)
    order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @field_validator(
        "title", "description", "category", "frequency", "time_of_day",
        "color", "icon", "order", "is_active"
    )
    @classmethod
    def required_fields_not_null(cls, value):
        return reject_null(value)


class HabitReorder(BaseModel):
    habit_ids: List[int] = Field(..., min_length=1)


class CompletionRequest(BaseModel):
    date: Optional[str] = None  # YYYY-MM-DD or ISO timestamp, defaults to today
    note: str = Field(default="", max_length=200)
    mood: Optional[Mood] = None


class UncompletionRequest(BaseModel):
    date: Optional[str] = None


class CompletionResponse(BaseModel):
    date: CalendarDay
    note: Optional[str] = ""
    mood: Optional[str] = None
    points_awarded: int = 0
    streak_at_completion: int = 0

    class Config:
        from_attributes = True


class HabitStatsResponse(BaseModel):
    total_completions: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_completed_date: Optional[date] = None


class HabitResponse(HabitBase):
    id: int
    user_id: int
    order: int = 0
    is_active: bool = True
    stats: HabitStatsResponse
    completions: List[CompletionResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HabitCreateResponse(BaseModel):
    habit: HabitResponse
    badges: List[BadgeResponse] = []


class PointsSummary(BaseModel):
    earned: int = 0
    deducted: int = 0
    total: int
    level: int
    leveled_up: bool = False
    previous_level: int


class HabitCompletionResponse(BaseModel):
    habit: HabitResponse
    points: PointsSummary
    badges: List[BadgeResponse] = []


class HabitUncompletionResponse(BaseModel):
    habit: HabitResponse
    points: PointsSummary


class CategoryStats(BaseModel):
    count: int = 0
    completions: int = 0


class HabitStatsSummary(BaseModel):
    total_habits: int
    completed_today: int
    total_completions: int
    average_streak: int
    longest_streak: int
    by_category: dict[str, CategoryStats]


# Task schemas
class SubtaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    completed: bool = False


class SubtaskResponse(BaseModel):
    id: int
    title: str
    completed: bool = False
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    priority: TaskPriority = "medium"
    category: TaskCategory = "other"
    due_date: Optional[datetime] = None
    estimated_time: Optional[int] = Field(None, ge=0)  # Minutes
    tags: List[str] = []
    color: str = Field(default="#6366f1", max_length=20)


class TaskCreate(TaskBase):
    subtasks: List[SubtaskCreate] = []


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category: Optional[TaskCategory] = None
    due_date: Optional[datetime] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    color: Optional[str] = Field(None, max_length=20)
    subtasks: Optional[List[SubtaskCreate]] = None

    @field_validator("title", "description", "status", "priority", "category", "color")
    @classmethod
    def required_fields_not_null(cls, value):
        return reject_null(value)


class TaskTransition(BaseModel):
    status: TaskStatus


class XPAwardedResponse(BaseModel):
    start: bool = False
    completion: bool = False

    class Config:
        from_attributes = True


class TaskResponse(TaskBase):
    id: int
    user_id: int
    status: str
    tags: Optional[List[str]] = None
    subtasks: List[SubtaskResponse] = []
    subtask_progress: int = 0
    is_overdue: bool = False
    completed_at: Optional[datetime] = None
    xp_awarded: XPAwardedResponse
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DeadlineBreakdown(BaseModel):
    base: int
    deadline_modifier: int
    days_early: int = 0
    days_late: int = 0
    status: str


class TaskPointsSummary(BaseModel):
    earned: int
    type: str  # start or complete
    priority: Optional[str] = None
    breakdown: Optional[DeadlineBreakdown] = None
    total: int
    level: int
    leveled_up: bool = False
    previous_level: int


class TaskTransitionResponse(BaseModel):
    task: TaskResponse
    points: Optional[TaskPointsSummary] = None
    badges: List[BadgeResponse] = []


class TaskPriorityCounts(BaseModel):
    urgent: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class TaskCategoryStats(BaseModel):
    total: int = 0
    completed: int = 0


class TaskStatsSummary(BaseModel):
    total: int
    completed: int
    in_progress: int
    todo: int
    overdue: int
    by_priority: TaskPriorityCounts
    by_category: dict[str, TaskCategoryStats]


# Gamification schemas
class LevelProgressResponse(BaseModel):
    current_level: int
    next_level: int
    points_in_level: int
    points_needed: int
    percentage: int


class HabitSummary(BaseModel):
    total: int
    completions: int
    longest_streak: int
    completion_rate: int


class UserStatsResponse(BaseModel):
    points: int
    level: int
    streak: StreakResponse
    badges: int
    habits: HabitSummary
    progress: LevelProgressResponse


class RequirementResponse(BaseModel):
    type: str
    value: int


class AchievementResponse(BaseModel):
    id: str
    name: str
    description: str
    category: str
    icon: str
    rarity: str
    rarity_color: str
    requirement: RequirementResponse
    reward_points: int = 0
    earned: bool = False
    earned_at: Optional[datetime] = None


class LeaderboardEntry(BaseModel):
    rank: int
    username: str
    points: int
    level: int
    streak: int




# Analytics schemas
class HeatmapHabit(BaseModel):
    id: int
    title: str
    icon: Optional[str] = None
    note: str = ""
    mood: Optional[str] = None


class HeatmapDay(BaseModel):
    date: CalendarDay
    count: int
    habits: List[HeatmapHabit]


class TrendDay(BaseModel):
    date: CalendarDay
    completions: int
    total_habits: int
    completion_rate: int


class HabitCategoryAnalytics(BaseModel):
    count: int = 0
    completions: int = 0
    active_streaks: int = 0
    points: int = 0


class TaskCategoryAnalytics(BaseModel):
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    todo: int = 0


class CategoryBreakdownResponse(BaseModel):
    habits: dict[str, HabitCategoryAnalytics]
    tasks: dict[str, TaskCategoryAnalytics]


class WeekDay(BaseModel):
    date: CalendarDay
    day_name: str
    completions: int
    total_habits: int
    completion_rate: int


class WeeklyHabits(BaseModel):
    total_completions: int
    possible_completions: int
    completion_rate: int
    daily_breakdown: List[WeekDay]


class CompletedTaskSummary(BaseModel):
    id: int
    title: str
    priority: str
    completed_at: Optional[datetime] = None


class WeeklyTasks(BaseModel):
    completed: int
    details: List[CompletedTaskSummary]


class WeeklyUser(BaseModel):
    level: int
    points: int
    streak: int


class WeeklySummaryResponse(BaseModel):
    week_start: CalendarDay
    week_end: CalendarDay
    habits: WeeklyHabits
    tasks: WeeklyTasks
    user: WeeklyUser


class MonthDay(BaseModel):
    date: CalendarDay
    day: int
    completions: int


class MonthlyHabits(BaseModel):
    total_habits: int
    total_completions: int
    average_per_day: float
    daily_data: List[MonthDay]


class MonthlyTasks(BaseModel):
    total: int
    completed: int
    completion_rate: int


class MonthlySummaryResponse(BaseModel):
    month: str
    start: CalendarDay
    end: CalendarDay
    habits: MonthlyHabits
    tasks: MonthlyTasks


class StreakRecordHabit(BaseModel):
    id: int
    title: str
    icon: Optional[str] = None
    streak: int


class StreakRecord(BaseModel):
    value: int
    habit: Optional[StreakRecordHabit] = None


class CompletionRecord(BaseModel):
    id: int
    title: str
    icon: Optional[str] = None
    completions: int


class BestWeekRecord(BaseModel):
    count: int
    start_date: Optional[CalendarDay] = None


class OldestHabitRecord(BaseModel):
    title: str
    created_at: datetime
    days_active: int


class PersonalRecordsResponse(BaseModel):
    longest_streak: StreakRecord
    most_completed: Optional[CompletionRecord] = None
    best_week: BestWeekRecord
    highest_level: int
    total_points: int
    total_badges: int
    oldest_habit: Optional[OldestHabitRecord] = None
    total_habits: int
    total_tasks: int
    completed_tasks: int
