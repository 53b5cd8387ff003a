from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Text, JSON,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime

from savepoint.database import Base
from savepoint.services.points_service import add_points, level_for_points
from savepoint.constants import (
    HABIT_CATEGORY_DEFAULT, HABIT_FREQUENCY_DAILY,
    TASK_STATUS_TODO, TASK_STATUS_COMPLETED, TASK_PRIORITY_DEFAULT
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.now)

    # Gamification
    points = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=1, nullable=False)  # Always level_for_points(points)

    # Check-in streak (calendar days with any habit completion)
    streak_current = Column(Integer, default=0, nullable=False)
    streak_longest = Column(Integer, default=0, nullable=False)
    last_check_in = Column(DateTime, nullable=True)

    badges = relationship(
        "UserBadge", back_populates="user",
        cascade="all, delete-orphan", order_by="UserBadge.earned_at"
    )
    habits = relationship("Habit", back_populates="user", cascade="all, delete-orphan")
    tasks = relationship("Task", back_populates="user", cascade="all, delete-orphan")

    def calculate_level(self) -> int:
        """Resync level from points"""
        self.level = level_for_points(self.points or 0)
        return self.level

    def add_points(self, delta: int) -> int:
        """Add (or deduct) points and recompute level in the same step"""
        return add_points(self, delta)

    @property
    def badge_ids(self) -> set:
        return {badge.badge_id for badge in self.badges}

    def has_badge(self, badge_id: str) -> bool:
        return badge_id in self.badge_ids

    def award_badge(self, badge_id: str, name: str, description: str,
                    icon: str, earned_at: datetime) -> bool:
        """
        Append a badge unless the user already holds it.

        Returns:
            True if the badge was added
        """
        if self.has_badge(badge_id):
            return False
        self.badges.append(UserBadge(
            badge_id=badge_id,
            name=name,
            description=description,
            icon=icon,
            earned_at=earned_at
        ))
        return True

    def check_in(self, now: datetime) -> None:
        """
        Update the check-in streak for activity at ``now``.

        Same calendar day: no change. Next calendar day: streak grows.
        Any longer gap: streak restarts at 1.
        """
        if self.last_check_in is None:
            self.streak_current = 1
        else:
            days_since = (now.date() - self.last_check_in.date()).days
            if days_since <= 0:
                return
            if days_since == 1:
                self.streak_current = (self.streak_current or 0) + 1
            else:
                self.streak_current = 1

        self.last_check_in = now
        if self.streak_current > (self.streak_longest or 0):
            self.streak_longest = self.streak_current

    @property
    def streak(self) -> dict:
        return {
            "current": self.streak_current,
            "longest": self.streak_longest,
            "last_check_in": self.last_check_in,
        }


class UserBadge(Base):
    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id = Column(String(100), nullable=False)  # Achievement id, e.g. "week_warrior"
    name = Column(String(255), nullable=False)
    description = Column(String(500), nullable=True)
    icon = Column(String(16), nullable=True)
    earned_at = Column(DateTime, default=datetime.now)

    user = relationship("User", back_populates="badges")


class Habit(Base):
    __tablename__ = "habits"
    __table_args__ = (
        Index("ix_habits_user_active", "user_id", "is_active"),
        Index("ix_habits_user_order", "user_id", "order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(100), nullable=False)
    description = Column(String(500), default="")
    category = Column(String(20), default=HABIT_CATEGORY_DEFAULT)
    frequency = Column(String(20), default=HABIT_FREQUENCY_DAILY)  # daily, weekly, custom
    schedule_days = Column(JSON, nullable=True)  # Weekdays for weekly habits, 0 = Sunday
    time_of_day = Column(String(20), default="anytime")
    color = Column(String(20), default="#8b5cf6")
    icon = Column(String(16), default="🎯")
    order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)

    # Cached stats, always recomputable from completions
    total_completions = Column(Integer, default=0)
    current_streak = Column(Integer, default=0)
    longest_streak = Column(Integer, default=0)
    last_completed_date = Column(Date, nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    user = relationship("User", back_populates="habits")
    completions = relationship(
        "HabitCompletion", back_populates="habit",
        cascade="all, delete-orphan", order_by="HabitCompletion.date"
    )

    def completion_for(self, day):
        """Completion entry for a calendar day, or None"""
        for completion in self.completions:
            if completion.date == day:
                return completion
        return None

    def is_completed_on(self, day) -> bool:
        return self.completion_for(day) is not None

    def completion_dates(self) -> list:
        return sorted(completion.date for completion in self.completions)

    @property
    def stats(self) -> dict:
        return {
            "total_completions": self.total_completions or 0,
            "current_streak": self.current_streak or 0,
            "longest_streak": self.longest_streak or 0,
            "last_completed_date": self.last_completed_date,
        }


class HabitCompletion(Base):
    __tablename__ = "habit_completions"
    __table_args__ = (
        UniqueConstraint("habit_id", "date", name="uq_habit_completions_habit_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    habit_id = Column(Integer, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False, index=True)  # Calendar day, no time component
    note = Column(String(200), default="")
    mood = Column(String(20), nullable=True)  # great, good, okay, bad, terrible

    # What this completion was worth, so undo deducts exactly this amount
    points_awarded = Column(Integer, default=0)
    streak_at_completion = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.now)

    habit = relationship("Habit", back_populates="completions")


class XPAwardGuard:
    """
    One-way gates for task XP.

    Each side effect (start bonus, completion points) fires at most once
    per task. Nothing ever resets a gate.
    """

    def __init__(self, task: "Task"):
        self.task = task

    @property
    def start(self) -> bool:
        return bool(self.task.xp_awarded_start)

    @property
    def completion(self) -> bool:
        return bool(self.task.xp_awarded_completion)

    def claim_start(self) -> bool:
        """Close the start gate. Returns False if it was already closed"""
        if self.start:
            return False
        self.task.xp_awarded_start = True
        return True

    def claim_completion(self) -> bool:
        """Close the completion gate. Returns False if it was already closed"""
        if self.completion:
            return False
        self.task.xp_awarded_completion = True
        return True

    def as_dict(self) -> dict:
        return {"start": self.start, "completion": self.completion}


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_status", "user_id", "status"),
        Index("ix_tasks_user_due_date", "user_id", "due_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(200), nullable=False)
    description = Column(Text, default="")
    status = Column(String(20), default=TASK_STATUS_TODO)  # todo, in-progress, completed
    priority = Column(String(20), default=TASK_PRIORITY_DEFAULT)  # low, medium, high, urgent
    category = Column(String(20), default="other")
    due_date = Column(DateTime, nullable=True)
    estimated_time = Column(Integer, nullable=True)  # Minutes
    tags = Column(JSON, nullable=True)
    color = Column(String(20), default="#6366f1")
    completed_at = Column(DateTime, nullable=True)

    xp_awarded_start = Column(Boolean, default=False, nullable=False)
    xp_awarded_completion = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    user = relationship("User", back_populates="tasks")
    subtasks = relationship(
        "Subtask", back_populates="task",
        cascade="all, delete-orphan", order_by="Subtask.position"
    )

    @property
    def xp_awarded(self) -> XPAwardGuard:
        return XPAwardGuard(self)

    def is_overdue_at(self, now: datetime) -> bool:
        if not self.due_date or self.status == TASK_STATUS_COMPLETED:
            return False
        return now > self.due_date

    @property
    def is_overdue(self) -> bool:
        return self.is_overdue_at(datetime.now())

    @property
    def subtask_progress(self) -> int:
        """Percentage of completed subtasks (0 when there are none)"""
        if not self.subtasks:
            return 0
        done = sum(1 for subtask in self.subtasks if subtask.completed)
        return int(done * 100 / len(self.subtasks) + 0.5)

    def subtask_by_id(self, subtask_id: int):
        for subtask in self.subtasks:
            if subtask.id == subtask_id:
                return subtask
        return None


class Subtask(Base):
    __tablename__ = "subtasks"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)
    position = Column(Integer, default=0)

    task = relationship("Task", back_populates="subtasks")

    def toggle(self, now: datetime) -> None:
        self.completed = not self.completed
        self.completed_at = now if self.completed else None
