"""
Task points calculation.
Priority base points plus a bonus or penalty for finishing before or after the due date.
"""
import math
from datetime import datetime
from typing import NamedTuple, Optional

from savepoint.constants import (
    PRIORITY_POINTS,
    PRIORITY_START_POINTS,
    TASK_PRIORITY_DEFAULT,
    EARLY_POINTS_PER_DAY,
    EARLY_BONUS_CAP,
    ON_TIME_BONUS,
    LATE_PENALTY_PER_DAY,
    DEADLINE_STATUS_EARLY,
    DEADLINE_STATUS_ON_TIME,
    DEADLINE_STATUS_LATE,
    DEADLINE_STATUS_NO_DEADLINE,
)
from savepoint.services.date_service import DateService

SECONDS_PER_DAY = 24 * 60 * 60


class TaskPointsResult(NamedTuple):
    base_points: int
    deadline_modifier: int
    total_points: int
    days_early: int
    days_late: int
    deadline_status: str

    def breakdown(self) -> dict:
        return {
            "base": self.base_points,
            "deadline_modifier": self.deadline_modifier,
            "days_early": self.days_early,
            "days_late": self.days_late,
            "status": self.deadline_status,
        }


def base_points_for(priority: Optional[str]) -> int:
    return PRIORITY_POINTS.get(priority, PRIORITY_POINTS[TASK_PRIORITY_DEFAULT])


def calculate_task_start_points(priority: Optional[str]) -> int:
    """One-time bonus for moving a task from todo to in-progress"""
    return PRIORITY_START_POINTS.get(priority, PRIORITY_START_POINTS[TASK_PRIORITY_DEFAULT])


def days_until_due(due_date: datetime, now: datetime) -> int:
    """
    Whole days between ``now`` and the due instant, floored.

    Completing 23 hours before the deadline counts as 0 days early;
    completing 1 hour after counts as 1 day late.
    """
    delta = DateService.to_naive_local(due_date) - DateService.to_naive_local(now)
    return math.floor(delta.total_seconds() / SECONDS_PER_DAY)


def calculate_task_points(
    priority: Optional[str],
    due_date: Optional[datetime],
    now: datetime
) -> TaskPointsResult:
    """
    Calculate points for completing a task.

    Formula: max(0, PriorityBase + DeadlineModifier)

    DeadlineModifier:
        - early (days > 0): min(days * 5, 50)
        - same day (days == 0): +15
        - late (days < 0): -(|days| * 3)
        - no due date: 0

    Args:
        priority: low, medium, high or urgent
        due_date: Task due instant, if any
        now: Completion instant

    Returns:
        TaskPointsResult with the full breakdown
    """
    base = base_points_for(priority)

    if due_date is None:
        return TaskPointsResult(base, 0, base, 0, 0, DEADLINE_STATUS_NO_DEADLINE)

    days = days_until_due(due_date, now)
    days_early = 0
    days_late = 0

    if days > 0:
        modifier = min(days * EARLY_POINTS_PER_DAY, EARLY_BONUS_CAP)
        status = DEADLINE_STATUS_EARLY
        days_early = days
    elif days == 0:
        modifier = ON_TIME_BONUS
        status = DEADLINE_STATUS_ON_TIME
    else:
        days_late = abs(days)
        modifier = -(days_late * LATE_PENALTY_PER_DAY)
        status = DEADLINE_STATUS_LATE

    total = max(0, base + modifier)
    return TaskPointsResult(base, modifier, total, days_early, days_late, status)
