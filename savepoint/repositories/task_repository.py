"""
Task repository - Data access layer for Task model.
Handles all database queries related to tasks.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_
from sqlalchemy.orm import Session

from savepoint.models import Task
from savepoint.constants import TASK_STATUS_COMPLETED

PRIORITY_ORDER = {"urgent": 0, "high": 1, "medium": 2, "low": 3}


class TaskRepository:
    """Repository for Task data access"""

    @staticmethod
    def get_by_id(db: Session, task_id: int) -> Optional[Task]:
        return db.query(Task).filter(Task.id == task_id).first()

    @staticmethod
    def get_for_user(
        db: Session,
        user_id: int,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        due_from: Optional[datetime] = None,
        due_to: Optional[datetime] = None
    ) -> List[Task]:
        """
        Get a user's tasks with optional filters.

        Sorted by due date (tasks without one last), then priority, then newest.
        """
        query = db.query(Task).filter(Task.user_id == user_id)
        if status:
            query = query.filter(Task.status == status)
        if priority:
            query = query.filter(Task.priority == priority)
        if category:
            query = query.filter(Task.category == category)
        if due_from:
            query = query.filter(Task.due_date >= due_from)
        if due_to:
            query = query.filter(Task.due_date <= due_to)

        tasks = query.all()
        return sorted(tasks, key=lambda t: (
            t.due_date is None,
            t.due_date or datetime.max,
            PRIORITY_ORDER.get(t.priority, len(PRIORITY_ORDER)),
            -(t.created_at.timestamp() if t.created_at else 0),
        ))

    @staticmethod
    def get_upcoming(db: Session, user_id: int, start: datetime, end: datetime) -> List[Task]:
        """Open tasks due between start and end"""
        return db.query(Task).filter(
            and_(
                Task.user_id == user_id,
                Task.status != TASK_STATUS_COMPLETED,
                Task.due_date >= start,
                Task.due_date <= end
            )
        ).order_by(Task.due_date).all()

    @staticmethod
    def get_overdue(db: Session, user_id: int, now: datetime) -> List[Task]:
        """Open tasks whose due date has passed"""
        return db.query(Task).filter(
            and_(
                Task.user_id == user_id,
                Task.status != TASK_STATUS_COMPLETED,
                Task.due_date < now
            )
        ).order_by(Task.due_date).all()

    @staticmethod
    def get_completed_between(db: Session, user_id: int, start: datetime, end: datetime) -> List[Task]:
        """Completed tasks with completed_at in [start, end)"""
        return db.query(Task).filter(
            and_(
                Task.user_id == user_id,
                Task.status == TASK_STATUS_COMPLETED,
                Task.completed_at >= start,
                Task.completed_at < end
            )
        ).order_by(Task.completed_at).all()

    @staticmethod
    def add(db: Session, task: Task) -> Task:
        """Stage a new task; the caller commits"""
        db.add(task)
        db.flush()
        return task

    @staticmethod
    def delete(db: Session, task: Task) -> None:
        db.delete(task)
