"""
Habit repository - Data access layer for Habit and HabitCompletion models.
Handles all database queries related to habits.
"""
from datetime import date
from typing import List, Optional
from sqlalchemy import and_
from sqlalchemy.orm import Session

from savepoint.models import Habit, HabitCompletion


class HabitRepository:
    """Repository for Habit data access"""

    @staticmethod
    def get_by_id(db: Session, habit_id: int) -> Optional[Habit]:
        return db.query(Habit).filter(Habit.id == habit_id).first()

    @staticmethod
    def get_for_user(
        db: Session,
        user_id: int,
        category: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> List[Habit]:
        """Get a user's habits, ordered by their manual order then newest first"""
        query = db.query(Habit).filter(Habit.user_id == user_id)
        if category:
            query = query.filter(Habit.category == category)
        if is_active is not None:
            query = query.filter(Habit.is_active == is_active)
        return query.order_by(Habit.order, Habit.created_at.desc()).all()

    @staticmethod
    def get_active(db: Session, user_id: int) -> List[Habit]:
        return db.query(Habit).filter(
            and_(
                Habit.user_id == user_id,
                Habit.is_active == True
            )
        ).order_by(Habit.order).all()

    @staticmethod
    def count_active(db: Session, user_id: int) -> int:
        return db.query(Habit).filter(
            and_(
                Habit.user_id == user_id,
                Habit.is_active == True
            )
        ).count()

    @staticmethod
    def get_completions_in_range(
        db: Session,
        habit_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[HabitCompletion]:
        """Get a habit's completions between two calendar days (inclusive)"""
        query = db.query(HabitCompletion).filter(HabitCompletion.habit_id == habit_id)
        if start_date:
            query = query.filter(HabitCompletion.date >= start_date)
        if end_date:
            query = query.filter(HabitCompletion.date <= end_date)
        return query.order_by(HabitCompletion.date).all()

    @staticmethod
    def get_completions_for_habits(
        db: Session,
        habit_ids: List[int],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[HabitCompletion]:
        """Completions of several habits between two calendar days (inclusive), oldest first"""
        if not habit_ids:
            return []
        query = db.query(HabitCompletion).filter(HabitCompletion.habit_id.in_(habit_ids))
        if start_date:
            query = query.filter(HabitCompletion.date >= start_date)
        if end_date:
            query = query.filter(HabitCompletion.date <= end_date)
        return query.order_by(HabitCompletion.date, HabitCompletion.id).all()

    @staticmethod
    def add(db: Session, habit: Habit) -> Habit:
        """Stage a new habit; the caller commits"""
        db.add(habit)
        db.flush()
        return habit

    @staticmethod
    def delete(db: Session, habit: Habit) -> None:
        db.delete(habit)
