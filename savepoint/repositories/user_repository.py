"""
User repository - Data access layer for User model.
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from savepoint.models import User


class UserRepository:
    """Repository for User data access"""

    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_by_username(db: Session, username: str) -> Optional[User]:
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def get_all(db: Session) -> List[User]:
        return db.query(User).order_by(User.id).all()

    @staticmethod
    def get_top_by_points(db: Session, limit: int) -> List[User]:
        """Users ordered by points, highest first"""
        return db.query(User).order_by(User.points.desc(), User.id).limit(limit).all()

    @staticmethod
    def add(db: Session, user: User) -> User:
        """Stage a new user; the caller commits"""
        db.add(user)
        db.flush()
        return user
