"""
Shared fixtures: an in-memory SQLite session per test, fixed clock values
and small builders for users, habits and tasks.
"""
import os
import tempfile

# Must be set before savepoint modules read them at import time
os.environ["SAVEPOINT_DATABASE_URL"] = "sqlite://"
os.environ["SAVEPOINT_LOG_DIR"] = tempfile.mkdtemp(prefix="savepoint-logs-")
os.environ["SAVEPOINT_SCHEDULER_ENABLED"] = "0"
os.environ["SAVEPOINT_API_KEY"] = "test-key"

import pytest
from datetime import date, datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from savepoint.database import Base
from savepoint.models import User, Habit, Task, Subtask

API_KEY = "test-key"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def now():
    """Mid-morning on a fixed day, after the early-bird cutoff"""
    return datetime(2024, 3, 15, 10, 30)


@pytest.fixture
def today(now):
    return now.date()


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


@pytest.fixture
def user(db_session, now):
    return create_user(db_session, "player_one", created_at=now - timedelta(days=60))


def create_user(db, username: str, points: int = 0, created_at: datetime = None) -> User:
    user = User(username=username, points=points, created_at=created_at or datetime.now())
    user.calculate_level()
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_habit(
    db,
    user: User,
    title: str = "Drink water",
    category: str = "health",
    created_at: datetime = None,
    is_active: bool = True,
    order: int = 0
) -> Habit:
    """Habit back-dated to ``created_at`` so past days can be completed"""
    created_at = created_at or datetime(2024, 1, 1, 9, 0)
    habit = Habit(
        user_id=user.id,
        title=title,
        category=category,
        is_active=is_active,
        order=order,
        created_at=created_at,
        updated_at=created_at,
    )
    db.add(habit)
    db.commit()
    db.refresh(habit)
    return habit


def create_task(
    db,
    user: User,
    title: str = "Write report",
    priority: str = "medium",
    status: str = "todo",
    due_date: datetime = None,
    category: str = "work",
    subtasks: list = None
) -> Task:
    task = Task(
        user_id=user.id,
        title=title,
        priority=priority,
        status=status,
        due_date=due_date,
        category=category,
    )
    task.subtasks = [
        Subtask(title=subtask_title, position=position)
        for position, subtask_title in enumerate(subtasks or [])
    ]
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def days_ago(day: date, count: int) -> date:
    return day - timedelta(days=count)
