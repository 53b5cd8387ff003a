"""
Database engine and session factory.
SQLite by default; any SQLAlchemy URL can be supplied through SAVEPOINT_DATABASE_URL.
"""
import os
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from savepoint.constants import DEFAULT_DATABASE_URL

DATABASE_URL = os.getenv("SAVEPOINT_DATABASE_URL", DEFAULT_DATABASE_URL)

engine_args = {}
if DATABASE_URL.startswith("sqlite"):
    # FastAPI runs sync routes in a threadpool
    engine_args["connect_args"] = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, echo=False, **engine_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session and close it when the request is done"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db):
    """
    Commit everything staged inside the block, or nothing.

    One user action (ledger write, streak update, points, badges) runs in
    a single block so stats can never be saved half-updated.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
