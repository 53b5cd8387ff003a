"""
Background scheduler for streak maintenance.
Handles:
- Resetting check-in streaks of users who missed a day
- Refreshing cached habit streaks so yesterday's streaks expire
"""

import logging
import os
from datetime import date
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from savepoint.database import SessionLocal, transaction
from savepoint.models import User
from savepoint.repositories.user_repository import UserRepository
from savepoint.repositories.habit_repository import HabitRepository
from savepoint.services.date_service import DateService
from savepoint.services.habit_ledger import HabitLedger
from savepoint.constants import DEFAULT_STREAK_RESET_TIME

logger = logging.getLogger("savepoint.scheduler")

STREAK_RESET_TIME = os.getenv("SAVEPOINT_STREAK_RESET_TIME", DEFAULT_STREAK_RESET_TIME)

# Create scheduler instance
scheduler = AsyncIOScheduler()


def refresh_user_streaks(db: Session, user: User, today: date) -> bool:
    """
    Expire stale streaks for one user. The caller commits.

    Returns:
        True if the check-in streak was reset
    """
    reset = False
    last_day = user.last_check_in.date() if user.last_check_in else None
    if (user.streak_current or 0) > 0 and not DateService.is_today_or_yesterday(last_day, today):
        user.streak_current = 0
        reset = True

    for habit in HabitRepository.get_active(db, user.id):
        HabitLedger.recalculate_streaks(habit, today)

    return reset


def sweep_streaks(db: Session, today: Optional[date] = None) -> dict:
    """
    Run the streak refresh for every user, one at a time.

    A failure for one user is logged and rolled back; the rest of the
    sweep carries on.

    Returns:
        Dictionary with counts of processed, reset and failed users
    """
    today = today or DateService.today()
    processed = 0
    reset = 0
    failed = 0

    for user in UserRepository.get_all(db):
        user_id = user.id
        try:
            with transaction(db):
                if refresh_user_streaks(db, user, today):
                    reset += 1
            processed += 1
        except Exception as e:
            failed += 1
            logger.error(f"Streak sweep failed for user {user_id}: {e}")

    logger.info(f"Streak sweep for {today.isoformat()}: {processed} users, {reset} reset, {failed} failed")
    return {"processed": processed, "reset": reset, "failed": failed}


async def run_streak_sweep():
    """Job: nightly streak sweep"""
    db = SessionLocal()
    try:
        sweep_streaks(db)
    except Exception as e:
        logger.error(f"Scheduler Error (Streak Sweep): {e}")
    finally:
        db.close()


def start_scheduler():
    """Start the scheduler with the daily sweep job"""
    if not scheduler.running:
        hour, minute = DateService.parse_time(STREAK_RESET_TIME)
        scheduler.add_job(
            run_streak_sweep,
            CronTrigger(hour=hour, minute=minute),
            id="streak_sweep",
            replace_existing=True
        )
        scheduler.start()
        logger.info(f"APScheduler started, streak sweep daily at {STREAK_RESET_TIME}")
        logger.info(f"Scheduled jobs: {[job.id for job in scheduler.get_jobs()]}")


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler stopped")
