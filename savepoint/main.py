from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional
import logging
import os
from pathlib import Path

from savepoint.database import engine, get_db, Base
from savepoint import models  # Import all models to register them with Base
from savepoint.models import User
from savepoint.schemas import (
    UserCreate, UserResponse,
    HabitCreate, HabitUpdate, HabitReorder, HabitResponse, HabitCreateResponse,
    CompletionRequest, UncompletionRequest, CompletionResponse,
    HabitCompletionResponse, HabitUncompletionResponse, HabitStatsSummary,
    TaskCreate, TaskUpdate, TaskTransition, TaskResponse, TaskTransitionResponse,
    TaskStatsSummary, TaskStatus, TaskPriority, TaskCategory, HabitCategory,
    UserStatsResponse, LevelProgressResponse, AchievementResponse, BadgeResponse,
    LeaderboardEntry, HeatmapDay, TrendDay, CategoryBreakdownResponse,
    WeeklySummaryResponse, MonthlySummaryResponse, PersonalRecordsResponse
)
from savepoint.auth import verify_api_key, get_current_user
from savepoint.exceptions import (
    SavePointException,
    UserNotFoundException, HabitNotFoundException, TaskNotFoundException,
    SubtaskNotFoundException, NotAuthorizedException, DuplicateUserException
)
from savepoint.services.user_service import UserService
from savepoint.services.habit_service import HabitService
from savepoint.services.task_service import TaskService, TaskTransitionResult
from savepoint.services.gamification_service import GamificationService
from savepoint.services.analytics_service import AnalyticsService
from savepoint.services.scheduler_service import start_scheduler, stop_scheduler
from savepoint.constants import (
    DEFAULT_LOG_DIRECTORY_PROD, DEFAULT_LOG_DIRECTORY_DEV,
    CORS_ALLOWED_ORIGINS, LEADERBOARD_DEFAULT_LIMIT, LEADERBOARD_MAX_LIMIT,
    UPCOMING_DEFAULT_DAYS, UPCOMING_MAX_DAYS, HISTORY_MAX_LIMIT,
    TRENDS_DEFAULT_DAYS, TRENDS_MAX_DAYS
)

LOG_DIR = os.getenv("SAVEPOINT_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("SAVEPOINT_LOG_FILE", "app.log")
SCHEDULER_ENABLED = os.getenv("SAVEPOINT_SCHEDULER_ENABLED", "1").lower() not in ("0", "false", "no")

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    LOG_DIR = DEFAULT_LOG_DIRECTORY_DEV
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()  # Also log to console
    ]
)

logger = logging.getLogger("savepoint")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Save Point API",
    description="Gamified habit and task tracker with streaks, points, levels and badges",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS_CODES = {
    UserNotFoundException: status.HTTP_404_NOT_FOUND,
    HabitNotFoundException: status.HTTP_404_NOT_FOUND,
    TaskNotFoundException: status.HTTP_404_NOT_FOUND,
    SubtaskNotFoundException: status.HTTP_404_NOT_FOUND,
    NotAuthorizedException: status.HTTP_403_FORBIDDEN,
    DuplicateUserException: status.HTTP_409_CONFLICT,
}


@app.exception_handler(SavePointException)
async def savepoint_exception_handler(request: Request, exc: SavePointException):
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# Startup event
@app.on_event("startup")
async def startup_event():
    logger.info(f"Save Point API started. Logging to: {log_path}")
    if SCHEDULER_ENABLED:
        start_scheduler()


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Save Point API")
    stop_scheduler()


# ===== Response builders =====

def user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        created_at=user.created_at,
        gamification={
            "points": user.points,
            "level": user.level,
            "streak": user.streak,
            "badges": [
                {
                    "id": badge.badge_id,
                    "name": badge.name,
                    "description": badge.description,
                    "icon": badge.icon,
                    "earned_at": badge.earned_at,
                }
                for badge in user.badges
            ],
        },
    )


def task_transition_response(result: TaskTransitionResult) -> TaskTransitionResponse:
    points = None
    if result.award_type:
        points = {
            "earned": result.points_awarded,
            "type": result.award_type,
            "priority": result.task.priority,
            "breakdown": result.breakdown,
            "total": result.total_points,
            "level": result.level,
            "leveled_up": result.leveled_up,
            "previous_level": result.previous_level,
        }
    return TaskTransitionResponse(
        task=TaskResponse.model_validate(result.task),
        points=points,
        badges=result.new_badges,
    )


# Health check (no auth required)
@app.get("/")
async def root():
    return {"message": "Save Point API", "status": "active"}


# ===== Users =====

@app.post("/api/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_api_key)])
async def create_user(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a user"""
    user = UserService(db).create_user(user_data.username)
    return user_response(user)


@app.get("/api/users/me", response_model=UserResponse, dependencies=[Depends(verify_api_key)])
async def get_me(user: User = Depends(get_current_user)):
    """Get the acting user's profile"""
    return user_response(user)


# ===== Habits =====

@app.get("/api/habits", response_model=List[HabitResponse], dependencies=[Depends(verify_api_key)])
async def get_habits(
    category: Optional[HabitCategory] = None,
    is_active: Optional[bool] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the user's habits in their manual order"""
    return HabitService(db).list_habits(user, category, is_active)


@app.get("/api/habits/stats", response_model=HabitStatsSummary, dependencies=[Depends(verify_api_key)])
async def get_habit_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Summary over the user's active habits"""
    return HabitService(db).get_stats(user)


@app.post("/api/habits/reorder", response_model=List[HabitResponse], dependencies=[Depends(verify_api_key)])
async def reorder_habits(
    reorder: HabitReorder,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Save a new manual order"""
    return HabitService(db).reorder_habits(user, reorder.habit_ids)


@app.get("/api/habits/{habit_id}", response_model=HabitResponse, dependencies=[Depends(verify_api_key)])
async def get_habit(habit_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Get a specific habit"""
    return HabitService(db).get_habit(user, habit_id)


@app.post("/api/habits", response_model=HabitCreateResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_api_key)])
async def create_habit(habit: HabitCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Create a new habit"""
    new_habit, badges = HabitService(db).create_habit(user, habit)
    return {"habit": HabitResponse.model_validate(new_habit), "badges": badges}


@app.put("/api/habits/{habit_id}", response_model=HabitResponse, dependencies=[Depends(verify_api_key)])
async def update_habit(
    habit_id: int,
    habit_update: HabitUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a habit"""
    return HabitService(db).update_habit(user, habit_id, habit_update)


@app.post("/api/habits/{habit_id}/deactivate", response_model=HabitResponse, dependencies=[Depends(verify_api_key)])
async def deactivate_habit(habit_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Archive a habit"""
    return HabitService(db).deactivate_habit(user, habit_id)


@app.delete("/api/habits/{habit_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(verify_api_key)])
async def delete_habit(habit_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Delete a habit and its completions"""
    HabitService(db).delete_habit(user, habit_id)


@app.post("/api/habits/{habit_id}/complete", response_model=HabitCompletionResponse, dependencies=[Depends(verify_api_key)])
async def complete_habit(
    habit_id: int,
    completion: Optional[CompletionRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Complete a habit for today, or for the date in the body"""
    completion = completion or CompletionRequest()
    result = HabitService(db).complete_habit(
        user, habit_id, completion.date, completion.note, completion.mood
    )
    return {
        "habit": HabitResponse.model_validate(result.habit),
        "points": {
            "earned": result.points_awarded,
            "total": result.total_points,
            "level": result.level,
            "leveled_up": result.leveled_up,
            "previous_level": result.previous_level,
        },
        "badges": result.new_badges,
    }


@app.post("/api/habits/{habit_id}/uncomplete", response_model=HabitUncompletionResponse, dependencies=[Depends(verify_api_key)])
async def uncomplete_habit(
    habit_id: int,
    uncompletion: Optional[UncompletionRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Undo a completion for today, or for the date in the body"""
    uncompletion = uncompletion or UncompletionRequest()
    result = HabitService(db).uncomplete_habit(user, habit_id, uncompletion.date)
    return {
        "habit": HabitResponse.model_validate(result.habit),
        "points": {
            "deducted": result.points_deducted,
            "total": result.total_points,
            "level": result.level,
            "previous_level": result.previous_level,
        },
    }


@app.get("/api/habits/{habit_id}/history", response_model=List[CompletionResponse], dependencies=[Depends(verify_api_key)])
async def get_habit_history(
    habit_id: int,
    start: Optional[str] = None,
    end: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=HISTORY_MAX_LIMIT),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Completions of a habit, newest first"""
    return HabitService(db).get_history(user, habit_id, start, end, limit)


# ===== Tasks =====

@app.get("/api/tasks", response_model=List[TaskResponse], dependencies=[Depends(verify_api_key)])
async def get_tasks(
    status_filter: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    category: Optional[TaskCategory] = None,
    due_from: Optional[datetime] = None,
    due_to: Optional[datetime] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the user's tasks with optional filtering"""
    return TaskService(db).list_tasks(user, status_filter, priority, category, due_from, due_to)


@app.get("/api/tasks/upcoming", response_model=List[TaskResponse], dependencies=[Depends(verify_api_key)])
async def get_upcoming_tasks(
    days: int = Query(UPCOMING_DEFAULT_DAYS, ge=1, le=UPCOMING_MAX_DAYS),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Open tasks due in the next few days"""
    return TaskService(db).get_upcoming(user, days)


@app.get("/api/tasks/overdue", response_model=List[TaskResponse], dependencies=[Depends(verify_api_key)])
async def get_overdue_tasks(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Open tasks past their due date"""
    return TaskService(db).get_overdue(user)


@app.get("/api/tasks/stats", response_model=TaskStatsSummary, dependencies=[Depends(verify_api_key)])
async def get_task_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Task counts by status, priority and category"""
    return TaskService(db).get_stats(user)


@app.get("/api/tasks/{task_id}", response_model=TaskResponse, dependencies=[Depends(verify_api_key)])
async def get_task(task_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Get a specific task"""
    return TaskService(db).get_task(user, task_id)


@app.post("/api/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_api_key)])
async def create_task(task: TaskCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Create a new task"""
    return TaskService(db).create_task(user, task)


@app.put("/api/tasks/{task_id}", response_model=TaskTransitionResponse, dependencies=[Depends(verify_api_key)])
async def update_task(
    task_id: int,
    task_update: TaskUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a task; a status change can award points"""
    result = TaskService(db).update_task(user, task_id, task_update)
    return task_transition_response(result)


@app.delete("/api/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(verify_api_key)])
async def delete_task(task_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Delete a task"""
    TaskService(db).delete_task(user, task_id)


@app.post("/api/tasks/{task_id}/transition", response_model=TaskTransitionResponse, dependencies=[Depends(verify_api_key)])
async def transition_task(
    task_id: int,
    transition: TaskTransition,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Move a task to another status"""
    result = TaskService(db).transition_task(user, task_id, transition.status)
    return task_transition_response(result)


@app.post("/api/tasks/{task_id}/toggle", response_model=TaskTransitionResponse, dependencies=[Depends(verify_api_key)])
async def toggle_task(task_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Complete an open task, or reopen a completed one"""
    result = TaskService(db).toggle_status(user, task_id)
    return task_transition_response(result)


@app.post("/api/tasks/{task_id}/subtasks/{subtask_id}/toggle", response_model=TaskResponse, dependencies=[Depends(verify_api_key)])
async def toggle_subtask(
    task_id: int,
    subtask_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Flip a subtask's completed flag"""
    return TaskService(db).toggle_subtask(user, task_id, subtask_id)


# ===== Gamification =====

@app.get("/api/gamification/stats", response_model=UserStatsResponse, dependencies=[Depends(verify_api_key)])
async def get_user_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Points, level, streak, badges and habit totals"""
    return GamificationService(db).get_user_stats(user)


@app.get("/api/gamification/progress", response_model=LevelProgressResponse, dependencies=[Depends(verify_api_key)])
async def get_level_progress(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Progress towards the next level"""
    return GamificationService(db).get_progress(user)


@app.get("/api/gamification/achievements", response_model=List[AchievementResponse], dependencies=[Depends(verify_api_key)])
async def get_achievements(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Achievement catalog with the user's earned flags"""
    return GamificationService(db).list_achievements(user)


@app.get("/api/gamification/badges", response_model=List[BadgeResponse], dependencies=[Depends(verify_api_key)])
async def get_badges(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Badges the user has earned"""
    return GamificationService(db).get_badges(user)


@app.get("/api/gamification/leaderboard", response_model=List[LeaderboardEntry], dependencies=[Depends(verify_api_key)])
async def get_leaderboard(
    limit: int = Query(LEADERBOARD_DEFAULT_LIMIT, ge=1, le=LEADERBOARD_MAX_LIMIT),
    db: Session = Depends(get_db)
):
    """Top users by points"""
    return GamificationService(db).get_leaderboard(limit)


@app.post("/api/gamification/check", response_model=List[BadgeResponse], dependencies=[Depends(verify_api_key)])
async def check_achievements(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Evaluate achievements now and return any newly earned badges"""
    return GamificationService(db).evaluate_achievements(user)


# ===== Analytics =====

@app.get("/api/analytics/heatmap", response_model=List[HeatmapDay], dependencies=[Depends(verify_api_key)])
async def get_heatmap(
    start: Optional[str] = None,
    end: Optional[str] = None,
    habit_id: Optional[int] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Completions per day, defaulting to the past year"""
    return AnalyticsService(db).get_heatmap(user, start, end, habit_id)


@app.get("/api/analytics/trends", response_model=List[TrendDay], dependencies=[Depends(verify_api_key)])
async def get_trends(
    days: int = Query(TRENDS_DEFAULT_DAYS, ge=1, le=TRENDS_MAX_DAYS),
    habit_id: Optional[int] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Daily completion rate over the last few days"""
    return AnalyticsService(db).get_trends(user, days, habit_id)


@app.get("/api/analytics/categories", response_model=CategoryBreakdownResponse, dependencies=[Depends(verify_api_key)])
async def get_category_breakdown(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Habits and tasks grouped by category"""
    return AnalyticsService(db).get_category_breakdown(user)


@app.get("/api/analytics/weekly", response_model=WeeklySummaryResponse, dependencies=[Depends(verify_api_key)])
async def get_weekly_summary(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return AnalyticsService(db).get_weekly_summary(user)


@app.get("/api/analytics/monthly", response_model=MonthlySummaryResponse, dependencies=[Depends(verify_api_key)])
async def get_monthly_summary(
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Summary of one calendar month, the current one by default"""
    return AnalyticsService(db).get_monthly_summary(user, year, month)


@app.get("/api/analytics/records", response_model=PersonalRecordsResponse, dependencies=[Depends(verify_api_key)])
async def get_personal_records(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Personal bests"""
    return AnalyticsService(db).get_personal_records(user)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("savepoint.main:app", host="0.0.0.0", port=8000, reload=False)
