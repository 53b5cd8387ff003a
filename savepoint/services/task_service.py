"""
Task management service.
Handles task CRUD, status transitions with their one-time XP awards, and subtasks.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session

from savepoint.models import Task, Subtask, User
from savepoint.schemas import TaskCreate, TaskUpdate, SubtaskCreate
from savepoint.database import transaction
from savepoint.achievements import DEFAULT_ACHIEVEMENTS, AchievementDefinition
from savepoint.repositories.task_repository import TaskRepository
from savepoint.repositories.habit_repository import HabitRepository
from savepoint.services.date_service import DateService
from savepoint.services.task_scoring_service import (
    calculate_task_points, calculate_task_start_points
)
from savepoint.services.achievement_service import evaluate_achievements
from savepoint.exceptions import (
    TaskNotFoundException, SubtaskNotFoundException,
    NotAuthorizedException, InvalidTransitionException, ValidationException
)
from savepoint.constants import (
    TASK_STATUS_TODO, TASK_STATUS_IN_PROGRESS, TASK_STATUS_COMPLETED,
    TASK_TRANSITIONS, TASK_PRIORITIES, AWARD_TYPE_START, AWARD_TYPE_COMPLETE,
    UPCOMING_MAX_DAYS
)

logger = logging.getLogger("savepoint.tasks")


@dataclass
class TaskTransitionResult:
    task: Task
    points_awarded: int
    award_type: Optional[str]  # start, complete or None
    breakdown: Optional[dict]
    total_points: int
    level: int
    previous_level: int
    new_badges: List[dict] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.level > self.previous_level


class TaskService:
    """Service for task management"""

    def __init__(self, db: Session, catalog: Optional[Iterable[AchievementDefinition]] = None):
        self.db = db
        self.task_repo = TaskRepository()
        self.habit_repo = HabitRepository()
        self.date_service = DateService()
        self.catalog = tuple(catalog) if catalog is not None else DEFAULT_ACHIEVEMENTS

    def get_task(self, user: User, task_id: int) -> Task:
        """
        Get a task owned by ``user``.

        Raises:
            TaskNotFoundException: If no task has this id
            NotAuthorizedException: If the task belongs to someone else
        """
        task = self.task_repo.get_by_id(self.db, task_id)
        if not task:
            raise TaskNotFoundException(task_id)
        if task.user_id != user.id:
            raise NotAuthorizedException("task", task_id)
        return task

    def list_tasks(
        self,
        user: User,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        due_from: Optional[datetime] = None,
        due_to: Optional[datetime] = None
    ) -> List[Task]:
        return self.task_repo.get_for_user(
            self.db, user.id, status, priority, category,
            self._normalize_due(due_from), self._normalize_due(due_to)
        )

    def get_upcoming(self, user: User, days: int = 7, now: Optional[datetime] = None) -> List[Task]:
        """Open tasks due within the next ``days`` days"""
        if not 1 <= days <= UPCOMING_MAX_DAYS:
            raise ValidationException("days", f"must be between 1 and {UPCOMING_MAX_DAYS}")
        now = now or self.date_service.now()
        return self.task_repo.get_upcoming(self.db, user.id, now, now + timedelta(days=days))

    def get_overdue(self, user: User, now: Optional[datetime] = None) -> List[Task]:
        now = now or self.date_service.now()
        return self.task_repo.get_overdue(self.db, user.id, now)

    # ===== CRUD =====

    def create_task(self, user: User, task_data: TaskCreate, now: Optional[datetime] = None) -> Task:
        """Create a task with its subtasks; new tasks always start as todo"""
        now = now or self.date_service.now()
        data = task_data.model_dump(exclude={"subtasks"})
        data["due_date"] = self._normalize_due(data.get("due_date"))

        with transaction(self.db):
            task = Task(user_id=user.id, status=TASK_STATUS_TODO, **data)
            task.created_at = now
            task.updated_at = now
            task.subtasks = self._build_subtasks(task_data.subtasks, now)
            self.task_repo.add(self.db, task)

        self.db.refresh(task)
        logger.info(f"User {user.id} created task {task.id} '{task.title}'")
        return task

    def update_task(
        self,
        user: User,
        task_id: int,
        task_data: TaskUpdate,
        now: Optional[datetime] = None
    ) -> TaskTransitionResult:
        """
        Update task fields.

        A status change goes through the same transition rules and XP
        gates as ``transition_task``. Supplying ``subtasks`` replaces the
        whole list.
        """
        now = now or self.date_service.now()
        task = self.get_task(user, task_id)
        update_data = task_data.model_dump(exclude_unset=True, exclude={"subtasks"})
        new_status = update_data.pop("status", None)
        if "due_date" in update_data:
            update_data["due_date"] = self._normalize_due(update_data["due_date"])

        with transaction(self.db):
            for key, value in update_data.items():
                setattr(task, key, value)
            if task_data.subtasks is not None:
                task.subtasks = self._build_subtasks(task_data.subtasks, now)
            task.updated_at = now

            if new_status is not None:
                result = self._apply_transition(user, task, new_status, now)
            else:
                result = self._no_award(user, task)

        self.db.refresh(task)
        return result

    def delete_task(self, user: User, task_id: int) -> None:
        task = self.get_task(user, task_id)
        with transaction(self.db):
            self.task_repo.delete(self.db, task)
        logger.info(f"User {user.id} deleted task {task_id}")

    # ===== Status =====

    def transition_task(
        self,
        user: User,
        task_id: int,
        new_status: str,
        now: Optional[datetime] = None
    ) -> TaskTransitionResult:
        """
        Move a task to ``new_status`` and award any XP the move earns.

        Points:
            - todo -> in-progress: start bonus, once per task
            - any -> completed: priority + deadline points, once per task

        Moving back to todo clears ``completed_at`` but never re-opens
        an XP gate, so toggling a task cannot farm points.

        Raises:
            InvalidTransitionException: If the move is not allowed
        """
        now = now or self.date_service.now()
        task = self.get_task(user, task_id)

        with transaction(self.db):
            result = self._apply_transition(user, task, new_status, now)

        if result.award_type:
            logger.info(
                f"User {user.id} task {task_id} -> {new_status}: "
                f"+{result.points_awarded} points ({result.award_type}, total {user.points})"
            )
        if result.leveled_up:
            logger.info(f"User {user.id} leveled up: {result.previous_level} -> {result.level}")
        return result

    def toggle_status(self, user: User, task_id: int, now: Optional[datetime] = None) -> TaskTransitionResult:
        """Completed tasks go back to todo; anything else is completed"""
        task = self.get_task(user, task_id)
        target = TASK_STATUS_TODO if task.status == TASK_STATUS_COMPLETED else TASK_STATUS_COMPLETED
        return self.transition_task(user, task_id, target, now)

    def _apply_transition(self, user: User, task: Task, new_status: str, now: datetime) -> TaskTransitionResult:
        """Mutate task and user for a status change; the caller commits"""
        old_status = task.status
        if new_status == old_status:
            return self._no_award(user, task)

        if new_status not in TASK_TRANSITIONS.get(old_status, ()):
            raise InvalidTransitionException(task.id, old_status, new_status)

        previous_level = user.level or 1
        points = 0
        award_type = None
        breakdown = None

        task.status = new_status
        task.updated_at = now

        if new_status == TASK_STATUS_COMPLETED:
            task.completed_at = now
            if task.xp_awarded.claim_completion():
                scored = calculate_task_points(task.priority, task.due_date, now)
                points = scored.total_points
                award_type = AWARD_TYPE_COMPLETE
                breakdown = scored.breakdown()
        elif new_status == TASK_STATUS_IN_PROGRESS:
            if old_status == TASK_STATUS_TODO and task.xp_awarded.claim_start():
                points = calculate_task_start_points(task.priority)
                award_type = AWARD_TYPE_START
        else:
            task.completed_at = None

        new_badges = []
        if award_type:
            user.add_points(points)
            habit_count = self.habit_repo.count_active(self.db, user.id)
            new_badges = evaluate_achievements(user, habit_count, self.catalog, now=now)

        return TaskTransitionResult(
            task=task,
            points_awarded=points,
            award_type=award_type,
            breakdown=breakdown,
            total_points=user.points,
            level=user.level,
            previous_level=previous_level,
            new_badges=new_badges,
        )

    @staticmethod
    def _no_award(user: User, task: Task) -> TaskTransitionResult:
        return TaskTransitionResult(
            task=task,
            points_awarded=0,
            award_type=None,
            breakdown=None,
            total_points=user.points,
            level=user.level,
            previous_level=user.level,
        )

    # ===== Subtasks =====

    def toggle_subtask(
        self,
        user: User,
        task_id: int,
        subtask_id: int,
        now: Optional[datetime] = None
    ) -> Task:
        """
        Flip a subtask's completed flag.

        Raises:
            SubtaskNotFoundException: If the subtask is not on this task
        """
        now = now or self.date_service.now()
        task = self.get_task(user, task_id)
        subtask = task.subtask_by_id(subtask_id)
        if subtask is None:
            raise SubtaskNotFoundException(task_id, subtask_id)

        with transaction(self.db):
            subtask.toggle(now)
            task.updated_at = now

        self.db.refresh(task)
        return task

    @staticmethod
    def _build_subtasks(subtasks: List[SubtaskCreate], now: datetime) -> List[Subtask]:
        return [
            Subtask(
                title=item.title,
                completed=item.completed,
                completed_at=now if item.completed else None,
                position=position,
            )
            for position, item in enumerate(subtasks)
        ]

    # ===== Stats =====

    def get_stats(self, user: User, now: Optional[datetime] = None) -> dict:
        """
        Counts over all of the user's tasks.

        Returns:
            Dictionary with totals per status, overdue count, open tasks
            per priority and total/completed per category
        """
        now = now or self.date_service.now()
        tasks = self.task_repo.get_for_user(self.db, user.id)

        by_priority = {priority: 0 for priority in TASK_PRIORITIES}
        by_category = {}
        for task in tasks:
            if task.status != TASK_STATUS_COMPLETED and task.priority in by_priority:
                by_priority[task.priority] += 1
            bucket = by_category.setdefault(task.category, {"total": 0, "completed": 0})
            bucket["total"] += 1
            if task.status == TASK_STATUS_COMPLETED:
                bucket["completed"] += 1

        return {
            "total": len(tasks),
            "completed": sum(1 for t in tasks if t.status == TASK_STATUS_COMPLETED),
            "in_progress": sum(1 for t in tasks if t.status == TASK_STATUS_IN_PROGRESS),
            "todo": sum(1 for t in tasks if t.status == TASK_STATUS_TODO),
            "overdue": sum(1 for t in tasks if t.is_overdue_at(now)),
            "by_priority": by_priority,
            "by_category": by_category,
        }

    def _normalize_due(self, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return self.date_service.to_naive_local(value)
