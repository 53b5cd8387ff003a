"""
Custom exceptions for the Save Point application.
Provides specific exception types for better error handling and recovery.
"""
from datetime import date


class SavePointException(Exception):
    """Base exception for Save Point application"""
    pass


class UserNotFoundException(SavePointException):
    """Raised when a user is not found"""
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User with ID {user_id} not found")


class DuplicateUserException(SavePointException):
    """Raised when a username is already taken"""
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username '{username}' is already taken")


class HabitNotFoundException(SavePointException):
    """Raised when a habit is not found"""
    def __init__(self, habit_id: int):
        self.habit_id = habit_id
        super().__init__(f"Habit with ID {habit_id} not found")


class TaskNotFoundException(SavePointException):
    """Raised when a task is not found"""
    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Task with ID {task_id} not found")


class SubtaskNotFoundException(SavePointException):
    """Raised when a subtask does not belong to the task"""
    def __init__(self, task_id: int, subtask_id: int):
        self.task_id = task_id
        self.subtask_id = subtask_id
        super().__init__(f"Subtask {subtask_id} not found on task {task_id}")


class NotAuthorizedException(SavePointException):
    """Raised when a user touches a habit or task they do not own"""
    def __init__(self, resource: str, resource_id: int):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"Not authorized to access {resource} {resource_id}")


class AlreadyCompletedException(SavePointException):
    """Raised when a habit already has a completion for the calendar day"""
    def __init__(self, habit_id: int, day: date):
        self.habit_id = habit_id
        self.day = day
        super().__init__(f"Habit {habit_id} already completed on {day.isoformat()}")


class NotCompletedException(SavePointException):
    """Raised when removing a completion that does not exist"""
    def __init__(self, habit_id: int, day: date):
        self.habit_id = habit_id
        self.day = day
        super().__init__(f"Habit {habit_id} not completed on {day.isoformat()}")


class InvalidDateException(SavePointException):
    """Raised when a date is malformed or outside the habit's lifetime"""
    def __init__(self, value, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid date {value!r}: {reason}")


class InvalidTransitionException(SavePointException):
    """Raised when a task status change is not allowed"""
    def __init__(self, task_id: int, from_status: str, to_status: str):
        self.task_id = task_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Task {task_id} cannot move from '{from_status}' to '{to_status}'"
        )


class ValidationException(SavePointException):
    """Raised when data validation fails"""
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for {field}: {message}")
