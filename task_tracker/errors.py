"""Exception types raised by the task tracker."""

from typing import Optional


class TaskTrackerError(Exception):
    """Base class for task tracker errors."""


class TaskNotFoundError(TaskTrackerError):
    """Raised when a task id does not exist in the store."""

    def __init__(self, task_id: Optional[int]):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class SecurityTokenError(TaskTrackerError):
    """Raised when an anti-forgery token is missing or does not match."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Invalid security token for action '{action}'")


class PersistenceError(TaskTrackerError):
    """Raised when the backing store fails to read or write."""
