"""Task service shared by the web controllers and the CLI."""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..models.task import Task, TaskStatus, TaskVariant
from ..schemas import BindingResult, bind_task
from .task_repository import TaskRepository

logger = logging.getLogger(__name__)


class TaskService:
    """Validate-then-persist operations over a task repository."""

    def __init__(self, repository: TaskRepository):
        """Initialize the task service.

        Args:
            repository: Persistence gateway used for every read and write
        """
        self._repository = repository

    @property
    def repository(self) -> TaskRepository:
        return self._repository

    def create_task(self, variant: TaskVariant, data: Mapping[str, Any]) -> BindingResult:
        """Create a new task.

        Args:
            variant: Task variant to create
            data: Raw field values

        Returns:
            Binding result; when valid, its task has been persisted

        Raises:
            PersistenceError: If the task could not be stored
        """
        result = bind_task(variant, data)
        if not result.is_valid:
            logger.info(f"Rejected new {variant.value} task: {result.errors}")
            return result

        self._repository.save(result.task)
        logger.info(f"Created {variant.value} task {result.task.id}: {result.task.title}")
        return result

    def update_task(self, task_id: int, data: Mapping[str, Any]) -> BindingResult:
        """Update the fields of an existing task. The variant never changes.

        Raises:
            TaskNotFoundError: If the task does not exist
            PersistenceError: If the task could not be stored
        """
        task = self._repository.get(task_id)
        result = bind_task(TaskVariant.of(task), data, task=task)
        if not result.is_valid:
            logger.info(f"Rejected update of task {task_id}: {result.errors}")
            return result

        self._repository.save(task)
        return result

    def get_task(self, task_id: int) -> Task:
        """Get a task by ID.

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        return self._repository.get(task_id)

    def list_tasks(self, status: Optional[TaskStatus] = None) -> List[Task]:
        """List tasks newest first, optionally filtered by status."""
        if status is None:
            return self._repository.find_all_ordered_by_created_at()
        return self._repository.find_by_status(status)

    def get_status_counts(self) -> Dict[TaskStatus, int]:
        return self._repository.count_by_status()

    def complete_task(self, task_id: int) -> Task:
        return self._transition(task_id, Task.mark_completed)

    def reopen_task(self, task_id: int) -> Task:
        return self._transition(task_id, Task.mark_open)

    def advance_task_status(self, task_id: int) -> Task:
        return self._transition(task_id, Task.advance_status)

    def delete_task(self, task_id: int) -> Task:
        """Delete a task.

        Returns:
            The deleted task, detached from the store

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        task = self._repository.get(task_id)
        self._repository.remove(task)
        return task

    def _transition(self, task_id: int, verb: Callable[[Task], Task]) -> Task:
        # Load, mutate and commit in one transaction; a failed commit rolls back.
        task = self._repository.get(task_id)
        old_status = task.status
        verb(task)
        self._repository.save(task)
        logger.info(f"Updated task {task_id} status: {old_status} -> {task.status}")
        return task
