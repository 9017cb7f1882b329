"""Persistence gateway for tasks."""

import logging
from typing import Dict, List, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import PersistenceError, TaskNotFoundError
from ..models.task import LEGACY_PENDING_STATUS, Task, TaskStatus

logger = logging.getLogger(__name__)

ORDER_DESC = "desc"
ORDER_ASC = "asc"


class TaskRepository:
    """Stores and loads tasks of every variant through one SQLAlchemy session.

    Loads are polymorphic: fetching a row returns the concrete variant
    recorded in its discriminator column.
    """

    def __init__(self, session: Session):
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def save(self, task: Task) -> int:
        """Insert or update a task and commit.

        Args:
            task: Task to persist

        Returns:
            The task identifier, assigned by the store on first save

        Raises:
            PersistenceError: If the write fails; the transaction is rolled back
        """
        is_new = task.id is None
        self._session.add(task)
        self._commit(f"save task {task.id if not is_new else '(new)'}")

        if is_new:
            logger.info(f"Inserted task {task.id}: {task.title}")
        else:
            logger.info(f"Updated task {task.id}: {task.title}")
        return task.id

    def remove(self, task: Task) -> None:
        """Hard delete a task.

        Raises:
            TaskNotFoundError: If the task is not (or no longer) stored
            PersistenceError: If the delete fails
        """
        try:
            stored = self._session.get(Task, task.id, populate_existing=True) if task.id is not None else None
        except SQLAlchemyError as e:
            self._rollback()
            raise PersistenceError(f"Failed to load task {task.id}: {str(e)}") from e

        if stored is None:
            logger.warning(f"Task {task.id} not found for deletion")
            raise TaskNotFoundError(task.id)

        self._session.delete(stored)
        self._commit(f"delete task {task.id}")
        logger.info(f"Deleted task {task.id}: {task.title}")

    def get(self, task_id: int) -> Task:
        """Load a task by id as its concrete variant.

        Raises:
            TaskNotFoundError: If no task has this id
        """
        try:
            task = self._session.get(Task, task_id)
        except SQLAlchemyError as e:
            self._rollback()
            raise PersistenceError(f"Failed to load task {task_id}: {str(e)}") from e

        if task is None:
            logger.debug(f"Task {task_id} not found")
            raise TaskNotFoundError(task_id)
        return task

    def find_all_ordered_by_created_at(self, direction: str = ORDER_DESC) -> List[Task]:
        """List every task ordered by creation time, ties broken by ascending id."""
        return self._find(None, direction)

    def find_by_status(self, status: Union[TaskStatus, str], direction: str = ORDER_DESC) -> List[Task]:
        """List tasks with the given status, ordered like ``find_all_ordered_by_created_at``."""
        return self._find(TaskStatus.parse(status), direction)

    def count_by_status(self) -> Dict[TaskStatus, int]:
        """Count tasks per status. Rows holding unknown values are skipped."""
        counts = {status: 0 for status in TaskStatus}
        stmt = select(Task.status, func.count(Task.id)).group_by(Task.status)

        try:
            rows = self._session.execute(stmt).all()
        except SQLAlchemyError as e:
            self._rollback()
            raise PersistenceError(f"Failed to count tasks: {str(e)}") from e

        for raw_status, count in rows:
            try:
                counts[TaskStatus.parse(raw_status)] += count
            except ValueError:
                logger.warning(f"Ignoring unknown task status in counts: {raw_status}")
        return counts

    def _find(self, status: Optional[TaskStatus] = None, direction: str = ORDER_DESC) -> List[Task]:
        if direction not in (ORDER_DESC, ORDER_ASC):
            raise ValueError(f"Invalid order direction: {direction}")

        created_at = Task.created_at.desc() if direction == ORDER_DESC else Task.created_at.asc()
        stmt = select(Task).order_by(created_at, Task.id.asc())
        if status is TaskStatus.OPEN:
            stmt = stmt.where(Task.status.in_([status.value, LEGACY_PENDING_STATUS]))
        elif status is not None:
            stmt = stmt.where(Task.status == status.value)

        try:
            tasks = list(self._session.scalars(stmt).all())
        except SQLAlchemyError as e:
            self._rollback()
            raise PersistenceError(f"Failed to list tasks: {str(e)}") from e

        logger.debug(f"Listed {len(tasks)} tasks (status={status}, direction={direction})")
        return tasks

    def _commit(self, operation: str) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Failed to {operation}: {str(e)}")
            raise PersistenceError(f"Failed to {operation}") from e

    def _rollback(self) -> None:
        try:
            self._session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed")
