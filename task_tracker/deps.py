"""Dependency injection helpers for FastAPI."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from .config import Settings, settings
from .db.session import get_session
from .services.task_repository import TaskRepository
from .services.task_service import TaskService


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return settings


def get_task_repository(session: Annotated[Session, Depends(get_session)]) -> TaskRepository:
    """Get a task repository bound to the request session."""
    return TaskRepository(session)


def get_task_service(
    repository: Annotated[TaskRepository, Depends(get_task_repository)],
) -> TaskService:
    """Get a task service for the current request."""
    return TaskService(repository)
