"""Shared test fixtures and configuration for the test suite."""

import re
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Add the parent directory to the path for imports
import sys

sys.path.append(str(Path(__file__).parent.parent))

from task_tracker.config import Settings
from task_tracker.db.session import create_db_engine, create_session_factory, init_db
from task_tracker.main import create_app
from task_tracker.models.task import TaskWithNotes, TaskWithPriority
from task_tracker.services.task_repository import TaskRepository
from task_tracker.services.task_service import TaskService


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings backed by a temporary SQLite database."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'tasks.db'}",
        secret_key="test-secret-key",
        log_level="DEBUG",
        log_dir=tmp_path / "logs",
        log_to_file=False,
        environment="test",
    )


@pytest.fixture
def engine(test_settings):
    """Create an engine with the schema in place."""
    engine = create_db_engine(test_settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    """Open a session on the test database."""
    with create_session_factory(engine)() as session:
        yield session


@pytest.fixture
def repository(session) -> TaskRepository:
    """Create a task repository for testing."""
    return TaskRepository(session)


@pytest.fixture
def task_service(repository) -> TaskService:
    """Create a task service instance for testing."""
    return TaskService(repository)


@pytest.fixture
def client(test_settings) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def scrape_token() -> Callable[[str, int, str], str]:
    """Return a helper that reads an action's anti-forgery token from rendered HTML."""

    def _scrape(html: str, task_id: int, path: str) -> str:
        pattern = (
            rf'action="[^"]*/tasks/{task_id}/{re.escape(path)}"[^>]*>\s*'
            r'<input type="hidden" name="_token" value="([0-9a-f]+)"'
        )
        match = re.search(pattern, html)
        assert match, f"No {path} form for task {task_id} in page"
        return match.group(1)

    return _scrape


# Test data fixtures
@pytest.fixture
def sample_notes_data():
    """Sample task-with-notes form data."""
    return {
        "title": "Write release notes",
        "description": "Summarize the changes in 1.0",
        "notes": "Mention the new CLI wizard",
    }


@pytest.fixture
def sample_priority_data():
    """Sample task-with-priority form data."""
    return {"title": "Fix bug", "description": "NPE on login", "priority": "high"}


@pytest.fixture
def notes_task(repository, sample_notes_data) -> TaskWithNotes:
    """A stored task with notes."""
    task = TaskWithNotes(**sample_notes_data)
    repository.save(task)
    return task


@pytest.fixture
def priority_task(repository, sample_priority_data) -> TaskWithPriority:
    """A stored task with priority."""
    task = TaskWithPriority(**sample_priority_data)
    repository.save(task)
    return task
