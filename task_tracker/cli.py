"""Command-line entrypoint: interactive task creation and the web server."""

import logging
from typing import Annotated, Dict, Optional

import typer
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .db.session import create_db_engine, create_session_factory, init_db
from .deps import get_settings
from .errors import PersistenceError
from .models.task import TaskPriority, TaskVariant
from .schemas import check_field
from .services.task_repository import TaskRepository
from .services.task_service import TaskService
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)

TASK_TYPE_CHOICES: Dict[str, TaskVariant] = {
    "1": TaskVariant.NOTES,
    "2": TaskVariant.PRIORITY,
}

DatabaseUrlOption = Annotated[
    Optional[str],
    typer.Option("--database-url", help="Database URL; defaults to DATABASE_URL from the environment"),
]

app = typer.Typer(help="Task Tracker command-line tools.", no_args_is_help=True)


@app.callback()
def cli() -> None:
    """Task Tracker command-line tools."""


def _settings(database_url: Optional[str]) -> Settings:
    base = get_settings()
    if database_url:
        return base.model_copy(update={"database_url": database_url})
    return base


def _prompt_text(label: str, field_name: str) -> str:
    # Re-prompt until the value passes the same checks as the web form
    while True:
        value = typer.prompt(label, default="", show_default=False)
        message = check_field(field_name, value)
        if message is None:
            return value.strip()
        typer.echo(f"Error: {message}", err=True)


def _prompt_task_type() -> TaskVariant:
    typer.echo("Select task type:")
    for key, variant in TASK_TYPE_CHOICES.items():
        typer.echo(f"  [{key}] {variant.label}")
    while True:
        choice = typer.prompt("Task type", default="1").strip()
        if choice in TASK_TYPE_CHOICES:
            return TASK_TYPE_CHOICES[choice]
        typer.echo(f"Error: '{choice}' is not one of {', '.join(TASK_TYPE_CHOICES)}.", err=True)


def _prompt_priority() -> str:
    choices = ", ".join(priority.value for priority in TaskPriority)
    while True:
        value = typer.prompt(f"Select priority ({choices})", default=TaskPriority.MEDIUM.value)
        message = check_field("priority", value)
        if message is None:
            return value.strip()
        typer.echo(f"Error: {message}", err=True)


@app.command("create")
def create_cmd(database_url: DatabaseUrlOption = None) -> None:
    """Create a new task through interactive prompts."""
    run_settings = _settings(database_url)
    setup_logging(run_settings, console_level="WARNING")

    typer.echo("Create New Task")

    variant = _prompt_task_type()
    data = {
        "title": _prompt_text("Enter task title", "title"),
        "description": _prompt_text("Enter task description", "description"),
    }
    if variant is TaskVariant.NOTES:
        data["notes"] = _prompt_text("Enter notes for this task", "notes")
    else:
        data["priority"] = _prompt_priority()

    engine = create_db_engine(run_settings)
    try:
        init_db(engine)
        with create_session_factory(engine)() as session:
            result = TaskService(TaskRepository(session)).create_task(variant, data)
    except (PersistenceError, SQLAlchemyError) as e:
        logger.error(f"CLI task creation failed: {str(e)}")
        typer.echo(f"Failed to create task: {e}", err=True)
        raise typer.Exit(code=1)
    finally:
        engine.dispose()

    if not result.is_valid:
        for messages in result.errors.values():
            for message in messages:
                typer.echo(f"Error: {message}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f'Task "{result.task.title}" created successfully! (ID: {result.task.id})')


@app.command("serve")
def serve_cmd(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Bind port")] = None,
) -> None:
    """Run the web application with uvicorn."""
    import uvicorn

    run_settings = get_settings()
    uvicorn.run(
        "task_tracker.main:app",
        host=host or run_settings.app_host,
        port=port or run_settings.app_port,
        reload=run_settings.debug,
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
