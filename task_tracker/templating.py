"""Jinja2 template environment shared by the HTML routes."""

from pathlib import Path

from fastapi.templating import Jinja2Templates

from .models.task import PRIORITY_LABELS, TaskStatus, TaskVariant
from .security import csrf_token, get_flashed_messages

TEMPLATES_DIR = Path(__file__).parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals.update(
    csrf_token=csrf_token,
    get_flashed_messages=get_flashed_messages,
    priority_labels=PRIORITY_LABELS,
    task_statuses=list(TaskStatus),
    task_variants=list(TaskVariant),
)
