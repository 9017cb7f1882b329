"""Task management HTML routes."""

import logging
from typing import Annotated, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from starlette.datastructures import FormData

from ..deps import get_task_service
from ..errors import PersistenceError, SecurityTokenError, TaskNotFoundError
from ..models.task import Task, TaskStatus, TaskVariant
from ..schemas import form_values
from ..security import flash, verify_csrf_token
from ..services.task_service import TaskService
from ..templating import templates

logger = logging.getLogger(__name__)

router = APIRouter()

TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]

NOT_FOUND_MESSAGE = "Task not found."
INVALID_TOKEN_MESSAGE = "Invalid security token. Please try again."


async def get_form_data(request: Request) -> FormData:
    """Parse the submitted form so sync handlers can read it."""
    return await request.form()


FormDep = Annotated[FormData, Depends(get_form_data)]


def _redirect_to_index(request: Request) -> RedirectResponse:
    return RedirectResponse(url=str(request.url_for("task_index")), status_code=status.HTTP_303_SEE_OTHER)


def _render_form(
    request: Request,
    variant: TaskVariant,
    action: str,
    heading: str,
    values: Dict[str, str],
    errors: Optional[Dict[str, List[str]]] = None,
    status_code: int = status.HTTP_200_OK,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "task/form.html",
        {
            "variant": variant,
            "action": action,
            "heading": heading,
            "values": values,
            "errors": errors or {},
        },
        status_code=status_code,
    )


@router.get("/", response_class=HTMLResponse, name="task_index")
def list_tasks(
    request: Request,
    task_service: TaskServiceDep,
    status_filter: Optional[str] = Query(None, alias="status"),
) -> HTMLResponse:
    """List tasks newest first, optionally filtered by status."""
    selected_status = None
    if status_filter:
        try:
            selected_status = TaskStatus.parse(status_filter)
        except ValueError:
            logger.debug(f"Ignoring unknown status filter: {status_filter}")

    try:
        tasks = task_service.list_tasks(selected_status)
        counts = task_service.get_status_counts()
    except PersistenceError as e:
        logger.error(f"Error listing tasks: {str(e)}")
        flash(request, "error", "Failed to load tasks.")
        tasks, counts = [], {}

    return templates.TemplateResponse(
        request,
        "task/index.html",
        {"tasks": tasks, "counts": counts, "selected_status": selected_status},
    )


@router.get("/new", response_class=HTMLResponse, name="task_new")
def choose_task_type(request: Request) -> HTMLResponse:
    """Render the task type chooser."""
    return templates.TemplateResponse(request, "task/new.html", {})


@router.get("/new/{variant}", response_class=HTMLResponse, name="task_new_variant")
def new_task_form(request: Request, variant: TaskVariant) -> HTMLResponse:
    """Render an empty form for the chosen task type."""
    return _render_form(
        request,
        variant,
        action=str(request.url_for("task_create", variant=variant.value)),
        heading=f"New {variant.label}",
        values=form_values(variant),
    )


@router.post("/new/{variant}", name="task_create")
def create_task(
    request: Request,
    variant: TaskVariant,
    form: FormDep,
    task_service: TaskServiceDep,
) -> Response:
    """Validate and store a new task."""
    action = str(request.url_for("task_create", variant=variant.value))
    heading = f"New {variant.label}"

    try:
        result = task_service.create_task(variant, form)
    except PersistenceError as e:
        logger.error(f"Task creation failed: {str(e)}")
        flash(request, "error", "Failed to create task. Please try again.")
        return _render_form(
            request, variant, action, heading,
            values={name: str(form.get(name) or "") for name in form_values(variant)},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if not result.is_valid:
        return _render_form(
            request, variant, action, heading,
            values=result.values,
            errors=result.errors,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    flash(request, "success", "Task created successfully!")
    return _redirect_to_index(request)


@router.get("/{task_id}", response_class=HTMLResponse, name="task_show")
def show_task(request: Request, task_id: int, task_service: TaskServiceDep) -> Response:
    """Show a single task."""
    try:
        task = task_service.get_task(task_id)
    except TaskNotFoundError:
        flash(request, "error", NOT_FOUND_MESSAGE)
        return _redirect_to_index(request)
    except PersistenceError as e:
        logger.error(f"Error getting task {task_id}: {str(e)}")
        flash(request, "error", "Failed to load task details.")
        return _redirect_to_index(request)

    return templates.TemplateResponse(request, "task/show.html", {"task": task})


@router.get("/{task_id}/edit", response_class=HTMLResponse, name="task_edit")
def edit_task_form(request: Request, task_id: int, task_service: TaskServiceDep) -> Response:
    """Render the edit form pre-filled with the task's fields."""
    try:
        task = task_service.get_task(task_id)
    except TaskNotFoundError:
        flash(request, "error", NOT_FOUND_MESSAGE)
        return _redirect_to_index(request)

    variant = TaskVariant.of(task)
    return _render_form(
        request,
        variant,
        action=str(request.url_for("task_update", task_id=task_id)),
        heading=f"Edit {variant.label}",
        values=form_values(variant, task),
    )


@router.post("/{task_id}/edit", name="task_update")
def update_task(
    request: Request,
    task_id: int,
    form: FormDep,
    task_service: TaskServiceDep,
) -> Response:
    """Validate and store changes to a task."""
    try:
        result = task_service.update_task(task_id, form)
    except TaskNotFoundError:
        flash(request, "error", NOT_FOUND_MESSAGE)
        return _redirect_to_index(request)
    except PersistenceError as e:
        logger.error(f"Task update failed: {str(e)}")
        flash(request, "error", "Failed to update task. Please try again.")
        return _redirect_to_index(request)

    if not result.is_valid:
        variant = result.variant
        return _render_form(
            request,
            variant,
            action=str(request.url_for("task_update", task_id=task_id)),
            heading=f"Edit {variant.label}",
            values=result.values,
            errors=result.errors,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    flash(request, "success", "Task updated successfully!")
    return _redirect_to_index(request)


def _run_action(
    request: Request,
    task_id: int,
    action: str,
    token: Optional[str],
    operation: Callable[[int], Task],
    success_message: Callable[[Task], str],
    failure_message: str,
) -> RedirectResponse:
    try:
        verify_csrf_token(request, action, task_id, token)
    except SecurityTokenError:
        flash(request, "error", INVALID_TOKEN_MESSAGE)
        return _redirect_to_index(request)

    try:
        task = operation(task_id)
        flash(request, "success", success_message(task))
    except TaskNotFoundError:
        flash(request, "error", NOT_FOUND_MESSAGE)
    except PersistenceError as e:
        logger.error(f"Task {action} failed for {task_id}: {str(e)}")
        flash(request, "error", failure_message)

    return _redirect_to_index(request)


@router.post("/{task_id}/complete", name="task_complete")
def complete_task(request: Request, task_id: int, form: FormDep, task_service: TaskServiceDep) -> RedirectResponse:
    return _run_action(
        request, task_id, "complete", form.get("_token"),
        task_service.complete_task,
        lambda task: f'Task "{task.title}" marked as completed.',
        "Failed to complete task. Please try again.",
    )


@router.post("/{task_id}/reopen", name="task_reopen")
def reopen_task(request: Request, task_id: int, form: FormDep, task_service: TaskServiceDep) -> RedirectResponse:
    return _run_action(
        request, task_id, "reopen", form.get("_token"),
        task_service.reopen_task,
        lambda task: f'Task "{task.title}" reopened.',
        "Failed to reopen task. Please try again.",
    )


@router.post("/{task_id}/toggle-status", name="task_toggle_status")
def toggle_task_status(request: Request, task_id: int, form: FormDep, task_service: TaskServiceDep) -> RedirectResponse:
    return _run_action(
        request, task_id, "toggle", form.get("_token"),
        task_service.advance_task_status,
        lambda task: f"Task status updated to: {task.status_label}",
        "Failed to update task status.",
    )


@router.post("/{task_id}/delete", name="task_delete")
def delete_task(request: Request, task_id: int, form: FormDep, task_service: TaskServiceDep) -> RedirectResponse:
    return _run_action(
        request, task_id, "delete", form.get("_token"),
        task_service.delete_task,
        lambda task: "Task deleted successfully!",
        "Failed to delete task. Please try again.",
    )
