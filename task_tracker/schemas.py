"""Form schemas and input binding for the task tracker.

Binding never raises on bad input: it returns a ``BindingResult`` holding
either the bound task or the per-field error messages.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from .models.task import PRIORITY_LABELS, TITLE_MAX_LENGTH, Task, TaskVariant

FIELD_ERROR_MESSAGES = {
    "title": "Title cannot be blank",
    "description": "Description cannot be blank",
    "notes": "Notes cannot be blank for this task type",
    "priority": "Priority must be selected",
}
TITLE_TOO_LONG_MESSAGE = f"Title cannot be longer than {TITLE_MAX_LENGTH} characters"
INVALID_PRIORITY_MESSAGE = "Invalid priority selected"


def check_field(name: str, value: Any) -> Optional[str]:
    """Check one raw field value.

    Args:
        name: Field name (title, description, notes or priority)
        value: Raw input value

    Returns:
        The error message, or None when the value is valid
    """
    text = _clean(value)
    if not text:
        return FIELD_ERROR_MESSAGES[name]
    if name == "title" and len(text) > TITLE_MAX_LENGTH:
        return TITLE_TOO_LONG_MESSAGE
    if name == "priority" and text not in PRIORITY_LABELS:
        return INVALID_PRIORITY_MESSAGE
    return None


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _validated(value: Any, info: ValidationInfo) -> str:
    message = check_field(info.field_name, value)
    if message:
        raise PydanticCustomError("task_field", message)
    return _clean(value)


# Form schemas
class TaskForm(BaseModel):
    """Fields shared by every task variant."""

    model_config = ConfigDict(validate_default=True, extra="ignore")

    title: str = ""
    description: str = ""

    @field_validator("title", "description", mode="before")
    @classmethod
    def check_common_fields(cls, value: Any, info: ValidationInfo) -> str:
        return _validated(value, info)


class TaskWithNotesForm(TaskForm):
    """Schema for a task with notes."""

    notes: str = ""

    @field_validator("notes", mode="before")
    @classmethod
    def check_notes(cls, value: Any, info: ValidationInfo) -> str:
        return _validated(value, info)


class TaskWithPriorityForm(TaskForm):
    """Schema for a task with priority."""

    priority: str = ""

    @field_validator("priority", mode="before")
    @classmethod
    def check_priority(cls, value: Any, info: ValidationInfo) -> str:
        return _validated(value, info)


FORM_SCHEMAS: Dict[TaskVariant, Type[TaskForm]] = {
    TaskVariant.NOTES: TaskWithNotesForm,
    TaskVariant.PRIORITY: TaskWithPriorityForm,
}


@dataclass
class BindingResult:
    """Outcome of binding raw input to a task."""

    task: Optional[Task] = None
    variant: Optional[TaskVariant] = None
    errors: Dict[str, List[str]] = field(default_factory=dict)
    values: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def form_values(variant: TaskVariant, task: Optional[Task] = None) -> Dict[str, str]:
    """Return the form field values for a variant, pre-filled from a task if given."""
    names = FORM_SCHEMAS[variant].model_fields
    if task is None:
        return {name: "" for name in names}
    return {name: getattr(task, name) or "" for name in names}


def collect_errors(exc: ValidationError) -> Dict[str, List[str]]:
    """Flatten a pydantic ValidationError into field name -> messages."""
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        name = str(error["loc"][0]) if error["loc"] else "__all__"
        errors.setdefault(name, []).append(error["msg"])
    return errors


def bind_task(variant: TaskVariant, data: Mapping[str, Any], task: Optional[Task] = None) -> BindingResult:
    """Bind raw key/value input to a task of the given variant.

    Args:
        variant: Target task variant
        data: Raw input, e.g. submitted form data
        task: Existing task to update; a new task is built when omitted

    Returns:
        Binding result with either the task or field errors
    """
    if task is not None and TaskVariant.of(task) is not variant:
        raise ValueError(f"Cannot bind {variant.value} input to {type(task).__name__}")

    schema = FORM_SCHEMAS[variant]
    values = {name: _clean(data.get(name)) for name in schema.model_fields}

    try:
        form = schema(**values)
    except ValidationError as e:
        return BindingResult(variant=variant, errors=collect_errors(e), values=values)

    if task is None:
        task = variant.model_class(**form.model_dump())
    else:
        for name, value in form.model_dump().items():
            setattr(task, name, value)

    return BindingResult(task=task, variant=variant, values=values)
