"""Domain models for the task tracker.

Tasks are stored in a single ``tasks`` table. The ``type`` column holds the
discriminator and each variant adds its own nullable column.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Type

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from ..db.base import Base

LEGACY_PENDING_STATUS = "pending"
TITLE_MAX_LENGTH = 255


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TaskStatus(str, Enum):
    """Task status enumeration."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TaskStatus":
        """Parse a raw status value, accepting ``pending`` as a synonym of ``open``.

        Raises:
            ValueError: If the value is not a known status
        """
        if isinstance(value, cls):
            return value
        normalized = (value or "").strip().lower()
        if normalized == LEGACY_PENDING_STATUS:
            return cls.OPEN
        return cls(normalized)

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


_NEXT_STATUS = {
    TaskStatus.OPEN: TaskStatus.IN_PROGRESS,
    TaskStatus.IN_PROGRESS: TaskStatus.COMPLETED,
    TaskStatus.COMPLETED: TaskStatus.OPEN,
}


class TaskPriority(str, Enum):
    """Priority levels for tasks with priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def label(self) -> str:
        return self.value.capitalize()


PRIORITY_LABELS: Dict[str, str] = {priority.value: priority.label for priority in TaskPriority}


class Task(Base):
    """Base task entity shared by every variant.

    Never instantiated directly; create a ``TaskWithNotes`` or a
    ``TaskWithPriority`` instead.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_status", "status"),
        Index("ix_tasks_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TaskStatus.OPEN.value)

    __mapper_args__ = {"polymorphic_on": "type"}

    def __init__(self, **kwargs):
        if type(self) is Task:
            raise TypeError("Task is abstract; create a TaskWithNotes or TaskWithPriority")
        kwargs.setdefault("status", TaskStatus.OPEN.value)
        super().__init__(**kwargs)
        if self.created_at is None:
            self.created_at = utcnow()

    @validates("created_at")
    def _validate_created_at(self, key: str, value: datetime) -> datetime:
        if self.created_at is not None:
            raise ValueError("created_at is set once at construction and cannot change")
        return value

    @property
    def type_name(self) -> str:
        """Human readable task type, for display only."""
        raise NotImplementedError

    @property
    def status_label(self) -> str:
        return self.status.replace("_", " ")

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED.value

    def mark_completed(self) -> "Task":
        """Mark task as completed. Calling it on a completed task changes nothing."""
        self.status = TaskStatus.COMPLETED.value
        return self

    def mark_open(self) -> "Task":
        """Mark task as open. Calling it on an open task changes nothing."""
        self.status = TaskStatus.OPEN.value
        return self

    def advance_status(self) -> "Task":
        """Cycle the status open -> in_progress -> completed -> open.

        Unrecognized stored values fall back to open.
        """
        try:
            current = TaskStatus.parse(self.status)
        except ValueError:
            current = None
        self.status = _NEXT_STATUS.get(current, TaskStatus.OPEN).value
        return self

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id}, title='{self.title}', status='{self.status}')>"


class TaskWithNotes(Task):
    """Task carrying free-form notes."""

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __mapper_args__ = {"polymorphic_identity": "task_with_notes"}

    @property
    def type_name(self) -> str:
        return "Task with Notes"


class TaskWithPriority(Task):
    """Task carrying a priority level."""

    priority: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    __mapper_args__ = {"polymorphic_identity": "task_with_priority"}

    @property
    def type_name(self) -> str:
        return "Task with Priority"

    @property
    def priority_label(self) -> str:
        return PRIORITY_LABELS.get(self.priority, self.priority)


class TaskVariant(str, Enum):
    """Concrete task kinds, as named in URLs and CLI choices."""
    NOTES = "notes"
    PRIORITY = "priority"

    @property
    def model_class(self) -> Type[Task]:
        return VARIANT_MODELS[self]

    @property
    def label(self) -> str:
        return VARIANT_LABELS[self]

    @classmethod
    def of(cls, task: Task) -> "TaskVariant":
        """Return the variant a task instance belongs to."""
        for variant, model_class in VARIANT_MODELS.items():
            if isinstance(task, model_class):
                return variant
        raise TypeError(f"Unknown task type: {type(task).__name__}")


VARIANT_MODELS: Dict[TaskVariant, Type[Task]] = {
    TaskVariant.NOTES: TaskWithNotes,
    TaskVariant.PRIORITY: TaskWithPriority,
}

VARIANT_LABELS: Dict[TaskVariant, str] = {
    TaskVariant.NOTES: "Task with Notes",
    TaskVariant.PRIORITY: "Task with Priority",
}
