"""Tests for the task entity hierarchy and status state machine."""

from datetime import datetime

import pytest

from task_tracker.models.task import (
    PRIORITY_LABELS,
    Task,
    TaskPriority,
    TaskStatus,
    TaskVariant,
    TaskWithNotes,
    TaskWithPriority,
)


class TestTaskModel:
    """Test task variants."""

    def test_task_with_notes_creation(self):
        """Test a new task with notes starts open with a creation time."""
        task = TaskWithNotes(title="Write docs", description="API reference", notes="Start with auth")

        assert task.type_name == "Task with Notes"
        assert task.status == TaskStatus.OPEN.value
        assert task.id is None
        assert isinstance(task.created_at, datetime)
        assert task.is_completed is False

    def test_task_with_priority_creation(self):
        """Test a task with priority exposes a priority label."""
        task = TaskWithPriority(title="Fix bug", description="NPE on login", priority="critical")

        assert task.type_name == "Task with Priority"
        assert task.status == "open"
        assert task.priority_label == "Critical"

    def test_priority_label_falls_back_to_raw_value(self):
        """Test unknown priorities are displayed as stored."""
        task = TaskWithPriority(title="Legacy", description="Imported", priority="urgent")

        assert task.priority_label == "urgent"

    def test_base_task_is_abstract(self):
        """Test the base task cannot be instantiated."""
        with pytest.raises(TypeError):
            Task(title="Nope", description="No variant")

    def test_explicit_created_at_is_kept(self):
        """Test a creation time passed at construction is used."""
        created_at = datetime(2024, 1, 1, 12, 0, 0)
        task = TaskWithNotes(title="T", description="D", notes="N", created_at=created_at)

        assert task.created_at == created_at

    def test_created_at_is_immutable(self):
        """Test the creation time cannot be reassigned."""
        task = TaskWithNotes(title="T", description="D", notes="N")
        original = task.created_at

        with pytest.raises(ValueError, match="created_at"):
            task.created_at = datetime(2000, 1, 1)

        assert task.created_at == original

    def test_priority_labels(self):
        """Test every priority has a capitalized label."""
        assert PRIORITY_LABELS == {
            "low": "Low",
            "medium": "Medium",
            "high": "High",
            "critical": "Critical",
        }
        assert TaskPriority.MEDIUM.label == "Medium"

    def test_variant_of_task(self):
        """Test the variant is derived from the task class."""
        assert TaskVariant.of(TaskWithNotes(title="T", description="D", notes="N")) is TaskVariant.NOTES
        assert TaskVariant.of(TaskWithPriority(title="T", description="D", priority="low")) is TaskVariant.PRIORITY
        assert TaskVariant.NOTES.model_class is TaskWithNotes
        assert TaskVariant.PRIORITY.label == "Task with Priority"


class TestTaskStatus:
    """Test the status state machine."""

    @pytest.fixture
    def task(self):
        return TaskWithPriority(title="Fix bug", description="NPE on login", priority="high")

    def test_status_values(self):
        """Test task status enumeration."""
        assert TaskStatus.OPEN == "open"
        assert TaskStatus.IN_PROGRESS == "in_progress"
        assert TaskStatus.COMPLETED == "completed"
        assert TaskStatus.IN_PROGRESS.label == "in progress"

    def test_parse_accepts_pending_as_open(self):
        """Test the legacy pending value is a synonym of open."""
        assert TaskStatus.parse("pending") is TaskStatus.OPEN
        assert TaskStatus.parse(" Completed ") is TaskStatus.COMPLETED
        assert TaskStatus.parse(TaskStatus.IN_PROGRESS) is TaskStatus.IN_PROGRESS

    def test_parse_rejects_unknown_values(self):
        """Test unknown statuses raise ValueError."""
        with pytest.raises(ValueError):
            TaskStatus.parse("cancelled")

    def test_mark_completed_is_idempotent(self, task):
        """Test completing twice gives the same state as completing once."""
        task.mark_completed()
        once = task.status
        task.mark_completed()

        assert task.status == once == "completed"
        assert task.is_completed is True

    def test_mark_open_is_idempotent(self, task):
        """Test reopening an open task changes nothing."""
        task.mark_open()
        assert task.status == "open"

        task.mark_completed().mark_open().mark_open()
        assert task.status == "open"

    def test_advance_status_cycle(self, task):
        """Test three advances return a new task to open."""
        assert task.advance_status().status == "in_progress"
        assert task.advance_status().status == "completed"
        assert task.advance_status().status == "open"

    def test_advance_from_pending(self, task):
        """Test a legacy pending task advances like an open one."""
        task.status = "pending"

        assert task.advance_status().status == "in_progress"

    def test_advance_from_unknown_status_falls_back_to_open(self, task):
        """Test unrecognized stored statuses reset to open."""
        task.status = "cancelled"

        assert task.advance_status().status == "open"
