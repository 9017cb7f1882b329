"""Tests for the task persistence gateway."""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from task_tracker.errors import PersistenceError, TaskNotFoundError
from task_tracker.models.task import Task, TaskStatus, TaskWithNotes, TaskWithPriority

BASE_TIME = datetime(2024, 5, 1, 9, 0, 0)


def _notes_task(title: str, created_at: datetime = None) -> TaskWithNotes:
    kwargs = {"created_at": created_at} if created_at else {}
    return TaskWithNotes(title=title, description=f"{title} description", notes="notes", **kwargs)


class TestTaskRepository:
    """Test TaskRepository functionality."""

    def test_save_assigns_identifier(self, repository):
        """Test the first save assigns an id."""
        task = _notes_task("First")

        task_id = repository.save(task)

        assert task_id is not None
        assert task.id == task_id

    def test_get_returns_concrete_variant(self, repository, session, notes_task, priority_task):
        """Test fetching by id returns the stored variant."""
        session.expunge_all()

        loaded_notes = repository.get(notes_task.id)
        loaded_priority = repository.get(priority_task.id)

        assert isinstance(loaded_notes, TaskWithNotes)
        assert loaded_notes.notes == "Mention the new CLI wizard"
        assert isinstance(loaded_priority, TaskWithPriority)
        assert loaded_priority.priority == "high"
        assert loaded_priority.type == "task_with_priority"

    def test_save_updates_existing_task(self, repository, session, notes_task):
        """Test saving a stored task updates its fields."""
        notes_task.title = "Renamed"
        repository.save(notes_task)
        session.expunge_all()

        assert repository.get(notes_task.id).title == "Renamed"

    def test_get_not_found(self, repository):
        """Test fetching a missing id raises TaskNotFoundError."""
        with pytest.raises(TaskNotFoundError, match="Task 999 not found"):
            repository.get(999)

    def test_find_all_newest_first(self, repository):
        """Test listing orders by creation time, newest first."""
        for offset, title in enumerate(["Oldest", "Middle", "Newest"]):
            repository.save(_notes_task(title, BASE_TIME + timedelta(minutes=offset)))

        tasks = repository.find_all_ordered_by_created_at()

        assert [task.title for task in tasks] == ["Newest", "Middle", "Oldest"]

    def test_find_all_ascending(self, repository):
        """Test the ascending direction."""
        for offset, title in enumerate(["Oldest", "Newest"]):
            repository.save(_notes_task(title, BASE_TIME + timedelta(minutes=offset)))

        tasks = repository.find_all_ordered_by_created_at(direction="asc")

        assert [task.title for task in tasks] == ["Oldest", "Newest"]

    def test_find_all_breaks_ties_by_identifier(self, repository):
        """Test tasks sharing a timestamp are ordered by ascending id."""
        later = _notes_task("Later", BASE_TIME + timedelta(hours=1))
        repository.save(later)
        tied = [_notes_task(f"Tied {i}", BASE_TIME) for i in range(4)]
        for task in tied:
            repository.save(task)

        tasks = repository.find_all_ordered_by_created_at()

        assert tasks[0].id == later.id
        assert [task.id for task in tasks[1:]] == sorted(task.id for task in tied)
        created = [task.created_at for task in tasks]
        assert created == sorted(created, reverse=True)

    def test_find_all_rejects_unknown_direction(self, repository):
        """Test only asc and desc are accepted."""
        with pytest.raises(ValueError):
            repository.find_all_ordered_by_created_at(direction="sideways")

    def test_find_by_status(self, repository):
        """Test listing by status filters and keeps the ordering."""
        done_old = _notes_task("Done old", BASE_TIME).mark_completed()
        open_task = _notes_task("Open", BASE_TIME + timedelta(minutes=1))
        done_new = _notes_task("Done new", BASE_TIME + timedelta(minutes=2)).mark_completed()
        for task in (done_old, open_task, done_new):
            repository.save(task)

        completed = repository.find_by_status(TaskStatus.COMPLETED)
        opened = repository.find_by_status("open")

        assert [task.title for task in completed] == ["Done new", "Done old"]
        assert [task.title for task in opened] == ["Open"]

    def test_find_open_includes_legacy_pending_rows(self, repository, session, notes_task):
        """Test rows stored as pending are listed as open."""
        session.execute(update(Task).where(Task.id == notes_task.id).values(status="pending"))
        session.commit()

        assert [task.id for task in repository.find_by_status("pending")] == [notes_task.id]
        assert [task.id for task in repository.find_by_status(TaskStatus.OPEN)] == [notes_task.id]

    def test_count_by_status(self, repository):
        """Test task counting by status."""
        repository.save(_notes_task("A"))
        repository.save(_notes_task("B").mark_completed())
        repository.save(_notes_task("C").advance_status())

        counts = repository.count_by_status()

        assert counts == {
            TaskStatus.OPEN: 1,
            TaskStatus.IN_PROGRESS: 1,
            TaskStatus.COMPLETED: 1,
        }

    def test_remove(self, repository, notes_task, priority_task):
        """Test deleting a task removes it from lookups and listings."""
        repository.remove(notes_task)

        with pytest.raises(TaskNotFoundError):
            repository.get(notes_task.id)
        assert [task.id for task in repository.find_all_ordered_by_created_at()] == [priority_task.id]

    def test_remove_missing_task(self, repository, notes_task):
        """Test deleting an already deleted task reports not found."""
        repository.remove(notes_task)

        with pytest.raises(TaskNotFoundError):
            repository.remove(notes_task)

    def test_save_failure_rolls_back(self, repository, session):
        """Test a failed commit raises PersistenceError and stores nothing."""
        error = OperationalError("INSERT INTO tasks", {}, Exception("disk I/O error"))

        with patch.object(session, "commit", side_effect=error):
            with pytest.raises(PersistenceError):
                repository.save(_notes_task("Doomed"))

        assert repository.find_all_ordered_by_created_at() == []
