# tests/test_storage.py

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
import yaml

from todo_tracker.errors import StorageFailure
from todo_tracker.models import (
    Category,
    PriorityLevel,
    Reminder,
    ReminderType,
    Task,
    TaskStatus,
)
from todo_tracker.storage import YamlFileGateway
from todo_tracker.tracker import TaskTracker

from tests.fakes import TODAY


def test_missing_files_load_as_empty_lists(tmp_path: Path) -> None:
    gateway = YamlFileGateway(tmp_path / "data")

    assert gateway.load_tasks() == []
    assert gateway.load_categories() == []
    assert gateway.load_priorities() == []
    assert gateway.load_reminders() == []


def test_tasks_keep_embedded_copies_across_save_and_load(tmp_path: Path) -> None:
    gateway = YamlFileGateway(tmp_path)
    task = Task(
        title="Report",
        description="Q4",
        category=Category(name="Work"),
        priority=PriorityLevel(name="Default", is_default=True),
        deadline=date(2024, 1, 10),
        status=TaskStatus.IN_PROGRESS,
    )
    reminder = Reminder(
        task_id=task.id, type=ReminderType.ONE_WEEK_BEFORE, reminder_date=date(2024, 1, 3)
    )

    gateway.save_tasks([task])
    gateway.save_reminders([reminder])

    assert gateway.load_tasks() == [task]
    assert gateway.load_reminders() == [reminder]
    stored = yaml.safe_load((tmp_path / "tasks.yaml").read_text(encoding="utf-8"))
    assert stored[0]["status"] == "in-progress"
    assert stored[0]["deadline"] == "2024-01-10"
    assert stored[0]["category"]["name"] == "Work"


def test_invalid_entries_are_skipped(tmp_path: Path) -> None:
    good = Category(name="Work")
    (tmp_path / "categories.yaml").write_text(
        yaml.safe_dump([good.model_dump(mode="json"), {"id": "broken"}]),
        encoding="utf-8",
    )

    assert YamlFileGateway(tmp_path).load_categories() == [good]


def test_unparseable_file_raises_storage_failure(tmp_path: Path) -> None:
    (tmp_path / "tasks.yaml").write_text("- title: [unclosed", encoding="utf-8")

    with pytest.raises(StorageFailure):
        YamlFileGateway(tmp_path).load_tasks()


def test_non_list_document_raises_storage_failure(tmp_path: Path) -> None:
    (tmp_path / "reminders.yaml").write_text("id: 1\n", encoding="utf-8")

    with pytest.raises(StorageFailure):
        YamlFileGateway(tmp_path).load_reminders()


def test_save_into_unwritable_location_raises_storage_failure(tmp_path: Path) -> None:
    gateway = YamlFileGateway(tmp_path)
    (tmp_path / "priorities.yaml.tmp").mkdir()

    with pytest.raises(StorageFailure):
        gateway.save_priorities([PriorityLevel(name="Default", is_default=True)])


def test_tracker_state_survives_restart(tmp_path: Path) -> None:
    tracker = TaskTracker.open(YamlFileGateway(tmp_path), clock=lambda: TODAY)
    work = tracker.categories.find_by_name("Work")
    task = tracker.tasks.create("Report", None, work, None, date(2024, 1, 10))
    reminder = tracker.reminders.create(task, ReminderType.ONE_WEEK_BEFORE)

    reopened = TaskTracker.open(YamlFileGateway(tmp_path), clock=lambda: TODAY)

    assert reopened.tasks.get(task.id) == task
    assert reopened.reminders.list() == [reminder]
    assert reopened.priorities.get_default().name == "Default"
    assert len(reopened.categories) == 5
