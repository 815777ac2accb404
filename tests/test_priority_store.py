# tests/test_priority_store.py

from __future__ import annotations

from datetime import timedelta

import pytest

from todo_tracker.errors import InvalidInput, InvariantViolation
from todo_tracker.models import Category, PriorityLevel, Task
from todo_tracker.tracker import TaskTracker

from tests.fakes import TODAY, FakeGateway


def _defaults(tracker: TaskTracker) -> list[PriorityLevel]:
    return [p for p in tracker.priorities.list() if p.is_default]


def test_bootstrap_creates_four_levels_with_one_default(
    tracker: TaskTracker, gateway: FakeGateway
) -> None:
    names = sorted(p.name for p in tracker.priorities.list())
    assert names == ["Default", "High", "Low", "Urgent"]
    assert [p.name for p in _defaults(tracker)] == ["Default"]
    assert len(gateway.data["priorities"]) == 4


def test_default_level_cannot_be_deleted(tracker: TaskTracker) -> None:
    default = tracker.priorities.get_default()

    with pytest.raises(InvariantViolation):
        tracker.priorities.delete(default.id)

    assert tracker.priorities.get(default.id) == default


def test_default_level_cannot_be_updated(tracker: TaskTracker) -> None:
    default = tracker.priorities.get_default()

    with pytest.raises(InvariantViolation):
        tracker.priorities.update(default.model_copy(update={"name": "Renamed"}))
    with pytest.raises(InvariantViolation):
        tracker.priorities.update(
            default.model_copy(update={"name": "Renamed", "is_default": False})
        )

    assert tracker.priorities.get_default().name == "Default"


def test_update_renames_non_default_level(tracker: TaskTracker) -> None:
    high = tracker.priorities.find_by_name("high")
    assert high is not None

    tracker.priorities.update(high.model_copy(update={"name": "Very high"}))

    assert tracker.priorities.get(high.id).name == "Very high"


def test_delete_reassigns_referencing_tasks_to_default(
    tracker: TaskTracker, make_task
) -> None:
    low = tracker.priorities.find_by_name("Low")
    tasks = [make_task(f"task {i}", priority=low) for i in range(3)]
    untouched = make_task("other", priority=tracker.priorities.find_by_name("High"))

    assert tracker.priorities.delete(low.id) is True

    default = tracker.priorities.get_default()
    for task in tasks:
        assert tracker.tasks.get(task.id).priority == default
    assert tracker.tasks.get(untouched.id).priority.name == "High"
    assert tracker.priorities.get(low.id) is None


def test_delete_unknown_level_is_noop(tracker: TaskTracker) -> None:
    assert tracker.priorities.delete("missing") is False
    assert len(tracker.priorities) == 4


def test_deleting_urgent_moves_report_to_default(tracker: TaskTracker) -> None:
    work = tracker.categories.create("Work")
    urgent = tracker.priorities.create("Urgent", is_default=False)
    report = tracker.tasks.create(
        "Report", None, work, urgent, TODAY + timedelta(days=1)
    )

    tracker.priorities.delete(urgent.id)

    assert tracker.tasks.get(report.id).priority.name == "Default"


def test_creating_new_default_clears_previous_flag(tracker: TaskTracker) -> None:
    old_default = tracker.priorities.get_default()

    critical = tracker.priorities.create("Critical", is_default=True)

    assert tracker.priorities.get_default() == critical
    assert _defaults(tracker) == [critical]
    assert tracker.priorities.get(old_default.id).is_default is False


def test_create_requires_name(tracker: TaskTracker) -> None:
    with pytest.raises(InvalidInput):
        tracker.priorities.create("   ")
    assert len(tracker.priorities) == 4


def test_load_keeps_only_first_stored_default() -> None:
    first = PriorityLevel(name="Normal", is_default=True)
    second = PriorityLevel(name="Other", is_default=True)
    gateway = FakeGateway(priorities=[first, second])

    tracker = TaskTracker.open(gateway, clock=lambda: TODAY)

    assert _defaults(tracker) == [first]
    assert tracker.priorities.get(second.id).is_default is False
    assert sum(p.is_default for p in gateway.data["priorities"]) == 1


def test_get_default_falls_back_to_existing_level() -> None:
    high = PriorityLevel(name="High")
    low = PriorityLevel(name="Low")
    tracker = TaskTracker.open(FakeGateway(priorities=[high, low]), clock=lambda: TODAY)

    assert tracker.priorities.get_default() == high


def test_delete_of_fallback_level_moves_tasks_to_another_level() -> None:
    high = PriorityLevel(name="High")
    low = PriorityLevel(name="Low")
    work = Category(name="Work")
    task = Task(
        title="Report", category=work, priority=high, deadline=TODAY + timedelta(days=3)
    )
    tracker = TaskTracker.open(
        FakeGateway(priorities=[high, low], categories=[work], tasks=[task]),
        clock=lambda: TODAY,
    )

    tracker.priorities.delete(high.id)

    assert tracker.tasks.get(task.id).priority == low
