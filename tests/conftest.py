# tests/conftest.py

from __future__ import annotations

from datetime import date, timedelta
from typing import Callable, Optional

import pytest

from todo_tracker.models import Category, PriorityLevel, Task
from todo_tracker.tracker import TaskTracker

from tests.fakes import TODAY, FakeGateway


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def tracker(gateway: FakeGateway) -> TaskTracker:
    """Tracker over an empty fake gateway, so defaults get bootstrapped."""
    return TaskTracker.open(gateway, clock=lambda: TODAY)


@pytest.fixture()
def work(tracker: TaskTracker) -> Category:
    category = tracker.categories.find_by_name("Work")
    assert category is not None
    return category


@pytest.fixture()
def make_task(tracker: TaskTracker, work: Category) -> Callable[..., Task]:
    def _make(
        title: str = "Report",
        *,
        deadline: Optional[date] = None,
        category: Optional[Category] = None,
        priority: Optional[PriorityLevel] = None,
        description: Optional[str] = None,
    ) -> Task:
        return tracker.tasks.create(
            title,
            description,
            category or work,
            priority,
            deadline or TODAY + timedelta(days=30),
        )

    return _make
