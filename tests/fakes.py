# tests/fakes.py

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set

from todo_tracker.errors import StorageFailure
from todo_tracker.models import Category, PriorityLevel, Reminder, Task

# Every test runs against this fixed "today".
TODAY = date(2024, 1, 1)


class FakeGateway:
    """
    In-memory persistence gateway.

    Records how many times each entity list was saved and can be told to fail
    saves for selected kinds ("tasks", "categories", "priorities", "reminders").
    """

    def __init__(
        self,
        *,
        tasks: Optional[Iterable[Task]] = None,
        categories: Optional[Iterable[Category]] = None,
        priorities: Optional[Iterable[PriorityLevel]] = None,
        reminders: Optional[Iterable[Reminder]] = None,
    ) -> None:
        self.data: Dict[str, List[Any]] = {
            "tasks": list(tasks or []),
            "categories": list(categories or []),
            "priorities": list(priorities or []),
            "reminders": list(reminders or []),
        }
        self.saves: Counter[str] = Counter()
        self.fail_saves: Set[str] = set()

    def _save(self, kind: str, items: List[Any]) -> None:
        if kind in self.fail_saves:
            raise StorageFailure(f"simulated write error for {kind}", kind=kind)
        self.saves[kind] += 1
        self.data[kind] = list(items)

    def load_tasks(self) -> List[Task]:
        return list(self.data["tasks"])

    def save_tasks(self, tasks: List[Task]) -> None:
        self._save("tasks", tasks)

    def load_categories(self) -> List[Category]:
        return list(self.data["categories"])

    def save_categories(self, categories: List[Category]) -> None:
        self._save("categories", categories)

    def load_priorities(self) -> List[PriorityLevel]:
        return list(self.data["priorities"])

    def save_priorities(self, priorities: List[PriorityLevel]) -> None:
        self._save("priorities", priorities)

    def load_reminders(self) -> List[Reminder]:
        return list(self.data["reminders"])

    def save_reminders(self, reminders: List[Reminder]) -> None:
        self._save("reminders", reminders)
