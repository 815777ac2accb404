"""Re-link the category/priority copies embedded in tasks to canonical entities.

Tasks carry value copies of their Category and PriorityLevel, so renaming or
recreating a canonical entity does not reach the tasks by itself. The
Reconciler matches embedded copies to canonical entities by case-insensitive
name and swaps in the canonical object. Copies with no canonical match are
left as they are.
"""

from __future__ import annotations

from typing import Dict, Iterable, Tuple, Union

from loguru import logger

from todo_tracker.models import Category, PriorityLevel
from todo_tracker.stores import CategoryStore, PriorityStore, TaskStore, persist

Canonical = Union[Category, PriorityLevel]


class Reconciler:
    def __init__(
        self, tasks: TaskStore, categories: CategoryStore, priorities: PriorityStore
    ) -> None:
        self._tasks = tasks
        self._categories = categories
        self._priorities = priorities

    def reconcile_categories(self) -> int:
        relinked = self._relink("category", self._categories.list())
        logger.info("Categories reconciled", relinked=relinked)
        return relinked

    def reconcile_priorities(self) -> int:
        relinked = self._relink("priority", self._priorities.list())
        logger.info("Priorities reconciled", relinked=relinked)
        return relinked

    def reconcile(self) -> Tuple[int, int]:
        """Run both passes, priorities first; returns (priorities, categories) relinked."""
        return self.reconcile_priorities(), self.reconcile_categories()

    def _relink(self, field: str, entities: Iterable[Canonical]) -> int:
        canonical: Dict[str, Canonical] = {}
        for entity in entities:
            canonical.setdefault(entity.name.casefold(), entity)

        relinked = 0
        with self._tasks.lock:
            for task in self._tasks.list():
                embedded = getattr(task, field)
                if embedded is None:
                    continue
                match = canonical.get(embedded.name.casefold())
                if match is None or match == embedded:
                    continue
                self._tasks.put(task.model_copy(update={field: match}))
                relinked += 1
            # Tasks are written back as one batch, changed or not.
            self._tasks.mark_dirty()
            persist(self._tasks, self._tasks.reminders)
        return relinked
