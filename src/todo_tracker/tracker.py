"""Composition root wiring the stores, reconciler and notifier together."""

from __future__ import annotations

import threading
from datetime import date
from typing import Callable, Optional

from loguru import logger

from todo_tracker.events import ChangeNotifier, Listener
from todo_tracker.reconcile import Reconciler
from todo_tracker.storage import PersistenceGateway
from todo_tracker.stores import (
    CategoryStore,
    Clock,
    PriorityStore,
    ReminderStore,
    TaskStore,
)


class TaskTracker:
    """Owns one consistent set of stores over a persistence gateway.

    Stores are built with explicit references to the stores they cascade
    into and share one lock and one change notifier. Nothing is loaded until
    ``open()`` (or ``load()``) is called.

    Example:
        tracker = TaskTracker.open(YamlFileGateway("~/.todo-tracker"))
        work = tracker.categories.find_by_name("Work")
        task = tracker.tasks.create("Report", None, work, None, deadline)
    """

    def __init__(self, gateway: PersistenceGateway, *, clock: Clock = date.today) -> None:
        self.gateway = gateway
        self.clock = clock
        self.lock = threading.RLock()
        self.notifier = ChangeNotifier()

        self.reminders = ReminderStore(
            gateway.load_reminders,
            gateway.save_reminders,
            clock=clock,
            task_lookup=lambda task_id: self.tasks.get(task_id),
            lock=self.lock,
            notifier=self.notifier,
        )
        self.tasks = TaskStore(
            gateway.load_tasks,
            gateway.save_tasks,
            self.reminders,
            default_priority=lambda: self.priorities.get_default(),
            clock=clock,
            lock=self.lock,
            notifier=self.notifier,
        )
        self.categories = CategoryStore(
            gateway.load_categories,
            gateway.save_categories,
            self.tasks,
            lock=self.lock,
            notifier=self.notifier,
        )
        self.priorities = PriorityStore(
            gateway.load_priorities,
            gateway.save_priorities,
            self.tasks,
            lock=self.lock,
            notifier=self.notifier,
        )
        self.reconciler = Reconciler(self.tasks, self.categories, self.priorities)

    @classmethod
    def open(
        cls, gateway: PersistenceGateway, *, clock: Optional[Clock] = None
    ) -> "TaskTracker":
        tracker = cls(gateway, clock=clock or date.today)
        tracker.load()
        return tracker

    def load(self) -> None:
        """Load every store, then repair embedded references and deadlines."""
        with self.lock:
            self.reminders.load()
            self.tasks.load()
            self.categories.load()
            self.priorities.load()
            self.reconciler.reconcile_priorities()
            self.reconciler.reconcile_categories()
            self.tasks.check_deadlines()
        logger.info(
            "Tracker loaded",
            tasks=len(self.tasks),
            categories=len(self.categories),
            priorities=len(self.priorities),
            reminders=len(self.reminders),
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.notifier.subscribe(listener)
