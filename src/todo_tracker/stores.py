"""In-memory entity stores and the cascade rules that tie them together.

Each store owns a map of id -> entity, loads it from and saves it to the
persistence gateway, and applies the cross-store cascades inline:

- deleting a category deletes its tasks, which deletes their reminders;
- deleting a non-default priority level moves its tasks to the default level;
- completing a task deletes its reminders;
- deleting a task (for any reason) deletes its reminders.

All stores built by one ``TaskTracker`` share a single re-entrant lock, so a
cascade is one critical section. In-memory mutations always happen before any
save, and a failed save never rolls them back: the store stays dirty and the
``StorageFailure`` is raised to the caller.
"""

from __future__ import annotations

import calendar
import threading
from datetime import date, timedelta
from typing import (
    Callable,
    Dict,
    Generic,
    Iterable,
    List,
    Optional,
    Tuple,
    TypeVar,
)

from loguru import logger

from todo_tracker.errors import (
    InvalidInput,
    InvalidState,
    InvariantViolation,
    NotFound,
    StorageFailure,
)
from todo_tracker.events import ChangeAction, ChangeNotifier, EntityKind
from todo_tracker.models import (
    Category,
    PriorityLevel,
    Reminder,
    ReminderType,
    Task,
    TaskStatus,
)

EntityT = TypeVar("EntityT", Category, PriorityLevel, Reminder, Task)
NamedT = TypeVar("NamedT", Category, PriorityLevel)

Clock = Callable[[], date]
TaskLookup = Callable[[str], Optional[Task]]

DEFAULT_CATEGORY_NAMES = ("Work", "Personal", "Study", "Health", "Finance")
DEFAULT_PRIORITY_NAME = "Default"
EXTRA_PRIORITY_NAMES = ("High", "Low", "Urgent")


# ---------------------------------------------------------------------------
# Helpers


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise InvalidInput(f"{field} is required")
    return value.strip()


def _months_before(day: date, months: int) -> date:
    """Shift ``day`` back by calendar months, clamping to the month's last day."""
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def persist(*stores: "EntityStore") -> None:
    """Save every dirty store, attempting all of them even if one fails."""
    failures: List[StorageFailure] = []
    for store in stores:
        try:
            store.save_if_dirty()
        except StorageFailure as exc:
            failures.append(exc)
    if not failures:
        return
    if len(failures) == 1:
        raise failures[0]
    first = failures[0]
    raise StorageFailure(
        f"{first} (and {len(failures) - 1} more storage failure(s))",
        kind=first.kind,
        failures=failures,
    )


# ---------------------------------------------------------------------------
# Base store


class EntityStore(Generic[EntityT]):
    kind: EntityKind

    def __init__(
        self,
        loader: Callable[[], List[EntityT]],
        saver: Callable[[List[EntityT]], None],
        *,
        lock: Optional[threading.RLock] = None,
        notifier: Optional[ChangeNotifier] = None,
    ) -> None:
        self._loader = loader
        self._saver = saver
        self._lock = lock or threading.RLock()
        self._notifier = notifier or ChangeNotifier()
        self._items: Dict[str, EntityT] = {}
        self._dirty = False

    def load(self) -> None:
        items = self._loader()
        with self._lock:
            self._items = {item.id: item for item in items}
            self._dirty = False
        logger.debug("Store loaded", kind=self.kind.value, count=len(items))

    def save_if_dirty(self) -> None:
        with self._lock:
            if not self._dirty:
                return
            snapshot = list(self._items.values())
            try:
                self._saver(snapshot)
            except StorageFailure as exc:
                logger.error(
                    "Save failed; in-memory state kept",
                    kind=self.kind.value,
                    error=str(exc),
                )
                raise
            self._dirty = False

    def mark_dirty(self) -> None:
        with self._lock:
            self._dirty = True

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def get(self, entity_id: str) -> Optional[EntityT]:
        with self._lock:
            return self._items.get(entity_id)

    def list(self) -> List[EntityT]:
        with self._lock:
            return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._items

    # In-memory primitives; callers hold the lock and persist afterwards.

    def _put(self, entity: EntityT) -> ChangeAction:
        action = ChangeAction.UPDATED if entity.id in self._items else ChangeAction.CREATED
        self._items[entity.id] = entity
        self._dirty = True
        self._notifier.emit(self.kind, action, entity)
        return action

    def _pop(self, entity_id: str) -> Optional[EntityT]:
        entity = self._items.pop(entity_id, None)
        if entity is not None:
            self._dirty = True
            self._notifier.emit(self.kind, ChangeAction.DELETED, entity)
        return entity


# ---------------------------------------------------------------------------
# Reminders


class ReminderStore(EntityStore[Reminder]):
    kind = EntityKind.REMINDER

    def __init__(
        self,
        loader: Callable[[], List[Reminder]],
        saver: Callable[[List[Reminder]], None],
        *,
        clock: Clock = date.today,
        task_lookup: Optional[TaskLookup] = None,
        lock: Optional[threading.RLock] = None,
        notifier: Optional[ChangeNotifier] = None,
    ) -> None:
        super().__init__(loader, saver, lock=lock, notifier=notifier)
        self._clock = clock
        self._task_lookup = task_lookup

    def _current_task(self, task: Task) -> Task:
        """Return the stored version of ``task``; the caller's copy may be stale."""
        if self._task_lookup is None:
            return task
        current = self._task_lookup(task.id)
        if current is None:
            raise NotFound(f"Task {task.id} not found")
        return current

    @staticmethod
    def compute_date(
        deadline: date, reminder_type: ReminderType, custom_date: Optional[date] = None
    ) -> date:
        if reminder_type == ReminderType.ONE_DAY_BEFORE:
            return deadline - timedelta(days=1)
        if reminder_type == ReminderType.ONE_WEEK_BEFORE:
            return deadline - timedelta(days=7)
        if reminder_type == ReminderType.ONE_MONTH_BEFORE:
            return _months_before(deadline, 1)
        if reminder_type == ReminderType.CUSTOM_DATE:
            if custom_date is None:
                raise InvalidInput("custom_date is required for custom-date reminders")
            return custom_date
        raise InvalidInput(f"Unknown reminder type: {reminder_type!r}")

    def validate_date(self, reminder_date: date, deadline: date) -> None:
        if reminder_date > deadline:
            raise InvalidInput(
                f"Reminder date {reminder_date} cannot be after the deadline {deadline}"
            )
        today = self._clock()
        if reminder_date < today:
            raise InvalidInput(f"Reminder date {reminder_date} cannot be in the past")

    def create(
        self,
        task: Task,
        reminder_type: ReminderType,
        custom_date: Optional[date] = None,
    ) -> Reminder:
        with self._lock:
            task = self._current_task(task)
            if task.status == TaskStatus.COMPLETED:
                raise InvalidState(
                    f"Cannot create a reminder for completed task {task.id}"
                )
            reminder_date = self.compute_date(task.deadline, reminder_type, custom_date)
            self.validate_date(reminder_date, task.deadline)

            reminder = Reminder(
                task_id=task.id, type=reminder_type, reminder_date=reminder_date
            )
            self._put(reminder)
            logger.info(
                "Reminder created",
                reminder_id=reminder.id,
                task_id=task.id,
                reminder_date=reminder_date.isoformat(),
            )
            persist(self)
        return reminder

    def update(self, reminder: Reminder, task: Optional[Task] = None) -> Reminder:
        """Replace an existing reminder.

        When the referenced task is supplied the date is re-validated against
        its deadline; callers pass it whenever they recomputed the date.
        """
        with self._lock:
            if reminder.id not in self._items:
                raise NotFound(f"Reminder {reminder.id} not found")
            if task is not None:
                if task.id != reminder.task_id:
                    raise InvalidInput(
                        f"Reminder {reminder.id} does not belong to task {task.id}"
                    )
                task = self._current_task(task)
                self.validate_date(reminder.reminder_date, task.deadline)
            self._put(reminder)
            logger.info("Reminder updated", reminder_id=reminder.id)
            persist(self)
        return reminder

    def reschedule(
        self,
        reminder_id: str,
        task: Task,
        reminder_type: ReminderType,
        custom_date: Optional[date] = None,
    ) -> Reminder:
        with self._lock:
            existing = self._items.get(reminder_id)
            if existing is None:
                raise NotFound(f"Reminder {reminder_id} not found")
            task = self._current_task(task)
            if task.status == TaskStatus.COMPLETED:
                raise InvalidState(
                    f"Cannot reschedule a reminder of completed task {task.id}"
                )
            reminder_date = self.compute_date(task.deadline, reminder_type, custom_date)
            updated = existing.model_copy(
                update={"type": reminder_type, "reminder_date": reminder_date}
            )
            return self.update(updated, task)

    def delete(self, reminder_id: str) -> bool:
        with self._lock:
            removed = self._pop(reminder_id)
            if removed is None:
                return False
            logger.info("Reminder deleted", reminder_id=reminder_id)
            persist(self)
        return True

    def discard_for_task(self, task_id: str) -> List[Reminder]:
        """Drop every reminder of ``task_id`` in memory only."""
        with self._lock:
            doomed = [r.id for r in self._items.values() if r.task_id == task_id]
            return [r for r in (self._pop(rid) for rid in doomed) if r is not None]

    def delete_for_task(self, task_id: str) -> int:
        with self._lock:
            removed = self.discard_for_task(task_id)
            if removed:
                logger.info(
                    "Reminders deleted for task", task_id=task_id, count=len(removed)
                )
            persist(self)
        return len(removed)

    def for_task(self, task_id: str) -> List[Reminder]:
        with self._lock:
            return [r for r in self._items.values() if r.task_id == task_id]

    def due_on(self, day: date) -> List[Reminder]:
        with self._lock:
            return [r for r in self._items.values() if r.reminder_date == day]


# ---------------------------------------------------------------------------
# Tasks


class TaskStore(EntityStore[Task]):
    kind = EntityKind.TASK

    def __init__(
        self,
        loader: Callable[[], List[Task]],
        saver: Callable[[List[Task]], None],
        reminders: ReminderStore,
        *,
        default_priority: Optional[Callable[[], PriorityLevel]] = None,
        clock: Clock = date.today,
        lock: Optional[threading.RLock] = None,
        notifier: Optional[ChangeNotifier] = None,
    ) -> None:
        super().__init__(loader, saver, lock=lock, notifier=notifier)
        self.reminders = reminders
        self._default_priority = default_priority
        self._clock = clock

    # Mutations

    def _priority_or_default(self, priority: Optional[PriorityLevel]) -> PriorityLevel:
        if priority is not None:
            return priority
        if self._default_priority is None:
            raise InvalidInput("priority is required")
        return self._default_priority()

    def create(
        self,
        title: str,
        description: Optional[str],
        category: Optional[Category],
        priority: Optional[PriorityLevel],
        deadline: Optional[date],
    ) -> Task:
        title = _require_text(title, "title")
        if deadline is None:
            raise InvalidInput("deadline is required")
        if category is None:
            raise InvalidInput("category is required")
        with self._lock:
            task = Task(
                title=title,
                description=description,
                category=category,
                priority=self._priority_or_default(priority),
                deadline=deadline,
            )
            self._put(task)
            logger.info("Task created", task_id=task.id, title=title)
            persist(self)
        return task

    def put(self, task: Task) -> None:
        """Upsert in memory and apply the completion cascade; no save."""
        with self._lock:
            self._put(task)
            if task.status == TaskStatus.COMPLETED:
                self.reminders.discard_for_task(task.id)

    def update(self, task: Task) -> Task:
        _require_text(task.title, "title")
        if task.category is None:
            raise InvalidInput("category is required")
        with self._lock:
            if task.priority is None:
                task = task.model_copy(
                    update={"priority": self._priority_or_default(None)}
                )
            self.put(task)
            logger.info("Task updated", task_id=task.id, status=task.status.value)
            persist(self, self.reminders)
        return task

    def discard(self, task_id: str) -> Tuple[Optional[Task], List[Reminder]]:
        """Remove a task and its reminders in memory only."""
        with self._lock:
            task = self._pop(task_id)
            reminders = self.reminders.discard_for_task(task_id)
            return task, reminders

    def delete(self, task_id: str) -> bool:
        with self._lock:
            task, reminders = self.discard(task_id)
            logger.info(
                "Task deleted",
                task_id=task_id,
                found=task is not None,
                reminders=len(reminders),
            )
            persist(self, self.reminders)
        return task is not None

    def check_deadlines(self) -> int:
        """Flip overdue, non-completed tasks to DELAYED; one save if any changed."""
        today = self._clock()
        with self._lock:
            overdue = [
                task
                for task in self._items.values()
                if task.status != TaskStatus.DELAYED and task.is_overdue(today)
            ]
            for task in overdue:
                self._put(task.model_copy(update={"status": TaskStatus.DELAYED}))
            if overdue:
                logger.info("Tasks marked delayed", count=len(overdue))
                persist(self)
        return len(overdue)

    # Queries

    def uncompleted(self) -> List[Task]:
        with self._lock:
            return [t for t in self._items.values() if t.status != TaskStatus.COMPLETED]

    def by_category(self, category: Category) -> List[Task]:
        with self._lock:
            return [t for t in self._items.values() if t.category == category]

    def search(
        self,
        title: Optional[str] = None,
        category: Optional[Category] = None,
        priority: Optional[PriorityLevel] = None,
    ) -> List[Task]:
        needle = title.lower() if title else None
        with self._lock:
            return [
                t
                for t in self._items.values()
                if (needle is None or needle in t.title.lower())
                and (category is None or t.category == category)
                and (priority is None or t.priority == priority)
            ]

    def delayed_count(self) -> int:
        return self._count(lambda t: t.status == TaskStatus.DELAYED)

    def completed_count(self) -> int:
        return self._count(lambda t: t.status == TaskStatus.COMPLETED)

    def due_within(self, days: int) -> int:
        limit = self._clock() + timedelta(days=days)
        return self._count(
            lambda t: t.status != TaskStatus.COMPLETED and t.deadline <= limit
        )

    def _count(self, predicate: Callable[[Task], bool]) -> int:
        with self._lock:
            return sum(1 for t in self._items.values() if predicate(t))


# ---------------------------------------------------------------------------
# Categories


class CategoryStore(EntityStore[Category]):
    kind = EntityKind.CATEGORY

    def __init__(
        self,
        loader: Callable[[], List[Category]],
        saver: Callable[[List[Category]], None],
        tasks: TaskStore,
        *,
        lock: Optional[threading.RLock] = None,
        notifier: Optional[ChangeNotifier] = None,
    ) -> None:
        super().__init__(loader, saver, lock=lock, notifier=notifier)
        self._tasks = tasks

    def load(self) -> None:
        super().load()
        with self._lock:
            if self._items:
                return
            for name in DEFAULT_CATEGORY_NAMES:
                self._put(Category(name=name))
            logger.info("Bootstrapped default categories", count=len(self._items))
            persist(self)

    def create(self, name: str) -> Category:
        category = Category(name=_require_text(name, "category name"))
        with self._lock:
            self._put(category)
            logger.info("Category created", category_id=category.id, name=category.name)
            persist(self)
        return category

    def update(self, category: Category) -> Category:
        category = category.model_copy(
            update={"name": _require_text(category.name, "category name")}
        )
        with self._lock:
            self._put(category)
            logger.info("Category updated", category_id=category.id, name=category.name)
            persist(self)
        return category

    def delete(self, category_id: str) -> bool:
        with self._lock:
            category = self._items.get(category_id)
            if category is None:
                return False
            doomed = self._tasks_referencing(category)
            for task in doomed:
                self._tasks.discard(task.id)
            self._pop(category_id)
            logger.info(
                "Category deleted",
                category_id=category_id,
                name=category.name,
                tasks_deleted=len(doomed),
            )
            persist(self._tasks, self._tasks.reminders, self)
        return True

    def find_by_name(self, name: str) -> Optional[Category]:
        return _find_by_name(self.list(), name)

    def _tasks_referencing(self, category: Category) -> List[Task]:
        key = category.name.casefold()
        return [
            task
            for task in self._tasks.list()
            if task.category is not None
            and (task.category.id == category.id or task.category.name.casefold() == key)
        ]


# ---------------------------------------------------------------------------
# Priority levels


class PriorityStore(EntityStore[PriorityLevel]):
    kind = EntityKind.PRIORITY

    def __init__(
        self,
        loader: Callable[[], List[PriorityLevel]],
        saver: Callable[[List[PriorityLevel]], None],
        tasks: TaskStore,
        *,
        lock: Optional[threading.RLock] = None,
        notifier: Optional[ChangeNotifier] = None,
    ) -> None:
        super().__init__(loader, saver, lock=lock, notifier=notifier)
        self._tasks = tasks

    def load(self) -> None:
        super().load()
        with self._lock:
            if not self._items:
                self._put(PriorityLevel(name=DEFAULT_PRIORITY_NAME, is_default=True))
                for name in EXTRA_PRIORITY_NAMES:
                    self._put(PriorityLevel(name=name))
                logger.info("Bootstrapped default priority levels", count=len(self._items))
            else:
                self._repair_defaults()
            persist(self)

    def _repair_defaults(self) -> None:
        flagged = [level for level in self._items.values() if level.is_default]
        if not flagged:
            logger.warning("No default priority level stored; falling back to first level")
            return
        for extra in flagged[1:]:
            logger.warning(
                "Multiple default priority levels stored; clearing flag",
                priority_id=extra.id,
                name=extra.name,
            )
            self._put(extra.model_copy(update={"is_default": False}))

    def create(self, name: str, is_default: bool = False) -> PriorityLevel:
        level = PriorityLevel(name=_require_text(name, "priority name"), is_default=is_default)
        with self._lock:
            if is_default:
                self._clear_default_flags()
            self._put(level)
            logger.info(
                "Priority level created",
                priority_id=level.id,
                name=level.name,
                is_default=is_default,
            )
            persist(self)
        return level

    def _clear_default_flags(self) -> None:
        for level in [lv for lv in self._items.values() if lv.is_default]:
            self._put(level.model_copy(update={"is_default": False}))

    def update(self, level: PriorityLevel) -> PriorityLevel:
        with self._lock:
            existing = self._items.get(level.id)
            if level.is_default or (existing is not None and existing.is_default):
                raise InvariantViolation("The default priority level cannot be modified")
            level = level.model_copy(
                update={"name": _require_text(level.name, "priority name")}
            )
            self._put(level)
            logger.info("Priority level updated", priority_id=level.id, name=level.name)
            persist(self)
        return level

    def delete(self, priority_id: str) -> bool:
        with self._lock:
            level = self._items.get(priority_id)
            if level is None:
                return False
            if level.is_default:
                raise InvariantViolation("The default priority level cannot be deleted")
            fallback = self.get_default()
            if fallback.id == priority_id:
                others = [lv for lv in self._items.values() if lv.id != priority_id]
                if not others:
                    raise InvariantViolation("The last priority level cannot be deleted")
                fallback = others[0]

            reassigned = 0
            for task in self._tasks.list():
                if task.priority is not None and task.priority.id == priority_id:
                    self._tasks.put(task.model_copy(update={"priority": fallback}))
                    reassigned += 1
            self._pop(priority_id)
            logger.info(
                "Priority level deleted",
                priority_id=priority_id,
                name=level.name,
                reassigned_to=fallback.name,
                tasks_reassigned=reassigned,
            )
            persist(self._tasks, self._tasks.reminders, self)
        return True

    def get_default(self) -> PriorityLevel:
        with self._lock:
            for level in self._items.values():
                if level.is_default:
                    return level
            for level in self._items.values():
                return level
        raise NotFound("No priority levels available")

    def find_by_name(self, name: str) -> Optional[PriorityLevel]:
        return _find_by_name(self.list(), name)


def _find_by_name(entities: Iterable[NamedT], name: str) -> Optional[NamedT]:
    key = name.casefold()
    for entity in entities:
        if entity.name.casefold() == key:
            return entity
    return None
