"""Todo tracker MCP server entrypoint.

Exposes the tracker core (tasks, categories, priority levels, reminders) as
MCP tools over stdio. Data lives in per-entity YAML files under the configured
data directory. The server only translates arguments and renders results;
every rule (cascades, default priority, reminder validation) lives in the core.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Annotated, Any, Dict, Iterator, List, Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from loguru import logger
from pydantic import BaseModel

from todo_tracker.errors import InvalidInput, NotFound, StorageFailure, TrackerError
from todo_tracker.logging_config import setup_logging
from todo_tracker.models import (
    Category,
    PriorityLevel,
    Reminder,
    ReminderType,
    Task,
    TaskStatus,
)
from todo_tracker.settings import Settings, get_settings
from todo_tracker.storage import YamlFileGateway
from todo_tracker.tracker import TaskTracker

Status = Literal["open", "in-progress", "postponed", "completed", "delayed"]
ReminderKind = Literal["one-day-before", "one-week-before", "one-month-before", "custom-date"]


# ---------------------------------------------------------------------------
# Helpers


def _parse_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise InvalidInput(f"{field} must be an ISO 8601 date (YYYY-MM-DD), got {value!r}") from exc


def _dump(entity: BaseModel) -> Dict[str, Any]:
    return entity.model_dump(mode="json")


@contextmanager
def _tool_errors() -> Iterator[None]:
    try:
        yield
    except StorageFailure as exc:
        logger.error("Storage failure during tool call", error=str(exc))
        raise ToolError(f"Change applied but not saved to disk: {exc}") from exc
    except TrackerError as exc:
        logger.info("Tool call rejected", error=str(exc), error_type=type(exc).__name__)
        raise ToolError(str(exc)) from exc


def _require_task(tracker: TaskTracker, task_id: str) -> Task:
    task = tracker.tasks.get(task_id)
    if task is None:
        raise NotFound(f"Task {task_id} not found")
    return task


def _require_category(tracker: TaskTracker, category_id: str) -> Category:
    category = tracker.categories.get(category_id)
    if category is None:
        raise NotFound(f"Category {category_id} not found")
    return category


def _require_priority(tracker: TaskTracker, priority_id: str) -> PriorityLevel:
    level = tracker.priorities.get(priority_id)
    if level is None:
        raise NotFound(f"Priority level {priority_id} not found")
    return level


def _require_reminder(tracker: TaskTracker, reminder_id: str) -> Reminder:
    reminder = tracker.reminders.get(reminder_id)
    if reminder is None:
        raise NotFound(f"Reminder {reminder_id} not found")
    return reminder


# ---------------------------------------------------------------------------
# MCP server setup


def build_app(tracker: TaskTracker, settings: Settings) -> FastMCP:
    app = FastMCP(name=settings.app_name, version=settings.app_version)

    # -- Categories ---------------------------------------------------------

    @app.tool()
    def list_categories() -> dict:
        """List all categories.

        Example: {}
        """
        return {"categories": [_dump(c) for c in tracker.categories.list()]}

    @app.tool()
    def create_category(name: Annotated[str, "Category name"]) -> dict:
        """Create a category.

        Example: {"name": "Errands"}
        """
        with _tool_errors():
            return {"category": _dump(tracker.categories.create(name))}

    @app.tool()
    def update_category(
        id: Annotated[str, "Category id"],
        name: Annotated[str, "New category name"],
    ) -> dict:
        """Rename a category.

        Tasks keep their embedded copy until the next reconcile pass.

        Example: {"id": "<category-id>", "name": "Office"}
        """
        with _tool_errors():
            existing = _require_category(tracker, id)
            updated = tracker.categories.update(existing.model_copy(update={"name": name}))
            return {"category": _dump(updated)}

    @app.tool()
    def delete_category(id: Annotated[str, "Category id"]) -> dict:
        """Delete a category together with all of its tasks and their reminders.

        Example: {"id": "<category-id>"}
        """
        with _tool_errors():
            return {"deleted": tracker.categories.delete(id)}

    # -- Priority levels ----------------------------------------------------

    @app.tool()
    def list_priorities() -> dict:
        """List all priority levels; exactly one is flagged as default.

        Example: {}
        """
        return {"priorities": [_dump(p) for p in tracker.priorities.list()]}

    @app.tool()
    def create_priority(
        name: Annotated[str, "Priority level name"],
        is_default: Annotated[bool, "Make this the new default level"] = False,
    ) -> dict:
        """Create a priority level.

        Example: {"name": "Critical"}
        """
        with _tool_errors():
            return {"priority": _dump(tracker.priorities.create(name, is_default))}

    @app.tool()
    def update_priority(
        id: Annotated[str, "Priority level id"],
        name: Annotated[str, "New priority level name"],
    ) -> dict:
        """Rename a priority level. The default level cannot be modified.

        Example: {"id": "<priority-id>", "name": "Very high"}
        """
        with _tool_errors():
            existing = _require_priority(tracker, id)
            updated = tracker.priorities.update(existing.model_copy(update={"name": name}))
            return {"priority": _dump(updated)}

    @app.tool()
    def delete_priority(id: Annotated[str, "Priority level id"]) -> dict:
        """Delete a priority level; its tasks move to the default level.

        The default level cannot be deleted.

        Example: {"id": "<priority-id>"}
        """
        with _tool_errors():
            return {"deleted": tracker.priorities.delete(id)}

    # -- Tasks --------------------------------------------------------------

    @app.tool()
    def create_task(
        title: Annotated[str, "Task title"],
        category_id: Annotated[str, "Id of the task's category"],
        deadline: Annotated[str, "Deadline date in ISO 8601 format (e.g., '2026-01-15')"],
        description: Annotated[Optional[str], "Detailed task description or notes"] = None,
        priority_id: Annotated[
            Optional[str], "Id of the priority level; the default level when omitted"
        ] = None,
    ) -> dict:
        """Create a task with status 'open'.

        Example: {"title": "Quarterly report", "category_id": "<category-id>", "deadline": "2026-01-15"}
        """
        with _tool_errors():
            category = _require_category(tracker, category_id)
            priority = _require_priority(tracker, priority_id) if priority_id else None
            task = tracker.tasks.create(
                title,
                description,
                category,
                priority,
                _parse_date(deadline, "deadline"),
            )
            return {"task": _dump(task)}

    @app.tool()
    def read_task(id: Annotated[str, "Task id"]) -> dict:
        """Read a task together with its reminders.

        Example: {"id": "<task-id>"}
        """
        with _tool_errors():
            task = _require_task(tracker, id)
            reminders = tracker.reminders.for_task(id)
            return {"task": _dump(task), "reminders": [_dump(r) for r in reminders]}

    @app.tool()
    def update_task(
        id: Annotated[str, "Task id"],
        title: Annotated[Optional[str], "New title"] = None,
        description: Annotated[Optional[str], "New description; an empty string clears it"] = None,
        category_id: Annotated[Optional[str], "Id of the new category"] = None,
        priority_id: Annotated[Optional[str], "Id of the new priority level"] = None,
        deadline: Annotated[Optional[str], "New deadline (ISO 8601 date)"] = None,
        status: Annotated[
            Optional[Status],
            "New status: 'open', 'in-progress', 'postponed', 'completed' or 'delayed'",
        ] = None,
    ) -> dict:
        """Update fields of an existing task. Only provided fields change.

        Setting status to 'completed' deletes the task's reminders. An empty
        description clears it.

        Example: {"id": "<task-id>", "status": "completed"}
        """
        with _tool_errors():
            existing = _require_task(tracker, id)
            changes: Dict[str, Any] = {}
            if title is not None:
                changes["title"] = title
            if description is not None:
                changes["description"] = description or None
            if category_id is not None:
                changes["category"] = _require_category(tracker, category_id)
            if priority_id is not None:
                changes["priority"] = _require_priority(tracker, priority_id)
            if deadline is not None:
                changes["deadline"] = _parse_date(deadline, "deadline")
            if status is not None:
                changes["status"] = TaskStatus(status)
            task = tracker.tasks.update(existing.model_copy(update=changes))
            return {"task": _dump(task)}

    @app.tool()
    def delete_task(id: Annotated[str, "Task id"]) -> dict:
        """Delete a task and its reminders.

        Example: {"id": "<task-id>"}
        """
        with _tool_errors():
            return {"deleted": tracker.tasks.delete(id)}

    @app.tool()
    def list_tasks(
        title: Annotated[
            Optional[str], "Case-insensitive substring the title must contain"
        ] = None,
        category_id: Annotated[Optional[str], "Only tasks in this category"] = None,
        priority_id: Annotated[Optional[str], "Only tasks with this priority level"] = None,
        uncompleted_only: Annotated[bool, "Exclude completed tasks"] = False,
    ) -> dict:
        """List tasks sorted by deadline, with optional filters.

        Example: {"title": "report", "uncompleted_only": true}
        """
        with _tool_errors():
            category = _require_category(tracker, category_id) if category_id else None
            priority = _require_priority(tracker, priority_id) if priority_id else None
            tasks: List[Task] = tracker.tasks.search(title, category, priority)
            if uncompleted_only:
                tasks = [t for t in tasks if t.status != TaskStatus.COMPLETED]
            tasks.sort(key=lambda t: (t.deadline, t.title.lower()))
            return {"total": len(tasks), "tasks": [_dump(t) for t in tasks]}

    # -- Reminders ----------------------------------------------------------

    @app.tool()
    def create_reminder(
        task_id: Annotated[str, "Id of the task to be reminded about"],
        type: Annotated[
            ReminderKind,
            "'one-day-before', 'one-week-before', 'one-month-before' or 'custom-date'",
        ],
        custom_date: Annotated[
            Optional[str], "Reminder date (ISO 8601), required for 'custom-date'"
        ] = None,
    ) -> dict:
        """Create a reminder for a task that is not completed.

        The date must fall between today and the task deadline (inclusive).

        Example: {"task_id": "<task-id>", "type": "one-week-before"}
        """
        with _tool_errors():
            task = _require_task(tracker, task_id)
            custom = _parse_date(custom_date, "custom_date") if custom_date else None
            reminder = tracker.reminders.create(task, ReminderType(type), custom)
            return {"reminder": _dump(reminder)}

    @app.tool()
    def update_reminder(
        id: Annotated[str, "Reminder id"],
        type: Annotated[ReminderKind, "New reminder type"],
        custom_date: Annotated[
            Optional[str], "Reminder date (ISO 8601), required for 'custom-date'"
        ] = None,
    ) -> dict:
        """Change a reminder's type; the date is recomputed and re-validated.

        Example: {"id": "<reminder-id>", "type": "one-day-before"}
        """
        with _tool_errors():
            reminder = _require_reminder(tracker, id)
            task = _require_task(tracker, reminder.task_id)
            custom = _parse_date(custom_date, "custom_date") if custom_date else None
            updated = tracker.reminders.reschedule(id, task, ReminderType(type), custom)
            return {"reminder": _dump(updated)}

    @app.tool()
    def delete_reminder(id: Annotated[str, "Reminder id"]) -> dict:
        """Delete a reminder.

        Example: {"id": "<reminder-id>"}
        """
        with _tool_errors():
            return {"deleted": tracker.reminders.delete(id)}

    @app.tool()
    def list_reminders(
        task_id: Annotated[Optional[str], "Only reminders of this task"] = None,
    ) -> dict:
        """List reminders sorted by date, optionally for a single task.

        Example: {"task_id": "<task-id>"}
        """
        reminders = (
            tracker.reminders.for_task(task_id) if task_id else tracker.reminders.list()
        )
        reminders.sort(key=lambda r: r.reminder_date)
        return {"reminders": [_dump(r) for r in reminders]}

    # -- Maintenance and summary -------------------------------------------

    @app.tool()
    def check_deadlines() -> dict:
        """Mark overdue, non-completed tasks as 'delayed'.

        Example: {}
        """
        with _tool_errors():
            return {"delayed": tracker.tasks.check_deadlines()}

    @app.tool()
    def reconcile() -> dict:
        """Re-link tasks' embedded categories and priority levels by name.

        Example: {}
        """
        with _tool_errors():
            priorities, categories = tracker.reconciler.reconcile()
            return {"priorities_relinked": priorities, "categories_relinked": categories}

    @app.tool()
    def summary(
        days: Annotated[
            Optional[int], "Look-ahead window for the due-soon count"
        ] = None,
    ) -> dict:
        """Summary counters: total, delayed, completed and due within N days.

        Example: {"days": 3}
        """
        window = settings.summary_window_days if days is None else days
        return {
            "total": len(tracker.tasks),
            "delayed": tracker.tasks.delayed_count(),
            "completed": tracker.tasks.completed_count(),
            "due_within_days": window,
            "due_within": tracker.tasks.due_within(window),
        }

    return app


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    logger.info("Starting todo-tracker MCP server")
    tracker = TaskTracker.open(YamlFileGateway(settings.app_data_dir))
    app = build_app(tracker, settings)
    app.run(show_banner=False)


if __name__ == "__main__":
    main()
