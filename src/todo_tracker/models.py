"""Entity models.

Entities are frozen pydantic models. A Task embeds *copies* of its Category
and PriorityLevel rather than their ids; the Reconciler re-links those copies
to the canonical entities by name. Reminders point at tasks by id only.
"""

from __future__ import annotations

import uuid
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    return str(uuid.uuid4())


class TaskStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    POSTPONED = "postponed"
    COMPLETED = "completed"
    DELAYED = "delayed"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ").capitalize()


class ReminderType(str, Enum):
    ONE_DAY_BEFORE = "one-day-before"
    ONE_WEEK_BEFORE = "one-week-before"
    ONE_MONTH_BEFORE = "one-month-before"
    CUSTOM_DATE = "custom-date"

    @property
    def label(self) -> str:
        return _REMINDER_LABELS[self]


_REMINDER_LABELS = {
    ReminderType.ONE_DAY_BEFORE: "1 day before deadline",
    ReminderType.ONE_WEEK_BEFORE: "1 week before deadline",
    ReminderType.ONE_MONTH_BEFORE: "1 month before deadline",
    ReminderType.CUSTOM_DATE: "Custom date",
}


class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Unique category id")
    name: str = Field(description="Category name, the natural key used by reconciliation")


class PriorityLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Unique priority level id")
    name: str = Field(description="Priority level name")
    is_default: bool = Field(
        False, description="Whether this is the fallback level for reassigned tasks"
    )


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Unique task id")
    title: str = Field(description="Task title")
    description: Optional[str] = Field(None, description="Free-form notes")
    category: Optional[Category] = Field(
        None, description="Embedded copy of the task's category"
    )
    priority: Optional[PriorityLevel] = Field(
        None, description="Embedded copy of the task's priority level"
    )
    deadline: date = Field(description="Deadline date")
    status: TaskStatus = Field(TaskStatus.OPEN, description="Lifecycle status")

    def is_overdue(self, today: date) -> bool:
        return self.status != TaskStatus.COMPLETED and self.deadline < today


class Reminder(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Unique reminder id")
    task_id: str = Field(description="Id of the task this reminder belongs to")
    type: ReminderType = Field(description="How the reminder date was derived")
    reminder_date: date = Field(description="Date on which the reminder fires")
