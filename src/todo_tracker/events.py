"""Change notifications emitted by the stores."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List

from loguru import logger


class EntityKind(str, Enum):
    TASK = "task"
    CATEGORY = "category"
    PRIORITY = "priority"
    REMINDER = "reminder"


class ChangeAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class ChangeEvent:
    kind: EntityKind
    action: ChangeAction
    entity: Any


Listener = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """Synchronous fan-out of change events to subscribed listeners.

    A failing listener is logged and skipped; it never aborts the mutation
    that produced the event.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit(self, kind: EntityKind, action: ChangeAction, entity: Any) -> None:
        event = ChangeEvent(kind=kind, action=action, entity=entity)
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Change listener failed", kind=kind.value, action=action.value
                )
