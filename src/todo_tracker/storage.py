"""Persistence gateway: flat per-entity YAML files.

The core only depends on the ``PersistenceGateway`` protocol. ``YamlFileGateway``
keeps one YAML list per entity kind under a data directory. Missing files load
as empty lists; I/O and YAML errors surface as ``StorageFailure``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Protocol, Type, TypeVar

import yaml
from loguru import logger
from pydantic import BaseModel, ValidationError

from todo_tracker.errors import StorageFailure
from todo_tracker.models import Category, PriorityLevel, Reminder, Task

ModelT = TypeVar("ModelT", bound=BaseModel)


class PersistenceGateway(Protocol):
    def load_tasks(self) -> List[Task]: ...

    def save_tasks(self, tasks: List[Task]) -> None: ...

    def load_categories(self) -> List[Category]: ...

    def save_categories(self, categories: List[Category]) -> None: ...

    def load_priorities(self) -> List[PriorityLevel]: ...

    def save_priorities(self, priorities: List[PriorityLevel]) -> None: ...

    def load_reminders(self) -> List[Reminder]: ...

    def save_reminders(self, reminders: List[Reminder]) -> None: ...


class YamlFileGateway:
    TASKS_FILE = "tasks.yaml"
    CATEGORIES_FILE = "categories.yaml"
    PRIORITIES_FILE = "priorities.yaml"
    REMINDERS_FILE = "reminders.yaml"

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir).expanduser()
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageFailure(
                f"Failed to create storage directory {self.data_dir}: {exc}"
            ) from exc
        logger.info("Initialized YamlFileGateway", data_dir=self.data_dir.as_posix())

    # Public API

    def load_tasks(self) -> List[Task]:
        return self._load(self.TASKS_FILE, Task)

    def save_tasks(self, tasks: List[Task]) -> None:
        self._save(self.TASKS_FILE, tasks)

    def load_categories(self) -> List[Category]:
        return self._load(self.CATEGORIES_FILE, Category)

    def save_categories(self, categories: List[Category]) -> None:
        self._save(self.CATEGORIES_FILE, categories)

    def load_priorities(self) -> List[PriorityLevel]:
        return self._load(self.PRIORITIES_FILE, PriorityLevel)

    def save_priorities(self, priorities: List[PriorityLevel]) -> None:
        self._save(self.PRIORITIES_FILE, priorities)

    def load_reminders(self) -> List[Reminder]:
        return self._load(self.REMINDERS_FILE, Reminder)

    def save_reminders(self, reminders: List[Reminder]) -> None:
        self._save(self.REMINDERS_FILE, reminders)

    # Internals

    def _load(self, filename: str, model: Type[ModelT]) -> List[ModelT]:
        path = self.data_dir / filename
        if not path.exists():
            logger.debug("No stored data yet", path=path.as_posix())
            return []
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Failed to load entities", path=path.as_posix(), error=str(exc))
            raise StorageFailure(
                f"Failed to load {filename}: {exc}", kind=filename
            ) from exc

        if raw is None:
            return []
        if not isinstance(raw, list):
            raise StorageFailure(
                f"Expected a list of entities in {filename}, got {type(raw).__name__}",
                kind=filename,
            )

        items: List[ModelT] = []
        for entry in raw:
            try:
                items.append(model.model_validate(entry))
            except ValidationError:
                logger.warning("Skipping invalid entry", path=path.as_posix())
                continue
        logger.debug("Loaded entities", path=path.as_posix(), count=len(items))
        return items

    def _save(self, filename: str, items: List[BaseModel]) -> None:
        path = self.data_dir / filename
        payload: List[Dict[str, Any]] = [item.model_dump(mode="json") for item in items]
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp_path.write_text(
                yaml.safe_dump(payload, sort_keys=False, allow_unicode=True),
                encoding="utf-8",
            )
            os.replace(tmp_path, path)
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Failed to save entities", path=path.as_posix(), error=str(exc))
            raise StorageFailure(
                f"Failed to save {filename}: {exc}", kind=filename
            ) from exc
        logger.debug("Saved entities", path=path.as_posix(), count=len(items))
