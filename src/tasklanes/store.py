"""JSON file persistence for settings, tasks, calendar events and sections.

All operations are async. File I/O runs in a worker thread so the event
loop is never blocked. Collections are replaced whole (last write wins).
Settings are one JSON object per file; each `set_setting` reads, updates
and writes it under a per-file lock, so writes to different keys never
lose each other. Read failures degrade to the caller's default; write
failures are logged and reported as False, never retried here.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from tasklanes.models import CalendarEvent, Task, TaskSection, with_default_section

logger = logging.getLogger(__name__)

T = TypeVar("T")

SECTIONS_KEY = "todoSections"

_tasks_adapter = TypeAdapter(list[Task])
_events_adapter = TypeAdapter(list[CalendarEvent])
_sections_adapter = TypeAdapter(list[TaskSection])

_file_locks: dict[Path, threading.Lock] = {}
_file_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    with _file_locks_guard:
        return _file_locks.setdefault(path.resolve(), threading.Lock())


def _read_json(path: Path) -> Any:
    with open(path) as f:
        return json.load(f)


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w") as f:
        json.dump(data, f, indent=2)
    tmp.replace(path)


def _save_document(path: Path, data: Any) -> None:
    with _lock_for(path):
        _write_json(path, data)


def _read_settings(path: Path) -> dict[str, Any]:
    """Read a settings document. Raises ValueError if it is not a JSON object."""
    if not path.exists():
        return {}
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not hold a JSON object")
    return data


def _update_setting(path: Path, key: str, update: Callable[[Any], Any]) -> None:
    with _lock_for(path):
        data = _read_settings(path)
        data[key] = update(data.get(key))
        _write_json(path, data)


class SettingsStore:
    """Key-value settings document with JSON-serialisable values."""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def get_setting(self, key: str, default: T) -> T:
        """Return the stored value for `key`, or `default` if unset or unreadable."""
        try:
            data = await asyncio.to_thread(_read_settings, self.path)
        except (OSError, ValueError) as e:
            logger.warning("Could not read settings from %s: %s", self.path, e)
            return default
        return data.get(key, default)

    async def set_setting(self, key: str, value: Any) -> bool:
        """Store `value` under `key`. Returns False if the write failed."""
        return await self.update_setting(key, lambda _: value)

    async def update_setting(self, key: str, update: Callable[[Any], Any]) -> bool:
        """Replace the value under `key` with `update(current)` in one locked step.

        `current` is None when the key is unset. An existing document that
        cannot be parsed is left untouched rather than replaced by one
        holding only `key`. Returns False if nothing was written.
        """
        try:
            await asyncio.to_thread(_update_setting, self.path, key, update)
        except ValueError as e:
            logger.error("Not writing setting %r, %s is unreadable: %s", key, self.path, e)
            return False
        except (OSError, TypeError) as e:
            logger.error("Could not write setting %r to %s: %s", key, self.path, e)
            return False
        return True


class _CollectionStore:
    """Whole-collection JSON store for a list of pydantic models."""

    adapter: TypeAdapter
    label: str

    def __init__(self, path: Path) -> None:
        self.path = path

    async def _load_all(self) -> list:
        if not self.path.exists():
            return []
        try:
            data = await asyncio.to_thread(_read_json, self.path)
            return self.adapter.validate_python(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Could not read %s from %s: %s", self.label, self.path, e)
            return []

    async def _save_all(self, items: list[BaseModel]) -> bool:
        data = [item.model_dump(mode="json") for item in items]
        try:
            await asyncio.to_thread(_save_document, self.path, data)
        except OSError as e:
            logger.error("Could not write %s to %s: %s", self.label, self.path, e)
            return False
        return True


class TaskStore(_CollectionStore):
    """Task collection. No partial updates: callers read, modify and write back."""

    adapter = _tasks_adapter
    label = "tasks"

    async def load_todo_items(self) -> list[Task]:
        return await self._load_all()

    async def save_todo_items(self, tasks: list[Task]) -> bool:
        return await self._save_all(tasks)


class EventStore(_CollectionStore):
    """Calendar event collection."""

    adapter = _events_adapter
    label = "calendar events"

    async def load_events(self) -> list[CalendarEvent]:
        return await self._load_all()

    async def save_events(self, events: list[CalendarEvent]) -> bool:
        return await self._save_all(events)


async def load_sections(settings: SettingsStore) -> list[TaskSection]:
    """Load sections sorted by display order, always including the default section."""
    raw = await settings.get_setting(SECTIONS_KEY, [])
    try:
        sections = _sections_adapter.validate_python(raw)
    except ValidationError as e:
        logger.warning("Ignoring malformed sections: %s", e)
        sections = []

    return with_default_section(sections)


async def save_sections(settings: SettingsStore, sections: list[TaskSection]) -> bool:
    return await settings.set_setting(SECTIONS_KEY, [s.model_dump(mode="json") for s in sections])
