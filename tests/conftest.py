"""Shared fixtures for tasklanes tests."""

from __future__ import annotations

import os
from collections.abc import Generator
from datetime import datetime
from pathlib import Path

import pytest

from tasklanes.events import EventBus, Signal
from tasklanes.models import Task, TaskSection
from tasklanes.store import SettingsStore, TaskStore

# Wednesday. The Sunday-start week runs from 2025-01-05 to 2025-01-11.
NOW = datetime(2025, 1, 8, 10, 0)


@pytest.fixture
def temp_project(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary project directory and change to it."""
    original_dir = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(original_dir)


@pytest.fixture
def data_dir(temp_project: Path) -> Path:
    """Create a temporary .tasklanes directory."""
    path = temp_project / ".tasklanes"
    path.mkdir()
    return path


@pytest.fixture
def now() -> datetime:
    """Fixed clock, a Wednesday morning."""
    return NOW


@pytest.fixture
def settings_store(data_dir: Path) -> SettingsStore:
    """Create a settings store in the data directory."""
    return SettingsStore(data_dir / "settings.json")


@pytest.fixture
def task_store(data_dir: Path) -> TaskStore:
    """Create a task store in the data directory."""
    return TaskStore(data_dir / "tasks.json")


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def tasks_updated(bus: EventBus) -> list[int]:
    """Record every tasksUpdated emission."""
    calls: list[int] = []
    bus.subscribe(Signal.TASKS_UPDATED, lambda: calls.append(1))
    return calls


@pytest.fixture
def sections() -> list[TaskSection]:
    """The default section plus two user sections."""
    return [
        TaskSection(id="default", name="Tasks", order=0),
        TaskSection(id="work", name="Work", color="#3b82f6", order=1),
        TaskSection(id="home", name="Home", color="#10b981", order=2),
    ]


@pytest.fixture
def sample_tasks() -> list[Task]:
    """A mixed task set covering every view's groups."""
    return [
        Task(id="t1", text="Pay rent", priority="high", due_date=datetime(2025, 1, 7, 9, 0)),
        Task(id="t2", text="Write report", priority="medium", section_id="work", status="in_progress",
             due_date=datetime(2025, 1, 8, 17, 0)),
        Task(id="t3", text="Buy milk", section_id="home", due_date=datetime(2025, 1, 9)),
        Task(id="t4", text="Plan trip", priority="low", due_date=datetime(2025, 1, 10),
             subtasks=[Task(id="s1", completed=True), Task(id="s2")]),
        Task(id="t5", text="Read book", status="almost_done", due_date=datetime(2025, 1, 20)),
        Task(id="t6", text="Someday", priority="none"),
        Task(id="t7", text="Filed taxes", completed=True, completed_at=datetime(2025, 1, 8, 8, 0),
             status="in_progress"),
        Task(id="t8", text="Old chore", completed=True, completed_at=datetime(2024, 12, 1)),
    ]
