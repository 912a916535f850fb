"""Data model for tasks, repeat rules, calendar events and sections."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

Priority = Literal["none", "low", "medium", "high"]
TaskStatus = Literal["not_started", "in_progress", "almost_done"]
RepeatType = Literal["none", "hour", "daily", "weekly", "weekdays", "weekends", "monthly", "yearly", "custom"]
RepeatFrequency = Literal["hour", "daily", "weekly", "monthly", "yearly"]
RepeatEndsType = Literal["never", "on_date", "after_occurrences"]
MonthlyType = Literal["date", "weekday"]
MonthlyWeek = Literal[1, 2, 3, 4, -1]
EventRepeat = Literal["never", "daily", "weekly", "monthly", "yearly"]

DEFAULT_SECTION_ID = "default"


def new_id() -> str:
    """Generate a fresh task identifier."""
    return uuid.uuid4().hex


class RepeatSettings(BaseModel):
    """Advanced repeat rule for a task."""

    frequency: RepeatFrequency
    interval: int = 1
    ends_type: RepeatEndsType = "never"
    ends_on_date: datetime | None = None
    ends_after_occurrences: int | None = None
    weekly_days: list[int] | None = None
    """0-6 for Sun-Sat, only used when frequency is weekly."""
    monthly_day: int | None = None
    """1-30 for a date rule, 0-6 (Sun-Sat) for a weekday rule. Monthly only."""
    monthly_type: MonthlyType = "date"
    monthly_week: MonthlyWeek | None = None
    """Which weekday of the month for a weekday rule: 1-4, or -1 for the last."""

    @model_validator(mode="after")
    def _check_end_condition(self) -> RepeatSettings:
        if self.ends_on_date is not None and self.ends_after_occurrences is not None:
            raise ValueError("only one of ends_on_date and ends_after_occurrences may be set")
        if self.ends_type == "on_date" and self.ends_on_date is None:
            raise ValueError("ends_type 'on_date' requires ends_on_date")
        if self.ends_type == "after_occurrences" and self.ends_after_occurrences is None:
            raise ValueError("ends_type 'after_occurrences' requires ends_after_occurrences")
        if self.ends_type == "never" and (
            self.ends_on_date is not None or self.ends_after_occurrences is not None
        ):
            raise ValueError("ends_type 'never' cannot carry an end condition")
        return self


class Task(BaseModel):
    """A todo item."""

    id: str = Field(default_factory=new_id)
    text: str = ""
    completed: bool = False
    completed_at: datetime | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    section_id: str | None = None
    due_date: datetime | None = None
    reminder_time: datetime | None = None
    repeat_type: RepeatType = "none"
    repeat_days: list[int] | None = None
    """0-6 for Sun-Sat, used by simple weekly and custom rules."""
    repeat: RepeatSettings | None = None
    occurrences_remaining: int | None = None
    """Successors still allowed by an after_occurrences rule."""
    subtasks: list[Task] = Field(default_factory=list)
    created_at: datetime | None = None
    modified_at: datetime | None = None

    @property
    def repeats(self) -> bool:
        return self.repeat_type != "none" or self.repeat is not None


class CalendarEvent(BaseModel):
    """A calendar event with a simple repeat rule."""

    id: str = Field(default_factory=new_id)
    title: str = ""
    start_date: datetime
    end_date: datetime
    all_day: bool = False
    repeat: EventRepeat = "never"
    location: str | None = None
    description: str | None = None


class TaskSection(BaseModel):
    """A user-defined section that tasks are filed under."""

    id: str
    name: str
    color: str = "#6b7280"
    order: int = 0
    is_collapsed: bool = False


def default_section() -> TaskSection:
    """The implicit section that unfiled tasks belong to."""
    return TaskSection(id=DEFAULT_SECTION_ID, name="Tasks", order=0)


def with_default_section(sections: list[TaskSection]) -> list[TaskSection]:
    """Sections in display order, with the default section added if missing."""
    result = list(sections)
    if not any(s.id == DEFAULT_SECTION_ID for s in result):
        result.insert(0, default_section())
    return sorted(result, key=lambda s: (s.order, s.id != DEFAULT_SECTION_ID))
