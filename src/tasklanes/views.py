"""Partitioning of the task set into the groups of each board view.

Every view mode is described by one `_ModeRules` in the `MODES` table: which
tasks the view shows, the fixed list of group keys, a classifier that puts
each shown task into exactly one group, and the inverse mapping that says
which field changes move a task into a given group.

Group ids are namespaced by mode (`"priority:high"`, `"kanban:default"`),
so the persisted orders of two views never collide.

On the status board `completed=True` always wins over `status`. An open
task whose subtasks are all done shows as "almost done" on the progress
board.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any

from tasklanes.models import DEFAULT_SECTION_ID, Task, TaskSection, with_default_section
from tasklanes.recurrence import weekday_index


class ViewMode(str, Enum):
    FLAT = "flat"
    KANBAN = "kanban"
    KANBAN_STATUS = "kanban-status"
    PRIORITY = "priority"
    TIMELINE = "timeline"
    PROGRESS = "progress"
    HISTORY = "history"


@dataclass
class ViewContext:
    """Everything besides the tasks that partitioning depends on."""

    now: datetime = field(default_factory=datetime.now)
    sections: list[TaskSection] = field(default_factory=list)
    week_starts_on: int = 0

    def __post_init__(self) -> None:
        self.sections = with_default_section(self.sections)

    @property
    def today(self) -> date:
        return self.now.date()

    def week_start(self, day: date) -> date:
        return day - timedelta(days=(weekday_index(day) - self.week_starts_on) % 7)

    def same_week(self, day: date) -> bool:
        return self.week_start(day) == self.week_start(self.today)


@dataclass
class Group:
    """One column or section of a board."""

    id: str
    key: str
    label: str
    tasks: list[Task] = field(default_factory=list)


Mutation = dict[str, Any]


@dataclass(frozen=True)
class _ModeRules:
    include: Callable[[Task], bool]
    keys: Callable[[ViewContext], list[tuple[str, str]]]
    classify: Callable[[Task, ViewContext], str]
    mutate: Callable[[str, Task, ViewContext], Mutation | None] | None = None


def group_id(mode: ViewMode, key: str) -> str:
    return f"{mode.value}:{key}"


# Fixed group keys and labels, in display order

STATUS_GROUPS = [
    ("not_started", "Not Started"),
    ("in_progress", "In Progress"),
    ("almost_done", "Almost Done"),
    ("completed", "Completed"),
]
PRIORITY_GROUPS = [("high", "High"), ("medium", "Medium"), ("low", "Low"), ("none", "No Priority")]
TIMELINE_GROUPS = [
    ("overdue", "Overdue"),
    ("today", "Today"),
    ("tomorrow", "Tomorrow"),
    ("thisWeek", "This Week"),
    ("later", "Later"),
    ("noDate", "No Date"),
]
PROGRESS_GROUPS = [("notStarted", "Not Started"), ("inProgress", "In Progress"), ("almostDone", "Almost Done")]
HISTORY_GROUPS = [
    ("today", "Completed Today"),
    ("yesterday", "Completed Yesterday"),
    ("thisWeek", "This Week"),
    ("older", "Older"),
]

ALMOST_DONE_RATIO = 0.75


def _open(task: Task) -> bool:
    return not task.completed


def _done(task: Task) -> bool:
    return task.completed


def _everything(task: Task) -> bool:
    return True


def _fixed(groups: list[tuple[str, str]]) -> Callable[[ViewContext], list[tuple[str, str]]]:
    return lambda ctx: list(groups)


def _at_time_of(day: date, existing: datetime | None) -> datetime:
    return datetime.combine(day, existing.time() if existing else time())


# Sections


def _section_keys(ctx: ViewContext) -> list[tuple[str, str]]:
    return [(s.id, s.name) for s in ctx.sections]


def _classify_section(task: Task, ctx: ViewContext) -> str:
    known = {s.id for s in ctx.sections}
    if task.section_id in known:
        return task.section_id
    return DEFAULT_SECTION_ID


def _mutate_section(key: str, task: Task, ctx: ViewContext) -> Mutation:
    return {"section_id": key}


# Status board


def _classify_status(task: Task, ctx: ViewContext) -> str:
    if task.completed:
        return "completed"
    return task.status or "not_started"


def _mutate_status(key: str, task: Task, ctx: ViewContext) -> Mutation:
    if key == "completed":
        return {"completed": True, "completed_at": ctx.now}
    return {"status": key, "completed": False, "completed_at": None}


# Priority board


def _classify_priority(task: Task, ctx: ViewContext) -> str:
    if task.priority in ("high", "medium", "low"):
        return task.priority
    return "none"


def _mutate_priority(key: str, task: Task, ctx: ViewContext) -> Mutation:
    return {"priority": key}


# Timeline


def _classify_timeline(task: Task, ctx: ViewContext) -> str:
    if task.due_date is None:
        return "noDate"
    day = task.due_date.date()
    today = ctx.today
    if day < today:
        return "overdue"
    if day == today:
        return "today"
    if day == today + timedelta(days=1):
        return "tomorrow"
    if ctx.same_week(day):
        return "thisWeek"
    return "later"


def _mutate_timeline(key: str, task: Task, ctx: ViewContext) -> Mutation | None:
    today = ctx.today
    if key == "noDate":
        return {"due_date": None}

    offsets = {"overdue": -1, "today": 0, "tomorrow": 1, "thisWeek": 2, "later": 14}
    target = today + timedelta(days=offsets[key])
    if key == "thisWeek" and not ctx.same_week(target):
        # No day left in this week after tomorrow
        return None
    return {"due_date": _at_time_of(target, task.due_date)}


# Progress board


def subtask_ratio(task: Task) -> float:
    if not task.subtasks:
        return 0.0
    return sum(1 for st in task.subtasks if st.completed) / len(task.subtasks)


def _classify_progress(task: Task, ctx: ViewContext) -> str:
    ratio = subtask_ratio(task)
    if ratio == 0:
        return "notStarted"
    if ratio < ALMOST_DONE_RATIO:
        return "inProgress"
    return "almostDone"


# History log


def _classify_history(task: Task, ctx: ViewContext) -> str:
    when = task.completed_at or task.due_date
    if when is None:
        return "older"
    day = when.date()
    today = ctx.today
    if day == today:
        return "today"
    if day == today - timedelta(days=1):
        return "yesterday"
    if ctx.same_week(day):
        return "thisWeek"
    return "older"


MODES: dict[ViewMode, _ModeRules] = {
    ViewMode.FLAT: _ModeRules(_open, _section_keys, _classify_section, _mutate_section),
    ViewMode.KANBAN: _ModeRules(_open, _section_keys, _classify_section, _mutate_section),
    ViewMode.KANBAN_STATUS: _ModeRules(_everything, _fixed(STATUS_GROUPS), _classify_status, _mutate_status),
    ViewMode.PRIORITY: _ModeRules(_open, _fixed(PRIORITY_GROUPS), _classify_priority, _mutate_priority),
    ViewMode.TIMELINE: _ModeRules(_open, _fixed(TIMELINE_GROUPS), _classify_timeline, _mutate_timeline),
    ViewMode.PROGRESS: _ModeRules(_open, _fixed(PROGRESS_GROUPS), _classify_progress),
    ViewMode.HISTORY: _ModeRules(_done, _fixed(HISTORY_GROUPS), _classify_history),
}


def group_keys(mode: ViewMode, ctx: ViewContext) -> list[str]:
    return [key for key, _ in MODES[mode].keys(ctx)]


def parse_group_id(gid: str, ctx: ViewContext) -> tuple[ViewMode, str] | None:
    """Split a group id into mode and key. Returns None for unknown groups."""
    prefix, sep, key = gid.partition(":")
    if not sep:
        return None
    try:
        mode = ViewMode(prefix)
    except ValueError:
        return None
    if key not in group_keys(mode, ctx):
        return None
    return mode, key


def classify(task: Task, mode: ViewMode, ctx: ViewContext) -> str | None:
    """Return the group id `task` belongs to under `mode`, or None if the view hides it."""
    rules = MODES[mode]
    if not rules.include(task):
        return None
    return group_id(mode, rules.classify(task, ctx))


def partition(tasks: list[Task], mode: ViewMode, ctx: ViewContext | None = None) -> list[Group]:
    """Group `tasks` for display under `mode`.

    Groups come back in the mode's fixed order, empty ones included. Within
    a group tasks keep their input order; apply the stored manual order on
    top of this.
    """
    if ctx is None:
        ctx = ViewContext()
    rules = MODES[mode]

    groups = [Group(id=group_id(mode, key), key=key, label=label) for key, label in rules.keys(ctx)]
    by_key = {g.key: g for g in groups}

    for task in tasks:
        if not rules.include(task):
            continue
        by_key[rules.classify(task, ctx)].tasks.append(task)

    return groups


def members(gid: str, tasks: list[Task], ctx: ViewContext) -> list[Task]:
    """Tasks currently in group `gid`, in input order."""
    parsed = parse_group_id(gid, ctx)
    if parsed is None:
        return []
    mode, key = parsed
    rules = MODES[mode]
    return [t for t in tasks if rules.include(t) and rules.classify(t, ctx) == key]


def mutation_for(gid: str, task: Task, ctx: ViewContext) -> Mutation | None:
    """Field updates that move `task` into group `gid`.

    Returns an empty dict when the task is already a member and None when
    no field change can put it there.
    """
    parsed = parse_group_id(gid, ctx)
    if parsed is None:
        return None
    mode, key = parsed
    rules = MODES[mode]

    if rules.include(task) and rules.classify(task, ctx) == key:
        return {}
    if rules.mutate is None:
        return None

    updates = rules.mutate(key, task, ctx)
    if updates is None:
        return None

    moved = task.model_copy(update=updates)
    if not rules.include(moved) or rules.classify(moved, ctx) != key:
        return None
    return updates
