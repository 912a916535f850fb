"""Regeneration of recurring tasks on completion."""

from __future__ import annotations

import logging
from datetime import datetime

from tasklanes.events import EventBus, Signal
from tasklanes.models import Task, new_id
from tasklanes.recurrence import effective_settings, next_due_date
from tasklanes.store import TaskStore

logger = logging.getLogger(__name__)


def regenerate(task: Task, now: datetime | None = None) -> Task | None:
    """Build the next instance of a repeating task, or None if it has ended.

    A malformed rule stops the recurrence instead of raising.
    """
    if not task.repeats:
        return None
    if now is None:
        now = datetime.now()

    next_due = next_due_date(task, now=now)
    if next_due is None:
        logger.info("Repeat rule on task %s is malformed or exhausted, not regenerating", task.id)
        return None

    remaining = task.occurrences_remaining
    settings = effective_settings(task)
    if settings is not None:
        if settings.ends_type == "after_occurrences":
            if remaining is None:
                remaining = settings.ends_after_occurrences or 0
            if remaining <= 0:
                return None
            remaining -= 1
        elif settings.ends_type == "on_date" and settings.ends_on_date is not None:
            if next_due > settings.ends_on_date:
                return None

    reminder = None
    if task.reminder_time is not None and task.due_date is not None:
        # The reminder keeps its distance to the due date
        reminder = next_due + (task.reminder_time - task.due_date)

    return task.model_copy(
        update={
            "id": new_id(),
            "completed": False,
            "completed_at": None,
            "due_date": next_due,
            "reminder_time": reminder,
            "occurrences_remaining": remaining,
            "subtasks": [st.model_copy(update={"id": new_id(), "completed": False}) for st in task.subtasks],
            "created_at": now,
            "modified_at": now,
        },
        deep=True,
    )


def complete_task(tasks: list[Task], task_id: str, now: datetime | None = None) -> list[Task]:
    """Mark a task completed and insert its successor in the same batch.

    Returns a new list; `tasks` is not modified. Completing an already
    completed task or an unknown id returns the list unchanged.
    """
    if now is None:
        now = datetime.now()

    result: list[Task] = []
    for task in tasks:
        if task.id != task_id or task.completed:
            result.append(task)
            continue

        done = task.model_copy(update={"completed": True, "completed_at": now, "modified_at": now})
        result.append(done)

        successor = regenerate(task, now=now)
        if successor is not None:
            result.append(successor)

    return result


async def mark_complete(store: TaskStore, bus: EventBus, task_id: str) -> Task | None:
    """Complete a task, persist once and announce the change once.

    Returns the successor task when one was created.
    """
    tasks = await store.load_todo_items()
    before = {t.id for t in tasks}
    if task_id not in before:
        logger.info("Cannot complete unknown task %s", task_id)
        return None

    updated = complete_task(tasks, task_id)
    if updated == tasks:
        return None

    if not await store.save_todo_items(updated):
        return None

    bus.emit(Signal.TASKS_UPDATED)
    return next((t for t in updated if t.id not in before), None)
