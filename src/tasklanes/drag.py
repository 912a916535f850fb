"""Drag-and-drop reordering across board groups.

A drop goes through `idle -> dragging -> dropped-* -> idle`. The
classification of a drop (`classify_drop`) and the list surgery
(`reorder`) are pure; `DragReorderController.drop` performs the effects:

1. a cross-group drop first writes the field change implied by the
   destination group (for example `priority="high"`),
2. the destination group's reconciled order gets the dragged id at the
   reported index and is persisted,
3. `tasksUpdated` is emitted once, after both writes.

The source group's stored order is not rewritten; the next reconciliation
drops the moved id because its membership changed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from tasklanes.config import TasklanesConfig
from tasklanes.events import EventBus, Signal
from tasklanes.models import Task
from tasklanes.order_store import OrderStore
from tasklanes.regenerate import mark_complete, regenerate
from tasklanes.store import SettingsStore, TaskStore, load_sections
from tasklanes.views import (
    Group,
    ViewContext,
    ViewMode,
    classify,
    members,
    mutation_for,
    parse_group_id,
    partition,
)

logger = logging.getLogger(__name__)


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    DROPPED_SAME_GROUP = "dropped-same-group"
    DROPPED_CROSS_GROUP = "dropped-cross-group"
    DROPPED_NO_TARGET = "dropped-no-target"


class DropOutcome(str, Enum):
    NO_TARGET = "no_target"
    NO_OP = "no_op"
    REORDERED = "reordered"
    MOVED = "moved"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class DropEvent:
    """What the UI reports when a drag ends. `dest_group_id` is None outside any group."""

    item_id: str
    source_group_id: str
    source_index: int
    dest_group_id: str | None
    dest_index: int = 0


@dataclass
class DropResult:
    outcome: DropOutcome
    order: list[str] = field(default_factory=list)
    changed: bool = False


def classify_drop(event: DropEvent) -> DragState:
    if event.dest_group_id is None:
        return DragState.DROPPED_NO_TARGET
    if event.dest_group_id == event.source_group_id:
        return DragState.DROPPED_SAME_GROUP
    return DragState.DROPPED_CROSS_GROUP


def is_noop(event: DropEvent) -> bool:
    return event.dest_group_id == event.source_group_id and event.dest_index == event.source_index


def reorder(order: list[str], item_id: str, dest_index: int) -> list[str]:
    """Move `item_id` to `dest_index` within `order`, clamping the index."""
    result = [task_id for task_id in order if task_id != item_id]
    index = max(0, min(dest_index, len(result)))
    result.insert(index, item_id)
    return result


def apply_updates(tasks: list[Task], task_id: str, updates: dict[str, Any], now: datetime) -> list[Task]:
    """Apply field updates to one task; completing a repeating task adds its successor."""
    result: list[Task] = []
    for task in tasks:
        if task.id != task_id:
            result.append(task)
            continue

        moved = task.model_copy(update={**updates, "modified_at": now})
        result.append(moved)

        if moved.completed and not task.completed:
            successor = regenerate(task, now=now)
            if successor is not None:
                result.append(successor)
    return result


class DragReorderController:
    """Applies drops to the task store and the order store."""

    def __init__(
        self,
        tasks: TaskStore,
        settings: SettingsStore,
        bus: EventBus,
        orders: OrderStore | None = None,
        week_starts_on: int = 0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.tasks = tasks
        self.settings = settings
        self.bus = bus
        self.orders = orders or OrderStore(settings)
        self.week_starts_on = week_starts_on
        self.clock = clock
        self.state = DragState.IDLE

    @classmethod
    def from_config(cls, config: TasklanesConfig, bus: EventBus | None = None) -> DragReorderController:
        return cls(
            tasks=TaskStore(config.tasks_file),
            settings=SettingsStore(config.settings_file),
            bus=bus or EventBus(),
            week_starts_on=config.week_starts_on,
        )

    async def context(self) -> ViewContext:
        sections = await load_sections(self.settings)
        return ViewContext(now=self.clock(), sections=sections, week_starts_on=self.week_starts_on)

    def begin_drag(self, item_id: str, group_id: str) -> bool:
        """Start dragging `item_id`. Refused while another drag or drop is in progress."""
        if self.state != DragState.IDLE:
            logger.debug("Ignoring drag of %s while %s", item_id, self.state.value)
            return False
        logger.debug("Dragging %s from %s", item_id, group_id)
        self.state = DragState.DRAGGING
        return True

    def cancel(self) -> DropResult:
        """Abandon the current drag. Same as dropping outside any group."""
        self.state = DragState.DROPPED_NO_TARGET
        self._reset()
        return DropResult(DropOutcome.NO_TARGET)

    async def drop(self, event: DropEvent) -> DropResult:
        self.state = classify_drop(event)
        try:
            if self.state == DragState.DROPPED_NO_TARGET:
                return DropResult(DropOutcome.NO_TARGET)
            if is_noop(event):
                return DropResult(DropOutcome.NO_OP)
            return await self._apply(event)
        finally:
            self._reset()

    def _reset(self) -> None:
        self.state = DragState.IDLE

    async def _apply(self, event: DropEvent) -> DropResult:
        assert event.dest_group_id is not None
        dest = event.dest_group_id
        cross = self.state == DragState.DROPPED_CROSS_GROUP

        ctx = await self.context()
        source = parse_group_id(event.source_group_id, ctx)
        target = parse_group_id(dest, ctx)
        if source is None or target is None or source[0] != target[0]:
            logger.info("Rejecting drop of %s from %s to %s: unknown group", event.item_id, event.source_group_id, dest)
            return DropResult(DropOutcome.REJECTED)
        mode = target[0]

        tasks = await self.tasks.load_todo_items()
        task = next((t for t in tasks if t.id == event.item_id), None)
        if task is None:
            logger.info("Rejecting drop of unknown task %s", event.item_id)
            return DropResult(DropOutcome.REJECTED)

        changed = False
        if cross:
            updates = mutation_for(dest, task, ctx)
            if updates is None:
                logger.info("Rejecting drop of %s: no field change moves it into %s", task.id, dest)
                return DropResult(DropOutcome.REJECTED)
            if updates:
                tasks = apply_updates(tasks, task.id, updates, ctx.now)
                if not await self.tasks.save_todo_items(tasks):
                    return DropResult(DropOutcome.FAILED)
                changed = True
        elif classify(task, mode, ctx) != dest:
            logger.info("Rejecting reorder of %s: not a member of %s", task.id, dest)
            return DropResult(DropOutcome.REJECTED)

        live_ids = [t.id for t in members(dest, tasks, ctx)]
        current = await self.orders.reconcile(dest, live_ids)
        new_order = reorder(current, task.id, event.dest_index)

        if await self.orders.set_order(dest, new_order):
            changed = True
        elif not changed:
            return DropResult(DropOutcome.FAILED)

        self.bus.emit(Signal.TASKS_UPDATED)
        outcome = DropOutcome.MOVED if cross else DropOutcome.REORDERED
        return DropResult(outcome, order=new_order, changed=changed)

    async def load_board(self, mode: ViewMode) -> list[Group]:
        """Groups for `mode` with each group's tasks in reconciled manual order."""
        ctx = await self.context()
        tasks = await self.tasks.load_todo_items()
        groups = partition(tasks, mode, ctx)
        for group in groups:
            group.tasks = await self.orders.apply_order(group.id, group.tasks)
        return groups

    async def complete(self, task_id: str) -> Task | None:
        return await mark_complete(self.tasks, self.bus, task_id)
