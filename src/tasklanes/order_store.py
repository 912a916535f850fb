"""Persistent manual ordering of task ids within each board group.

The stored order of a group is only a preference. Group membership is
always derived from live task data, so every read for display goes
through `reconcile`, which drops ids that left the group and appends ids
that joined it since the order was last written.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TypeVar

from tasklanes.models import Task
from tasklanes.store import SettingsStore

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Task)

ORDER_KEY_PREFIX = "taskOrder:"
ORDER_INDEX_KEY = "taskOrder:index"


def order_key(group_id: str) -> str:
    return f"{ORDER_KEY_PREFIX}{group_id}"


def merge_order(stored: Iterable[str], live_ids: Iterable[str]) -> list[str]:
    """Stored ids still live, in stored order, followed by new live ids in input order."""
    live = list(dict.fromkeys(live_ids))
    live_set = set(live)

    merged: list[str] = []
    seen: set[str] = set()
    for task_id in stored:
        if task_id in live_set and task_id not in seen:
            merged.append(task_id)
            seen.add(task_id)

    merged.extend(task_id for task_id in live if task_id not in seen)
    return merged


def _with_group(index: object, group_id: str) -> list[str]:
    groups = list(index) if isinstance(index, list) else []
    if group_id not in groups:
        groups.append(group_id)
    return groups


class OrderStore:
    """Owns the per-group order records kept in the settings store."""

    def __init__(self, settings: SettingsStore) -> None:
        self.settings = settings
        self._cache: dict[str, list[str]] = {}

    async def get_order(self, group_id: str) -> list[str]:
        """Return the stored order for `group_id` (empty if never set)."""
        if group_id not in self._cache:
            stored = await self.settings.get_setting(order_key(group_id), [])
            if not isinstance(stored, list):
                logger.warning("Ignoring malformed order record for %s", group_id)
                stored = []
            self._cache[group_id] = [str(task_id) for task_id in stored]
        return list(self._cache[group_id])

    async def set_order(self, group_id: str, task_ids: list[str]) -> bool:
        """Persist `task_ids` as the order of `group_id`. Safe to repeat.

        Returns False if the write failed; the cached order is left as it was.
        """
        ids = list(dict.fromkeys(task_ids))
        if not await self.settings.set_setting(order_key(group_id), ids):
            return False
        self._cache[group_id] = ids

        await self.settings.update_setting(ORDER_INDEX_KEY, lambda index: _with_group(index, group_id))
        return True

    async def reconcile(self, group_id: str, live_ids: list[str]) -> list[str]:
        """Merge the stored order of `group_id` with its live membership."""
        return merge_order(await self.get_order(group_id), live_ids)

    async def apply_order(self, group_id: str, tasks: list[T]) -> list[T]:
        """Return `tasks` sorted by the reconciled order of `group_id`."""
        by_id = {t.id: t for t in tasks}
        ordered = await self.reconcile(group_id, [t.id for t in tasks])
        return [by_id[task_id] for task_id in ordered]

    async def remove_task_from_orders(self, task_id: str) -> None:
        """Drop a deleted task from every stored order."""
        for group_id in await self._index():
            if task_id not in await self.get_order(group_id):
                continue
            await self.settings.update_setting(
                order_key(group_id),
                lambda order: [t for t in order if t != task_id] if isinstance(order, list) else [],
            )
            self._cache.pop(group_id, None)

    async def clear_all(self) -> None:
        for group_id in await self._index():
            await self.settings.set_setting(order_key(group_id), [])
        await self.settings.set_setting(ORDER_INDEX_KEY, [])
        self._cache.clear()

    async def _index(self) -> list[str]:
        index = await self.settings.get_setting(ORDER_INDEX_KEY, [])
        return list(index) if isinstance(index, list) else []
