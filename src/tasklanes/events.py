"""In-process publish/subscribe channel for data-changed signals."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)


class Signal(str, Enum):
    """Named signals. None of them carries a payload."""

    TASKS_UPDATED = "tasksUpdated"
    CALENDAR_EVENTS_UPDATED = "calendarEventsUpdated"


Listener = Callable[[], None]


class EventBus:
    """Synchronous fire-and-forget signal delivery.

    Listeners subscribed after an emission do not see it. A listener that
    raises is logged and skipped so the others still run.
    """

    def __init__(self) -> None:
        self._listeners: dict[Signal, list[Listener]] = {}

    def subscribe(self, signal: Signal, listener: Listener) -> Callable[[], None]:
        """Register `listener` for `signal` and return a function that removes it."""
        self._listeners.setdefault(signal, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(signal, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def emit(self, signal: Signal) -> None:
        """Deliver `signal` to every current listener."""
        for listener in list(self._listeners.get(signal, [])):
            try:
                listener()
            except Exception:
                logger.exception("Listener for %s failed", signal.value)

    def listener_count(self, signal: Signal) -> int:
        return len(self._listeners.get(signal, []))
