"""Expansion of repeating calendar events into concrete occurrence dates."""

from __future__ import annotations

from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from tasklanes.models import CalendarEvent
from tasklanes.recurrence import event_rule, occurs_on


def expand(
    events: list[CalendarEvent],
    horizon_months: int = 3,
    now: datetime | None = None,
) -> list[datetime]:
    """Return the occurrence dates of `events` up to `now + horizon_months`.

    Each event contributes its own start date plus every repetition that
    falls on or before the horizon. The horizon is only a safety bound:
    events repeat indefinitely. Dates shared by several events appear once
    per event; the result is not sorted.
    """
    if now is None:
        now = datetime.now()
    limit = now + relativedelta(months=horizon_months)

    dates: list[datetime] = []
    for event in events:
        dates.append(event.start_date)
        rule = event_rule(event.repeat, event.start_date)
        if rule is None:
            continue
        dates.extend(d for d in rule.between(event.start_date, limit, inc=True) if d > event.start_date)

    return dates


def events_on(events: list[CalendarEvent], day: date | datetime) -> list[CalendarEvent]:
    """Return the events that have an occurrence on `day`."""
    return [event for event in events if occurs_on(event.repeat, event.start_date, day)]
