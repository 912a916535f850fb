"""Recurrence rules.

Two rule vocabularies live here:

- the calendar event rule (never/daily/weekly/monthly/yearly), answered by
  `occurs_on` and enumerated by `event_rule`;
- the richer task rule (`Task.repeat_type`, `Task.repeat_days` and optional
  `RepeatSettings`), turned into a `dateutil.rrule` by `task_rule` and
  advanced by `next_due_date`.

Monthly and yearly rules never clamp to the end of a shorter month: rrule
skips months that lack the day. An event anchored on the 31st simply has no
occurrence in a 30-day month, and a task due on the 31st moves to the next
month that has a 31st.
"""

from __future__ import annotations

from datetime import date, datetime, time

from dateutil.relativedelta import relativedelta
from dateutil.rrule import (
    DAILY,
    FR,
    HOURLY,
    MO,
    MONTHLY,
    SA,
    SU,
    TH,
    TU,
    WE,
    WEEKLY,
    YEARLY,
    rrule,
)

from tasklanes.models import EventRepeat, RepeatSettings, Task

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
FULL_DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# rrule weekdays indexed by our 0 = Sunday numbering
RRULE_DAYS = (SU, MO, TU, WE, TH, FR, SA)

_EVENT_FREQ = {"daily": DAILY, "weekly": WEEKLY, "monthly": MONTHLY, "yearly": YEARLY}
_TASK_FREQ = {"hour": HOURLY, "daily": DAILY, "weekly": WEEKLY, "monthly": MONTHLY, "yearly": YEARLY}


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def weekday_index(value: date | datetime) -> int:
    """Day of week with 0 = Sunday, matching `weekly_days`."""
    return (value.weekday() + 1) % 7


def occurs_on(repeat: EventRepeat, event_start: date | datetime, target: date | datetime) -> bool:
    """Return True if an event starting at `event_start` occurs on `target`.

    Comparisons are made on calendar days. Days before the anchor never
    match, whatever the rule.
    """
    start = _as_date(event_start)
    day = _as_date(target)

    if day < start:
        return False

    if repeat == "never":
        return day == start
    if repeat == "daily":
        return True
    if repeat == "weekly":
        return (day - start).days % 7 == 0
    if repeat == "monthly":
        return day.day == start.day
    if repeat == "yearly":
        return day.day == start.day and day.month == start.month
    return False


def event_rule(repeat: EventRepeat, anchor: datetime) -> rrule | None:
    """Return the occurrence rule of an event anchored at `anchor`, or None if it never repeats."""
    freq = _EVENT_FREQ.get(repeat)
    if freq is None:
        return None
    return rrule(freq, dtstart=anchor)


def effective_settings(task: Task) -> RepeatSettings | None:
    """Return the repeat settings that drive a task, expanding simple rules."""
    if task.repeat is not None:
        return task.repeat
    if task.repeat_type in ("hour", "daily", "weekly", "monthly", "yearly"):
        return RepeatSettings(frequency=task.repeat_type)
    return None


def _byweekday(days: list[int]) -> tuple | None:
    if not days or any(d < 0 or d > 6 for d in days):
        return None
    return tuple(RRULE_DAYS[d] for d in sorted(set(days)))


def task_rule(task: Task, start: datetime) -> rrule | None:
    """Build the rrule of a task's repeat rule anchored at `start`.

    Returns None when the task does not repeat or its rule is malformed.
    Weekly rules count weeks from Sunday so a day-set wraps into the week
    `interval` weeks on.
    """
    if task.repeat is None:
        if task.repeat_type == "weekdays":
            return rrule(WEEKLY, byweekday=(MO, TU, WE, TH, FR), dtstart=start)
        if task.repeat_type == "weekends":
            return rrule(WEEKLY, byweekday=(SA, SU), dtstart=start)
        if task.repeat_type == "custom" or (task.repeat_type == "weekly" and task.repeat_days is not None):
            byweekday = _byweekday(task.repeat_days or [])
            if byweekday is None:
                return None
            return rrule(WEEKLY, byweekday=byweekday, wkst=SU, dtstart=start)

    settings = effective_settings(task)
    if settings is None or settings.interval < 1:
        return None

    freq = _TASK_FREQ[settings.frequency]
    interval = settings.interval

    if settings.frequency == "weekly" and settings.weekly_days is not None:
        byweekday = _byweekday(settings.weekly_days)
        if byweekday is None:
            return None
        return rrule(WEEKLY, interval=interval, byweekday=byweekday, wkst=SU, dtstart=start)

    if settings.frequency == "monthly":
        if settings.monthly_type == "weekday":
            day = settings.monthly_day
            if settings.monthly_week is None or day is None or not 0 <= day <= 6:
                return None
            nth = RRULE_DAYS[day](settings.monthly_week)
            return rrule(MONTHLY, interval=interval, byweekday=nth, dtstart=start)
        if settings.monthly_day is not None and not 1 <= settings.monthly_day <= 30:
            return None
        day = settings.monthly_day or start.day
        return rrule(MONTHLY, interval=interval, bymonthday=day, dtstart=start)

    return rrule(freq, interval=interval, dtstart=start)


def next_due_date(task: Task, now: datetime | None = None) -> datetime | None:
    """Compute the due date of the instance that follows `task`.

    A task without a due date advances from `now`. Monthly rules land in a
    later month, never later in the current one. Returns None when the rule
    is malformed or does not repeat.
    """
    current = task.due_date or now or datetime.now()

    rule = task_rule(task, current)
    if rule is None:
        return None

    settings = effective_settings(task)
    if settings is not None and settings.frequency == "monthly":
        next_month = current.date() + relativedelta(months=1, day=1)
        return rule.after(datetime.combine(next_month, time()), inc=True)
    return rule.after(current)


def _day_list(days: list[int]) -> str:
    return ", ".join(DAY_NAMES[d] for d in sorted(days) if 0 <= d <= 6)


def _monthly_weekday_label(settings: RepeatSettings) -> str:
    week_names = {1: "1st", 2: "2nd", 3: "3rd", 4: "4th", -1: "last"}
    week = week_names.get(settings.monthly_week or 1, "1st")
    day = settings.monthly_day if settings.monthly_day is not None else 0
    day_name = FULL_DAY_NAMES[day] if 0 <= day <= 6 else "day"
    if settings.interval > 1:
        return f"{week} {day_name} of every {settings.interval} months"
    return f"{week} {day_name} of each month"


def repeat_label(task: Task) -> str:
    """Human readable description of a task's repeat rule."""
    if task.repeat is None:
        if task.repeat_type == "custom":
            return f"Every {_day_list(task.repeat_days)}" if task.repeat_days else "Custom"
        if task.repeat_type == "weekly" and task.repeat_days:
            return f"Weekly on {_day_list(task.repeat_days)}"
        return {
            "none": "",
            "hour": "Hourly",
            "daily": "Daily",
            "weekly": "Weekly",
            "weekdays": "Weekdays",
            "weekends": "Weekends",
            "monthly": "Monthly",
            "yearly": "Yearly",
        }[task.repeat_type]

    settings = task.repeat
    n = settings.interval
    units = {"hour": "hours", "daily": "days", "weekly": "weeks", "monthly": "months", "yearly": "years"}
    singles = {"hour": "Hourly", "daily": "Daily", "weekly": "Weekly", "monthly": "Monthly", "yearly": "Yearly"}

    label = f"Every {n} {units[settings.frequency]}" if n > 1 else singles[settings.frequency]
    if settings.frequency == "weekly" and settings.weekly_days:
        label = f"{label} on {_day_list(settings.weekly_days)}"
    elif settings.frequency == "monthly" and settings.monthly_type == "weekday":
        label = _monthly_weekday_label(settings)
    elif settings.frequency == "monthly" and settings.monthly_day:
        label = f"{label} on day {settings.monthly_day}"

    if settings.ends_type == "on_date" and settings.ends_on_date is not None:
        label = f"{label}, until {settings.ends_on_date.date().isoformat()}"
    elif settings.ends_type == "after_occurrences":
        label = f"{label}, {settings.ends_after_occurrences} more times"
    return label
