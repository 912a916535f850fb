"""CLI interface for tasklanes."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tasklanes import __version__
from tasklanes.config import TasklanesConfig
from tasklanes.drag import DragReorderController, DropEvent, DropOutcome
from tasklanes.events import EventBus, Signal
from tasklanes.models import CalendarEvent, RepeatSettings, Task
from tasklanes.occurrences import expand
from tasklanes.recurrence import repeat_label
from tasklanes.store import EventStore
from tasklanes.views import MODES, ViewMode, classify, group_keys

console = Console()

VIEW_CHOICES = [mode.value for mode in ViewMode]
REPEAT_CHOICES = ["none", "hour", "daily", "weekly", "weekdays", "weekends", "monthly", "yearly", "custom"]
EVENT_REPEAT_CHOICES = ["never", "daily", "weekly", "monthly", "yearly"]


def _controller(ctx: click.Context) -> DragReorderController:
    config: TasklanesConfig = ctx.obj["config"]
    return DragReorderController.from_config(config, bus=ctx.obj["bus"])


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="tasklanes")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """tasklanes - recurring tasks on reorderable boards.

    \b
    Examples:
      tasklanes add "Water plants" --due 2025-01-10 --repeat weekly
      tasklanes board --view priority
      tasklanes move <id> priority:high --index 0
      tasklanes complete <id>
    """
    ctx.ensure_object(dict)
    config = TasklanesConfig.load()
    ctx.obj["config"] = config

    level = "DEBUG" if verbose else config.log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )

    bus = EventBus()
    bus.subscribe(Signal.TASKS_UPDATED, lambda: logging.getLogger(__name__).debug("tasks updated"))
    ctx.obj["bus"] = bus

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.argument("text")
@click.option("--due", type=click.DateTime(), help="Due date")
@click.option("--reminder", type=click.DateTime(), help="Reminder time, moved along with the due date on repeat")
@click.option("--priority", type=click.Choice(["none", "low", "medium", "high"]))
@click.option("--section", "section_id", help="Section id")
@click.option("--repeat", "repeat_type", type=click.Choice(REPEAT_CHOICES), default="none")
@click.option("--every", "interval", type=int, default=1, help="Repeat interval")
@click.option("--on-day", "weekly_days", type=click.IntRange(0, 6), multiple=True, help="Weekday (0=Sun)")
@click.option("--week-of-month", type=click.Choice(["1", "2", "3", "4", "-1"]), help="Monthly on the nth --on-day")
@click.option("--times", type=int, help="End after this many further occurrences")
@click.option("--until", type=click.DateTime(), help="End the repeat on this date")
@click.pass_context
def add(
    ctx: click.Context,
    text: str,
    due: datetime | None,
    reminder: datetime | None,
    priority: str | None,
    section_id: str | None,
    repeat_type: str,
    interval: int,
    weekly_days: tuple[int, ...],
    week_of_month: str | None,
    times: int | None,
    until: datetime | None,
) -> None:
    """Add a task."""
    if times is not None and until is not None:
        console.print("[red]Use either --times or --until, not both.[/red]")
        ctx.exit(1)

    rule_options = {
        "--every": interval != 1,
        "--on-day": bool(weekly_days),
        "--week-of-month": week_of_month is not None,
        "--times": times is not None,
        "--until": until is not None,
    }
    allowed = {
        "none": set(),
        "weekdays": set(),
        "weekends": set(),
        "custom": {"--on-day"},
        "weekly": {"--every", "--on-day", "--times", "--until"},
        "monthly": {"--every", "--on-day", "--week-of-month", "--times", "--until"},
    }.get(repeat_type, {"--every", "--times", "--until"})
    unsupported = [name for name, given in rule_options.items() if given and name not in allowed]
    if unsupported:
        console.print(f"[red]{', '.join(unsupported)} cannot be used with --repeat {repeat_type}.[/red]")
        ctx.exit(1)
    if repeat_type == "custom" and not weekly_days:
        console.print("[red]--repeat custom needs at least one --on-day.[/red]")
        ctx.exit(1)
    if week_of_month is not None and len(weekly_days) != 1:
        console.print("[red]--week-of-month needs exactly one --on-day.[/red]")
        ctx.exit(1)
    if repeat_type == "monthly" and weekly_days and week_of_month is None:
        console.print("[red]--on-day with --repeat monthly needs --week-of-month.[/red]")
        ctx.exit(1)

    repeat = None
    repeat_days = None
    if repeat_type == "custom":
        repeat_days = list(weekly_days)
    elif any(rule_options.values()):
        ends_type = "after_occurrences" if times is not None else "on_date" if until else "never"
        monthly = {}
        if week_of_month is not None:
            monthly = {"monthly_type": "weekday", "monthly_week": int(week_of_month), "monthly_day": weekly_days[0]}
        repeat = RepeatSettings(
            frequency=repeat_type,  # type: ignore[arg-type]
            interval=interval,
            ends_type=ends_type,  # type: ignore[arg-type]
            ends_on_date=until,
            ends_after_occurrences=times,
            weekly_days=list(weekly_days) if repeat_type == "weekly" and weekly_days else None,
            **monthly,
        )

    now = datetime.now()
    task = Task(
        text=text,
        due_date=due,
        reminder_time=reminder,
        priority=priority,  # type: ignore[arg-type]
        section_id=section_id,
        repeat_type=repeat_type,  # type: ignore[arg-type]
        repeat_days=repeat_days,
        repeat=repeat,
        created_at=now,
        modified_at=now,
    )

    async def _add() -> bool:
        controller = _controller(ctx)
        tasks = await controller.tasks.load_todo_items()
        if not await controller.tasks.save_todo_items([*tasks, task]):
            return False
        controller.bus.emit(Signal.TASKS_UPDATED)
        return True

    if not asyncio.run(_add()):
        console.print("[red]Could not save task.[/red]")
        ctx.exit(1)

    label = repeat_label(task)
    console.print(f"[green]Added:[/green] {task.text} [dim]({task.id})[/dim]" + (f" [cyan]{label}[/cyan]" if label else ""))


@main.command()
@click.option("--view", "-V", "view", type=click.Choice(VIEW_CHOICES), help="View mode")
@click.pass_context
def board(ctx: click.Context, view: str | None) -> None:
    """Show tasks grouped by a view mode."""
    config: TasklanesConfig = ctx.obj["config"]
    mode = ViewMode(view or config.default_view)

    groups = asyncio.run(_controller(ctx).load_board(mode))

    for group in groups:
        table = Table(title=f"{group.label} ({len(group.tasks)})", show_header=True, title_justify="left")
        table.add_column("#", style="dim", width=3)
        table.add_column("Task", style="white")
        table.add_column("Due", style="cyan")
        table.add_column("Repeat", style="magenta")
        table.add_column("Id", style="dim")

        if not group.tasks:
            table.add_row("", "[dim]empty[/dim]", "", "", "")
        for i, task in enumerate(group.tasks):
            done = "[green]✓[/green] " if task.completed else ""
            due = task.due_date.strftime("%Y-%m-%d %H:%M") if task.due_date else ""
            table.add_row(str(i), f"{done}{task.text}", due, repeat_label(task), task.id)

        console.print(table)
        console.print(f"[dim]{group.id}[/dim]")
        console.print()


@main.command()
@click.argument("task_id")
@click.pass_context
def complete(ctx: click.Context, task_id: str) -> None:
    """Complete a task, creating the next instance if it repeats."""

    async def _complete() -> tuple[bool, Task | None]:
        controller = _controller(ctx)
        tasks = await controller.tasks.load_todo_items()
        if not any(t.id == task_id and not t.completed for t in tasks):
            return False, None
        return True, await controller.complete(task_id)

    found, successor = asyncio.run(_complete())
    if not found:
        console.print(f"[red]No open task with id[/red] {task_id}")
        ctx.exit(1)

    console.print(f"[green]Completed:[/green] {task_id}")
    if successor is not None and successor.due_date is not None:
        console.print(f"  Next: [cyan]{successor.due_date.strftime('%Y-%m-%d %H:%M')}[/cyan] [dim]({successor.id})[/dim]")


@main.command()
@click.argument("task_id")
@click.argument("group_id")
@click.option("--index", "-i", type=int, default=0, help="Position within the destination group")
@click.pass_context
def move(ctx: click.Context, task_id: str, group_id: str, index: int) -> None:
    """Move a task to a position in a group, e.g. priority:high."""
    prefix = group_id.partition(":")[0]
    try:
        mode = ViewMode(prefix)
    except ValueError:
        console.print(f"[red]Unknown group:[/red] {group_id}")
        ctx.exit(1)
        return

    async def _move() -> DropOutcome:
        controller = _controller(ctx)
        view_ctx = await controller.context()
        tasks = await controller.tasks.load_todo_items()
        task = next((t for t in tasks if t.id == task_id), None)
        if task is None:
            return DropOutcome.REJECTED

        source = classify(task, mode, view_ctx) or group_id
        current = await controller.orders.reconcile(
            source, [t.id for t in tasks if classify(t, mode, view_ctx) == source]
        )
        source_index = current.index(task_id) if task_id in current else -1
        event = DropEvent(
            item_id=task_id,
            source_group_id=source,
            source_index=source_index,
            dest_group_id=group_id,
            dest_index=index,
        )
        controller.begin_drag(task_id, source)
        result = await controller.drop(event)
        return result.outcome

    outcome = asyncio.run(_move())
    if outcome in (DropOutcome.REJECTED, DropOutcome.FAILED):
        console.print(f"[red]Could not move[/red] {task_id} [red]to[/red] {group_id}")
        ctx.exit(1)
    elif outcome == DropOutcome.NO_OP:
        console.print("[dim]Nothing to do.[/dim]")
    else:
        console.print(f"[green]Moved[/green] {task_id} to {group_id} at {index}")


@main.command()
@click.pass_context
def views(ctx: click.Context) -> None:
    """List view modes and their group ids."""

    async def _keys() -> dict[ViewMode, list[str]]:
        view_ctx = await _controller(ctx).context()
        return {mode: group_keys(mode, view_ctx) for mode in MODES}

    table = Table(title="Views", show_header=True)
    table.add_column("Mode", style="cyan")
    table.add_column("Groups", style="white")
    for mode, keys in asyncio.run(_keys()).items():
        table.add_row(mode.value, ", ".join(f"{mode.value}:{key}" for key in keys))
    console.print(table)


@main.group()
def event() -> None:
    """Manage calendar events."""
    pass


@event.command("add")
@click.argument("title")
@click.option("--start", type=click.DateTime(), required=True)
@click.option("--end", type=click.DateTime(), help="Defaults to the start")
@click.option("--repeat", type=click.Choice(EVENT_REPEAT_CHOICES), default="never")
@click.option("--all-day", is_flag=True)
@click.pass_context
def event_add(
    ctx: click.Context,
    title: str,
    start: datetime,
    end: datetime | None,
    repeat: str,
    all_day: bool,
) -> None:
    """Add a calendar event."""
    config: TasklanesConfig = ctx.obj["config"]
    new_event = CalendarEvent(
        title=title,
        start_date=start,
        end_date=end or start,
        all_day=all_day,
        repeat=repeat,  # type: ignore[arg-type]
    )

    async def _add() -> bool:
        store = EventStore(config.events_file)
        events = await store.load_events()
        if not await store.save_events([*events, new_event]):
            return False
        ctx.obj["bus"].emit(Signal.CALENDAR_EVENTS_UPDATED)
        return True

    if not asyncio.run(_add()):
        console.print("[red]Could not save event.[/red]")
        ctx.exit(1)
    console.print(f"[green]Added event:[/green] {title} [dim]({new_event.id})[/dim]")


@main.command()
@click.option("--months", "-m", type=int, help="Horizon in months")
@click.pass_context
def calendar(ctx: click.Context, months: int | None) -> None:
    """List days that have calendar events within the horizon."""
    config: TasklanesConfig = ctx.obj["config"]
    horizon = months or config.horizon_months

    events = asyncio.run(EventStore(config.events_file).load_events())
    if not events:
        console.print("[dim]No calendar events.[/dim]")
        return

    per_day = Counter(d.date() for d in expand(events, horizon_months=horizon))

    table = Table(title=f"Event days (next {horizon} months)", show_header=True)
    table.add_column("Date", style="cyan")
    table.add_column("Events", style="white", justify="right")
    for day in sorted(per_day):
        table.add_row(day.isoformat(), str(per_day[day]))
    console.print(table)


if __name__ == "__main__":
    main()
