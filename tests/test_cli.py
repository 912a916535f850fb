"""Tests for tasklanes.cli module."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path

import pytest
from click.testing import CliRunner

from tasklanes.cli import main
from tasklanes.models import Task
from tasklanes.order_store import order_key
from tasklanes.store import EventStore, TaskStore


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture
def seeded_project(data_dir: Path) -> Path:
    """Create a project with a few stored tasks."""
    tasks = [
        Task(id="t1", text="Rent", priority="none"),
        Task(id="t2", text="Milk", priority="high"),
        Task(
            id="t3",
            text="Plants",
            repeat_type="daily",
            due_date=datetime(2025, 1, 8, 9, 0),
        ),
    ]
    asyncio.run(TaskStore(data_dir / "tasks.json").save_todo_items(tasks))
    return data_dir.parent


def _load_tasks(project: Path) -> list[Task]:
    return asyncio.run(TaskStore(project / ".tasklanes" / "tasks.json").load_todo_items())


class TestMain:
    """Tests for the main command group."""

    def test_version(self, cli_runner: CliRunner) -> None:
        """Test --version output."""
        result = cli_runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_no_command_shows_help(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test no command shows help."""
        result = cli_runner.invoke(main, [])
        assert result.exit_code == 0
        assert "recurring tasks" in result.output


class TestAddCommand:
    """Tests for the add command."""

    def test_add_simple(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test add simple."""
        result = cli_runner.invoke(main, ["add", "Rent", "--priority", "high"])

        assert result.exit_code == 0
        assert "Added:" in result.output
        tasks = _load_tasks(temp_project)
        assert len(tasks) == 1
        assert tasks[0].text == "Rent"
        assert tasks[0].priority == "high"
        assert tasks[0].repeat is None

    def test_add_repeating(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test add repeating."""
        result = cli_runner.invoke(
            main,
            ["add", "Gym", "--due", "2025-01-06", "--repeat", "weekly", "--on-day", "1", "--on-day", "3", "--times", "4"],
        )

        assert result.exit_code == 0
        task = _load_tasks(temp_project)[0]
        assert task.repeat_type == "weekly"
        assert task.repeat is not None
        assert task.repeat.weekly_days == [1, 3]
        assert task.repeat.ends_type == "after_occurrences"
        assert task.repeat.ends_after_occurrences == 4

    def test_add_rejects_two_end_conditions(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test add rejects two end conditions."""
        result = cli_runner.invoke(
            main, ["add", "Gym", "--repeat", "daily", "--times", "2", "--until", "2025-02-01"]
        )

        assert result.exit_code == 1
        assert "either --times or --until" in result.output
        assert _load_tasks(temp_project) == []

    @pytest.mark.parametrize(
        "args",
        [
            ["--repeat", "weekdays", "--times", "3"],
            ["--repeat", "weekends", "--every", "2"],
            ["--repeat", "none", "--until", "2025-02-01"],
            ["--repeat", "daily", "--on-day", "1"],
            ["--repeat", "weekly", "--on-day", "1", "--week-of-month", "2"],
        ],
    )
    def test_add_rejects_options_the_rule_ignores(
        self, cli_runner: CliRunner, temp_project: Path, args: list[str]
    ) -> None:
        """Test rule options that the chosen repeat type cannot use are rejected."""
        result = cli_runner.invoke(main, ["add", "Gym", *args])

        assert result.exit_code == 1
        assert "cannot be used with --repeat" in result.output
        assert _load_tasks(temp_project) == []

    def test_add_custom_days(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test a custom repeat stores its day-set on the task."""
        result = cli_runner.invoke(main, ["add", "Stretch", "--repeat", "custom", "--on-day", "5", "--on-day", "1"])

        assert result.exit_code == 0
        assert "Every Mon, Fri" in result.output
        task = _load_tasks(temp_project)[0]
        assert task.repeat_type == "custom"
        assert task.repeat_days == [5, 1]
        assert task.repeat is None

    def test_add_custom_needs_days(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test a custom repeat without any --on-day is rejected."""
        result = cli_runner.invoke(main, ["add", "Stretch", "--repeat", "custom"])
        assert result.exit_code == 1
        assert _load_tasks(temp_project) == []

    def test_add_monthly_nth_weekday(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test a monthly rule on the second Tuesday."""
        result = cli_runner.invoke(
            main,
            ["add", "Club", "--due", "2024-02-13", "--repeat", "monthly", "--on-day", "2", "--week-of-month", "2"],
        )

        assert result.exit_code == 0
        task = _load_tasks(temp_project)[0]
        assert task.repeat is not None
        assert task.repeat.monthly_type == "weekday"
        assert task.repeat.monthly_week == 2
        assert task.repeat.monthly_day == 2
        assert task.repeat.weekly_days is None

    def test_add_monthly_day_needs_week_of_month(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test --on-day on a monthly rule requires --week-of-month."""
        result = cli_runner.invoke(main, ["add", "Club", "--repeat", "monthly", "--on-day", "2"])
        assert result.exit_code == 1
        assert "needs --week-of-month" in result.output

    def test_add_with_reminder(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test the reminder time is stored."""
        result = cli_runner.invoke(
            main, ["add", "Rent", "--due", "2025-01-06T09:00:00", "--reminder", "2025-01-06T08:30:00"]
        )

        assert result.exit_code == 0
        task = _load_tasks(temp_project)[0]
        assert task.reminder_time == datetime(2025, 1, 6, 8, 30)


class TestBoardCommand:
    """Tests for the board command."""

    def test_priority_board(self, cli_runner: CliRunner, seeded_project: Path) -> None:
        """Test priority board."""
        result = cli_runner.invoke(main, ["board", "--view", "priority"])

        assert result.exit_code == 0
        assert "priority:high" in result.output
        assert "priority:none" in result.output
        assert "Milk" in result.output

    def test_default_view_from_config(self, cli_runner: CliRunner, seeded_project: Path) -> None:
        """Test default view from config."""
        (seeded_project / ".tasklanes" / "config.json").write_text(json.dumps({"default_view": "kanban-status"}))

        result = cli_runner.invoke(main, ["board"])

        assert result.exit_code == 0
        assert "kanban-status:not_started" in result.output


class TestCompleteCommand:
    """Tests for the complete command."""

    def test_complete_repeating_task(self, cli_runner: CliRunner, seeded_project: Path) -> None:
        """Test complete repeating task."""
        result = cli_runner.invoke(main, ["complete", "t3"])

        assert result.exit_code == 0
        assert "Completed:" in result.output
        assert "2025-01-09 09:00" in result.output

        tasks = _load_tasks(seeded_project)
        assert [t.id for t in tasks][:3] == ["t1", "t2", "t3"]
        assert len(tasks) == 4
        assert tasks[2].completed
        assert tasks[3].due_date == datetime(2025, 1, 9, 9, 0)
        assert not tasks[3].completed

    def test_complete_unknown(self, cli_runner: CliRunner, seeded_project: Path) -> None:
        """Test complete unknown."""
        result = cli_runner.invoke(main, ["complete", "nope"])
        assert result.exit_code == 1
        assert "No open task" in result.output


class TestMoveCommand:
    """Tests for the move command."""

    def test_move_across_priorities(self, cli_runner: CliRunner, seeded_project: Path) -> None:
        """Test move across priorities."""
        result = cli_runner.invoke(main, ["move", "t1", "priority:high", "--index", "0"])

        assert result.exit_code == 0
        assert "Moved" in result.output

        tasks = {t.id: t for t in _load_tasks(seeded_project)}
        assert tasks["t1"].priority == "high"
        settings = json.loads((seeded_project / ".tasklanes" / "settings.json").read_text())
        assert settings[order_key("priority:high")] == ["t1", "t2"]

    def test_reorder_within_group(self, cli_runner: CliRunner, seeded_project: Path) -> None:
        """Test reorder within group."""
        # t1 and t3 both sit in priority:none
        result = cli_runner.invoke(main, ["move", "t3", "priority:none", "--index", "0"])

        assert result.exit_code == 0
        settings = json.loads((seeded_project / ".tasklanes" / "settings.json").read_text())
        assert settings[order_key("priority:none")] == ["t3", "t1"]

    def test_move_to_unknown_group(self, cli_runner: CliRunner, seeded_project: Path) -> None:
        """Test move to unknown group."""
        result = cli_runner.invoke(main, ["move", "t1", "priority:urgent"])
        assert result.exit_code == 1
        assert "Could not move" in result.output

    def test_move_to_unknown_mode(self, cli_runner: CliRunner, seeded_project: Path) -> None:
        """Test move to unknown mode."""
        result = cli_runner.invoke(main, ["move", "t1", "gantt:high"])
        assert result.exit_code == 1
        assert "Unknown group" in result.output

    def test_move_into_history_rejected(self, cli_runner: CliRunner, seeded_project: Path) -> None:
        """Test move into history rejected."""
        result = cli_runner.invoke(main, ["move", "t1", "history:today"])
        assert result.exit_code == 1
        assert not (seeded_project / ".tasklanes" / "settings.json").exists()


class TestViewsCommand:
    """Tests for the views command."""

    def test_lists_modes(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test every view mode is listed."""
        result = cli_runner.invoke(main, ["views"])

        assert result.exit_code == 0
        assert "timeline" in result.output
        assert "kanban-status" in result.output


class TestEventCommands:
    """Tests for calendar event commands."""

    def test_event_add_and_calendar(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test event add and calendar."""
        start = datetime.now().replace(hour=9, minute=0, second=0, microsecond=0)
        result = cli_runner.invoke(
            main, ["event", "add", "Standup", "--start", start.strftime("%Y-%m-%d %H:%M:%S"), "--repeat", "weekly"]
        )

        assert result.exit_code == 0
        events = asyncio.run(EventStore(temp_project / ".tasklanes" / "events.json").load_events())
        assert len(events) == 1
        assert events[0].repeat == "weekly"
        assert events[0].end_date == start

        result = cli_runner.invoke(main, ["calendar", "--months", "1"])
        assert result.exit_code == 0
        assert start.date().isoformat() in result.output

    def test_calendar_empty(self, cli_runner: CliRunner, temp_project: Path) -> None:
        """Test calendar empty."""
        result = cli_runner.invoke(main, ["calendar"])
        assert result.exit_code == 0
        assert "No calendar events" in result.output
