"""Configuration models for tasklanes."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

ViewModeName = Literal["flat", "kanban", "kanban-status", "priority", "timeline", "progress", "history"]


class TasklanesConfig(BaseModel):
    """Main configuration for tasklanes."""

    data_dir: str = ".tasklanes"
    horizon_months: int = Field(default=3, ge=1)
    week_starts_on: int = Field(default=0, ge=0, le=6)
    """Day the week starts on, 0 = Sunday through 6 = Saturday."""
    default_view: ViewModeName = "flat"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    @classmethod
    def load(cls, path: Path | None = None) -> TasklanesConfig:
        """Load configuration from file or return defaults."""
        if path is None:
            path = CONFIG_FILE

        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        return cls.model_validate(data)

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        if path is None:
            path = CONFIG_FILE

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(exclude_none=True), f, indent=2)

    @property
    def tasks_file(self) -> Path:
        return Path(self.data_dir) / "tasks.json"

    @property
    def events_file(self) -> Path:
        return Path(self.data_dir) / "events.json"

    @property
    def settings_file(self) -> Path:
        return Path(self.data_dir) / "settings.json"


# Default config directory
TASKLANES_DIR = Path(".tasklanes")
CONFIG_FILE = TASKLANES_DIR / "config.json"
