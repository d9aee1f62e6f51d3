"""Typed dataclasses for the FocusFlow data model.

Persisted models use from_dict/to_dict for document serialization.
camelCase in documents is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.

All models are frozen: every change produces a new snapshot.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


TASK_TYPES = {"work", "health", "break", "routine"}
ENERGY_LEVELS = ("low", "medium", "high")

DEFAULT_TIMER_MINUTES = 25
DEFAULT_DISPLAY_MINUTES = 30

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def is_valid_time(value: Any) -> bool:
    """True for a 24-hour 'HH:MM' string."""
    return isinstance(value, str) and bool(_TIME_RE.match(value))


# ── Tasks ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Task:
    id: str = ""
    time: str = "12:00"
    title: str = ""
    completed: bool = False
    type: str = "work"  # work, health, break, routine
    duration: int | None = None  # minutes

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Task:
        duration = d.get("duration")
        return cls(
            id=str(d.get("id", "")),
            time=str(d.get("time", "12:00")),
            title=str(d.get("title", "")),
            completed=bool(d.get("completed", False)),
            type=str(d.get("type", "work")),
            duration=None if duration is None else int(duration),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "time": self.time,
            "title": self.title,
            "completed": self.completed,
            "type": self.type,
        }
        if self.duration is not None:
            d["duration"] = self.duration
        return d


# ── Day plan ──────────────────────────────────────────────────


@dataclass(frozen=True)
class DayPlan:
    date: str = ""  # YYYY-MM-DD
    tasks: tuple[Task, ...] = ()
    energy_level: str = "medium"
    workout_mode: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DayPlan:
        if not d or not isinstance(d, dict):
            return cls()
        tasks = tuple(Task.from_dict(t) for t in (d.get("tasks") or []) if isinstance(t, dict))
        return cls(
            date=str(d.get("date", "")),
            tasks=tasks,
            energy_level=str(d.get("energyLevel", "medium")),
            workout_mode=bool(d.get("workoutMode", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "tasks": [t.to_dict() for t in self.tasks],
            "energyLevel": self.energy_level,
            "workoutMode": self.workout_mode,
        }

    def task_ids(self) -> set[str]:
        return {t.id for t in self.tasks}


# ── Timer ─────────────────────────────────────────────────────


class TimerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TimerState:
    """Process-local countdown state. Never persisted."""

    active_task_id: str | None = None
    seconds_remaining: int = 0
    running: bool = False
    expired: bool = False

    @property
    def status(self) -> TimerStatus:
        if self.running:
            return TimerStatus.RUNNING
        if self.expired:
            return TimerStatus.EXPIRED
        return TimerStatus.IDLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "activeTaskId": self.active_task_id,
            "secondsRemaining": self.seconds_remaining,
            "running": self.running,
            "status": self.status.value,
        }


# ── Config ────────────────────────────────────────────────────


@dataclass(frozen=True)
class PlannerConfig:
    """Process-wide settings, resolved once at startup."""

    root: Path | None = None
    app_id: str = "default-app-id"
    timezone: str = "UTC"
    user: str = ""
    log_level: str = "INFO"
