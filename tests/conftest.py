"""Shared test fixtures for FocusFlow tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import pytest
import yaml

from core.models import DayPlan, PlannerConfig, Task


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with a profile."""
    root = tmp_path / "workspace"
    (root / "planner").mkdir(parents=True)

    profile = {
        "timezone": "UTC",
        "app_id": "test-app",
        "user": "tester",
        "log_level": "debug",
    }
    (root / "planner" / "profile.yaml").write_text(
        yaml.dump(profile, default_flow_style=False), encoding="utf-8"
    )

    os.environ["PLANNER_ROOT"] = str(root)
    yield root
    # Cleanup
    if "PLANNER_ROOT" in os.environ:
        del os.environ["PLANNER_ROOT"]


@pytest.fixture
def config(workspace: Path) -> PlannerConfig:
    return PlannerConfig(root=workspace, app_id="test-app", timezone="UTC", user="tester")


@pytest.fixture
def sample_plan() -> DayPlan:
    return DayPlan(
        date="2026-02-11",
        tasks=(
            Task(id="a", time="08:00", title="Morning pages", type="routine", duration=20),
            Task(id="b", time="09:00", title="Write report", type="work", duration=90),
            Task(id="c", time="13:00", title="Yoga", type="health"),
        ),
        energy_level="medium",
        workout_mode=False,
    )


class ManualInterval:
    def __init__(self, scheduler: ManualScheduler, seconds: float, callback: Callable[[], None]) -> None:
        self.scheduler = scheduler
        self.seconds = seconds
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Interval scheduler driven by hand: advance(n) fires n ticks."""

    def __init__(self) -> None:
        self.intervals: list[ManualInterval] = []

    def every(self, seconds: float, callback: Callable[[], None]) -> ManualInterval:
        interval = ManualInterval(self, seconds, callback)
        self.intervals.append(interval)
        return interval

    @property
    def active(self) -> list[ManualInterval]:
        return [i for i in self.intervals if not i.cancelled]

    def advance(self, ticks: int = 1) -> None:
        for _ in range(ticks):
            for interval in self.active:
                interval.callback()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()
