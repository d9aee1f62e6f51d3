"""Built-in task templates for FocusFlow.

The default day, plus the two activity sets swapped in and out by
workout mode. Catalog ids are reserved and never handed out to new tasks.
"""

from __future__ import annotations

from core.models import DayPlan, Task


DEFAULT_TASKS: tuple[Task, ...] = (
    Task(id="1", time="08:00", title="Wake up & Hydrate", type="routine", duration=30),
    Task(id="2", time="09:00", title="Deep Work Session (Eat the Frog)", type="work", duration=90),
    Task(id="3", time="10:30", title="Short Break", type="break", duration=15),
    Task(id="4", time="12:30", title="Lunch", type="break", duration=60),
    Task(id="5", time="14:00", title="Admin & Low Energy Tasks", type="work", duration=60),
    Task(id="6", time="18:00", title="Wind Down", type="routine", duration=60),
)

INTENSE_ACTIVITY_TASKS: tuple[Task, ...] = (
    Task(id="w1", time="07:30", title="Morning Jog / HIIT", type="health", duration=30),
    Task(id="w2", time="17:30", title="Gym Session", type="health", duration=60),
)

LIGHT_ACTIVITY_TASKS: tuple[Task, ...] = (
    Task(id="l1", time="07:45", title="Light Stretching", type="health", duration=15),
    Task(id="l2", time="15:00", title="10-min Walk", type="health", duration=10),
)

ACTIVITY_TASK_IDS = frozenset(t.id for t in INTENSE_ACTIVITY_TASKS + LIGHT_ACTIVITY_TASKS)
RESERVED_TASK_IDS = frozenset(t.id for t in DEFAULT_TASKS) | ACTIVITY_TASK_IDS


def activity_tasks(workout_mode: bool) -> tuple[Task, ...]:
    return INTENSE_ACTIVITY_TASKS if workout_mode else LIGHT_ACTIVITY_TASKS


def default_plan(date_key: str) -> DayPlan:
    """The plan materialized when a day has no document yet."""
    return DayPlan(
        date=date_key,
        tasks=DEFAULT_TASKS,
        energy_level="medium",
        workout_mode=False,
    )
