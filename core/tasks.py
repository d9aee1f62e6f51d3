"""Plan state engine for FocusFlow: task mutations, ordering, validation.

Every operation takes a DayPlan snapshot and returns a new one. Nothing
here touches storage; the session applies the result and writes it.
"""

from __future__ import annotations

import secrets
from dataclasses import replace
from typing import Any, Iterable

from core.catalog import ACTIVITY_TASK_IDS, RESERVED_TASK_IDS, activity_tasks
from core.models import (
    DEFAULT_DISPLAY_MINUTES,
    ENERGY_LEVELS,
    TASK_TYPES,
    DayPlan,
    Task,
    is_valid_time,
)


EDITABLE_FIELDS = {"title", "time"}

NEW_TASK_DEFAULTS: dict[str, Any] = {
    "time": "12:00",
    "title": "New Goal",
    "completed": False,
    "type": "work",
    "duration": 30,
}


# ── Validation ────────────────────────────────────────────────


def validate_task(task: dict[str, Any]) -> list[str]:
    """Validate a task document and return list of errors (empty if valid)."""
    errors = []
    if not task.get("id"):
        errors.append("Missing required field: id")
    if "title" not in task:
        errors.append("Missing required field: title")
    if not is_valid_time(task.get("time")):
        errors.append(f"Invalid time: {task.get('time')!r}")
    if task.get("type") not in TASK_TYPES:
        errors.append(f"Invalid task type: {task.get('type')!r}")

    duration = task.get("duration")
    if duration is not None:
        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            errors.append("duration must be a positive integer")

    return errors


def validate_plan(plan: dict[str, Any]) -> list[str]:
    """Validate a day plan document. Task errors are prefixed with their index."""
    errors = []
    if not plan.get("date"):
        errors.append("Missing required field: date")
    if plan.get("energyLevel", "medium") not in ENERGY_LEVELS:
        errors.append(f"Invalid energy level: {plan.get('energyLevel')!r}")

    tasks = plan.get("tasks")
    if not isinstance(tasks, list):
        errors.append("tasks must be a list")
        return errors

    seen: set[str] = set()
    for i, t in enumerate(tasks):
        if not isinstance(t, dict):
            errors.append(f"tasks[{i}]: not an object")
            continue
        errors.extend(f"tasks[{i}]: {e}" for e in validate_task(t))
        tid = t.get("id")
        if tid in seen:
            errors.append(f"tasks[{i}]: duplicate id {tid!r}")
        seen.add(tid)
    return errors


# ── Lookup & ordering ─────────────────────────────────────────


def find_task(plan: DayPlan, task_id: str) -> Task | None:
    """Find a task by ID."""
    for t in plan.tasks:
        if t.id == task_id:
            return t
    return None


def sort_by_time(tasks: Iterable[Task]) -> tuple[Task, ...]:
    """Ascending by 'HH:MM'. Stable, so equal times keep their relative order."""
    return tuple(sorted(tasks, key=lambda t: t.time))


def generate_task_id(plan: DayPlan) -> str:
    """A random id that collides with neither the plan nor the catalog."""
    taken = plan.task_ids() | RESERVED_TASK_IDS
    while True:
        candidate = secrets.token_hex(6)
        if candidate not in taken:
            return candidate


# ── Mutations ─────────────────────────────────────────────────


def toggle_task(plan: DayPlan, task_id: str) -> DayPlan:
    """Flip `completed` on one task. Unknown ids leave the plan unchanged."""
    if find_task(plan, task_id) is None:
        return plan
    tasks = tuple(
        replace(t, completed=not t.completed) if t.id == task_id else t
        for t in plan.tasks
    )
    return replace(plan, tasks=tasks)


def delete_task(plan: DayPlan, task_id: str) -> DayPlan:
    """Remove a task, keeping the order of the rest."""
    if find_task(plan, task_id) is None:
        return plan
    return replace(plan, tasks=tuple(t for t in plan.tasks if t.id != task_id))


def add_task(plan: DayPlan, task_id: str | None = None) -> DayPlan:
    """Append a 'New Goal' task at 12:00.

    The new task goes to the end of the list; it is only moved into time
    order once its time is edited.
    """
    if task_id is None:
        task_id = generate_task_id(plan)
    elif task_id in plan.task_ids():
        raise ValueError(f"Task ID already exists: {task_id}")
    task = Task(id=task_id, **NEW_TASK_DEFAULTS)
    return replace(plan, tasks=plan.tasks + (task,))


def edit_task_field(plan: DayPlan, task_id: str, field: str, value: str) -> DayPlan:
    """Update the title or time of one task.

    A time edit re-sorts the whole list by time.
    """
    if field not in EDITABLE_FIELDS:
        raise ValueError(f"Field is not editable: {field!r}")
    if field == "time" and not is_valid_time(value):
        raise ValueError(f"Invalid time: {value!r} (expected HH:MM)")
    if find_task(plan, task_id) is None:
        return plan

    tasks = tuple(
        replace(t, **{field: value}) if t.id == task_id else t
        for t in plan.tasks
    )
    if field == "time":
        tasks = sort_by_time(tasks)
    return replace(plan, tasks=tasks)


def set_energy_level(plan: DayPlan, level: str) -> DayPlan:
    if level not in ENERGY_LEVELS:
        raise ValueError(f"Invalid energy level: {level!r}")
    return replace(plan, energy_level=level)


def set_workout_mode(plan: DayPlan, enabled: bool) -> DayPlan:
    """Swap the catalog activity tasks for the chosen mode.

    Only catalog activity tasks are removed; user tasks of type 'health'
    stay. The result is re-sorted by time, so repeating the same mode is
    a no-op on the task list.
    """
    kept = [t for t in plan.tasks if t.id not in ACTIVITY_TASK_IDS]
    tasks = sort_by_time(kept + list(activity_tasks(enabled)))
    return replace(plan, tasks=tasks, workout_mode=enabled)


def toggle_workout_mode(plan: DayPlan) -> DayPlan:
    return set_workout_mode(plan, not plan.workout_mode)


# ── Derived views ─────────────────────────────────────────────


def completed_count(plan: DayPlan) -> int:
    return sum(1 for t in plan.tasks if t.completed)


def completion_percentage(plan: DayPlan) -> int:
    """Rounded percent of completed tasks; 0 for an empty plan."""
    if not plan.tasks:
        return 0
    # round half up, not banker's rounding
    return int(100 * completed_count(plan) / len(plan.tasks) + 0.5)


def healthy_actions(plan: DayPlan) -> int:
    """Completed tasks of type 'health'."""
    return sum(1 for t in plan.tasks if t.completed and t.type == "health")


def display_duration(task: Task) -> int:
    return task.duration or DEFAULT_DISPLAY_MINUTES
