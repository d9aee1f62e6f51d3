"""Focus timer for FocusFlow.

A countdown bound to at most one task. The timer owns its state and
only reads a task's duration; it never changes the plan.

States: idle -> running -> expired. Starting the running task's timer
again stops it (idle). Expired stays expired until the next start().
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Protocol

from core.models import DEFAULT_TIMER_MINUTES, Task, TimerState, TimerStatus
from core.tasks import display_duration


logger = logging.getLogger(__name__)

TICK_SECONDS = 1.0

TimerListener = Callable[[TimerState], None]


def format_remaining(seconds: int) -> str:
    """Render seconds as M:SS (minutes unpadded)."""
    seconds = max(0, int(seconds))
    m, s = divmod(seconds, 60)
    return f"{m}:{s:02d}"


def timer_label(state: TimerState, task: Task) -> str:
    """Focus button text: the countdown for the timer's task, else its length."""
    if state.active_task_id == task.id:
        return format_remaining(state.seconds_remaining)
    return f"{display_duration(task)}m focus"


# ── Scheduling ────────────────────────────────────────────────


class IntervalHandle(Protocol):
    def cancel(self) -> None: ...


class IntervalScheduler(Protocol):
    def every(self, seconds: float, callback: Callable[[], None]) -> IntervalHandle: ...


class _AsyncioInterval:
    def __init__(self, loop: asyncio.AbstractEventLoop, seconds: float, callback: Callable[[], None]) -> None:
        self._loop = loop
        self._seconds = seconds
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._cancelled = False
        self._schedule()

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self._seconds, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        # reschedule first so the callback may cancel
        self._schedule()
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioIntervalScheduler:
    """Repeating callbacks on an asyncio loop via call_later."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def every(self, seconds: float, callback: Callable[[], None]) -> _AsyncioInterval:
        loop = self._loop or asyncio.get_running_loop()
        return _AsyncioInterval(loop, seconds, callback)


# ── Timer ─────────────────────────────────────────────────────


class FocusTimer:
    """Single-slot countdown clock.

    The tick interval is started on entering running and cancelled on
    every exit from running.
    """

    def __init__(self, scheduler: IntervalScheduler, tick_seconds: float = TICK_SECONDS) -> None:
        self._scheduler = scheduler
        self._tick_seconds = tick_seconds
        self._interval: IntervalHandle | None = None
        self._state = TimerState()
        self._listeners: list[TimerListener] = []
        self._expiry_listeners: list[TimerListener] = []

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def status(self) -> TimerStatus:
        return self._state.status

    def add_listener(self, fn: TimerListener) -> None:
        self._listeners.append(fn)

    def on_expired(self, fn: TimerListener) -> None:
        self._expiry_listeners.append(fn)

    def _set_state(self, state: TimerState) -> None:
        self._state = state
        for fn in list(self._listeners):
            fn(state)

    def _cancel_interval(self) -> None:
        if self._interval is not None:
            self._interval.cancel()
            self._interval = None

    def start(self, task: Task) -> TimerState:
        """Start a countdown for task, or stop it if it is already running."""
        if self._state.running and self._state.active_task_id == task.id:
            return self.stop()

        self._cancel_interval()
        if self._state.running:
            logger.debug(f"Timer for {self._state.active_task_id} replaced by {task.id}")
        minutes = task.duration or DEFAULT_TIMER_MINUTES
        self._set_state(TimerState(
            active_task_id=task.id,
            seconds_remaining=minutes * 60,
            running=True,
        ))
        self._interval = self._scheduler.every(self._tick_seconds, self.tick)
        logger.debug(f"Timer started for {task.id}: {minutes} min")
        return self._state

    def stop(self) -> TimerState:
        """Stop counting. The remaining time is kept for display."""
        self._cancel_interval()
        if self._state.running:
            self._set_state(replace(self._state, running=False))
        return self._state

    def tick(self) -> None:
        """One second elapsed."""
        if not self._state.running:
            return
        remaining = self._state.seconds_remaining - 1
        if remaining > 0:
            self._set_state(replace(self._state, seconds_remaining=remaining))
            return

        self._cancel_interval()
        expired = replace(self._state, seconds_remaining=0, running=False, expired=True)
        self._set_state(expired)
        logger.info(f"Focus timer expired for task {expired.active_task_id}")
        for fn in list(self._expiry_listeners):
            fn(expired)

    def close(self) -> None:
        """Tear down: no tick fires after this."""
        self._cancel_interval()
        self._listeners.clear()
        self._expiry_listeners.clear()
