"""Planner session: the single owner of the live DayPlan.

Applies user intents optimistically, writes the result through to the
store in the background, and replaces the plan wholesale whenever the
store pushes a snapshot. The latest snapshot always wins; pending local
writes are not merged with it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from core import tasks as engine
from core.catalog import default_plan
from core.focus import FocusTimer
from core.models import DayPlan, PlannerConfig, TimerState
from core.sync import PlanStore, Subscription
from core.workspace import today_str


logger = logging.getLogger(__name__)

SessionListener = Callable[["PlannerSession"], None]


class PlannerSession:
    def __init__(
        self,
        store: PlanStore,
        config: PlannerConfig,
        timer: FocusTimer | None = None,
        today: Callable[[], str] | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.timer = timer
        self._today = today or (lambda: today_str(config))
        self.identity: str | None = None
        self.date_key: str | None = None
        self.plan: DayPlan | None = None
        self.loading = True
        self.last_error: Exception | None = None
        self._subscription: Subscription | None = None
        self._loaded: asyncio.Event | None = None
        self._pending_writes: set[asyncio.Task[None]] = set()
        self._listeners: list[SessionListener] = []

    # ── Identity & subscription ───────────────────────────────

    def set_identity(self, identity: str | None) -> None:
        """Identity changed: drop the old subscription and load for the new one."""
        if identity == self.identity and self._subscription is not None:
            return
        self._cancel_subscription()
        self.identity = identity
        self.plan = None
        self.date_key = None
        self.last_error = None
        self._loaded_event().clear()

        if identity is None:
            logger.warning("No identity; plan not loaded")
            self._finish_loading()
            return

        self.loading = True
        self.date_key = self._today()
        self._emit()
        self._subscription = self.store.subscribe(
            identity, self.date_key, self._on_snapshot, self._on_error
        )

    def _cancel_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def _loaded_event(self) -> asyncio.Event:
        if self._loaded is None:
            self._loaded = asyncio.Event()
        return self._loaded

    def _finish_loading(self) -> None:
        self.loading = False
        self._loaded_event().set()
        self._emit()

    async def wait_loaded(self) -> None:
        """Return once the first snapshot (or a read failure) has arrived."""
        await self._loaded_event().wait()

    def _on_snapshot(self, plan: DayPlan | None) -> None:
        if plan is None:
            # the only write that is not triggered by a user intent
            date_key = self.date_key
            logger.info(f"No plan for {self.identity}/{date_key}; creating default plan")
            self._apply(default_plan(date_key))
        else:
            logger.debug(f"Snapshot for {self.identity}/{plan.date}: {len(plan.tasks)} tasks")
            self.plan = plan
        self.last_error = None
        self._finish_loading()

    def _on_error(self, error: Exception) -> None:
        logger.error(f"Failed to load plan for {self.identity}: {type(error).__name__}: {error}")
        self.last_error = error
        self._finish_loading()

    # ── Write-through ─────────────────────────────────────────

    def _apply(self, plan: DayPlan) -> DayPlan:
        """Make plan the local state now, then write it in the background."""
        self.plan = plan
        self._emit()
        if self.identity is not None:
            task = asyncio.get_running_loop().create_task(self._write(self.identity, plan))
            self._pending_writes.add(task)
            task.add_done_callback(self._pending_writes.discard)
        return plan

    async def _write(self, identity: str, plan: DayPlan) -> None:
        try:
            await self.store.write(identity, plan)
        except Exception as e:
            # best effort: the optimistic plan stays until the next snapshot
            logger.error(f"Failed to save plan {identity}/{plan.date}: {type(e).__name__}: {e}")

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    async def flush(self) -> None:
        """Wait for writes dispatched so far."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    def _mutate(self, op: Callable[..., DayPlan], *args: Any) -> DayPlan | None:
        if self.plan is None:
            return None
        new = op(self.plan, *args)
        if new is self.plan:
            return new
        return self._apply(new)

    # ── Intents ───────────────────────────────────────────────

    def toggle_task(self, task_id: str) -> DayPlan | None:
        return self._mutate(engine.toggle_task, task_id)

    def delete_task(self, task_id: str) -> DayPlan | None:
        return self._mutate(engine.delete_task, task_id)

    def add_task(self) -> DayPlan | None:
        return self._mutate(engine.add_task)

    def edit_task_field(self, task_id: str, field: str, value: str) -> DayPlan | None:
        return self._mutate(engine.edit_task_field, task_id, field, value)

    def set_energy_level(self, level: str) -> DayPlan | None:
        return self._mutate(engine.set_energy_level, level)

    def set_workout_mode(self, enabled: bool) -> DayPlan | None:
        return self._mutate(engine.set_workout_mode, enabled)

    def toggle_workout_mode(self) -> DayPlan | None:
        return self._mutate(engine.toggle_workout_mode)

    def start_timer(self, task_id: str) -> TimerState | None:
        """Start (or stop) the focus timer for a task in the current plan."""
        if self.timer is None or self.plan is None:
            return None
        task = engine.find_task(self.plan, task_id)
        if task is None:
            return None
        return self.timer.start(task)

    # ── Derived views ─────────────────────────────────────────

    @property
    def completion_percentage(self) -> int:
        return engine.completion_percentage(self.plan) if self.plan else 0

    @property
    def completed_count(self) -> int:
        return engine.completed_count(self.plan) if self.plan else 0

    @property
    def healthy_actions(self) -> int:
        return engine.healthy_actions(self.plan) if self.plan else 0

    # ── Listeners & teardown ──────────────────────────────────

    def add_listener(self, fn: SessionListener) -> None:
        self._listeners.append(fn)

    def _emit(self) -> None:
        for fn in list(self._listeners):
            fn(self)

    def close(self) -> None:
        """End of session: no snapshot or tick is delivered after this.

        Writes already dispatched are left to finish.
        """
        self._cancel_subscription()
        if self.timer is not None:
            self.timer.close()
        self._listeners.clear()
