"""Plan store boundary for FocusFlow.

A store keeps one document per (identity, date) and pushes snapshots to
subscribers: once at subscription start, then once per committed change,
in commit order. A snapshot is a DayPlan, or None when the day has no
document yet.

Two stores are provided: an in-process store (tests, demos) and a
file-backed store under the workspace. Both deliver through the running
asyncio loop, so subscribe() must be called from inside it.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Callable, Protocol

from core.fileio import read_json, write_json_atomic
from core.models import DayPlan, PlannerConfig
from core.tasks import validate_plan
from core.workspace import plan_document_path


logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[DayPlan | None], None]
ErrorCallback = Callable[[Exception], None]


class StoreError(Exception):
    """Base class for store read/write failures."""


class StoreReadError(StoreError):
    pass


class StoreWriteError(StoreError):
    pass


class Subscription:
    """Handle for a snapshot subscription. cancel() is idempotent."""

    def __init__(
        self,
        identity: str,
        date_key: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        on_cancel: Callable[[Subscription], None] | None = None,
    ) -> None:
        self.identity = identity
        self.date_key = date_key
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._active = True
        self._on_cancel = on_cancel

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._on_cancel is not None:
            self._on_cancel(self)
            self._on_cancel = None

    def deliver(self, plan: DayPlan | None) -> None:
        if self._active:
            self._on_snapshot(plan)

    def fail(self, error: Exception) -> None:
        if self._active:
            self._on_error(error)


class PlanStore(Protocol):
    def subscribe(
        self,
        identity: str,
        date_key: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription: ...

    async def write(self, identity: str, plan: DayPlan) -> None: ...


# ── Shared push machinery ─────────────────────────────────────


class _PushStore:
    """Subscriber bookkeeping and ordered delivery.

    Subclasses implement _read() and _commit().
    """

    def __init__(self) -> None:
        self._subscribers: dict[tuple[str, str], list[Subscription]] = defaultdict(list)
        self._write_lock: asyncio.Lock | None = None

    def _read(self, identity: str, date_key: str) -> DayPlan | None:
        raise NotImplementedError

    async def _commit(self, identity: str, plan: DayPlan) -> None:
        raise NotImplementedError

    def subscribe(
        self,
        identity: str,
        date_key: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        loop = asyncio.get_running_loop()
        sub = Subscription(identity, date_key, on_snapshot, on_error, on_cancel=self._unsubscribe)
        key = (identity, date_key)
        self._subscribers[key].append(sub)
        loop.call_soon(self._deliver_current, sub)
        logger.debug(f"Subscribed {identity}/{date_key}")
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        key = (sub.identity, sub.date_key)
        subs = self._subscribers.get(key, [])
        if sub in subs:
            subs.remove(sub)
        if not subs:
            self._subscribers.pop(key, None)

    def subscriber_count(self, identity: str, date_key: str) -> int:
        return len(self._subscribers.get((identity, date_key), []))

    def _deliver_current(self, sub: Subscription) -> None:
        if not sub.active:
            return
        try:
            plan = self._read(sub.identity, sub.date_key)
        except StoreError as e:
            sub.fail(e)
            return
        sub.deliver(plan)

    def _notify(self, identity: str, date_key: str, plan: DayPlan | None) -> None:
        loop = asyncio.get_running_loop()
        for sub in list(self._subscribers.get((identity, date_key), [])):
            loop.call_soon(sub.deliver, plan)

    def _notify_error(self, identity: str, date_key: str, error: Exception) -> None:
        loop = asyncio.get_running_loop()
        for sub in list(self._subscribers.get((identity, date_key), [])):
            loop.call_soon(sub.fail, error)

    async def write(self, identity: str, plan: DayPlan) -> None:
        """Commit a plan, then notify its subscribers. Writes are serialized."""
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        async with self._write_lock:
            await self._commit(identity, plan)
            logger.debug(f"Committed {identity}/{plan.date} ({len(plan.tasks)} tasks)")
            self._notify(identity, plan.date, plan)


# ── In-process store ──────────────────────────────────────────


class InMemoryPlanStore(_PushStore):
    """Documents held in a dict. Supports fault injection and held writes."""

    def __init__(self) -> None:
        super().__init__()
        self.documents: dict[tuple[str, str], DayPlan] = {}
        self.commits: list[tuple[str, DayPlan]] = []
        self.fail_reads = False
        self.fail_writes = False
        self._gate: asyncio.Event | None = None

    def _read(self, identity: str, date_key: str) -> DayPlan | None:
        if self.fail_reads:
            raise StoreReadError(f"Read failed for {identity}/{date_key}")
        return self.documents.get((identity, date_key))

    async def _commit(self, identity: str, plan: DayPlan) -> None:
        if self._gate is not None:
            await self._gate.wait()
        if self.fail_writes:
            raise StoreWriteError(f"Write failed for {identity}/{plan.date}")
        self.documents[(identity, plan.date)] = plan
        self.commits.append((identity, plan))

    def hold_writes(self) -> None:
        """Park writes until release_writes() is called."""
        self._gate = asyncio.Event()

    def release_writes(self) -> None:
        if self._gate is not None:
            self._gate.set()
            self._gate = None

    def push_remote(self, identity: str, plan: DayPlan) -> None:
        """Commit a change made by some other writer and notify subscribers."""
        self.documents[(identity, plan.date)] = plan
        self._notify(identity, plan.date, plan)

    def push_error(self, identity: str, date_key: str, error: Exception) -> None:
        self._notify_error(identity, date_key, error)


# ── File-backed store ─────────────────────────────────────────


class FilePlanStore(_PushStore):
    """One JSON document per (app id, identity, date) under the workspace.

    Changes made by other processes are not watched; call reload() to
    push the on-disk document to subscribers.
    """

    def __init__(self, config: PlannerConfig) -> None:
        super().__init__()
        self.config = config

    def _read(self, identity: str, date_key: str) -> DayPlan | None:
        try:
            path = plan_document_path(self.config, identity, date_key)
            data = read_json(path)
        except (OSError, ValueError) as e:
            # CorruptDocumentError is a ValueError
            raise StoreReadError(str(e)) from e
        if data is None:
            return None
        errors = validate_plan(data)
        if errors:
            raise StoreReadError(
                f"Invalid plan document {path}: " + "; ".join(errors)
            )
        return DayPlan.from_dict(data)

    async def _commit(self, identity: str, plan: DayPlan) -> None:
        try:
            path = plan_document_path(self.config, identity, plan.date)
            await asyncio.to_thread(write_json_atomic, path, plan.to_dict())
        except (OSError, ValueError) as e:
            raise StoreWriteError(f"Write failed for {identity}/{plan.date}: {e}") from e

    def reload(self, identity: str, date_key: str) -> None:
        """Re-read the document from disk and push it to subscribers."""
        try:
            plan = self._read(identity, date_key)
        except StoreError as e:
            self._notify_error(identity, date_key, e)
            return
        self._notify(identity, date_key, plan)

