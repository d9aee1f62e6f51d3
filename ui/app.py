from __future__ import annotations

import os
import secrets
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from core import (
    AsyncioIntervalScheduler,
    DayPlan,
    FilePlanStore,
    FocusTimer,
    PlannerSession,
    configure_logging,
    display_duration,
    format_remaining,
    load_config,
    timer_label,
)


# ── HTML helpers ──────────────────────────────────────────────

def _escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


TYPE_BADGES = {"work": "💼", "health": "🏋", "break": "☕", "routine": "☀"}


# ── App & lifecycle ───────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config = load_config()
    configure_logging(config)
    app.state.config = config
    app.state.store = FilePlanStore(config)
    app.state.sessions = {}
    yield
    sessions: dict[str, PlannerSession] = app.state.sessions
    for session in sessions.values():
        session.close()
    for session in sessions.values():
        await session.flush()


app = FastAPI(title="FocusFlow", version="0.1.0", lifespan=lifespan)

security = HTTPBasic(auto_error=False)


# ── Auth ──────────────────────────────────────────────────────

def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("FOCUSFLOW_USERNAME", "")
    expected_password = os.environ.get("FOCUSFLOW_PASSWORD", "")

    if credentials is None:
        if not expected_username or not expected_password:
            return "guest"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    if not expected_username or not expected_password:
        return "guest"

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


async def get_session(request: Request, username: str = Depends(get_current_user)) -> PlannerSession:
    """The caller's session, loaded. One session per identity per process."""
    sessions: dict[str, PlannerSession] = request.app.state.sessions
    session = sessions.get(username)
    if session is None:
        timer = FocusTimer(AsyncioIntervalScheduler())
        session = PlannerSession(request.app.state.store, request.app.state.config, timer=timer)
        sessions[username] = session
        session.set_identity(username)
    await session.wait_loaded()
    await session.flush()
    if session.plan is None:
        detail = "Plan not loaded"
        if session.last_error is not None:
            detail = f"Plan not loaded: {session.last_error}"
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
    return session


def _loaded_plan(session: PlannerSession) -> DayPlan:
    if session.plan is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Plan not loaded")
    return session.plan


def _plan_payload(session: PlannerSession) -> dict[str, Any]:
    plan = _loaded_plan(session)
    return {
        "ok": True,
        "plan": plan.to_dict(),
        "completionPercentage": session.completion_percentage,
        "completedCount": session.completed_count,
        "healthyActions": session.healthy_actions,
    }


def _timer_payload(session: PlannerSession) -> dict[str, Any]:
    if session.timer is None:
        return {"ok": True, "timer": None}
    state = session.timer.state
    return {
        "ok": True,
        "timer": state.to_dict(),
        "display": format_remaining(state.seconds_remaining),
    }


async def _mutate(session: PlannerSession, op: str, *args: Any) -> dict[str, Any]:
    try:
        getattr(session, op)(*args)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    # respond once the write (and its echo) has landed
    await session.flush()
    return _plan_payload(session)


# ── Pages ─────────────────────────────────────────────────────

@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@app.get("/", response_class=HTMLResponse)
async def index(session: PlannerSession = Depends(get_session)) -> HTMLResponse:
    plan = _loaded_plan(session)
    timer_state = session.timer.state if session.timer else None

    rows = []
    for t in plan.tasks:
        done = "done" if t.completed else ""
        label = timer_label(timer_state, t) if timer_state else f"{display_duration(t)}m focus"
        rows.append(
            f'<li class="{done}"><span class="time">{_escape(t.time)}</span> '
            f'{TYPE_BADGES.get(t.type, "•")} {_escape(t.title)} '
            f'<span class="muted">{_escape(label)}</span></li>'
        )
    tasks_html = "".join(rows) or '<li class="muted">No tasks for today. Add one above!</li>'

    pct = session.completion_percentage
    banner = "<p><strong>You are an absolute machine today!</strong></p>" if pct == 100 else ""
    workout = "Let's work out!" if plan.workout_mode else "Maybe later..."

    html = f"""<!doctype html>
<html><head><meta charset="utf-8"><title>Focus &amp; Flow</title></head>
<body>
<h1>Focus &amp; Flow</h1>
<p>{_escape(plan.date)} &middot; Productivity {pct}% &middot; Energy: {_escape(plan.energy_level)} &middot; {workout}</p>
<ol class="tasks">{tasks_html}</ol>
<h3>Daily Reflection</h3>
<p>{pct}% Laziness Defeated &middot; {session.healthy_actions} Healthy Actions</p>
{banner}
</body></html>"""
    return HTMLResponse(html)


# ── Plan API ──────────────────────────────────────────────────

@app.get("/api/plan")
async def api_get_plan(session: PlannerSession = Depends(get_session)) -> dict[str, Any]:
    return _plan_payload(session)


@app.post("/api/plan/tasks")
async def api_add_task(session: PlannerSession = Depends(get_session)) -> dict[str, Any]:
    return await _mutate(session, "add_task")


@app.post("/api/plan/tasks/{task_id}/toggle")
async def api_toggle_task(task_id: str, session: PlannerSession = Depends(get_session)) -> dict[str, Any]:
    return await _mutate(session, "toggle_task", task_id)


@app.patch("/api/plan/tasks/{task_id}")
async def api_edit_task(
    task_id: str,
    payload: dict[str, Any] = Body(...),
    session: PlannerSession = Depends(get_session),
) -> dict[str, Any]:
    """Edit one field: {"field": "title" | "time", "value": "..."}."""
    field = payload.get("field")
    value = payload.get("value")
    if not field or not isinstance(value, str):
        raise HTTPException(status_code=400, detail="Missing field or value")
    return await _mutate(session, "edit_task_field", task_id, field, value)


@app.delete("/api/plan/tasks/{task_id}")
async def api_delete_task(task_id: str, session: PlannerSession = Depends(get_session)) -> dict[str, Any]:
    return await _mutate(session, "delete_task", task_id)


@app.put("/api/plan/energy")
async def api_set_energy(payload: dict[str, Any] = Body(...), session: PlannerSession = Depends(get_session)) -> dict[str, Any]:
    return await _mutate(session, "set_energy_level", str(payload.get("level", "")))


@app.put("/api/plan/workout")
async def api_set_workout(payload: dict[str, Any] = Body(...), session: PlannerSession = Depends(get_session)) -> dict[str, Any]:
    enabled = payload.get("enabled")
    if not isinstance(enabled, bool):
        raise HTTPException(status_code=400, detail="enabled must be true or false")
    return await _mutate(session, "set_workout_mode", enabled)


@app.post("/api/plan/workout/toggle")
async def api_toggle_workout(session: PlannerSession = Depends(get_session)) -> dict[str, Any]:
    return await _mutate(session, "toggle_workout_mode")


# ── Timer API ─────────────────────────────────────────────────

@app.get("/api/timer")
async def api_timer(session: PlannerSession = Depends(get_session)) -> dict[str, Any]:
    return _timer_payload(session)


@app.post("/api/timer/start")
async def api_timer_start(payload: dict[str, Any] = Body(...), session: PlannerSession = Depends(get_session)) -> dict[str, Any]:
    """Start the focus timer for a task; starting the running task again stops it."""
    task_id = str(payload.get("task_id", ""))
    if session.start_timer(task_id) is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return _timer_payload(session)


@app.post("/api/timer/stop")
async def api_timer_stop(session: PlannerSession = Depends(get_session)) -> dict[str, Any]:
    if session.timer is not None:
        session.timer.stop()
    return _timer_payload(session)


# ── Entry point ───────────────────────────────────────────────

def main() -> None:
    import uvicorn

    uvicorn.run(
        "ui.app:app",
        host=os.environ.get("FOCUSFLOW_HOST", "127.0.0.1"),
        port=int(os.environ.get("FOCUSFLOW_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
