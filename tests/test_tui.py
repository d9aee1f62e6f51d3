"""Tests for cli/focusflow.py — key bindings driven through Textual's pilot."""

import asyncio
from dataclasses import replace

from cli.focusflow import FocusFlowApp
from core.models import TimerState
from core.sync import InMemoryPlanStore
from core.tasks import find_task
from core.workspace import today_str


def _run(config, plan, keys):
    async def scenario():
        store = InMemoryPlanStore()
        store.documents[("tester", plan.date)] = plan
        app = FocusFlowApp(config, store=store)
        async with app.run_test() as pilot:
            await app.session.wait_loaded()
            await pilot.pause()
            for key in keys:
                await pilot.press(key)
                await pilot.pause()
            await app.session.flush()
            return app.session.plan, app.session.timer.state, store

    return asyncio.run(scenario())


def test_space_toggles_selected_task(config, sample_plan):
    plan = replace(sample_plan, date=today_str(config))
    result, _, store = _run(config, plan, ["space"])
    assert find_task(result, "a").completed is True
    assert store.documents[("tester", plan.date)] == result


def test_energy_and_workout_keys(config, sample_plan):
    plan = replace(sample_plan, date=today_str(config))
    result, _, _ = _run(config, plan, ["3", "w"])
    assert result.energy_level == "high"
    assert result.workout_mode is True
    assert find_task(result, "w1") is not None


def test_focus_key_starts_timer(config, sample_plan):
    plan = replace(sample_plan, date=today_str(config))
    plan_after, state, _ = _run(config, plan, ["down", "f"])
    assert state.active_task_id == "b"
    assert state.running is True
    assert plan_after == plan


def test_edit_time_via_editor(config, sample_plan):
    plan = replace(sample_plan, date=today_str(config))
    keys = ["down", "down", "t", *["backspace"] * 5, "0", "7", "colon", "0", "0", "enter"]
    result, _, _ = _run(config, plan, keys)
    assert [t.id for t in result.tasks] == ["c", "a", "b"]


def test_timer_column_without_timer(config):
    app = FocusFlowApp(config, store=InMemoryPlanStore())
    assert app._timer_state() == TimerState()
