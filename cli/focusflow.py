#!/usr/bin/env python3
"""FocusFlow TUI — today's plan and focus timer in the terminal, powered by Textual."""

from __future__ import annotations

import sys

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import DataTable, Footer, Header, Input, Label, Static

from core import (
    AsyncioIntervalScheduler,
    FilePlanStore,
    FocusTimer,
    PlannerConfig,
    PlannerSession,
    PlanStore,
    TimerState,
    configure_logging,
    find_task,
    load_config,
    log_path,
    timer_label,
)


CSS = """
Screen {
    layout: vertical;
}

#summary {
    height: auto;
    padding: 0 2;
    margin: 1 0 0 0;
}

#tasks-table {
    height: 1fr;
    margin: 0 1;
}

#editor {
    display: none;
    margin: 0 1;
}

#reflection {
    height: auto;
    padding: 1 2;
    margin: 0 1 1 1;
    border: tall $primary-background-darken-2;
}

.section-title {
    text-style: bold;
    padding: 0 1;
}
"""

TYPE_ICONS = {"work": "💼", "health": "🏋", "break": "☕", "routine": "☀"}
ENERGY_KEYS = {"1": "low", "2": "medium", "3": "high"}


# ── Main app ───────────────────────────────────────────────────


class FocusFlowApp(App):
    """Focus & Flow — daily planner with a focus timer."""

    TITLE = "Focus & Flow"
    CSS = CSS

    BINDINGS = [
        Binding("space", "toggle_task", "Done"),
        Binding("a", "add_task", "Add"),
        Binding("x", "delete_task", "Delete"),
        Binding("e", "edit('title')", "Title"),
        Binding("t", "edit('time')", "Time"),
        Binding("f", "focus_timer", "Focus"),
        Binding("w", "toggle_workout", "Workout"),
        Binding("1", "energy('1')", "Low", show=False),
        Binding("2", "energy('2')", "Medium", show=False),
        Binding("3", "energy('3')", "High", show=False),
        Binding("r", "reload", "Reload"),
        Binding("escape", "cancel_edit", "Back", show=False),
        Binding("q", "quit_app", "Quit"),
    ]

    def __init__(self, config: PlannerConfig, store: PlanStore | None = None) -> None:
        super().__init__()
        self.config = config
        self.store = store or FilePlanStore(config)
        self.session: PlannerSession | None = None
        self._editing: tuple[str, str] | None = None  # (task id, field)

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="summary")
        yield Label("Your Schedule", classes="section-title")
        yield DataTable(id="tasks-table", cursor_type="row")
        yield Input(id="editor")
        yield Vertical(Static(id="reflection-body"), id="reflection")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#tasks-table", DataTable)
        table.add_column("Time", key="time")
        table.add_column("", key="done")
        table.add_column("Type", key="type")
        table.add_column("Title", key="title")
        table.add_column("Focus", key="focus")

        timer = FocusTimer(AsyncioIntervalScheduler())
        timer.add_listener(self._on_timer_change)
        timer.on_expired(self._on_timer_expired)
        self.session = PlannerSession(self.store, self.config, timer=timer)
        self.session.add_listener(lambda _s: self._render_plan())
        self._render_plan()
        self.session.set_identity(self.config.user)

    def on_unmount(self) -> None:
        if self.session is not None:
            self.session.close()

    # ── Rendering ──────────────────────────────────────────────

    def _timer_state(self) -> TimerState:
        if self.session is None or self.session.timer is None:
            return TimerState()
        return self.session.timer.state

    def _render_plan(self) -> None:
        session = self.session
        if session is None:
            return
        table = self.query_one("#tasks-table", DataTable)
        summary = self.query_one("#summary", Static)
        reflection = self.query_one("#reflection-body", Static)

        selected = self._selected_task_id()
        table.clear()

        if session.plan is None:
            summary.update("Loading…" if session.loading else "Plan not loaded.")
            reflection.update("")
            return

        plan = session.plan
        state = self._timer_state()
        for task in plan.tasks:
            table.add_row(
                task.time,
                "✔" if task.completed else "☐",
                TYPE_ICONS.get(task.type, "•"),
                task.title,
                timer_label(state, task),
                key=task.id,
            )
        if selected is not None:
            for i, task in enumerate(plan.tasks):
                if task.id == selected:
                    table.move_cursor(row=i)
                    break

        pct = session.completion_percentage
        workout = "Let's work out! (Gym/HIIT tasks added)" if plan.workout_mode else "Maybe later... (Light stretching only)"
        summary.update(
            f"{plan.date}   Productivity {pct}%   Done {session.completed_count}/{len(plan.tasks)}\n"
            f"Energy: {plan.energy_level.capitalize()}   Activity: {workout}"
        )
        lines = [f"{pct}% Laziness Defeated   {session.healthy_actions} Healthy Actions"]
        if not plan.tasks:
            lines.append("No tasks for today. Press 'a' to add one!")
        if pct == 100:
            lines.append("You are an absolute machine today!")
        reflection.update("\n".join(lines))
        self.sub_title = f"{pct}%"

    def _on_timer_change(self, state: TimerState) -> None:
        session = self.session
        if session is None or session.plan is None or state.active_task_id is None:
            return
        task = find_task(session.plan, state.active_task_id)
        if task is None:
            return
        table = self.query_one("#tasks-table", DataTable)
        table.update_cell(task.id, "focus", timer_label(state, task))

    def _on_timer_expired(self, state: TimerState) -> None:
        self.bell()
        self.notify("Focus session complete.", title="Time's up", severity="information")

    def _selected_task_id(self) -> str | None:
        table = self.query_one("#tasks-table", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return row_key.value

    # ── Intents ────────────────────────────────────────────────

    def action_toggle_task(self) -> None:
        task_id = self._selected_task_id()
        if self.session and task_id:
            self.session.toggle_task(task_id)

    def action_add_task(self) -> None:
        if self.session:
            self.session.add_task()

    def action_delete_task(self) -> None:
        task_id = self._selected_task_id()
        if self.session and task_id:
            self.session.delete_task(task_id)

    def action_toggle_workout(self) -> None:
        if self.session:
            self.session.toggle_workout_mode()

    def action_energy(self, key: str) -> None:
        if self.session:
            self.session.set_energy_level(ENERGY_KEYS[key])

    def action_focus_timer(self) -> None:
        task_id = self._selected_task_id()
        if self.session and task_id:
            self.session.start_timer(task_id)
            self._render_plan()

    def action_reload(self) -> None:
        session = self.session
        if isinstance(self.store, FilePlanStore) and session and session.identity and session.plan:
            self.store.reload(session.identity, session.plan.date)

    # ── Inline editing ─────────────────────────────────────────

    def action_edit(self, field: str) -> None:
        session = self.session
        task_id = self._selected_task_id()
        if session is None or session.plan is None or task_id is None:
            return
        task = find_task(session.plan, task_id)
        if task is None:
            return
        self._editing = (task_id, field)
        editor = self.query_one("#editor", Input)
        editor.placeholder = "HH:MM" if field == "time" else "Task title"
        editor.value = getattr(task, field)
        editor.cursor_position = len(editor.value)
        editor.display = True
        editor.focus()

    @on(Input.Submitted, "#editor")
    def _on_edit_submitted(self, event: Input.Submitted) -> None:
        if self._editing is not None and self.session is not None:
            task_id, field = self._editing
            try:
                self.session.edit_task_field(task_id, field, event.value.strip())
            except ValueError as e:
                self.notify(str(e), title="Not saved", severity="warning")
                return
        self.action_cancel_edit()

    def action_cancel_edit(self) -> None:
        self._editing = None
        editor = self.query_one("#editor", Input)
        editor.display = False
        self.query_one("#tasks-table", DataTable).focus()

    def action_quit_app(self) -> None:
        self.exit()


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    config = load_config()
    if config.root is None or not config.root.exists():
        print(f"Workspace not found: {config.root}")
        print("Set PLANNER_ROOT or create the directory first.")
        sys.exit(1)

    configure_logging(config, filename=log_path(config))
    app = FocusFlowApp(config)
    app.run()


if __name__ == "__main__":
    main()
