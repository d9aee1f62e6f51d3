"""FocusFlow core library — day plan engine, store boundary, focus timer.

Public API re-exports for convenient imports:
    from core import PlannerSession, toggle_task, FocusTimer, ...
"""

# Workspace & config
from core.workspace import (
    workspace_root,
    load_config,
    configure_logging,
    today_str,
    profile_path,
    plan_document_path,
    log_path,
)

# Models
from core.models import (
    Task,
    DayPlan,
    TimerState,
    TimerStatus,
    PlannerConfig,
    TASK_TYPES,
    ENERGY_LEVELS,
    is_valid_time,
)

# Catalog
from core.catalog import (
    DEFAULT_TASKS,
    INTENSE_ACTIVITY_TASKS,
    LIGHT_ACTIVITY_TASKS,
    ACTIVITY_TASK_IDS,
    RESERVED_TASK_IDS,
    default_plan,
)

# Plan engine
from core.tasks import (
    validate_task,
    validate_plan,
    find_task,
    sort_by_time,
    generate_task_id,
    toggle_task,
    delete_task,
    add_task,
    edit_task_field,
    set_energy_level,
    set_workout_mode,
    toggle_workout_mode,
    completed_count,
    completion_percentage,
    healthy_actions,
    display_duration,
)

# Store boundary
from core.sync import (
    PlanStore,
    Subscription,
    InMemoryPlanStore,
    FilePlanStore,
    StoreError,
    StoreReadError,
    StoreWriteError,
)

# Focus timer
from core.focus import (
    FocusTimer,
    AsyncioIntervalScheduler,
    format_remaining,
    timer_label,
)

# Session
from core.session import PlannerSession
