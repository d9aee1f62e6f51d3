"""Workspace root, configuration, timezone and path helpers for FocusFlow."""

from __future__ import annotations

import getpass
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.fileio import read_yaml
from core.models import PlannerConfig


logger = logging.getLogger(__name__)

DEFAULT_APP_ID = "default-app-id"

_IDENTITY_RE = re.compile(r"^[A-Za-z0-9_@-][A-Za-z0-9_.@-]*$")


def workspace_root() -> Path:
    """Get the workspace root directory (contains planner/ and artifacts/)."""
    return Path(
        os.environ.get("PLANNER_ROOT", str(Path.home() / "planner"))
    ).expanduser().resolve()


def profile_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "planner" / "profile.yaml"


def _local_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "local"


def load_config(root: Path | None = None) -> PlannerConfig:
    """Resolve configuration once: profile.yaml, then env overrides."""
    if root is None:
        root = workspace_root()
    profile = read_yaml(profile_path(root))

    timezone = str(profile.get("timezone") or "UTC")
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {timezone!r} in profile, using UTC")
        timezone = "UTC"

    return PlannerConfig(
        root=root,
        app_id=os.environ.get("PLANNER_APP_ID") or str(profile.get("app_id") or DEFAULT_APP_ID),
        timezone=timezone,
        user=os.environ.get("PLANNER_USER") or str(profile.get("user") or _local_user()),
        log_level=str(profile.get("log_level") or "INFO").upper(),
    )


def configure_logging(config: PlannerConfig, filename: Path | None = None) -> None:
    if filename is not None:
        filename.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=filename,
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def today_str(config: PlannerConfig) -> str:
    """Get today's date key (YYYY-MM-DD) in the configured timezone."""
    return datetime.now(ZoneInfo(config.timezone)).date().isoformat()


# ── Path helpers ──────────────────────────────────────────────


def plans_dir(config: PlannerConfig, identity: str) -> Path:
    if not _IDENTITY_RE.match(identity):
        raise ValueError(f"Identity not usable as a path segment: {identity!r}")
    root = config.root if config.root is not None else workspace_root()
    return root / "artifacts" / config.app_id / "users" / identity / "daily_plans"


def plan_document_path(config: PlannerConfig, identity: str, date_key: str) -> Path:
    return plans_dir(config, identity) / f"{date_key}.json"


def log_path(config: PlannerConfig) -> Path:
    root = config.root if config.root is not None else workspace_root()
    return root / "planner" / "focusflow.log"
