"""Tests for core/workspace.py."""

import re

import pytest
import yaml

from core.models import PlannerConfig
from core.workspace import (
    load_config,
    log_path,
    plan_document_path,
    plans_dir,
    profile_path,
    today_str,
    workspace_root,
)


def test_workspace_root_from_env(workspace):
    assert workspace_root() == workspace.resolve()
    assert profile_path() == workspace.resolve() / "planner" / "profile.yaml"


def test_load_config_from_profile(workspace, monkeypatch):
    monkeypatch.delenv("PLANNER_APP_ID", raising=False)
    monkeypatch.delenv("PLANNER_USER", raising=False)
    config = load_config(workspace)
    assert config.root == workspace
    assert config.app_id == "test-app"
    assert config.user == "tester"
    assert config.timezone == "UTC"
    assert config.log_level == "DEBUG"


def test_env_overrides_profile(workspace, monkeypatch):
    monkeypatch.setenv("PLANNER_APP_ID", "other-app")
    monkeypatch.setenv("PLANNER_USER", "bob")
    config = load_config(workspace)
    assert config.app_id == "other-app"
    assert config.user == "bob"


def test_missing_profile_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("PLANNER_APP_ID", raising=False)
    monkeypatch.setenv("PLANNER_USER", "carol")
    config = load_config(tmp_path)
    assert config.app_id == "default-app-id"
    assert config.timezone == "UTC"
    assert config.log_level == "INFO"
    assert config.user == "carol"


def test_unknown_timezone_falls_back_to_utc(workspace, caplog):
    (workspace / "planner" / "profile.yaml").write_text(
        yaml.dump({"timezone": "Mars/Olympus_Mons"}), encoding="utf-8"
    )
    config = load_config(workspace)
    assert config.timezone == "UTC"
    assert "Unknown timezone" in caplog.text


def test_today_str_format():
    assert re.match(r"^\d{4}-\d{2}-\d{2}$", today_str(PlannerConfig(timezone="Asia/Tokyo")))


def test_plan_paths(config):
    assert plans_dir(config, "tester") == config.root / "artifacts" / "test-app" / "users" / "tester" / "daily_plans"
    assert plan_document_path(config, "me@example.com", "2026-02-11").name == "2026-02-11.json"
    assert log_path(config) == config.root / "planner" / "focusflow.log"


@pytest.mark.parametrize("identity", ["", "..", "../x", "a/b", ".hidden"])
def test_plans_dir_rejects_unsafe_identity(config, identity):
    with pytest.raises(ValueError):
        plans_dir(config, identity)
