"""Tests for FoodflowConfig loading, env-var resolution and additional_checks()."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml

from foodflow.config import build_settings, get_config
from foodflow.config.foodflow_config import (
    _SCHEMA_PATH,
    ConfigValidationError,
    FoodflowConfig,
    _resolve_env_vars,
)


def _write_config(tmp_path: Path, overrides: dict | None = None) -> Path:
    """Write a complete valid config, merging *overrides*, return path."""
    cfg = {"database": {"database": "foodflow", "user": "foodflow"}}
    if overrides:
        _deep_merge(cfg, overrides)
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(cfg, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return path


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def _make_config(tmp_path: Path, overrides: dict | None = None) -> FoodflowConfig:
    path = _write_config(tmp_path, overrides)
    return FoodflowConfig(config_file=path, schema_file=_SCHEMA_PATH)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoading:
    def test_minimal_config(self, tmp_config_file):
        cfg = FoodflowConfig(config_file=tmp_config_file, schema_file=_SCHEMA_PATH)
        assert cfg.settings.database.database == "foodflow_test"
        assert cfg.settings.store.backend == "postgres"
        assert get_config() is cfg

    def test_get_config_before_init(self):
        with pytest.raises(RuntimeError, match="not initialised"):
            get_config()

    def test_memory_backend(self, tmp_path):
        cfg = _make_config(tmp_path, {"store": {"backend": "memory"}})
        assert cfg.settings.store.backend == "memory"

    def test_unknown_section_rejected_by_schema(self, tmp_path):
        with pytest.raises((ConfigValidationError, ValueError)):
            _make_config(tmp_path, {"kitchen": {"ovens": 2}})

    @pytest.mark.parametrize("key", ["resync_on_failure", "currency"])
    def test_retired_order_options_rejected(self, tmp_path, key):
        with pytest.raises((ConfigValidationError, ValueError)):
            _make_config(tmp_path, {"orders": {key: "PHP" if key == "currency" else False}})

    def test_reload_settings(self, tmp_path):
        cfg = _make_config(tmp_path, {"orders": {"top_items_limit": 3}})
        _write_config(tmp_path, {"orders": {"top_items_limit": 5}})
        assert cfg.reload_settings().orders.top_items_limit == 5
        assert cfg.settings.orders.top_items_limit == 3


class TestSettingsDefaults:
    def test_defaults(self):
        settings = build_settings({})
        assert settings.realtime.channel == "orders_changes"
        assert settings.orders.require_payment_confirmation is True
        assert settings.orders.top_items_limit == 3
        assert settings.hooks.registered == ()
        assert settings.logging.format == "text"

    def test_hook_entry_built(self):
        settings = build_settings(
            {
                "hooks": {
                    "registered": [
                        {"class": "shop.hooks.Printer", "events": ["order.transition"]},
                    ]
                }
            }
        )
        entry = settings.hooks.registered[0]
        assert entry.class_path == "shop.hooks.Printer"
        assert entry.events == ("order.transition",)
        assert entry.enabled is True

    def test_unknown_hook_event_rejected(self):
        with pytest.raises(ValueError, match="unknown event"):
            build_settings({"hooks": {"registered": [{"class": "a.B", "events": ["nope"]}]}})


# ---------------------------------------------------------------------------
# Environment variables
# ---------------------------------------------------------------------------


class TestEnvVars:
    def test_resolved_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FOODFLOW_DB_PASSWORD", "s3cret")
        cfg = _make_config(tmp_path, {"database": {"password": "${FOODFLOW_DB_PASSWORD}"}})
        assert cfg.settings.database.password == "s3cret"

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("FOODFLOW_LOG_LEVEL", raising=False)
        data = {"logging": {"level": "${FOODFLOW_LOG_LEVEL:-DEBUG}"}, "list": ["${X_UNSET:-a}"]}
        _resolve_env_vars(data)
        assert data == {"logging": {"level": "DEBUG"}, "list": ["a"]}

    def test_missing_without_default(self, monkeypatch):
        monkeypatch.delenv("FOODFLOW_MISSING", raising=False)
        with pytest.raises(ConfigValidationError, match="database.host"):
            _resolve_env_vars({"database": {"host": "${FOODFLOW_MISSING}"}})


# ---------------------------------------------------------------------------
# Cross-field validation
# ---------------------------------------------------------------------------


class TestAdditionalChecks:
    def test_pool_bounds(self, tmp_path):
        with pytest.raises((ConfigValidationError, ValueError), match="min_connections"):
            _make_config(tmp_path, {"database": {"min_connections": 10, "max_connections": 2}})

    def test_channel_must_be_identifier(self, tmp_path):
        with pytest.raises((ConfigValidationError, ValueError), match="realtime.channel"):
            _make_config(tmp_path, {"realtime": {"channel": "Orders-Changes"}})

    def test_backoff_bounds(self, tmp_path):
        with pytest.raises((ConfigValidationError, ValueError), match="backoff"):
            _make_config(
                tmp_path,
                {
                    "realtime": {
                        "reconnect_backoff_base_seconds": 30,
                        "reconnect_backoff_max_seconds": 5,
                    }
                },
            )

    def test_hook_class_path(self, tmp_path):
        with pytest.raises((ConfigValidationError, ValueError), match="class"):
            _make_config(tmp_path, {"hooks": {"registered": [{"class": "NotQualified"}]}})

    def test_errors_collected_together(self):
        err = ConfigValidationError(["first problem", "second problem"])
        assert err.errors == ["first problem", "second problem"]
        assert "  - first problem" in str(err)

    def test_payment_warning(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="foodflow.config.foodflow_config"):
            cfg = _make_config(tmp_path, {"orders": {"require_payment_confirmation": False}})
        assert cfg.settings.orders.require_payment_confirmation is False
        assert "require_payment_confirmation is false" in caplog.text

    def test_custom_channel_warning(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="foodflow.config.foodflow_config"):
            _make_config(tmp_path, {"realtime": {"channel": "kitchen_orders"}})
        assert "notifies on 'orders_changes'" in caplog.text
