"""FOODFLOW configuration loader built on ConfigKit.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    FoodflowConfig(config_file="/etc/foodflow/config.yaml")

    # 2. Any module retrieves it afterwards
    from foodflow.config import get_config
    cfg = get_config()
    cfg.settings.realtime.channel  # typed access

    # 3. Dynamic access
    cfg.get("orders.top_items_limit", default=3)
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from configkit import ConfigKit, ConfigKitMeta

from foodflow.config.settings import FoodflowSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_CLASS_PATH_RE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)+$",
)

_CHANNEL_RE = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")

_KNOWN_HOOK_EVENTS: frozenset[str] | None = None


def _get_known_hook_events() -> frozenset[str]:
    """Return the known hook event names, loading lazily."""
    global _KNOWN_HOOK_EVENTS  # noqa: PLW0603
    if _KNOWN_HOOK_EVENTS is None:
        from foodflow.hooks.events import KNOWN_EVENTS  # noqa: PLC0415

        _KNOWN_HOOK_EVENTS = KNOWN_EVENTS
    return _KNOWN_HOOK_EVENTS


log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: FoodflowConfig | None = None


def get_config() -> FoodflowConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`FoodflowConfig` has not been
    created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "FoodflowConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when cross-field validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class FoodflowConfig(ConfigKit):
    """Central configuration for a FOODFLOW client.

    Subclasses :class:`configkit.ConfigKit`.  The JSON schema is
    bundled at ``config/schema.json``; users supply only ``config_file``.

    After construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.
    """

    def __init__(
        self,
        *,
        config_file: str | Path,
        schema_file: str | Path | None = None,  # noqa: ARG002
    ) -> None:
        """Initialise the FOODFLOW configuration singleton.

        Parameters
        ----------
        config_file:
            Path to the YAML/JSON configuration file.
        schema_file:
            Ignored.  Exists only to satisfy the
            :class:`ConfigKitMeta` singleton guard.

        """
        global _instance  # noqa: PLW0603

        super().__init__(
            config_file=config_file,
            schema_file=_SCHEMA_PATH,
        )

        self._source = str(config_file)
        self._settings: FoodflowSettings = build_settings(self.data)
        _instance = self

    # -- lifecycle overrides ------------------------------------------------

    def _load(self) -> None:
        """Load config file then resolve ``${VAR}`` env-var references.

        Runs env-var resolution **before** schema validation so that
        substituted values (e.g. ``${LOG_LEVEL:-INFO}``) are checked
        against enum constraints in the schema.
        """
        super()._load()
        _resolve_env_vars(self._data)

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> FoodflowSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:
        """Semantic & cross-field validation.

        Called automatically by ConfigKit **after** schema validation
        passes.
        """
        errors: list[str] = []
        warnings: list[str] = []

        store = self.data.get("store") or {}
        database = self.data.get("database") or {}
        realtime = self.data.get("realtime") or {}
        hooks = self.data.get("hooks") or {}
        orders = self.data.get("orders") or {}

        # -- store / database --
        backend = store.get("backend", "postgres")
        if backend == "postgres" and not database:
            errors.append("database section is required when store.backend is 'postgres'")
        min_conn = database.get("min_connections", 1)
        max_conn = database.get("max_connections", 5)
        if min_conn > max_conn:
            errors.append(
                f"database.min_connections ({min_conn}) must not exceed "
                f"database.max_connections ({max_conn})",
            )

        # -- realtime --
        channel = realtime.get("channel", "orders_changes")
        if not _CHANNEL_RE.match(channel):
            errors.append(
                f"realtime.channel {channel!r} must be a lower-case identifier "
                "of at most 63 characters",
            )
        base = realtime.get("reconnect_backoff_base_seconds", 1.0)
        cap = realtime.get("reconnect_backoff_max_seconds", 60.0)
        if base > cap:
            errors.append(
                f"realtime.reconnect_backoff_base_seconds ({base}) must not exceed "
                f"realtime.reconnect_backoff_max_seconds ({cap})",
            )
        if channel != "orders_changes":
            warnings.append(
                f"realtime.channel is {channel!r} but the bundled schema trigger "
                "notifies on 'orders_changes'",
            )

        # -- hooks --
        known_events = _get_known_hook_events()
        for idx, entry in enumerate(hooks.get("registered", [])):
            class_path = entry.get("class", "")
            if not _CLASS_PATH_RE.match(class_path):
                errors.append(
                    f"hooks.registered[{idx}].class {class_path!r} is not a "
                    "fully qualified class path",
                )
            unknown = sorted(set(entry.get("events", [])) - known_events)
            if unknown:
                errors.append(
                    f"hooks.registered[{idx}].events contains unknown events {unknown}; "
                    f"known events: {sorted(known_events)}",
                )

        # -- orders --
        if orders.get("require_payment_confirmation") is False:
            warnings.append(
                "orders.require_payment_confirmation is false: orders can be "
                "completed without confirming payment",
            )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    def reload_settings(self) -> FoodflowSettings:
        """Re-read the config file and rebuild settings.

        Does not reset the singleton.  Re-reads the file, resolves env
        vars, and returns a fresh :class:`FoodflowSettings` tree.
        """
        import json  # noqa: PLC0415

        import yaml  # noqa: PLC0415

        source_file = self._source
        with open(source_file, encoding="utf-8") as f:  # noqa: PTH123
            if source_file.endswith((".yaml", ".yml")):
                new_data = yaml.safe_load(f)
            else:
                new_data = json.load(f)

        _resolve_env_vars(new_data)
        return build_settings(new_data)

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None
        ConfigKitMeta.reset()

    def __repr__(self) -> str:
        return f"<FoodflowConfig config_file={self._source}>"
