"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders
are what the application actually reads.

Access pattern::

    from foodflow.config import get_config

    db = get_config().settings.database
    print(db.host, db.port)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StoreSettings:
    """Which order store backs the client (``postgres`` or ``memory``)."""

    backend: str


def _build_store(data: dict | None) -> StoreSettings:
    d = data or {}
    return StoreSettings(backend=d.get("backend", "postgres"))


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """PostgreSQL connection and pool settings."""

    host: str
    port: int
    database: str
    user: str
    password: str
    sslmode: str
    min_connections: int
    max_connections: int
    connection_timeout: float
    auto_setup: bool


def _build_database(data: dict | None) -> DatabaseSettings:
    d = data or {}
    return DatabaseSettings(
        host=d.get("host", "localhost"),
        port=d.get("port", 5432),
        database=d.get("database", "foodflow"),
        user=d.get("user", "foodflow"),
        password=d.get("password", ""),
        sslmode=d.get("sslmode", "prefer"),
        min_connections=d.get("min_connections", 1),
        max_connections=d.get("max_connections", 5),
        connection_timeout=d.get("connection_timeout", 10.0),
        auto_setup=d.get("auto_setup", False),
    )


# ---------------------------------------------------------------------------
# Realtime
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RealtimeSettings:
    """Change-feed listener settings (LISTEN channel, reconnect backoff)."""

    enabled: bool
    channel: str
    poll_seconds: float
    reconnect_backoff_base_seconds: float
    reconnect_backoff_max_seconds: float


def _build_realtime(data: dict | None) -> RealtimeSettings:
    d = data or {}
    return RealtimeSettings(
        enabled=d.get("enabled", True),
        channel=d.get("channel", "orders_changes"),
        poll_seconds=d.get("poll_seconds", 1.0),
        reconnect_backoff_base_seconds=d.get("reconnect_backoff_base_seconds", 1.0),
        reconnect_backoff_max_seconds=d.get("reconnect_backoff_max_seconds", 60.0),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditLogSettings:
    """Audit log output settings (file, rotation)."""

    enabled: bool
    file: str | None
    max_file_size_bytes: int
    backup_count: int


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format, audit)."""

    level: str
    format: str
    audit: AuditLogSettings


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    a = d.get("audit") or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
        audit=AuditLogSettings(
            enabled=a.get("enabled", True),
            file=a.get("file"),
            max_file_size_bytes=a.get("max_file_size_bytes", 10485760),
            backup_count=a.get("backup_count", 5),
        ),
    )


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HookEntrySettings:
    """Single registered hook entry with events and config."""

    class_path: str
    enabled: bool
    events: tuple[str, ...]
    timeout_seconds: int | None
    config: dict[str, Any]


@dataclass(frozen=True)
class HookSettings:
    """Lifecycle hook system settings (workers, retries, registry)."""

    timeout_seconds: int
    max_workers: int
    max_retries: int
    registered: tuple[HookEntrySettings, ...]


def _build_hooks(data: dict | None) -> HookSettings:
    from foodflow.hooks.events import KNOWN_EVENTS  # noqa: PLC0415

    d = data or {}
    registered = []
    for idx, entry in enumerate(d.get("registered", [])):
        events = tuple(entry.get("events", []))
        for evt in events:
            if evt not in KNOWN_EVENTS:
                msg = (
                    f"hooks.registered[{idx}].events: unknown event "
                    f"'{evt}'. Known events: {sorted(KNOWN_EVENTS)}"
                )
                raise ValueError(msg)
        registered.append(
            HookEntrySettings(
                class_path=entry["class"],
                enabled=entry.get("enabled", True),
                events=events,
                timeout_seconds=entry.get("timeout_seconds"),
                config=entry.get("config", {}),
            )
        )
    return HookSettings(
        timeout_seconds=d.get("timeout_seconds", 10),
        max_workers=d.get("max_workers", 2),
        max_retries=d.get("max_retries", 0),
        registered=tuple(registered),
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrderWorkflowSettings:
    """Transition and reporting behaviour."""

    require_payment_confirmation: bool
    top_items_limit: int


def _build_orders(data: dict | None) -> OrderWorkflowSettings:
    d = data or {}
    return OrderWorkflowSettings(
        require_payment_confirmation=d.get("require_payment_confirmation", True),
        top_items_limit=d.get("top_items_limit", 3),
    )


# ---------------------------------------------------------------------------
# Root settings aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FoodflowSettings:
    store: StoreSettings
    database: DatabaseSettings
    realtime: RealtimeSettings
    logging: LoggingSettings
    hooks: HookSettings
    orders: OrderWorkflowSettings


def build_settings(data: dict) -> FoodflowSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`FoodflowConfig` initialization after
    schema validation and environment-variable resolution.
    """
    return FoodflowSettings(
        store=_build_store(data.get("store")),
        database=_build_database(data.get("database")),
        realtime=_build_realtime(data.get("realtime")),
        logging=_build_logging(data.get("logging")),
        hooks=_build_hooks(data.get("hooks")),
        orders=_build_orders(data.get("orders")),
    )
