"""Configuration subsystem for FOODFLOW.

Public API::

    from foodflow.config import get_config, FoodflowConfig

    # At startup (CLI only):
    FoodflowConfig(config_file="config.yaml")

    # Everywhere else:
    cfg = get_config()
    channel = cfg.settings.realtime.channel   # typed access
    top_n = cfg.get("orders.top_items_limit")  # dynamic dot-path
"""

from foodflow.config.foodflow_config import (
    ConfigValidationError,
    FoodflowConfig,
    get_config,
)
from foodflow.config.settings import (
    AuditLogSettings,
    DatabaseSettings,
    FoodflowSettings,
    HookEntrySettings,
    HookSettings,
    LoggingSettings,
    OrderWorkflowSettings,
    RealtimeSettings,
    StoreSettings,
    build_settings,
)

__all__ = [
    "AuditLogSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "FoodflowConfig",
    "FoodflowSettings",
    "HookEntrySettings",
    "HookSettings",
    "LoggingSettings",
    "OrderWorkflowSettings",
    "RealtimeSettings",
    "StoreSettings",
    "build_settings",
    "get_config",
]
