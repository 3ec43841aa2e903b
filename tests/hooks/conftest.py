"""Hook classes and a registry builder for the hooks tests.

Hook class paths point at a synthetic ``kitchen_hooks`` module; the
registry's ``importlib.import_module`` is patched to return it.
"""

from __future__ import annotations

import threading
import types
from unittest.mock import patch

import pytest

from foodflow.config.settings import HookEntrySettings, HookSettings
from foodflow.hooks.base import Hook
from foodflow.hooks.registry import HookRegistry


class TicketPrinterHook(Hook):
    """Keeps every context it is handed, keyed by event method."""

    def __init__(self, config: dict | None = None) -> None:
        super().__init__(config)
        self.received: list[tuple[str, dict]] = []
        self._lock = threading.Lock()

    def _keep(self, method: str, ctx: dict) -> None:
        with self._lock:
            self.received.append((method, ctx))

    def on_order_transition(self, ctx: dict) -> None:
        self._keep("transition", ctx)

    def on_order_claim_lost(self, ctx: dict) -> None:
        self._keep("claim_lost", ctx)

    def on_order_completion(self, ctx: dict) -> None:
        self._keep("completion", ctx)

    def on_order_rollback(self, ctx: dict) -> None:
        self._keep("rollback", ctx)


class BrokenPrinterHook(Hook):
    def on_order_transition(self, ctx: dict) -> None:
        raise RuntimeError("printer offline")

    def on_order_completion(self, ctx: dict) -> None:
        raise RuntimeError("printer offline")


class JammedPrinterHook(Hook):
    """Jams ``jams`` times before printing."""

    def __init__(self, config: dict | None = None) -> None:
        super().__init__(config)
        self.jams = self.config.get("jams", 1)
        self.printed = 0

    def on_order_completion(self, ctx: dict) -> None:
        if self.jams:
            self.jams -= 1
            raise RuntimeError("paper jam")
        self.printed += 1


class StationHook(Hook):
    """Requires a ``station`` name in its config."""

    @classmethod
    def validate_config(cls, config: dict) -> None:
        if not config.get("station"):
            raise ValueError("station is required")


class ScribblingHook(Hook):
    """Writes into the context it receives."""

    def on_order_transition(self, ctx: dict) -> None:
        ctx["scribbled"] = True
        ctx["order"]["status"] = "scribbled"


class NotAHook:
    pass


@pytest.fixture()
def kitchen_hooks():
    mod = types.ModuleType("kitchen_hooks")
    for cls in (
        TicketPrinterHook,
        BrokenPrinterHook,
        JammedPrinterHook,
        StationHook,
        ScribblingHook,
        NotAHook,
    ):
        setattr(mod, cls.__name__, cls)
    return mod


@pytest.fixture()
def entry():
    """Factory for a ``hooks.registered`` entry naming ``kitchen_hooks.<name>``."""

    def _make(name: str = "TicketPrinterHook", **overrides) -> HookEntrySettings:
        fields = {
            "class_path": f"kitchen_hooks.{name}",
            "enabled": True,
            "events": (),
            "timeout_seconds": None,
            "config": {},
        }
        fields.update(overrides)
        return HookEntrySettings(**fields)

    return _make


@pytest.fixture()
def make_registry(kitchen_hooks):
    """``make_registry(entry(...), ..., max_retries=0)`` with ``kitchen_hooks`` importable."""
    built: list[HookRegistry] = []

    def _make(*entries: HookEntrySettings, max_retries: int = 0, timeout_seconds: int = 10):
        settings = HookSettings(
            timeout_seconds=timeout_seconds,
            max_workers=2,
            max_retries=max_retries,
            registered=entries,
        )
        with patch("foodflow.hooks.registry.importlib.import_module", return_value=kitchen_hooks):
            registry = HookRegistry(settings)
        built.append(registry)
        return registry

    yield _make
    for registry in built:
        registry.shutdown(wait=True)
