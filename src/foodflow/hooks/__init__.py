"""Lifecycle hooks subsystem for FOODFLOW.

Public API::

    from foodflow.hooks import Hook, HookRegistry, KNOWN_EVENTS

    class MyHook(Hook):
        def on_order_completion(self, ctx: dict) -> None:
            ...
"""

from foodflow.hooks.base import Hook
from foodflow.hooks.events import KNOWN_EVENTS
from foodflow.hooks.registry import HookRegistry

__all__ = ["KNOWN_EVENTS", "Hook", "HookRegistry"]
