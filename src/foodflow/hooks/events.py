"""Canonical hook event definitions.

Single source of truth for all known lifecycle event names and their
corresponding :class:`~foodflow.hooks.base.Hook` method names.

This module has **zero** internal dependencies and can be imported
from anywhere without circular import risk.
"""

from __future__ import annotations

EVENT_METHOD_MAP: dict[str, str] = {
    "order.transition": "on_order_transition",
    "order.claim_lost": "on_order_claim_lost",
    "order.completion": "on_order_completion",
    "order.rollback": "on_order_rollback",
}

KNOWN_EVENTS: frozenset[str] = frozenset(EVENT_METHOD_MAP.keys())
