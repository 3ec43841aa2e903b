"""Enumerated types for the FOODFLOW order lifecycle.

All enums inherit from ``StrEnum`` so their ``.value`` is a plain
string that psycopg serialises as TEXT and JSON round-trips naturally.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------


class OrderStatus(StrEnum):
    CREATED = "created"
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------


class ActorRole(StrEnum):
    VENDOR = "vendor"
    DELIVERER = "deliverer"
    CUSTOMER = "customer"


# ---------------------------------------------------------------------------
# Write guards
# ---------------------------------------------------------------------------


class GuardKind(StrEnum):
    """Extra predicate a transition write carries besides the status CAS."""

    OWNER = "owner"
    UNASSIGNED = "unassigned"


# ---------------------------------------------------------------------------
# Change feed
# ---------------------------------------------------------------------------


class ChangeType(StrEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ReconcileOutcome(StrEnum):
    INSERTED = "inserted"
    REPLACED = "replaced"
    REMOVED = "removed"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


class TimeRange(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
