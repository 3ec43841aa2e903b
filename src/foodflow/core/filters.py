"""Order predicates shared by store queries, subscriptions and caches.

An :class:`OrderFilter` is evaluated in two places that must agree:
in Python against an :class:`~foodflow.models.order.Order`
(:meth:`OrderFilter.matches`) and in SQL against the ``orders`` table
(:meth:`OrderFilter.to_sql`).  All set fields are AND-joined.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from foodflow.core.types import OrderStatus
    from foodflow.models.order import Order


@dataclass(frozen=True)
class OrderFilter:
    statuses: frozenset[OrderStatus] | None = None
    order_id: UUID | None = None
    vendor_id: UUID | None = None
    customer_id: UUID | None = None
    deliverer_id: UUID | None = None
    unassigned: bool = False
    created_since: datetime | None = None

    def __post_init__(self) -> None:
        if self.unassigned and self.deliverer_id is not None:
            msg = "OrderFilter cannot require both unassigned and a deliverer_id"
            raise ValueError(msg)

    def matches(self, order: Order) -> bool:
        if self.statuses is not None and order.status not in self.statuses:
            return False
        if self.order_id is not None and order.id != self.order_id:
            return False
        if self.vendor_id is not None and order.vendor_id != self.vendor_id:
            return False
        if self.customer_id is not None and order.customer_id != self.customer_id:
            return False
        if self.deliverer_id is not None and order.deliverer_id != self.deliverer_id:
            return False
        if self.unassigned and order.deliverer_id is not None:
            return False
        return not (self.created_since is not None and order.created_at < self.created_since)

    def to_sql(self) -> tuple[str, list]:
        """Return ``(where_clause, params)``; the clause is ``TRUE`` when empty."""
        parts: list[str] = []
        params: list = []
        if self.statuses is not None:
            if not self.statuses:
                return "FALSE", []
            parts.append("status = ANY(%s)")
            params.append(sorted(s.value for s in self.statuses))
        for column in ("order_id", "vendor_id", "customer_id", "deliverer_id"):
            value = getattr(self, column)
            if value is not None:
                parts.append(f"{'id' if column == 'order_id' else column} = %s")
                params.append(value)
        if self.unassigned:
            parts.append("deliverer_id IS NULL")
        if self.created_since is not None:
            parts.append("created_at >= %s")
            params.append(self.created_since)
        return (" AND ".join(parts) or "TRUE"), params

    def describe(self) -> str:
        """Compact form for log lines, e.g. ``status in (ready) & unassigned``."""
        parts = []
        if self.statuses is not None:
            parts.append(f"status in ({', '.join(sorted(s.value for s in self.statuses))})")
        for column in ("order_id", "vendor_id", "customer_id", "deliverer_id"):
            value = getattr(self, column)
            if value is not None:
                parts.append(f"{column}={value}")
        if self.unassigned:
            parts.append("unassigned")
        if self.created_since is not None:
            parts.append(f"created>={self.created_since.isoformat()}")
        return " & ".join(parts) or "all"
