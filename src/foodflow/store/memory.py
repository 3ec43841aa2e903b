"""In-process order store.

A complete :class:`~foodflow.store.base.OrderStore` held in a dict and
guarded by one lock, which makes it the linearization point for every
client sharing the instance.  Change events are published in commit
order, from whichever writer thread drains the queue first.

Used by the test suite, by demos, and by the CLI with
``store.backend: memory``.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from foodflow.core.state import PRE_ASSIGNMENT_STATUSES
from foodflow.core.types import ChangeType, GuardKind
from foodflow.models.change import ChangeEvent
from foodflow.models.order import _EPOCH
from foodflow.store.base import OrderStore, SubscriptionRegistry

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from foodflow.core.filters import OrderFilter
    from foodflow.core.types import OrderStatus
    from foodflow.models.order import Order
    from foodflow.store.base import ChangeCallback, Subscription, WriteGuard

log = logging.getLogger(__name__)

# Order attributes no status write may touch.
IMMUTABLE_FIELDS = frozenset(
    {"id", "customer_id", "vendor_id", "items", "total_price", "delivery_fee", "created_at"}
)


def _sort_key(order: Order) -> tuple:
    return (order.created_at, str(order.id))


def guard_matches(row: Order, guard: WriteGuard) -> bool:
    """Evaluate *guard* against *row* exactly as the SQL WHERE clause does."""
    if row.status is not guard.expected_status:
        return False
    if guard.kind is GuardKind.UNASSIGNED:
        return row.deliverer_id is None
    return getattr(row, guard.owner_field) == guard.actor_id


class MemoryOrderStore(OrderStore):
    """Thread-safe dict-backed store with realtime fan-out."""

    def __init__(self) -> None:
        self._rows: dict[UUID, Order] = {}
        self._lock = threading.Lock()
        self._seq = 0
        self._pending: deque[ChangeEvent] = deque()
        self._drain_lock = threading.Lock()
        self._subscriptions = SubscriptionRegistry()

    # -- reads ---------------------------------------------------------------

    def read_order(self, order_id: UUID) -> Order | None:
        with self._lock:
            return self._rows.get(order_id)

    def read_orders(self, order_filter: OrderFilter) -> list[Order]:
        with self._lock:
            rows = [o for o in self._rows.values() if order_filter.matches(o)]
        return sorted(rows, key=_sort_key, reverse=True)

    # -- writes --------------------------------------------------------------

    def create_order(self, order: Order) -> Order:
        if order.status in PRE_ASSIGNMENT_STATUSES and order.deliverer_id is not None:
            msg = f"Order in status {order.status.value!r} cannot have a deliverer"
            raise ValueError(msg)
        now = datetime.now(UTC)
        with self._lock:
            if order.id in self._rows:
                msg = f"Order {order.id} already exists"
                raise ValueError(msg)
            stored = replace(
                order,
                created_at=now if order.created_at == _EPOCH else order.created_at,
                updated_at=now,
            )
            self._rows[order.id] = stored
            self._enqueue(ChangeType.INSERT, stored.id, new=stored)
        self._drain()
        return stored

    def write_order_status(
        self,
        order_id: UUID,
        guard: WriteGuard,
        new_status: OrderStatus,
        extra_fields: dict[str, Any] | None = None,
    ) -> tuple[int, Order | None]:
        extra = dict(extra_fields or {})
        forbidden = IMMUTABLE_FIELDS & extra.keys()
        if forbidden:
            msg = f"Status writes may not modify {sorted(forbidden)}"
            raise ValueError(msg)

        with self._lock:
            row = self._rows.get(order_id)
            if row is None or not guard_matches(row, guard):
                log.debug("Guard failed for order %s (%s)", order_id, guard.describe())
                return 0, None

            changes: dict[str, Any] = {
                **extra,
                "status": new_status,
                "updated_at": datetime.now(UTC),
            }
            if guard.kind is GuardKind.UNASSIGNED:
                changes["deliverer_id"] = guard.actor_id
            updated = replace(row, **changes)
            self._rows[order_id] = updated
            self._enqueue(ChangeType.UPDATE, order_id, new=updated, old=row)
        self._drain()
        return 1, updated

    def delete_order(self, order_id: UUID) -> bool:
        """Remove a row (administrative cleanup); publishes a DELETE."""
        with self._lock:
            row = self._rows.pop(order_id, None)
            if row is None:
                return False
            self._enqueue(ChangeType.DELETE, order_id, old=row)
        self._drain()
        return True

    # -- realtime ------------------------------------------------------------

    def subscribe(
        self,
        order_filter: OrderFilter,
        on_insert: ChangeCallback,
        on_update: ChangeCallback,
        on_delete: ChangeCallback,
        on_resync: Callable[[], None] | None = None,
    ) -> Subscription:
        return self._subscriptions.add(
            order_filter, on_insert, on_update, on_delete, on_resync=on_resync
        )

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def close(self) -> None:
        self._subscriptions.close_all()

    def _enqueue(self, change: ChangeType, order_id: UUID, **rows: Order) -> None:
        """Queue an event; caller holds ``_lock`` so sequence == commit order."""
        self._seq += 1
        self._pending.append(ChangeEvent(type=change, order_id=order_id, seq=self._seq, **rows))

    def _drain(self) -> None:
        """Publish queued events in order; one drainer at a time."""
        while True:
            if not self._drain_lock.acquire(blocking=False):
                return
            try:
                while True:
                    with self._lock:
                        if not self._pending:
                            break
                        event = self._pending.popleft()
                    self._subscriptions.publish(event)
            finally:
                self._drain_lock.release()
            # An event may have been queued between the last check and
            # the release above; loop to pick it up.
            with self._lock:
                if not self._pending:
                    return
