"""Abstract order store: the remote-of-record contract.

Every screen talks to the store through this interface only.  The
store is the single linearization point: whatever order it commits
writes in is the only cross-client ordering there is.

Usage::

    store = MemoryOrderStore()
    sub = store.subscribe(OrderFilter(vendor_id=me), on_insert, on_update, on_delete)
    ...
    sub.unsubscribe()
"""

from __future__ import annotations

import abc
import logging
import threading
from dataclasses import dataclass, field
from itertools import count
from typing import TYPE_CHECKING, Any

from foodflow.core.types import ChangeType, GuardKind

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from foodflow.core.filters import OrderFilter
    from foodflow.core.types import OrderStatus
    from foodflow.models.change import ChangeEvent
    from foodflow.models.order import Order

    ChangeCallback = Callable[[ChangeEvent], None]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteGuard:
    """Predicate a status write must satisfy to touch the row.

    ``expected_status`` is always compared (status compare-and-swap).
    ``OWNER`` additionally requires ``owner_field == actor_id``;
    ``UNASSIGNED`` requires ``deliverer_id IS NULL`` and the write then
    sets ``deliverer_id = actor_id``.
    """

    expected_status: OrderStatus
    kind: GuardKind
    actor_id: UUID
    owner_field: str = "deliverer_id"

    def describe(self) -> str:
        if self.kind is GuardKind.UNASSIGNED:
            return f"status={self.expected_status.value} & deliverer_id IS NULL"
        return f"status={self.expected_status.value} & {self.owner_field}={self.actor_id}"


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class Subscription:
    """Live channel for one scoped set of order rows.

    Returned by :meth:`OrderStore.subscribe`.  :meth:`unsubscribe` is
    idempotent; once it returns no callback of this subscription runs
    again.
    """

    _ids = count(1)

    def __init__(
        self,
        order_filter: OrderFilter,
        on_insert: ChangeCallback,
        on_update: ChangeCallback,
        on_delete: ChangeCallback,
        on_close: Callable[[Subscription], None] | None = None,
        on_resync: Callable[[], None] | None = None,
    ) -> None:
        self.id = next(self._ids)
        self.filter = order_filter
        self._callbacks = {
            ChangeType.INSERT: on_insert,
            ChangeType.UPDATE: on_update,
            ChangeType.DELETE: on_delete,
        }
        self._on_close = on_close
        self._on_resync = on_resync
        self._active = True
        # Held while a callback runs so unsubscribe() waits it out.
        self._lock = threading.RLock()

    @property
    def active(self) -> bool:
        return self._active

    def wants(self, event: ChangeEvent) -> bool:
        """True when the old or the new row falls inside this subscription.

        Updates and deletes without the prior row are always delivered:
        the receiver may hold that row and must see it leave.
        """
        if event.type is not ChangeType.INSERT and event.old is None:
            return True
        return any(
            row is not None and self.filter.matches(row) for row in (event.new, event.old)
        )

    def deliver(self, event: ChangeEvent) -> None:
        with self._lock:
            if not self._active:
                return
            try:
                self._callbacks[event.type](event)
            except Exception:
                log.exception(
                    "Subscription %d callback failed for %s %s",
                    self.id,
                    event.type.value,
                    event.order_id,
                )

    def resync(self) -> None:
        """Ask the owner to refetch; events may have been missed."""
        with self._lock:
            if not self._active or self._on_resync is None:
                return
            try:
                self._on_resync()
            except Exception:
                log.exception("Subscription %d resync failed", self.id)

    def unsubscribe(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
        if self._on_close is not None:
            self._on_close(self)

    close = unsubscribe


@dataclass
class SubscriptionRegistry:
    """Thread-safe set of subscriptions with filtered fan-out."""

    _subs: dict[int, Subscription] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def add(
        self,
        order_filter: OrderFilter,
        on_insert: ChangeCallback,
        on_update: ChangeCallback,
        on_delete: ChangeCallback,
        on_resync: Callable[[], None] | None = None,
    ) -> Subscription:
        sub = Subscription(
            order_filter,
            on_insert,
            on_update,
            on_delete,
            on_close=self.remove,
            on_resync=on_resync,
        )
        with self._lock:
            self._subs[sub.id] = sub
        log.debug("Subscription %d opened (%s)", sub.id, order_filter.describe())
        return sub

    def remove(self, sub: Subscription) -> None:
        with self._lock:
            self._subs.pop(sub.id, None)
        log.debug("Subscription %d closed", sub.id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subs)

    def publish(self, event: ChangeEvent) -> int:
        """Deliver *event* to every interested subscription; return the count."""
        with self._lock:
            targets = list(self._subs.values())
        delivered = 0
        for sub in targets:
            if sub.wants(event):
                sub.deliver(event)
                delivered += 1
        return delivered

    def resync_all(self) -> None:
        with self._lock:
            targets = list(self._subs.values())
        for sub in targets:
            sub.resync()

    def close_all(self) -> None:
        with self._lock:
            targets = list(self._subs.values())
        for sub in targets:
            sub.unsubscribe()


# ---------------------------------------------------------------------------
# Store contract
# ---------------------------------------------------------------------------


class OrderStore(abc.ABC):
    """Remote-of-record for orders.

    Implementations raise :class:`~foodflow.app.errors.StoreUnavailableError`
    for transient failures and
    :class:`~foodflow.app.errors.StorePermissionError` when the data
    layer refuses a write.  A guard that matches no row is *not* an
    error: :meth:`write_order_status` returns ``0``.
    """

    @abc.abstractmethod
    def read_order(self, order_id: UUID) -> Order | None:
        """Return the authoritative row, or ``None`` if it does not exist."""

    @abc.abstractmethod
    def read_orders(self, order_filter: OrderFilter) -> list[Order]:
        """Return all rows matching *order_filter*, newest first."""

    @abc.abstractmethod
    def write_order_status(
        self,
        order_id: UUID,
        guard: WriteGuard,
        new_status: OrderStatus,
        extra_fields: dict[str, Any] | None = None,
    ) -> tuple[int, Order | None]:
        """Conditionally set *new_status* (and *extra_fields*).

        Returns ``(affected_rows, row_after_write)``; ``(0, None)`` when
        the guard did not match.
        """

    @abc.abstractmethod
    def subscribe(
        self,
        order_filter: OrderFilter,
        on_insert: ChangeCallback,
        on_update: ChangeCallback,
        on_delete: ChangeCallback,
        on_resync: Callable[[], None] | None = None,
    ) -> Subscription:
        """Open a change channel scoped by *order_filter*.

        *on_resync* runs when the channel may have dropped events (for
        example after a reconnect); the owner should refetch its scope.
        """

    @abc.abstractmethod
    def create_order(self, order: Order) -> Order:
        """Insert a new order (customer checkout, seeding)."""

    def close(self) -> None:  # noqa: B027
        """Release connections and listener threads."""
