"""Per-screen local order cache.

Each screen owns exactly one :class:`OrderCache`; there is no global
cache.  All mutation goes through the cache's re-entrant lock, which
the reconciler and the transition executor hold while they
read-modify-write.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from uuid import UUID

    from foodflow.models.order import Order

log = logging.getLogger(__name__)


def order_sort_key(order: Order) -> tuple:
    """Sort key for newest-first lists (apply with ``reverse=True``)."""
    return (order.created_at, str(order.id))


@dataclass(frozen=True)
class OptimisticToken:
    """Undo record for one optimistic change.

    ``previous`` is the row before the change, ``applied`` the row the
    change produced; rollback only restores while ``applied`` is still
    what the cache holds.
    """

    order_id: UUID
    previous: Order | None
    applied: Order | None


class OrderCache:
    """Thread-safe id-keyed order rows with change listeners."""

    def __init__(self) -> None:
        self._rows: dict[UUID, Order] = {}
        self.lock = threading.RLock()
        self._listeners: list[Callable[[], None]] = []

    def __len__(self) -> int:
        with self.lock:
            return len(self._rows)

    def __contains__(self, order_id: object) -> bool:
        with self.lock:
            return order_id in self._rows

    def get(self, order_id: UUID) -> Order | None:
        with self.lock:
            return self._rows.get(order_id)

    def snapshot(self) -> list[Order]:
        """All rows, ``created_at`` descending with ties broken by id."""
        with self.lock:
            rows = list(self._rows.values())
        return sorted(rows, key=order_sort_key, reverse=True)

    # -- mutation ------------------------------------------------------------

    def load(self, orders: Iterable[Order]) -> None:
        """Replace the whole cache with *orders* (initial fetch, resync)."""
        with self.lock:
            self._rows = {o.id: o for o in orders}
        self._notify()

    def upsert(self, order: Order) -> bool:
        """Insert or replace; return ``True`` if the id was new."""
        with self.lock:
            is_new = order.id not in self._rows
            self._rows[order.id] = order
        self._notify()
        return is_new

    def remove(self, order_id: UUID) -> Order | None:
        with self.lock:
            removed = self._rows.pop(order_id, None)
        if removed is not None:
            self._notify()
        return removed

    def clear(self) -> None:
        with self.lock:
            self._rows.clear()

    # -- optimistic updates --------------------------------------------------

    def apply_optimistic(self, order_id: UUID, **changes: Any) -> OptimisticToken:  # noqa: ANN401
        """Apply *changes* to the cached row and return an undo token.

        A row that is not cached is left alone (the token then restores
        nothing).
        """
        with self.lock:
            previous = self._rows.get(order_id)
            applied = None
            if previous is not None:
                applied = replace(previous, **changes)
                self._rows[order_id] = applied
        if applied is not None:
            self._notify()
        return OptimisticToken(order_id=order_id, previous=previous, applied=applied)

    def rollback(self, token: OptimisticToken) -> bool:
        """Undo an optimistic change unless something newer replaced it."""
        with self.lock:
            if token.applied is None or self._rows.get(token.order_id) != token.applied:
                return False
            assert token.previous is not None  # noqa: S101
            self._rows[token.order_id] = token.previous
        log.debug("Rolled back optimistic change to order %s", token.order_id)
        self._notify()
        return True

    # -- listeners -----------------------------------------------------------

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Run *callback* after every mutation (outside the lock)."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                log.exception("Order cache listener failed")
