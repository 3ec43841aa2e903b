"""Fold realtime change events into a screen's cache.

The rules are deliberately small:

* insert: add the row if the screen admits it.
* update: replace the cached row, drop it if it left the screen's
  scope, or add it if it just entered.
* delete: drop the row if cached.

Replaying an event whose row is already cached verbatim is a no-op
(``DUPLICATE``), and arrival order decides (last write wins).
Malformed events are logged and ignored; :meth:`Reconciler.apply`
never raises for them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from foodflow.core.types import ChangeType, ReconcileOutcome
from foodflow.realtime.payload import MalformedChangeError, decode_change

if TYPE_CHECKING:
    from foodflow.core.filters import OrderFilter
    from foodflow.models.change import ChangeEvent
    from foodflow.models.order import Order
    from foodflow.views.cache import OrderCache

log = logging.getLogger(__name__)


class Reconciler:
    """Apply :class:`ChangeEvent` objects to one :class:`OrderCache`.

    Parameters
    ----------
    cache:
        The screen's cache.
    admit:
        Admission predicate; normally the screen's subscription scope.

    """

    def __init__(self, cache: OrderCache, admit: OrderFilter) -> None:
        self._cache = cache
        self._admit = admit

    def apply(self, event: ChangeEvent) -> ReconcileOutcome:
        with self._cache.lock:
            if event.type is ChangeType.INSERT:
                return self._insert(event)
            if event.type is ChangeType.UPDATE:
                return self._update(event)
            return self._delete(event)

    def apply_payload(self, payload: str | bytes | dict) -> ReconcileOutcome:
        """Decode a raw feed payload and apply it.

        Payloads that carry only an id cannot be folded without a read
        and are ignored here; the store's feed hydrates those.
        """
        try:
            event, needs_hydration = decode_change(payload)
        except MalformedChangeError as exc:
            log.warning("Ignoring malformed change: %s", exc)
            return ReconcileOutcome.IGNORED
        if needs_hydration:
            log.warning("Ignoring change for %s without row data", event.order_id)
            return ReconcileOutcome.IGNORED
        return self.apply(event)

    # -- rules ---------------------------------------------------------------

    def _insert(self, event: ChangeEvent) -> ReconcileOutcome:
        row = self._checked_row(event)
        if row is None or not self._admit.matches(row):
            return ReconcileOutcome.IGNORED
        return self._put(row)

    def _update(self, event: ChangeEvent) -> ReconcileOutcome:
        row = self._checked_row(event)
        if row is None:
            return ReconcileOutcome.IGNORED
        cached = self._cache.get(row.id)
        if not self._admit.matches(row):
            if cached is None:
                return ReconcileOutcome.IGNORED
            self._cache.remove(row.id)
            return ReconcileOutcome.REMOVED
        return self._put(row)

    def _delete(self, event: ChangeEvent) -> ReconcileOutcome:
        if self._cache.remove(event.order_id) is None:
            return ReconcileOutcome.IGNORED
        return ReconcileOutcome.REMOVED

    def _put(self, row: Order) -> ReconcileOutcome:
        cached = self._cache.get(row.id)
        if cached == row:
            return ReconcileOutcome.DUPLICATE
        self._cache.upsert(row)
        return ReconcileOutcome.INSERTED if cached is None else ReconcileOutcome.REPLACED

    @staticmethod
    def _checked_row(event: ChangeEvent) -> Order | None:
        row = event.new
        if row is None:
            log.warning("Ignoring %s for %s without a row", event.type.value, event.order_id)
            return None
        if row.id != event.order_id:
            log.warning(
                "Ignoring %s whose row id %s does not match %s",
                event.type.value,
                row.id,
                event.order_id,
            )
            return None
        return row
