"""Single-order tracking with the names of everyone involved.

Usage::

    with OrderTracker(store, session, order_id, profiles) as tracker:
        details = tracker.details()
        print(details.status_label, details.deliverer_name)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from foodflow.app.errors import StoreError
from foodflow.core.filters import OrderFilter
from foodflow.core.types import OrderStatus
from foodflow.core.vocabulary import display_label
from foodflow.views.screen import OrderScreen

if TYPE_CHECKING:
    from uuid import UUID

    from foodflow.models.actor import Actor
    from foodflow.models.order import Order
    from foodflow.services.identity import ProfileDirectory, Session
    from foodflow.store.base import OrderStore

log = logging.getLogger(__name__)

# Happy path shown as a progress bar; cancelled orders have no step.
PROGRESS_STEPS: tuple[OrderStatus, ...] = (
    OrderStatus.CREATED,
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.ASSIGNED,
    OrderStatus.PICKED_UP,
    OrderStatus.ON_THE_WAY,
    OrderStatus.DELIVERED,
    OrderStatus.COMPLETED,
)

VENDOR_PLACEHOLDER = "Vendor"
CUSTOMER_PLACEHOLDER = "Customer"
DELIVERER_PLACEHOLDER = "Deliverer"
UNASSIGNED_PLACEHOLDER = "Not yet assigned"


def progress_index(status: OrderStatus) -> int:
    """Position of *status* in :data:`PROGRESS_STEPS`, ``-1`` if cancelled."""
    try:
        return PROGRESS_STEPS.index(status)
    except ValueError:
        return -1


@dataclass(frozen=True)
class TrackingDetails:
    order: Order
    status_label: str
    progress: int
    vendor_name: str
    customer_name: str
    deliverer_name: str

    @property
    def steps_total(self) -> int:
        return len(PROGRESS_STEPS)


class OrderTracker(OrderScreen):
    """Screen over exactly one order, open to any participant.

    Profile names are looked up on demand and memoised; a missing
    profile, a profile without a name or a failing lookup degrades to
    a placeholder and is retried on the next call.
    """

    name = "order.tracking"

    def __init__(
        self,
        store: OrderStore,
        session: Session,
        order_id: UUID,
        profiles: ProfileDirectory,
    ) -> None:
        super().__init__(store, session)
        self.order_id = order_id
        self._profiles = profiles
        self._names: dict[UUID, str] = {}
        self._names_lock = threading.Lock()

    def build_scope(self, actor: Actor) -> OrderFilter:
        return OrderFilter(order_id=self.order_id)

    def order(self) -> Order | None:
        return self.get(self.order_id)

    def details(self) -> TrackingDetails | None:
        """Current order with names and progress, or ``None`` if it is gone."""
        order = self.order()
        if order is None:
            return None
        deliverer = (
            self._name(order.deliverer_id, DELIVERER_PLACEHOLDER)
            if order.deliverer_id is not None
            else UNASSIGNED_PLACEHOLDER
        )
        return TrackingDetails(
            order=order,
            status_label=display_label(order.status),
            progress=progress_index(order.status),
            vendor_name=self._name(order.vendor_id, VENDOR_PLACEHOLDER),
            customer_name=self._name(order.customer_id, CUSTOMER_PLACEHOLDER),
            deliverer_name=deliverer,
        )

    def _name(self, profile_id: UUID, placeholder: str) -> str:
        with self._names_lock:
            cached = self._names.get(profile_id)
        if cached is not None:
            return cached
        try:
            profile = self._profiles.find_profile(profile_id)
        except StoreError as exc:
            log.warning("Profile lookup for %s failed: %s", profile_id, exc)
            return placeholder
        if profile is None or not profile.display_name:
            return placeholder
        with self._names_lock:
            self._names[profile_id] = profile.display_name
        return profile.display_name
