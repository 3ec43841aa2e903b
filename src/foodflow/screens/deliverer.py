"""Deliverer screens: the shared pool of ready orders and own deliveries.

:class:`AvailableOrdersScreen` is where claim races happen.  Every
deliverer subscribes to the same scope (``ready`` and unassigned); the
winning claim's echo is an UPDATE whose new row no longer matches, so
it drops out of every other deliverer's list, while the loser's own
claim comes back as ``guardFailed`` with the claim-lost message.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from foodflow.core.filters import OrderFilter
from foodflow.core.types import ActorRole, OrderStatus, TimeRange
from foodflow.services.analytics import earnings_summary, range_start
from foodflow.views.screen import OrderScreen

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from foodflow.config.settings import OrderWorkflowSettings
    from foodflow.hooks.registry import HookRegistry
    from foodflow.models.actor import Actor
    from foodflow.models.order import Order
    from foodflow.services.analytics import AnalyticsBoard, EarningsSummary
    from foodflow.services.identity import Session
    from foodflow.store.base import OrderStore
    from foodflow.views.screen import ActionResult


class AvailableOrdersScreen(OrderScreen):
    name = "deliverer.available"
    role = ActorRole.DELIVERER

    def build_scope(self, actor: Actor) -> OrderFilter:
        return OrderFilter(statuses=frozenset({OrderStatus.READY}), unassigned=True)

    def available(self) -> list[Order]:
        return self.view("deliverer.available")

    def claim(self, order_id: UUID) -> ActionResult:
        """Atomically assign *order_id* to the signed-in deliverer."""
        return self.act(order_id, OrderStatus.ASSIGNED)


class DelivererDeliveriesScreen(OrderScreen):
    """Orders assigned to the deliverer, in flight and completed."""

    name = "deliverer.deliveries"
    role = ActorRole.DELIVERER

    def __init__(
        self,
        store: OrderStore,
        session: Session,
        *,
        hooks: HookRegistry | None = None,
        settings: OrderWorkflowSettings | None = None,
        analytics: AnalyticsBoard | None = None,
    ) -> None:
        super().__init__(store, session, hooks=hooks, settings=settings)
        self.analytics = analytics
        if analytics is not None:
            self.executor.on_completed(analytics.refresh)

    def build_scope(self, actor: Actor) -> OrderFilter:
        return OrderFilter(deliverer_id=actor.id)

    def active(self) -> list[Order]:
        return self.view("deliverer.active")

    def history(self) -> list[Order]:
        return self.view("deliverer.history")

    def pick_up(self, order_id: UUID) -> ActionResult:
        return self.act(order_id, OrderStatus.PICKED_UP)

    def start_delivery(self, order_id: UUID) -> ActionResult:
        return self.act(order_id, OrderStatus.ON_THE_WAY)

    def mark_delivered(self, order_id: UUID) -> ActionResult:
        return self.act(order_id, OrderStatus.DELIVERED)

    def complete(self, order_id: UUID, *, payment_confirmed: bool = False) -> ActionResult:
        return self.act(order_id, OrderStatus.COMPLETED, payment_confirmed=payment_confirmed)

    def earnings(
        self,
        time_range: TimeRange = TimeRange.WEEK,
        *,
        now: datetime | None = None,
    ) -> EarningsSummary:
        """Earnings over the cached assignments created inside *time_range*."""
        since = range_start(time_range, now)
        return earnings_summary(o for o in self.orders() if o.created_at >= since)
