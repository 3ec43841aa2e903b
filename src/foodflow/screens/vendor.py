"""Vendor screens: the live order board and the completed-order history."""

from __future__ import annotations

from typing import TYPE_CHECKING

from foodflow.core.filters import OrderFilter
from foodflow.core.types import ActorRole, OrderStatus, TimeRange
from foodflow.services.analytics import range_start, sales_summary
from foodflow.views.projector import VIEWS
from foodflow.views.screen import OrderScreen

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from foodflow.config.settings import OrderWorkflowSettings
    from foodflow.hooks.registry import HookRegistry
    from foodflow.models.actor import Actor
    from foodflow.models.order import Order
    from foodflow.services.analytics import AnalyticsBoard, SalesSummary
    from foodflow.services.identity import Session
    from foodflow.store.base import OrderStore
    from foodflow.views.screen import ActionResult

_BOARD_STATUSES = VIEWS["vendor.incoming"].statuses | VIEWS["vendor.active"].statuses


class VendorOrdersScreen(OrderScreen):
    """Every order of the vendor that still needs the kitchen or a rider.

    Declined orders leave the scope and disappear from the board as soon
    as the write lands.  When *analytics* is given, the board is
    refreshed after each successful completion.
    """

    name = "vendor.orders"
    role = ActorRole.VENDOR

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
        return OrderFilter(vendor_id=actor.id, statuses=_BOARD_STATUSES)

    def incoming(self) -> list[Order]:
        return self.view("vendor.incoming")

    def preparing(self) -> list[Order]:
        return self.view("vendor.preparing")

    def ready(self) -> list[Order]:
        return self.view("vendor.ready")

    def active(self) -> list[Order]:
        return self.view("vendor.active")

    def accept(self, order_id: UUID) -> ActionResult:
        return self.act(order_id, OrderStatus.PREPARING)

    def decline(self, order_id: UUID) -> ActionResult:
        return self.act(order_id, OrderStatus.CANCELLED)

    def mark_ready(self, order_id: UUID) -> ActionResult:
        return self.act(order_id, OrderStatus.READY)

    def complete(self, order_id: UUID, *, payment_confirmed: bool = False) -> ActionResult:
        return self.act(order_id, OrderStatus.COMPLETED, payment_confirmed=payment_confirmed)


class VendorHistoryScreen(OrderScreen):
    """Completed orders of the vendor, with sales figures over the cache."""

    name = "vendor.history"
    role = ActorRole.VENDOR

    def build_scope(self, actor: Actor) -> OrderFilter:
        return OrderFilter(vendor_id=actor.id, statuses=frozenset({OrderStatus.COMPLETED}))

    def history(self) -> list[Order]:
        return self.view("vendor.history")

    def sales(
        self,
        time_range: TimeRange = TimeRange.WEEK,
        *,
        top_limit: int | None = None,
        now: datetime | None = None,
    ) -> SalesSummary:
        """Sales summary of the cached history created inside *time_range*.

        *top_limit* defaults to ``orders.top_items_limit``.
        """
        if top_limit is None:
            top_limit = self.settings.top_items_limit if self.settings else 3
        since = range_start(time_range, now)
        return sales_summary((o for o in self.history() if o.created_at >= since), top_limit)
