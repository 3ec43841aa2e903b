"""Vendor sales and deliverer earnings summaries.

Both summaries are computed from completed orders created inside a
time range (``day``: since midnight, ``week``: the last 7 days,
``month``: the last 30 days, each starting at midnight).  The
:class:`AnalyticsBoard` keeps the latest summary for one actor and is
refreshed by the transition executor after every completion.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from foodflow.core.filters import OrderFilter
from foodflow.core.types import ActorRole, OrderStatus, TimeRange

if TYPE_CHECKING:
    from collections.abc import Iterable

    from foodflow.models.actor import Actor
    from foodflow.models.order import Order
    from foodflow.store.base import OrderStore

log = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_ZERO = Decimal("0")

_RANGE_DAYS = {TimeRange.DAY: 0, TimeRange.WEEK: 7, TimeRange.MONTH: 30}


def range_start(time_range: TimeRange, now: datetime | None = None) -> datetime:
    """First instant of *time_range* ending at *now* (midnight aligned)."""
    now = now or datetime.now(UTC)
    start = now - timedelta(days=_RANGE_DAYS[time_range])
    return start.replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass(frozen=True)
class ItemSales:
    name: str
    quantity: int
    revenue: Decimal


@dataclass(frozen=True)
class SalesSummary:
    """Vendor sales over completed orders."""

    total_revenue: Decimal
    total_orders: int
    average_order_value: Decimal
    delivery_fees: Decimal
    net_revenue: Decimal
    top_items: tuple[ItemSales, ...]


@dataclass(frozen=True)
class EarningsSummary:
    """Deliverer earnings; ``completion_rate`` is a percentage."""

    total_earnings: Decimal
    total_deliveries: int
    average_earning: Decimal
    completion_rate: Decimal


def _average(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return _ZERO
    return (total / count).quantize(_CENT, rounding=ROUND_HALF_UP)


def sales_summary(orders: Iterable[Order], top_limit: int = 3) -> SalesSummary:
    """Summarise *orders*; only ``completed`` ones are counted."""
    completed = [o for o in orders if o.status is OrderStatus.COMPLETED]
    revenue = sum((o.total_price for o in completed), _ZERO)
    fees = sum((o.delivery_fee for o in completed), _ZERO)

    quantities: dict[str, int] = defaultdict(int)
    revenues: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for order in completed:
        for item in order.items:
            quantities[item.name] += item.quantity
            revenues[item.name] += item.subtotal

    # Stable tie-break on name so equal quantities rank predictably.
    ranked = sorted(quantities, key=lambda name: (-quantities[name], name))
    top = tuple(ItemSales(name, quantities[name], revenues[name]) for name in ranked[:top_limit])

    return SalesSummary(
        total_revenue=revenue,
        total_orders=len(completed),
        average_order_value=_average(revenue, len(completed)),
        delivery_fees=fees,
        net_revenue=revenue - fees,
        top_items=top,
    )


def earnings_summary(orders: Iterable[Order]) -> EarningsSummary:
    """Summarise a deliverer's assigned *orders* (any status)."""
    assigned = [o for o in orders if o.deliverer_id is not None]
    completed = [o for o in assigned if o.status is OrderStatus.COMPLETED]
    earnings = sum((o.delivery_fee for o in completed), _ZERO)
    rate = (
        (Decimal(len(completed)) * 100 / len(assigned)).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )
        if assigned
        else _ZERO
    )
    return EarningsSummary(
        total_earnings=earnings,
        total_deliveries=len(completed),
        average_earning=_average(earnings, len(completed)),
        completion_rate=rate,
    )


class AnalyticsBoard:
    """Latest sales (vendor) or earnings (deliverer) summary for one actor.

    Parameters
    ----------
    store:
        Store to read orders from.
    actor:
        A vendor or deliverer.
    time_range:
        Reporting window.
    top_limit:
        Number of best-selling items kept in a sales summary.

    """

    def __init__(
        self,
        store: OrderStore,
        actor: Actor,
        time_range: TimeRange = TimeRange.WEEK,
        top_limit: int = 3,
    ) -> None:
        if actor.role is ActorRole.CUSTOMER:
            msg = "Analytics are available to vendors and deliverers only"
            raise ValueError(msg)
        self._store = store
        self._actor = actor
        self._range = time_range
        self._top_limit = top_limit
        self._lock = threading.Lock()
        self._summary: SalesSummary | EarningsSummary | None = None
        self.refresh_count = 0

    @property
    def time_range(self) -> TimeRange:
        return self._range

    @property
    def summary(self) -> SalesSummary | EarningsSummary | None:
        with self._lock:
            return self._summary

    def set_range(self, time_range: TimeRange) -> SalesSummary | EarningsSummary:
        self._range = time_range
        return self.refresh()

    def refresh(self, _order: Order | None = None) -> SalesSummary | EarningsSummary:
        """Recompute from the store; usable as a completion callback."""
        since = range_start(self._range)
        summary: SalesSummary | EarningsSummary
        if self._actor.role is ActorRole.VENDOR:
            orders = self._store.read_orders(
                OrderFilter(
                    vendor_id=self._actor.id,
                    statuses=frozenset({OrderStatus.COMPLETED}),
                    created_since=since,
                )
            )
            summary = sales_summary(orders, self._top_limit)
        else:
            orders = self._store.read_orders(
                OrderFilter(deliverer_id=self._actor.id, created_since=since)
            )
            summary = earnings_summary(orders)
        with self._lock:
            self._summary = summary
            self.refresh_count += 1
        log.debug("Analytics for %s refreshed (%s)", self._actor.id, self._range.value)
        return summary
