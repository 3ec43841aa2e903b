"""Customer screen: checkout, submission, cancellation and order history."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from foodflow.app.errors import (
    UNAUTHORIZED,
    UNAVAILABLE,
    OrderProblem,
    StorePermissionError,
    StoreUnavailableError,
)
from foodflow.core.filters import OrderFilter
from foodflow.core.types import ActorRole, OrderStatus
from foodflow.logging import screen_context
from foodflow.models.order import Order
from foodflow.views.screen import ActionResult, OrderScreen

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from foodflow.models.actor import Actor
    from foodflow.models.order import LineItem

log = logging.getLogger(__name__)


class CustomerOrdersScreen(OrderScreen):
    name = "customer.orders"
    role = ActorRole.CUSTOMER

    def build_scope(self, actor: Actor) -> OrderFilter:
        return OrderFilter(customer_id=actor.id)

    def active(self) -> list[Order]:
        return self.view("customer.active")

    def history(self) -> list[Order]:
        return self.view("customer.history")

    def place_order(
        self,
        vendor_id: UUID,
        items: Sequence[LineItem],
        *,
        delivery_fee: Decimal = Decimal("0"),
        delivery_address: str | None = None,
        delivery_notes: str | None = None,
        coordinates: tuple[float, float] | None = None,
        submit: bool = True,
    ) -> ActionResult:
        """Create an order from *items* and, by default, submit it to the vendor.

        ``total_price`` is the item subtotal plus *delivery_fee*.  With
        ``submit=False`` the order stays ``created`` until :meth:`submit`.
        """
        if not self.is_open:
            msg = f"Screen {self.name} is not open"
            raise RuntimeError(msg)
        if not items:
            msg = "An order needs at least one item"
            raise ValueError(msg)

        order = Order(
            id=uuid.uuid4(),
            customer_id=self.actor.id,
            vendor_id=vendor_id,
            status=OrderStatus.CREATED,
            items=tuple(items),
            total_price=sum((item.subtotal for item in items), Decimal("0")) + delivery_fee,
            delivery_fee=delivery_fee,
            delivery_address=delivery_address,
            delivery_notes=delivery_notes,
            coordinates=coordinates,
        )
        with screen_context(self.name):
            try:
                created = self.store.create_order(order)
            except StoreUnavailableError as exc:
                return ActionResult.from_problem(OrderProblem(UNAVAILABLE, str(exc)))
            except StorePermissionError as exc:
                return ActionResult.from_problem(OrderProblem(UNAUTHORIZED, str(exc)))
            log.info("Order %s created for vendor %s", created.id, vendor_id)
            self.fold(created)

        if not submit:
            return ActionResult(ok=True, order=created)
        return self.submit(created.id)

    def submit(self, order_id: UUID) -> ActionResult:
        return self.act(order_id, OrderStatus.PENDING)

    def cancel(self, order_id: UUID) -> ActionResult:
        return self.act(order_id, OrderStatus.CANCELLED)
