"""Order entity and LineItem value object."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from foodflow.core.types import OrderStatus

# Sentinel for timestamps not yet assigned by the database.
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class LineItem:
    """One ordered product (not persisted standalone)."""

    product_id: str
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Order:
    id: UUID
    customer_id: UUID
    vendor_id: UUID
    status: OrderStatus
    items: tuple[LineItem, ...] = ()
    total_price: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    deliverer_id: UUID | None = None
    delivery_address: str | None = None
    delivery_notes: str | None = None
    coordinates: tuple[float, float] | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH
