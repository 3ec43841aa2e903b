"""Conversion between ``orders`` rows and :class:`Order` entities.

Rows arrive in two shapes: native values from psycopg (``UUID``,
``Decimal``, ``datetime``) and JSON values from the change feed
(strings and floats).  :func:`order_from_record` accepts both.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from foodflow.core.vocabulary import normalize_status
from foodflow.models.order import _EPOCH, LineItem, Order


def _uuid(value: Any) -> UUID | None:  # noqa: ANN401
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


def _decimal(value: Any, default: str = "0") -> Decimal:  # noqa: ANN401
    if value is None:
        return Decimal(default)
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        msg = f"Invalid decimal value {value!r}"
        raise ValueError(msg) from exc


def _timestamp(value: Any) -> datetime | None:  # noqa: ANN401
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _line_item(raw: dict) -> LineItem:
    product_id = raw.get("product_id", raw.get("id"))
    price = raw.get("unit_price", raw.get("price"))
    if product_id is None or price is None or "name" not in raw:
        msg = f"Line item is missing id, name or price: {raw!r}"
        raise ValueError(msg)
    return LineItem(
        product_id=str(product_id),
        name=str(raw["name"]),
        unit_price=_decimal(price),
        quantity=int(raw.get("quantity", 1)),
    )


def order_from_record(row: dict) -> Order:
    """Build an :class:`Order` from a database row or JSON payload.

    Raises :class:`ValueError` (or ``KeyError`` for a missing required
    column) when the record cannot describe an order.
    """
    lat = row.get("delivery_latitude")
    lon = row.get("delivery_longitude")
    coordinates = (float(lat), float(lon)) if lat is not None and lon is not None else None

    return Order(
        id=_uuid(row["id"]),
        customer_id=_uuid(row["customer_id"]),
        vendor_id=_uuid(row["vendor_id"]),
        deliverer_id=_uuid(row.get("deliverer_id")),
        status=normalize_status(row["status"]),
        items=tuple(_line_item(i) for i in (row.get("items") or [])),
        total_price=_decimal(row.get("total_price")),
        delivery_fee=_decimal(row.get("delivery_fee")),
        delivery_address=row.get("delivery_address"),
        delivery_notes=row.get("delivery_notes"),
        coordinates=coordinates,
        delivered_at=_timestamp(row.get("delivered_at")),
        completed_at=_timestamp(row.get("completed_at")),
        created_at=_timestamp(row.get("created_at")) or _EPOCH,
        updated_at=_timestamp(row.get("updated_at")) or _EPOCH,
    )


def items_to_json(items: tuple[LineItem, ...]) -> list[dict]:
    return [
        {
            "id": i.product_id,
            "name": i.name,
            "price": str(i.unit_price),
            "quantity": i.quantity,
        }
        for i in items
    ]


def order_to_record(order: Order) -> dict:
    """Column mapping for an INSERT; items are left as a JSON-ready list."""
    lat, lon = order.coordinates if order.coordinates is not None else (None, None)
    return {
        "id": order.id,
        "customer_id": order.customer_id,
        "vendor_id": order.vendor_id,
        "deliverer_id": order.deliverer_id,
        "status": order.status.value,
        "items": items_to_json(order.items),
        "total_price": order.total_price,
        "delivery_fee": order.delivery_fee,
        "delivery_address": order.delivery_address,
        "delivery_notes": order.delivery_notes,
        "delivery_latitude": lat,
        "delivery_longitude": lon,
        "delivered_at": order.delivered_at,
        "completed_at": order.completed_at,
    }


def order_to_json(order: Order) -> dict:
    """JSON-safe representation (CLI output, hook contexts)."""
    return {
        "id": str(order.id),
        "customer_id": str(order.customer_id),
        "vendor_id": str(order.vendor_id),
        "deliverer_id": str(order.deliverer_id) if order.deliverer_id else None,
        "status": order.status.value,
        "items": items_to_json(order.items),
        "total_price": str(order.total_price),
        "delivery_fee": str(order.delivery_fee),
        "delivery_address": order.delivery_address,
        "delivery_notes": order.delivery_notes,
        "coordinates": list(order.coordinates) if order.coordinates else None,
        "delivered_at": order.delivered_at.isoformat() if order.delivered_at else None,
        "completed_at": order.completed_at.isoformat() if order.completed_at else None,
        "created_at": order.created_at.isoformat(),
        "updated_at": order.updated_at.isoformat(),
    }
