"""Change-feed payload validation and decoding.

The ``orders`` trigger (see ``db/schema.sql``) publishes one JSON
document per committed row change::

    {"type": "UPDATE", "id": "...", "new": {...row...}, "old": {...row...}}

Rows too large for a NOTIFY payload are sent without ``new``/``old``
and must be hydrated by the listener with a fresh read.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from uuid import UUID

from jsonschema import Draft202012Validator

from foodflow.core.types import ChangeType
from foodflow.models.change import ChangeEvent
from foodflow.models.records import order_from_record

if TYPE_CHECKING:
    from foodflow.models.order import Order

_ROW_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "customer_id", "vendor_id", "status"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "customer_id": {"type": "string"},
        "vendor_id": {"type": "string"},
        "deliverer_id": {"type": ["string", "null"]},
        "status": {"type": "string", "minLength": 1},
        "items": {"type": ["array", "null"]},
        "total_price": {"type": ["number", "string", "null"]},
        "delivery_fee": {"type": ["number", "string", "null"]},
    },
}

CHANGE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {"enum": [c.value for c in ChangeType]},
        "id": {"type": "string", "minLength": 1},
        "seq": {"type": "integer"},
        "new": {"oneOf": [{"type": "null"}, _ROW_SCHEMA]},
        "old": {"oneOf": [{"type": "null"}, _ROW_SCHEMA]},
    },
    "anyOf": [
        {"required": ["id"]},
        {"required": ["new"], "properties": {"new": {"type": "object"}}},
        {"required": ["old"], "properties": {"old": {"type": "object"}}},
    ],
}

_VALIDATOR = Draft202012Validator(CHANGE_SCHEMA)


class MalformedChangeError(ValueError):
    """A notification that cannot be turned into a :class:`ChangeEvent`."""


def decode_change(payload: str | bytes | dict) -> tuple[ChangeEvent, bool]:
    """Decode one notification.

    Returns ``(event, needs_hydration)``.  ``needs_hydration`` is true
    when the payload carried only the order id of an insert or update.

    Raises :class:`MalformedChangeError` for invalid JSON, schema
    violations and rows that do not describe an order.
    """
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except ValueError as exc:
            msg = f"Change payload is not valid JSON: {exc}"
            raise MalformedChangeError(msg) from exc
    else:
        data = payload

    errors = sorted(_VALIDATOR.iter_errors(data), key=lambda e: list(e.path))
    if errors:
        msg = f"Change payload failed validation: {errors[0].message}"
        raise MalformedChangeError(msg)

    change = ChangeType(data["type"])
    try:
        new: Order | None = order_from_record(data["new"]) if data.get("new") else None
        old: Order | None = order_from_record(data["old"]) if data.get("old") else None
        if new is not None:
            order_id = new.id
        elif old is not None:
            order_id = old.id
        else:
            order_id = UUID(data["id"])
    except (KeyError, TypeError, ValueError) as exc:
        msg = f"Change payload row is not an order: {exc}"
        raise MalformedChangeError(msg) from exc

    event = ChangeEvent(type=change, order_id=order_id, new=new, old=old, seq=data.get("seq", 0))
    needs_hydration = change is not ChangeType.DELETE and new is None
    return event, needs_hydration
