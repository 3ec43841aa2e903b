"""Legacy status spellings and their canonical :class:`OrderStatus`.

Older screens wrote statuses with display casing (``"Ready"``,
``"Accepted by Deliverer"``) while newer ones used snake case
(``"on_the_way"``).  Every spelling that may still sit in the
``orders`` table is mapped here; nothing else in the package
accepts a non-canonical value.
"""

from __future__ import annotations

from foodflow.core.types import OrderStatus

LEGACY_STATUS_ALIASES: dict[str, OrderStatus] = {
    "new": OrderStatus.CREATED,
    "awaiting vendor acceptance": OrderStatus.PENDING,
    "accepted by vendor": OrderStatus.PREPARING,
    "vendor accepted": OrderStatus.PREPARING,
    "ready for pickup": OrderStatus.READY,
    "accepted by deliverer": OrderStatus.ASSIGNED,
    "accepted": OrderStatus.ASSIGNED,
    "deliverer assigned": OrderStatus.ASSIGNED,
    "picked up": OrderStatus.PICKED_UP,
    "out for delivery": OrderStatus.ON_THE_WAY,
    "on the way": OrderStatus.ON_THE_WAY,
    "declined": OrderStatus.CANCELLED,
    "canceled": OrderStatus.CANCELLED,
}


def normalize_status(raw: str | OrderStatus) -> OrderStatus:
    """Return the canonical status for *raw*.

    Accepts canonical values, any casing of them, and the legacy
    aliases above.  Raises :class:`ValueError` for anything else.
    """
    if isinstance(raw, OrderStatus):
        return raw
    if not isinstance(raw, str):
        msg = f"Order status must be a string, got {type(raw).__name__}"
        raise ValueError(msg)

    key = raw.strip().lower()
    try:
        return OrderStatus(key)
    except ValueError:
        pass

    alias = LEGACY_STATUS_ALIASES.get(key) or LEGACY_STATUS_ALIASES.get(key.replace("_", " "))
    if alias is None:
        msg = f"Unknown order status {raw!r}"
        raise ValueError(msg)
    return alias


def display_label(status: OrderStatus) -> str:
    """Human-readable label, e.g. ``"Picked Up"``."""
    return status.value.replace("_", " ").title()
