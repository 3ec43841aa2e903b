"""Realtime change notification for one ``orders`` row."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from foodflow.core.types import ChangeType
    from foodflow.models.order import Order


@dataclass(frozen=True)
class ChangeEvent:
    """An insert, update or delete committed by the store.

    ``new`` is absent for deletes; ``old`` is absent for inserts and
    may be absent for updates when the feed does not carry the prior
    row.  ``seq`` is the store's commit sequence when known.
    """

    type: ChangeType
    order_id: UUID
    new: Order | None = None
    old: Order | None = None
    seq: int = 0
