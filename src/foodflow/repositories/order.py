"""Order repository."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from psycopg.types.json import Jsonb
from pypgkit import BaseRepository, Database

from foodflow.core.types import GuardKind
from foodflow.models.order import Order
from foodflow.models.records import order_from_record, order_to_record

if TYPE_CHECKING:
    from uuid import UUID

    from foodflow.core.filters import OrderFilter
    from foodflow.core.types import OrderStatus
    from foodflow.store.base import WriteGuard

# Columns a guarded status write may set besides ``status``.
_WRITABLE_EXTRA = frozenset({"delivered_at", "completed_at"})

_OWNER_COLUMNS = frozenset({"vendor_id", "deliverer_id", "customer_id"})


class OrderRepository(BaseRepository[Order]):
    table_name = "orders"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> Order:
        return order_from_record(row)

    def _entity_to_row(self, entity: Order) -> dict:
        row = order_to_record(entity)
        row["items"] = Jsonb(row["items"])
        return row

    def find_matching(self, order_filter: OrderFilter) -> list[Order]:
        """Return orders matching *order_filter*, newest first."""
        db = Database.get_instance()
        where, params = order_filter.to_sql()
        rows = db.fetch_all(
            f"SELECT * FROM orders WHERE {where} ORDER BY created_at DESC, id DESC",  # noqa: S608
            tuple(params),
            as_dict=True,
        )
        return [self._row_to_entity(r) for r in rows]

    def guarded_update(
        self,
        order_id: UUID,
        guard: WriteGuard,
        new_status: OrderStatus,
        extra_fields: dict[str, Any] | None = None,
    ) -> Order | None:
        """Conditional status write (compare-and-swap on status + guard).

        ``UNASSIGNED`` guards are the atomic claim: the row is touched
        only while ``deliverer_id IS NULL`` and the same statement sets
        it, so exactly one of several racing claimers gets a row back.

        Returns the updated order, or None if the guard did not match.
        """
        extra = dict(extra_fields or {})
        unknown = extra.keys() - _WRITABLE_EXTRA
        if unknown:
            msg = f"Status writes may not modify {sorted(unknown)}"
            raise ValueError(msg)
        if guard.owner_field not in _OWNER_COLUMNS:
            msg = f"Unknown owner column {guard.owner_field!r}"
            raise ValueError(msg)

        set_parts = ["status = %s", "updated_at = now()"]
        params: list = [new_status.value]
        for column in sorted(extra):
            set_parts.append(f"{column} = %s")
            params.append(extra[column])

        where_parts = ["id = %s", "status = %s"]
        where_params: list = [order_id, guard.expected_status.value]
        if guard.kind is GuardKind.UNASSIGNED:
            set_parts.append("deliverer_id = %s")
            params.append(guard.actor_id)
            where_parts.append("deliverer_id IS NULL")
        else:
            where_parts.append(f"{guard.owner_field} = %s")
            where_params.append(guard.actor_id)

        db = Database.get_instance()
        row = db.fetch_one(
            f"UPDATE orders SET {', '.join(set_parts)} "  # noqa: S608
            f"WHERE {' AND '.join(where_parts)} RETURNING *",
            tuple(params + where_params),
            as_dict=True,
        )
        return self._row_to_entity(row) if row else None
