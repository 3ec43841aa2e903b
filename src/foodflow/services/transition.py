"""Transition executor: the only path by which screens change orders.

Each call resolves the actor, checks the actor's role against the
transition table, applies the change optimistically to the calling
screen's cache, performs exactly one guarded write and then either
keeps the optimistic state (folding in the authoritative row) or
rolls it back and resyncs.  There is no automatic retry.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from foodflow.app.errors import (
    GUARD_FAILED,
    INVALID_TRANSITION,
    ORDER_NOT_FOUND,
    PAYMENT_REQUIRED,
    UNAUTHORIZED,
    UNAVAILABLE,
    OrderProblem,
    StoreError,
    StorePermissionError,
)
from foodflow.core.state import find_rule, log_transition, targets_for_role
from foodflow.core.types import OrderStatus
from foodflow.logging import audit_events
from foodflow.models.records import order_to_json
from foodflow.store.base import WriteGuard

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from foodflow.config.settings import OrderWorkflowSettings
    from foodflow.core.state import TransitionRule
    from foodflow.hooks.registry import HookRegistry
    from foodflow.models.actor import Actor
    from foodflow.models.order import Order
    from foodflow.services.identity import Session
    from foodflow.store.base import OrderStore
    from foodflow.views.cache import OptimisticToken
    from foodflow.views.screen import OrderScreen

log = logging.getLogger(__name__)

CLAIM_LOST_MESSAGE = "Order already accepted by someone else"


class TransitionExecutor:
    """Execute role-checked, guarded status transitions for one screen.

    Parameters
    ----------
    store:
        The order store.
    session:
        Session whose cached actor performs the transitions.
    screen:
        The screen whose cache receives optimistic updates.
    hooks:
        Optional hook registry for lifecycle events.
    settings:
        ``orders`` config section (payment confirmation).

    """

    def __init__(
        self,
        store: OrderStore,
        session: Session,
        screen: OrderScreen,
        *,
        hooks: HookRegistry | None = None,
        settings: OrderWorkflowSettings | None = None,
    ) -> None:
        self._store = store
        self._session = session
        self._screen = screen
        self._hooks = hooks
        self._require_payment = settings.require_payment_confirmation if settings else True
        self._on_completed: list[Callable[[Order], None]] = []

    def on_completed(self, callback: Callable[[Order], None]) -> None:
        """Register a dependent refresh run after a successful completion."""
        self._on_completed.append(callback)

    # -- public API ------------------------------------------------------------

    def execute(
        self,
        order_id: UUID,
        target: OrderStatus,
        *,
        payment_confirmed: bool = False,
    ) -> Order:
        """Move *order_id* to *target*; return the authoritative row.

        Raises :class:`OrderProblem` on any failure; the screen cache is
        rolled back and resynced before it propagates.
        """
        actor = self._session.actor

        if target not in targets_for_role(actor.role):
            audit_events.transition_denied(
                order_id, target.value, actor.id, actor.role.value, "role"
            )
            raise OrderProblem(
                UNAUTHORIZED,
                f"Role {actor.role.value} may never move an order to {target.value}",
                order_id=order_id,
            )

        current = self._screen.cache.get(order_id) or self._read(order_id)
        if current is None:
            raise OrderProblem(
                ORDER_NOT_FOUND, f"Order {order_id} does not exist", order_id=order_id
            )

        rule = find_rule(actor.role, current.status, target)
        if rule is None:
            audit_events.transition_denied(
                order_id, target.value, actor.id, actor.role.value, "invalid transition"
            )
            self._resync(order_id)
            raise OrderProblem(
                INVALID_TRANSITION,
                f"{actor.role.value} cannot move order {order_id} from "
                f"{current.status.value} to {target.value}",
                user_message=(
                    CLAIM_LOST_MESSAGE
                    if target is OrderStatus.ASSIGNED and current.deliverer_id is not None
                    else "This order can no longer be updated"
                ),
                order_id=order_id,
            )

        if rule.requires_payment and self._require_payment and not payment_confirmed:
            raise OrderProblem(
                PAYMENT_REQUIRED,
                f"Completing order {order_id} requires payment confirmation",
                order_id=order_id,
            )

        return self._write(actor, current, rule, target)

    # -- internals -------------------------------------------------------------

    def _write(
        self,
        actor: Actor,
        current: Order,
        rule: TransitionRule,
        target: OrderStatus,
    ) -> Order:
        order_id = current.id
        guard = WriteGuard(
            expected_status=current.status,
            kind=rule.guard,
            actor_id=actor.id,
            owner_field=rule.owner_field,
        )
        extra: dict[str, Any] = {}
        if rule.stamps:
            extra[rule.stamps] = datetime.now(UTC)

        optimistic: dict[str, Any] = {"status": target, **extra}
        if rule.is_claim:
            optimistic["deliverer_id"] = actor.id
        token = self._screen.cache.apply_optimistic(order_id, **optimistic)

        try:
            affected, row = self._store.write_order_status(order_id, guard, target, extra)
        except StorePermissionError as exc:
            self._fail(token, target, actor, UNAUTHORIZED)
            raise OrderProblem(
                UNAUTHORIZED, f"Store refused the write: {exc}", order_id=order_id
            ) from exc
        except StoreError as exc:
            self._fail(token, target, actor, UNAVAILABLE)
            raise OrderProblem(UNAVAILABLE, str(exc), order_id=order_id) from exc

        if self._screen.closed:
            log.debug("Screen closed during write to %s; discarding result", order_id)
            if affected == 0:
                raise OrderProblem(
                    GUARD_FAILED, "Guard failed after screen closed", order_id=order_id
                )
            assert row is not None  # noqa: S101
            return row

        if affected == 0 or row is None:
            authoritative = self._fail(token, target, actor, GUARD_FAILED)
            if rule.is_claim:
                audit_events.claim_lost(
                    order_id, actor.id, authoritative.status.value if authoritative else None
                )
                self._dispatch(
                    "order.claim_lost",
                    {
                        "order_id": str(order_id),
                        "actor_id": str(actor.id),
                        "current_status": authoritative.status.value if authoritative else None,
                        "current_deliverer_id": (
                            str(authoritative.deliverer_id)
                            if authoritative and authoritative.deliverer_id
                            else None
                        ),
                    },
                )
            raise OrderProblem(
                GUARD_FAILED,
                f"Guard {guard.describe()} matched no row for order {order_id}",
                user_message=CLAIM_LOST_MESSAGE if rule.is_claim else None,
                order_id=order_id,
            )

        self._screen.fold(row)
        log_transition(order_id, current.status, row.status, actor_id=actor.id)
        audit_events.transition_applied(
            order_id, current.status.value, row.status.value, actor.id, actor.role.value
        )
        self._dispatch(
            "order.transition",
            {
                "order_id": str(order_id),
                "from_status": current.status.value,
                "to_status": row.status.value,
                "actor_id": str(actor.id),
                "actor_role": actor.role.value,
                "order": order_to_json(row),
            },
        )
        if row.status is OrderStatus.COMPLETED:
            self._completed(row)
        return row

    def _completed(self, row: Order) -> None:
        self._dispatch(
            "order.completion",
            {
                "order_id": str(row.id),
                "vendor_id": str(row.vendor_id),
                "deliverer_id": str(row.deliverer_id) if row.deliverer_id else None,
                "total_price": str(row.total_price),
                "delivery_fee": str(row.delivery_fee),
                "completed_at": row.completed_at.isoformat() if row.completed_at else None,
            },
        )
        for callback in list(self._on_completed):
            try:
                callback(row)
            except Exception:
                log.exception("Refresh after completing order %s failed", row.id)

    def _fail(
        self,
        token: OptimisticToken,
        target: OrderStatus,
        actor: Actor,
        error_type: str,
    ) -> Order | None:
        """Roll back, resync, report; return the authoritative row if read."""
        if self._screen.closed:
            return None
        self._screen.cache.rollback(token)
        audit_events.rollback(token.order_id, target.value, error_type.rsplit(":", 1)[-1])
        self._dispatch(
            "order.rollback",
            {
                "order_id": str(token.order_id),
                "target_status": target.value,
                "actor_id": str(actor.id),
                "error_type": error_type,
            },
        )
        return self._resync(token.order_id)

    def _resync(self, order_id: UUID) -> Order | None:
        """Best-effort re-read; a failing store leaves the cache as is."""
        if self._screen.closed:
            return None
        try:
            return self._screen.resync_order(order_id)
        except StoreError as exc:
            log.warning("Resync of order %s failed: %s", order_id, exc)
            return None

    def _read(self, order_id: UUID) -> Order | None:
        try:
            return self._store.read_order(order_id)
        except StorePermissionError as exc:
            raise OrderProblem(UNAUTHORIZED, str(exc), order_id=order_id) from exc
        except StoreError as exc:
            raise OrderProblem(UNAVAILABLE, str(exc), order_id=order_id) from exc

    def _dispatch(self, event: str, context: dict) -> None:
        if self._hooks is not None:
            self._hooks.dispatch(event, context)
