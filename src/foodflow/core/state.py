"""Order lifecycle state machine.

Defines the valid status graph for orders and, on top of it, which
actor role may drive each edge and under which write guard.  The
executor looks every request up with :func:`find_rule`.

Usage::

    from foodflow.core.state import find_rule
    from foodflow.core.types import ActorRole, OrderStatus

    rule = find_rule(ActorRole.DELIVERER, OrderStatus.READY, OrderStatus.ASSIGNED)
    assert rule.guard is GuardKind.UNASSIGNED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from foodflow.core.types import ActorRole, GuardKind, OrderStatus

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Status graph: created → pending → preparing → ready → assigned →
#   picked_up → on_the_way → delivered → completed.
#   cancelled is reachable before vendor acceptance.
#   completed & cancelled are terminal.
# ---------------------------------------------------------------------------

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.CREATED: frozenset({OrderStatus.PENDING, OrderStatus.CANCELLED}),
    OrderStatus.PENDING: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.ASSIGNED}),
    OrderStatus.ASSIGNED: frozenset({OrderStatus.PICKED_UP}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.ON_THE_WAY, OrderStatus.DELIVERED}),
    OrderStatus.ON_THE_WAY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    s for s, targets in ORDER_TRANSITIONS.items() if not targets
)

# Statuses in which ``deliverer_id`` must still be null.
PRE_ASSIGNMENT_STATUSES: frozenset[OrderStatus] = frozenset(
    {
        OrderStatus.CREATED,
        OrderStatus.PENDING,
        OrderStatus.PREPARING,
        OrderStatus.READY,
    }
)

_OWNER_FIELDS: dict[ActorRole, str] = {
    ActorRole.VENDOR: "vendor_id",
    ActorRole.DELIVERER: "deliverer_id",
    ActorRole.CUSTOMER: "customer_id",
}


@dataclass(frozen=True)
class TransitionRule:
    """One actor-driven edge of the status graph.

    ``guard`` is the predicate the store write carries in addition to
    the status compare-and-swap: ``OWNER`` compares the role's owner
    column with the actor id, ``UNASSIGNED`` requires ``deliverer_id``
    to be null and then sets it to the actor (the atomic claim).
    """

    role: ActorRole
    sources: frozenset[OrderStatus]
    target: OrderStatus
    guard: GuardKind = GuardKind.OWNER
    requires_payment: bool = False
    stamps: str | None = None

    @property
    def owner_field(self) -> str:
        return _OWNER_FIELDS[self.role]

    @property
    def is_claim(self) -> bool:
        return self.guard is GuardKind.UNASSIGNED


ACTOR_RULES: tuple[TransitionRule, ...] = (
    # -- customer ------------------------------------------------------------
    TransitionRule(
        ActorRole.CUSTOMER,
        frozenset({OrderStatus.CREATED}),
        OrderStatus.PENDING,
    ),
    TransitionRule(
        ActorRole.CUSTOMER,
        frozenset({OrderStatus.CREATED, OrderStatus.PENDING}),
        OrderStatus.CANCELLED,
    ),
    # -- vendor --------------------------------------------------------------
    TransitionRule(
        ActorRole.VENDOR,
        frozenset({OrderStatus.PENDING}),
        OrderStatus.PREPARING,
    ),
    TransitionRule(
        ActorRole.VENDOR,
        frozenset({OrderStatus.PENDING}),
        OrderStatus.CANCELLED,
    ),
    TransitionRule(
        ActorRole.VENDOR,
        frozenset({OrderStatus.PREPARING}),
        OrderStatus.READY,
    ),
    TransitionRule(
        ActorRole.VENDOR,
        frozenset({OrderStatus.DELIVERED}),
        OrderStatus.COMPLETED,
        requires_payment=True,
        stamps="completed_at",
    ),
    # -- deliverer -----------------------------------------------------------
    TransitionRule(
        ActorRole.DELIVERER,
        frozenset({OrderStatus.READY}),
        OrderStatus.ASSIGNED,
        guard=GuardKind.UNASSIGNED,
    ),
    TransitionRule(
        ActorRole.DELIVERER,
        frozenset({OrderStatus.ASSIGNED}),
        OrderStatus.PICKED_UP,
    ),
    TransitionRule(
        ActorRole.DELIVERER,
        frozenset({OrderStatus.PICKED_UP}),
        OrderStatus.ON_THE_WAY,
    ),
    TransitionRule(
        ActorRole.DELIVERER,
        frozenset({OrderStatus.PICKED_UP, OrderStatus.ON_THE_WAY}),
        OrderStatus.DELIVERED,
        stamps="delivered_at",
    ),
    TransitionRule(
        ActorRole.DELIVERER,
        frozenset({OrderStatus.DELIVERED}),
        OrderStatus.COMPLETED,
        requires_payment=True,
        stamps="completed_at",
    ),
)


def find_rule(
    role: ActorRole,
    current: OrderStatus,
    target: OrderStatus,
) -> TransitionRule | None:
    """Return the rule letting *role* move an order from *current* to *target*."""
    for rule in ACTOR_RULES:
        if rule.role is role and rule.target is target and current in rule.sources:
            return rule
    return None


def targets_for_role(role: ActorRole) -> frozenset[OrderStatus]:
    """All statuses *role* may ever request."""
    return frozenset(rule.target for rule in ACTOR_RULES if rule.role is role)


def log_transition(
    order_id,
    from_status,
    to_status,
    *,
    actor_id=None,
    reason: str | None = None,
) -> None:
    """Emit a structured log entry for a state transition.

    Parameters
    ----------
    order_id:
        The UUID of the order.
    from_status:
        The previous status value.
    to_status:
        The new status value.
    actor_id:
        The actor that requested the transition, if any.
    reason:
        Optional human-readable reason for the transition.

    """
    extra = {
        "event": "state_transition",
        "resource_type": "order",
        "resource_id": str(order_id),
        "from_status": from_status.value if hasattr(from_status, "value") else str(from_status),
        "to_status": to_status.value if hasattr(to_status, "value") else str(to_status),
    }
    if actor_id is not None:
        extra["actor_id"] = str(actor_id)
    if reason:
        extra["reason"] = reason
    log.info(
        "order %s: %s -> %s%s",
        order_id,
        extra["from_status"],
        extra["to_status"],
        f" ({reason})" if reason else "",
        extra=extra,
    )
