"""Named views: pure projections over a screen's cache.

A view is a status set plus a relation between the order and the
viewing actor.  Projection never mutates the cache and never talks to
the store; it filters a snapshot and keeps its newest-first order.

Usage::

    rows = project(cache, "vendor.incoming", actor)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from foodflow.core.filters import OrderFilter
from foodflow.core.state import TERMINAL_STATUSES
from foodflow.core.types import ActorRole, OrderStatus

if TYPE_CHECKING:
    from foodflow.models.actor import Actor
    from foodflow.models.order import Order
    from foodflow.views.cache import OrderCache

# Relation between an order and the viewing actor.
_MINE = "mine"
_UNASSIGNED = "unassigned"


@dataclass(frozen=True)
class ViewSpec:
    """Definition of one named view."""

    name: str
    role: ActorRole
    statuses: frozenset[OrderStatus]
    relation: str = _MINE

    def scope_for(self, actor: Actor) -> OrderFilter:
        """The :class:`OrderFilter` selecting this view's rows for *actor*."""
        if self.relation == _UNASSIGNED:
            return OrderFilter(statuses=self.statuses, unassigned=True)
        owner = {
            ActorRole.VENDOR: "vendor_id",
            ActorRole.DELIVERER: "deliverer_id",
            ActorRole.CUSTOMER: "customer_id",
        }[self.role]
        return OrderFilter(statuses=self.statuses, **{owner: actor.id})

    def matches(self, order: Order, actor: Actor) -> bool:
        return self.scope_for(actor).matches(order)


_S = OrderStatus

VIEWS: dict[str, ViewSpec] = {
    spec.name: spec
    for spec in (
        ViewSpec("vendor.incoming", ActorRole.VENDOR, frozenset({_S.PENDING})),
        ViewSpec("vendor.preparing", ActorRole.VENDOR, frozenset({_S.PREPARING})),
        ViewSpec("vendor.ready", ActorRole.VENDOR, frozenset({_S.READY})),
        ViewSpec(
            "vendor.active",
            ActorRole.VENDOR,
            frozenset(
                {_S.PREPARING, _S.READY, _S.ASSIGNED, _S.PICKED_UP, _S.ON_THE_WAY, _S.DELIVERED}
            ),
        ),
        ViewSpec("vendor.history", ActorRole.VENDOR, frozenset({_S.COMPLETED})),
        ViewSpec(
            "deliverer.available",
            ActorRole.DELIVERER,
            frozenset({_S.READY}),
            relation=_UNASSIGNED,
        ),
        ViewSpec(
            "deliverer.active",
            ActorRole.DELIVERER,
            frozenset({_S.ASSIGNED, _S.PICKED_UP, _S.ON_THE_WAY, _S.DELIVERED}),
        ),
        ViewSpec("deliverer.history", ActorRole.DELIVERER, frozenset({_S.COMPLETED})),
        ViewSpec(
            "customer.active",
            ActorRole.CUSTOMER,
            frozenset(_S) - TERMINAL_STATUSES,
        ),
        ViewSpec("customer.history", ActorRole.CUSTOMER, TERMINAL_STATUSES),
    )
}

# Views no order may appear in together for the same actor.
EXCLUSIVE_GROUPS: tuple[tuple[str, ...], ...] = (
    ("vendor.incoming", "vendor.active", "vendor.history"),
    ("vendor.incoming", "vendor.preparing", "vendor.ready", "vendor.history"),
    ("deliverer.available", "deliverer.active", "deliverer.history"),
    ("customer.active", "customer.history"),
)


def get_view(name: str) -> ViewSpec:
    try:
        return VIEWS[name]
    except KeyError:
        msg = f"Unknown view {name!r}; known views: {sorted(VIEWS)}"
        raise ValueError(msg) from None


def views_for_role(role: ActorRole) -> list[str]:
    return sorted(name for name, spec in VIEWS.items() if spec.role is role)


def project(cache: OrderCache, view: str | ViewSpec, actor: Actor) -> list[Order]:
    """Rows of *cache* in *view* for *actor*, ``created_at`` descending."""
    spec = view if isinstance(view, ViewSpec) else get_view(view)
    scope = spec.scope_for(actor)
    return [o for o in cache.snapshot() if scope.matches(o)]


def views_containing(order: Order, actor: Actor) -> list[str]:
    """Names of every view of *actor*'s role that *order* falls into."""
    return sorted(
        name
        for name, spec in VIEWS.items()
        if spec.role is actor.role and spec.matches(order, actor)
    )
