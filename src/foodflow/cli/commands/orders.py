"""Order subcommands: list a view, run a transition, follow a view live.

Usage::

    foodflow -c config.yaml orders list --as <user> [--role vendor] [--view vendor.incoming]
    foodflow -c config.yaml orders transition --as <user> <order> preparing
    foodflow -c config.yaml orders transition --as <user> <order> completed --payment-confirmed
    foodflow -c config.yaml orders watch --as <user> --view deliverer.available --seconds 60
"""

from __future__ import annotations

import logging
import sys
import threading
from uuid import UUID

from foodflow.app.errors import OrderProblem, StoreError, StoreUnavailableError
from foodflow.core.types import ActorRole, OrderStatus
from foodflow.models.actor import Actor

log = logging.getLogger(__name__)

_DEFAULT_VIEWS = {
    ActorRole.VENDOR: "vendor.incoming",
    ActorRole.DELIVERER: "deliverer.available",
    ActorRole.CUSTOMER: "customer.active",
}


def open_store(config):
    """Build the configured order store and profile directory."""
    settings = config.settings
    if settings.store.backend == "memory":
        from foodflow.services.identity import MemoryProfileDirectory
        from foodflow.store.memory import MemoryOrderStore

        return MemoryOrderStore(), MemoryProfileDirectory()

    from foodflow.db import conninfo_for, init_database
    from foodflow.store.postgres import PostgresOrderStore, PostgresProfileDirectory

    db = init_database(settings.database)
    store = PostgresOrderStore(db, conninfo_for(settings.database), settings.realtime)
    return store, PostgresProfileDirectory(db)


def run_orders(config, args) -> None:
    """Dispatch to the appropriate orders sub-handler."""
    sub = getattr(args, "orders_command", None)
    handlers = {"list": _list, "transition": _transition, "watch": _watch}
    if sub not in handlers:
        print("usage: foodflow orders {list,transition,watch} --as USER_ID", file=sys.stderr)
        sys.exit(1)

    store, profiles = open_store(config)
    try:
        session = _session(args, profiles)
        handlers[sub](config, args, store, session)
    except OrderProblem as problem:
        log.info("Command failed: %s", problem.detail)
        print(f"error: {problem.user_message}", file=sys.stderr)
        sys.exit(1)
    except StoreError as exc:
        unavailable = isinstance(exc, StoreUnavailableError)
        log.warning("Command failed on the store: %s", exc)
        suffix = " (retry may succeed)" if unavailable else ""
        print(f"error: {exc}{suffix}", file=sys.stderr)
        sys.exit(3 if unavailable else 1)
    finally:
        store.close()


def _session(args, profiles):
    from foodflow.services.identity import ProfileIdentity, Session, StaticIdentity

    try:
        user_id = UUID(args.user)
    except ValueError:
        print(f"not a UUID: {args.user}", file=sys.stderr)
        sys.exit(1)
    if args.role:
        return Session(StaticIdentity(Actor(id=user_id, role=ActorRole(args.role))))
    return Session(ProfileIdentity(user_id, profiles))


def _screen_for_view(view: str, store, session, config):
    from foodflow.screens import (
        AvailableOrdersScreen,
        CustomerOrdersScreen,
        DelivererDeliveriesScreen,
        VendorHistoryScreen,
        VendorOrdersScreen,
    )

    if view == "vendor.history":
        cls = VendorHistoryScreen
    elif view.startswith("vendor."):
        cls = VendorOrdersScreen
    elif view == "deliverer.available":
        cls = AvailableOrdersScreen
    elif view.startswith("deliverer."):
        cls = DelivererDeliveriesScreen
    else:
        cls = CustomerOrdersScreen
    return cls(store, session, settings=config.settings.orders)


def _resolve_view(args, session) -> str:
    from foodflow.views.projector import get_view

    view = args.view or _DEFAULT_VIEWS[session.actor.role]
    try:
        spec = get_view(view)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)
    if spec.role is not session.actor.role:
        print(f"view {view} is not available to {session.actor.role.value}s", file=sys.stderr)
        sys.exit(1)
    return view


def _format(order) -> str:
    deliverer = str(order.deliverer_id) if order.deliverer_id else "-"
    return (
        f"{order.id}  {order.status.value:<11} {order.created_at:%Y-%m-%d %H:%M}  "
        f"{order.total_price:>9}  items={len(order.items)}  deliverer={deliverer}"
    )


def _print_view(view: str, orders) -> None:
    print(f"== {view} ({len(orders)}) ==")
    for order in orders:
        print(_format(order))


def _list(config, args, store, session) -> None:
    view = _resolve_view(args, session)
    with _screen_for_view(view, store, session, config) as screen:
        _print_view(view, screen.view(view))


def _transition(config, args, store, session) -> None:
    from foodflow.core.vocabulary import normalize_status
    from foodflow.hooks import HookRegistry
    from foodflow.screens import (
        AvailableOrdersScreen,
        CustomerOrdersScreen,
        DelivererDeliveriesScreen,
        VendorOrdersScreen,
    )

    try:
        order_id = UUID(args.order_id)
        target = normalize_status(args.status)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    role = session.actor.role
    if role is ActorRole.VENDOR:
        cls = VendorOrdersScreen
    elif role is ActorRole.DELIVERER:
        claiming = target is OrderStatus.ASSIGNED
        cls = AvailableOrdersScreen if claiming else DelivererDeliveriesScreen
    else:
        cls = CustomerOrdersScreen

    with (
        HookRegistry(config.settings.hooks) as hooks,
        cls(store, session, hooks=hooks, settings=config.settings.orders) as screen,
    ):
        result = screen.act(order_id, target, payment_confirmed=args.payment_confirmed)

    if result.ok:
        print(f"order {order_id} is now {result.order.status.value}")
        return
    suffix = " (retry may succeed)" if result.retryable else ""
    print(f"error: {result.message}{suffix}", file=sys.stderr)
    sys.exit(3 if result.retryable else 1)


def _watch(config, args, store, session) -> None:
    view = _resolve_view(args, session)
    screen = _screen_for_view(view, store, session, config)
    printed: list[tuple] = []
    print_lock = threading.Lock()

    def _on_change() -> None:
        rows = screen.view(view)
        fingerprint = tuple((o.id, o.status, o.deliverer_id) for o in rows)
        with print_lock:
            if printed and printed[-1] == fingerprint:
                return
            printed[:] = [fingerprint]
            _print_view(view, rows)
            sys.stdout.flush()

    with screen:
        _on_change()
        screen.cache.add_listener(_on_change)
        try:
            threading.Event().wait(args.seconds)
        except KeyboardInterrupt:
            log.debug("Watch interrupted")
        finally:
            screen.cache.remove_listener(_on_change)
