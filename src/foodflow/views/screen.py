"""Screen lifecycle: one scope, one cache, one subscription.

:class:`OrderScreen` is the unit every actor surface is built from.
Opening it subscribes to the store with the screen's scope filter and
loads the matching rows; realtime events are folded in by a
:class:`~foodflow.realtime.reconciler.Reconciler`; closing it
unsubscribes.  Writes go through the screen's
:class:`~foodflow.services.transition.TransitionExecutor` and come
back as :class:`ActionResult` values.

Usage::

    with VendorOrdersScreen(store, session) as screen:
        for order in screen.incoming():
            ...
        result = screen.accept(order_id)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from foodflow.app.errors import UNAUTHORIZED, OrderProblem
from foodflow.core.types import ChangeType
from foodflow.logging import audit_events, screen_context
from foodflow.models.change import ChangeEvent
from foodflow.realtime.reconciler import Reconciler
from foodflow.services.transition import TransitionExecutor
from foodflow.views.cache import OrderCache
from foodflow.views.projector import project

if TYPE_CHECKING:
    from uuid import UUID

    from foodflow.config.settings import OrderWorkflowSettings
    from foodflow.core.filters import OrderFilter
    from foodflow.core.types import ActorRole, OrderStatus, ReconcileOutcome
    from foodflow.hooks.registry import HookRegistry
    from foodflow.models.actor import Actor
    from foodflow.models.order import Order
    from foodflow.services.identity import Session
    from foodflow.store.base import OrderStore, Subscription

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a screen action; actions never raise on remote failure."""

    ok: bool
    message: str = ""
    retryable: bool = False
    order: Order | None = None
    error_type: str | None = None

    @classmethod
    def from_problem(cls, problem: OrderProblem, order: Order | None = None) -> ActionResult:
        return cls(
            ok=False,
            message=problem.user_message,
            retryable=problem.retryable,
            order=order,
            error_type=problem.error_type,
        )


class OrderScreen:
    """Base class for every actor screen.

    Parameters
    ----------
    store:
        The shared order store.
    session:
        The signed-in session; the actor is resolved on first use.
    hooks:
        Optional hook registry the executor dispatches to.
    settings:
        The ``orders`` config section; defaults apply when omitted.

    """

    name = "orders"
    role: ActorRole | None = None

    def __init__(
        self,
        store: OrderStore,
        session: Session,
        *,
        hooks: HookRegistry | None = None,
        settings: OrderWorkflowSettings | None = None,
    ) -> None:
        self.store = store
        self.session = session
        self.settings = settings
        self.cache = OrderCache()
        self._scope: OrderFilter | None = None
        self._reconciler: Reconciler | None = None
        self._subscription: Subscription | None = None
        self._closed = threading.Event()
        self._loading = False
        self._buffer: list[ChangeEvent] = []
        self.executor = TransitionExecutor(store, session, self, hooks=hooks, settings=settings)

    # -- scope -----------------------------------------------------------------

    def build_scope(self, actor: Actor) -> OrderFilter:
        """Return the subscription/admission filter for *actor*."""
        raise NotImplementedError

    @property
    def actor(self) -> Actor:
        return self.session.actor

    @property
    def scope(self) -> OrderFilter:
        if self._scope is None:
            actor = self.actor
            if self.role is not None and actor.role is not self.role:
                raise OrderProblem(
                    UNAUTHORIZED,
                    f"Screen {self.name} is for {self.role.value}s, not {actor.role.value}s",
                )
            self._scope = self.build_scope(actor)
            self._reconciler = Reconciler(self.cache, self._scope)
        return self._scope

    @property
    def reconciler(self) -> Reconciler:
        _ = self.scope
        assert self._reconciler is not None  # noqa: S101
        return self._reconciler

    # -- lifecycle -------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._subscription is not None and not self._closed.is_set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def open(self) -> Self:
        """Subscribe, then load the scope; events racing the load are replayed."""
        if self._closed.is_set():
            msg = f"Screen {self.name} was closed and cannot be reopened"
            raise RuntimeError(msg)
        if self._subscription is not None:
            return self

        with screen_context(self.name):
            scope = self.scope
            with self.cache.lock:
                self._loading = True
            self._subscription = self.store.subscribe(
                scope,
                on_insert=self._on_event,
                on_update=self._on_event,
                on_delete=self._on_event,
                on_resync=self.refresh,
            )
            try:
                rows = self.store.read_orders(scope)
            except Exception:
                self._subscription.unsubscribe()
                self._subscription = None
                with self.cache.lock:
                    self._loading = False
                    self._buffer.clear()
                raise
            with self.cache.lock:
                self.cache.load(rows)
                for event in self._buffer:
                    self.reconciler.apply(event)
                self._buffer.clear()
                self._loading = False
            audit_events.subscription_opened(self.name, scope.describe())
            log.debug("Screen %s opened with %d order(s)", self.name, len(rows))
        return self

    def close(self) -> None:
        """Unsubscribe; in-flight writes finish but their results are dropped."""
        if self._closed.is_set():
            return
        self._closed.set()
        # Not under the cache lock: unsubscribe waits for a running callback.
        if self._subscription is not None:
            self._subscription.unsubscribe()
        audit_events.subscription_closed(self.name)

    def __enter__(self) -> Self:
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- realtime --------------------------------------------------------------

    def _on_event(self, event: ChangeEvent) -> ReconcileOutcome | None:
        with screen_context(self.name), self.cache.lock:
            if self._closed.is_set():
                return None
            if self._loading:
                self._buffer.append(event)
                return None
            outcome = self.reconciler.apply(event)
        log.debug("Screen %s: %s %s -> %s", self.name, event.type.value, event.order_id, outcome)
        return outcome

    def refresh(self) -> None:
        """Refetch the whole scope from the store."""
        rows = self.store.read_orders(self.scope)
        with self.cache.lock:
            if self._closed.is_set():
                return
            self.cache.load(rows)

    def fold(self, row: Order | None, order_id: UUID | None = None) -> None:
        """Fold an authoritative row (or its absence) into the cache."""
        if self._closed.is_set():
            return
        if row is None:
            if order_id is not None:
                self.reconciler.apply(ChangeEvent(type=ChangeType.DELETE, order_id=order_id))
            return
        self.reconciler.apply(ChangeEvent(type=ChangeType.UPDATE, order_id=row.id, new=row))

    def resync_order(self, order_id: UUID) -> Order | None:
        """Re-read one order from the store and fold it in."""
        row = self.store.read_order(order_id)
        self.fold(row, order_id)
        return row

    # -- reading ---------------------------------------------------------------

    def orders(self) -> list[Order]:
        """Everything in the cache, newest first."""
        return self.cache.snapshot()

    def view(self, name: str) -> list[Order]:
        return project(self.cache, name, self.actor)

    def get(self, order_id: UUID) -> Order | None:
        return self.cache.get(order_id)

    # -- acting ----------------------------------------------------------------

    def act(self, order_id: UUID, target: OrderStatus, **kwargs: bool) -> ActionResult:
        """Run one transition and report the outcome as an :class:`ActionResult`."""
        if not self.is_open:
            msg = f"Screen {self.name} is not open"
            raise RuntimeError(msg)
        with screen_context(self.name):
            try:
                row = self.executor.execute(order_id, target, **kwargs)
            except OrderProblem as problem:
                log.info(
                    "Action %s on %s failed: %s (%s)",
                    target.value,
                    order_id,
                    problem.kind,
                    problem.detail,
                )
                return ActionResult.from_problem(problem, self.cache.get(order_id))
        return ActionResult(ok=True, order=row)
