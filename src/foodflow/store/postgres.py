"""PostgreSQL-backed order store.

Reads and guarded writes go through :class:`OrderRepository` on the
pypgkit pool; realtime delivery comes from a :class:`PgChangeFeed`
listening on the ``orders`` trigger channel.  psycopg and pypgkit failures are
translated into the store exceptions screens understand.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import psycopg
from psycopg import errors as pg_errors
from pypgkit.exceptions import PyPgKitError

from foodflow.app.errors import StorePermissionError, StoreUnavailableError
from foodflow.realtime.listener import PgChangeFeed
from foodflow.repositories.order import OrderRepository
from foodflow.repositories.profile import ProfileRepository
from foodflow.services.identity import ProfileDirectory
from foodflow.store.base import OrderStore, SubscriptionRegistry

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from uuid import UUID

    from pypgkit import Database

    from foodflow.config.settings import RealtimeSettings
    from foodflow.core.filters import OrderFilter
    from foodflow.core.types import OrderStatus
    from foodflow.models.order import Order
    from foodflow.models.profile import Profile
    from foodflow.store.base import ChangeCallback, Subscription, WriteGuard

log = logging.getLogger(__name__)


def _driver_cause(exc: BaseException) -> BaseException:
    """Unwrap pypgkit's ``RepositoryError`` chain down to the driver error."""
    while isinstance(exc, PyPgKitError) and exc.__cause__ is not None:
        exc = exc.__cause__
    return exc


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Map data-layer failures onto :class:`StoreError` subclasses.

    pypgkit repositories re-raise every driver error as
    ``RepositoryError`` with the psycopg exception as ``__cause__``;
    raw queries through ``Database`` raise psycopg errors directly.
    A row-level-security refusal becomes :class:`StorePermissionError`,
    anything else from the data layer :class:`StoreUnavailableError`.
    """
    try:
        yield
    except (psycopg.Error, PyPgKitError) as exc:
        if isinstance(_driver_cause(exc), pg_errors.InsufficientPrivilege):
            log.warning("Store refused %s: %s", operation, exc)
            raise StorePermissionError(f"{operation} refused by the data layer") from exc
        log.warning("Store unavailable during %s: %s", operation, exc)
        raise StoreUnavailableError(f"{operation} failed: {exc}") from exc


class PostgresOrderStore(OrderStore):
    """Order store over the pypgkit ``Database`` singleton.

    Parameters
    ----------
    db:
        Initialised database (see :func:`foodflow.db.init_database`).
    conninfo:
        Connection string for the dedicated ``LISTEN`` connection.
    realtime:
        Change-feed settings; when ``enabled`` is false subscriptions
        are accepted but never receive events.

    """

    def __init__(
        self,
        db: Database,
        conninfo: str,
        realtime: RealtimeSettings,
    ) -> None:
        self._orders = OrderRepository(db)
        self._subscriptions = SubscriptionRegistry()
        self._feed: PgChangeFeed | None = None
        if realtime.enabled:
            self._feed = PgChangeFeed(
                conninfo,
                self._subscriptions,
                hydrate=self.read_order,
                channel=realtime.channel,
                poll_seconds=realtime.poll_seconds,
                backoff_base_seconds=realtime.reconnect_backoff_base_seconds,
                backoff_max_seconds=realtime.reconnect_backoff_max_seconds,
            )

    def read_order(self, order_id: UUID) -> Order | None:
        with translate_errors("read order"):
            return self._orders.find_by_id(order_id)

    def read_orders(self, order_filter: OrderFilter) -> list[Order]:
        with translate_errors("read orders"):
            return self._orders.find_matching(order_filter)

    def write_order_status(
        self,
        order_id: UUID,
        guard: WriteGuard,
        new_status: OrderStatus,
        extra_fields: dict[str, Any] | None = None,
    ) -> tuple[int, Order | None]:
        with translate_errors("status write"):
            row = self._orders.guarded_update(order_id, guard, new_status, extra_fields)
        if row is None:
            log.debug("Guard failed for order %s (%s)", order_id, guard.describe())
            return 0, None
        return 1, row

    def create_order(self, order: Order) -> Order:
        with translate_errors("create order"):
            return self._orders.create(order)

    def subscribe(
        self,
        order_filter: OrderFilter,
        on_insert: ChangeCallback,
        on_update: ChangeCallback,
        on_delete: ChangeCallback,
        on_resync: Callable[[], None] | None = None,
    ) -> Subscription:
        sub = self._subscriptions.add(
            order_filter, on_insert, on_update, on_delete, on_resync=on_resync
        )
        if self._feed is not None:
            self._feed.start()
        return sub

    def close(self) -> None:
        self._subscriptions.close_all()
        if self._feed is not None:
            self._feed.stop()


class PostgresProfileDirectory(ProfileDirectory):
    """Profile lookups over :class:`ProfileRepository`."""

    def __init__(self, db: Database) -> None:
        self._profiles = ProfileRepository(db)

    def find_profile(self, profile_id: UUID) -> Profile | None:
        with translate_errors("read profile"):
            return self._profiles.find_profile(profile_id)
