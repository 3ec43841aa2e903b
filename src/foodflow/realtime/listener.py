"""PostgreSQL LISTEN/NOTIFY change feed.

Runs as a daemon thread on a dedicated autocommit connection, decodes
each notification published by the ``orders`` trigger and fans it out
through a :class:`~foodflow.store.base.SubscriptionRegistry`.

After a dropped connection the feed reconnects with exponential
backoff and asks every subscription to resync, since notifications
sent while disconnected are lost.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

import psycopg
from psycopg import sql

from foodflow.models.change import ChangeEvent
from foodflow.realtime.payload import MalformedChangeError, decode_change

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from foodflow.models.order import Order
    from foodflow.store.base import SubscriptionRegistry

log = logging.getLogger(__name__)


class PgChangeFeed:
    """Daemon thread turning ``NOTIFY`` payloads into change events.

    Parameters
    ----------
    conninfo:
        libpq connection string for the listening connection.
    registry:
        Subscriptions to fan events out to.
    hydrate:
        Called with an order id to fetch the current row when a
        notification arrives without one (payload too large).
    channel:
        Channel name the trigger notifies on.
    poll_seconds:
        How long one wait for notifications lasts before the stop flag
        is checked again.
    backoff_base_seconds, backoff_max_seconds:
        Reconnect delay is ``base * 2^failures`` capped at ``max``.

    """

    def __init__(
        self,
        conninfo: str,
        registry: SubscriptionRegistry,
        hydrate: Callable[[UUID], Order | None],
        channel: str = "orders_changes",
        poll_seconds: float = 1.0,
        backoff_base_seconds: float = 1.0,
        backoff_max_seconds: float = 60.0,
    ) -> None:
        self._conninfo = conninfo
        self._registry = registry
        self._hydrate = hydrate
        self._channel = channel
        self._poll_seconds = poll_seconds
        self._backoff_base = backoff_base_seconds
        self._backoff_max = backoff_max_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._consecutive_failures = 0
        self._connected_once = False

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the listener thread."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="order-change-feed",
            daemon=True,
        )
        self._thread.start()
        log.info("Change feed started (channel=%s)", self._channel)

    def stop(self) -> None:
        """Signal the listener to stop and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self._poll_seconds + 5)
            self._thread = None
            log.info("Change feed stopped")

    def _run(self) -> None:
        """Main loop: connect, listen, reconnect on failure.

        Any failure, including a hydration read that the store could
        not serve, drops the connection; the reconnect resyncs every
        subscription, so the event that failed is not lost for good.
        """
        while not self._stop_event.is_set():
            try:
                self._listen()
                self._consecutive_failures = 0
            except Exception:
                self._consecutive_failures += 1
                backoff = min(
                    self._backoff_base * (2**self._consecutive_failures),
                    self._backoff_max,
                )
                log.exception(
                    "Change feed connection lost (consecutive failures: %d), retrying in %.1fs",
                    self._consecutive_failures,
                    backoff,
                )
                self._stop_event.wait(timeout=backoff)

    def _listen(self) -> None:
        with psycopg.connect(self._conninfo, autocommit=True) as conn:
            conn.execute(sql.SQL("LISTEN {}").format(sql.Identifier(self._channel)))
            if self._connected_once:
                log.info("Change feed reconnected, resyncing subscriptions")
                self._registry.resync_all()
            self._connected_once = True
            self._consecutive_failures = 0
            while not self._stop_event.is_set():
                for notify in conn.notifies(timeout=self._poll_seconds):
                    self.handle_payload(notify.payload)
                    if self._stop_event.is_set():
                        break

    def handle_payload(self, payload: str) -> int:
        """Decode and publish one notification; return the delivery count.

        Malformed payloads are logged and dropped.  A failing hydration
        read propagates to the listen loop, which reconnects.
        """
        try:
            event, needs_hydration = decode_change(payload)
        except MalformedChangeError as exc:
            log.warning("Ignoring malformed change notification: %s", exc)
            return 0

        if needs_hydration:
            row = self._hydrate(event.order_id)
            if row is None:
                # Gone before we could read it; nothing to show.
                log.debug("Order %s vanished before hydration", event.order_id)
                return 0
            event = ChangeEvent(
                type=event.type,
                order_id=event.order_id,
                new=row,
                old=event.old,
                seq=event.seq,
            )
        return self._registry.publish(event)
