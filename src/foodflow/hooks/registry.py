"""Hook registry: order lifecycle events fanned out to configured hooks.

The transition executor reports four events (``order.transition``,
``order.claim_lost``, ``order.completion`` and ``order.rollback``).
Each enabled ``hooks.registered`` entry is imported at startup and
indexed under the events it subscribes to; :meth:`HookRegistry.dispatch`
then hands every subscriber its own copy of the event context on a
small thread pool and returns at once, so a slow webhook never holds
up a status write.

Usage::

    from foodflow.hooks import HookRegistry

    with HookRegistry(settings.hooks) as hooks:
        screen = VendorOrdersScreen(store, session, hooks=hooks)
        ...
"""

from __future__ import annotations

import copy
import importlib
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, NamedTuple

from foodflow.hooks.base import Hook
from foodflow.hooks.events import EVENT_METHOD_MAP, KNOWN_EVENTS

if TYPE_CHECKING:
    from foodflow.config.settings import HookEntrySettings, HookSettings

log = logging.getLogger(__name__)

# First retry waits this long; each further retry doubles it.
RETRY_BASE_SECONDS = 0.5


class _Subscriber(NamedTuple):
    name: str
    hook: Hook
    slow_after: float


def load_hook_class(class_path: str) -> type[Hook]:
    """Import ``package.module.ClassName`` and check it is a :class:`Hook`."""
    module_path, _, class_name = class_path.rpartition(".")
    if not module_path or not all(part.isidentifier() for part in class_path.split(".")):
        msg = f"Hook class path {class_path!r} is not of the form 'package.module.ClassName'"
        raise ValueError(msg)
    cls = getattr(importlib.import_module(module_path), class_name)
    if not (isinstance(cls, type) and issubclass(cls, Hook)):
        msg = f"{class_path} is not a foodflow.hooks.Hook subclass"
        raise TypeError(msg)
    return cls


class HookRegistry:
    """Order event subscribers plus the pool that runs them.

    Parameters
    ----------
    settings:
        The ``hooks`` config section.  A hook that fails to import,
        to validate its ``config`` or names an unknown event stops
        construction with the original exception.

    """

    def __init__(self, settings: HookSettings) -> None:
        self._max_retries = settings.max_retries
        self._loaded: list[_Subscriber] = []
        self._subscribers: dict[str, list[_Subscriber]] = {event: [] for event in KNOWN_EVENTS}
        self._closed = threading.Event()
        for entry in settings.registered:
            if entry.enabled:
                self._register(entry, settings.timeout_seconds)
            else:
                log.debug("Hook %s disabled", entry.class_path)
        self._pool: ThreadPoolExecutor | None = None
        if self._loaded:
            self._pool = ThreadPoolExecutor(
                max_workers=settings.max_workers,
                thread_name_prefix="order-hook",
            )

    def __enter__(self) -> HookRegistry:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)

    def _register(self, entry: HookEntrySettings, default_timeout: int) -> None:
        events = frozenset(entry.events) or KNOWN_EVENTS
        unknown = events - KNOWN_EVENTS
        if unknown:
            msg = f"Hook {entry.class_path} subscribes to unknown events {sorted(unknown)}"
            raise ValueError(msg)

        cls = load_hook_class(entry.class_path)
        cls.validate_config(entry.config)
        timeout = entry.timeout_seconds if entry.timeout_seconds is not None else default_timeout
        subscriber = _Subscriber(entry.class_path, cls(config=entry.config), float(timeout))
        self._loaded.append(subscriber)
        for event in sorted(events):
            self._subscribers[event].append(subscriber)
        log.info("Hook %s subscribed to %s", entry.class_path, ", ".join(sorted(events)))

    def hooks(self) -> list[Hook]:
        """Loaded hook instances, in registration order."""
        return [sub.hook for sub in self._loaded]

    def subscribers(self, event: str) -> list[str]:
        """Class paths of the hooks that receive *event*."""
        return [sub.name for sub in self._subscribers[event]]

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def dispatch(self, event: str, context: dict) -> int:
        """Schedule *event* on every subscriber; return how many were scheduled.

        Raises :class:`ValueError` for an event outside
        :data:`KNOWN_EVENTS`.  After :meth:`shutdown` nothing is
        scheduled.
        """
        if event not in KNOWN_EVENTS:
            msg = f"Unknown hook event {event!r}"
            raise ValueError(msg)
        subscribers = self._subscribers[event]
        if self._closed.is_set() or self._pool is None or not subscribers:
            return 0

        scheduled = 0
        for sub in subscribers:
            try:
                self._pool.submit(self._deliver, sub, event, copy.deepcopy(context))
            except RuntimeError:
                log.warning("Hook pool closed; %s not delivered to %s", event, sub.name)
                continue
            scheduled += 1
        return scheduled

    def _deliver(self, sub: _Subscriber, event: str, context: dict) -> None:
        handler = getattr(sub.hook, EVENT_METHOD_MAP[event])
        order_id = context.get("order_id")
        started = time.monotonic()
        for attempt in range(self._max_retries + 1):
            try:
                handler(context)
                break
            except Exception as exc:  # noqa: BLE001
                if attempt == self._max_retries:
                    log.error(
                        "Hook %s failed on %s for order %s after %d attempt(s): %s",
                        sub.name,
                        event,
                        order_id,
                        attempt + 1,
                        exc,
                    )
                    return
                delay = RETRY_BASE_SECONDS * (2**attempt)
                log.info("Hook %s failed on %s, retrying in %.1fs", sub.name, event, delay)
                time.sleep(delay)

        elapsed = time.monotonic() - started
        if elapsed > sub.slow_after:
            log.warning(
                "Hook %s took %.1fs on %s (limit %.0fs)", sub.name, elapsed, event, sub.slow_after
            )
        else:
            log.debug("Hook %s handled %s for order %s", sub.name, event, order_id)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting events and close the pool; repeat calls do nothing."""
        if self._closed.is_set():
            return
        self._closed.set()
        if self._pool is not None:
            self._pool.shutdown(wait=wait)
            log.debug("Hook pool closed")
