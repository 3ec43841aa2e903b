"""Order stores: the remote-of-record every screen reads and writes.

Public API::

    from foodflow.store import MemoryOrderStore, OrderStore, WriteGuard
"""

from foodflow.store.base import OrderStore, Subscription, SubscriptionRegistry, WriteGuard
from foodflow.store.memory import MemoryOrderStore

__all__ = [
    "MemoryOrderStore",
    "OrderStore",
    "Subscription",
    "SubscriptionRegistry",
    "WriteGuard",
]
