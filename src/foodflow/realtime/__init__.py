"""Realtime change delivery: payload decoding, the PostgreSQL feed and
the cache reconciler."""

from foodflow.realtime.payload import MalformedChangeError, decode_change
from foodflow.realtime.reconciler import Reconciler

__all__ = [
    "MalformedChangeError",
    "Reconciler",
    "decode_change",
]
