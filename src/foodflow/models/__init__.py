"""Entity models for FOODFLOW.

All models are frozen dataclasses.  Use :func:`dataclasses.replace`
for modifications (copy-on-write).
"""

from foodflow.models.actor import Actor
from foodflow.models.change import ChangeEvent
from foodflow.models.order import LineItem, Order
from foodflow.models.profile import Profile

__all__ = [
    "Actor",
    "ChangeEvent",
    "LineItem",
    "Order",
    "Profile",
]
