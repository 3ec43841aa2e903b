"""Repository classes for the FOODFLOW persistence layer.

Each repository extends :class:`pypgkit.BaseRepository` with custom
query methods for the order domain.
"""

from foodflow.repositories.order import OrderRepository
from foodflow.repositories.profile import ProfileRepository

__all__ = [
    "OrderRepository",
    "ProfileRepository",
]
