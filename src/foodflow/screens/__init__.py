"""Actor screens built on :class:`~foodflow.views.screen.OrderScreen`."""

from foodflow.screens.customer import CustomerOrdersScreen
from foodflow.screens.deliverer import AvailableOrdersScreen, DelivererDeliveriesScreen
from foodflow.screens.tracking import OrderTracker, TrackingDetails, progress_index
from foodflow.screens.vendor import VendorHistoryScreen, VendorOrdersScreen

__all__ = [
    "AvailableOrdersScreen",
    "CustomerOrdersScreen",
    "DelivererDeliveriesScreen",
    "OrderTracker",
    "TrackingDetails",
    "VendorHistoryScreen",
    "VendorOrdersScreen",
    "progress_index",
]
