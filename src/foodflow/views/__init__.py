"""Screen-side state: per-screen caches, named views, screen lifecycle."""

from foodflow.views.cache import OrderCache
from foodflow.views.projector import VIEWS, ViewSpec, project
from foodflow.views.screen import ActionResult, OrderScreen

__all__ = [
    "VIEWS",
    "ActionResult",
    "OrderCache",
    "OrderScreen",
    "ViewSpec",
    "project",
]
