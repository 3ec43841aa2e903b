"""Abstract base class for FOODFLOW lifecycle hooks.

All custom hooks must inherit from :class:`Hook` and override the
event methods they are interested in.  Unimplemented methods are
no-ops by default.

Usage::

    from foodflow.hooks import Hook

    class KitchenPrinterHook(Hook):
        def on_order_transition(self, ctx: dict) -> None:
            if ctx["to_status"] == "preparing":
                print_ticket(ctx["order"])
"""

from __future__ import annotations

import abc


class Hook(abc.ABC):
    """Base class for all FOODFLOW lifecycle hooks.

    Parameters
    ----------
    config:
        Optional passthrough configuration from the hook entry's
        ``config`` dict in the FOODFLOW config file.

    """

    def __init__(self, config: dict | None = None) -> None:
        self.config = config or {}

    @classmethod
    def validate_config(cls, config: dict) -> None:
        """Validate hook-specific configuration at load time.

        Override in subclasses to reject invalid config before the
        hook is instantiated.  Raise :class:`ValueError` if *config*
        is not acceptable.

        The default implementation is a no-op.
        """

    # -- Order events -----------------------------------------------------

    def on_order_transition(self, ctx: dict) -> None:
        """Called after a guarded status write succeeded.

        Context keys: ``order_id``, ``from_status``, ``to_status``,
        ``actor_id``, ``actor_role``, ``order``.
        """

    def on_order_claim_lost(self, ctx: dict) -> None:
        """Called when a deliverer's claim matched no row.

        Context keys: ``order_id``, ``actor_id``, ``current_status``,
        ``current_deliverer_id``.
        """

    def on_order_completion(self, ctx: dict) -> None:
        """Called after an order reached ``completed``.

        Context keys: ``order_id``, ``vendor_id``, ``deliverer_id``,
        ``total_price``, ``delivery_fee``, ``completed_at``.
        """

    def on_order_rollback(self, ctx: dict) -> None:
        """Called when an optimistic change was rolled back.

        Context keys: ``order_id``, ``target_status``, ``actor_id``,
        ``error_type``.
        """
