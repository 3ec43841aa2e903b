"""Problem types for order workflow failures.

Provides :class:`OrderProblem`, an exception that carries a URN error
type, a developer-facing detail, a short user-facing message and a
retryable flag, plus the store-level exceptions raised by
:class:`~foodflow.store.base.OrderStore` implementations.

Usage::

    raise OrderProblem(GUARD_FAILED, "claim matched zero rows",
                       user_message="Order already accepted by someone else")
"""

from __future__ import annotations

import logging
from typing import Any

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Error-type URNs
# ---------------------------------------------------------------------------
_P = "urn:foodflow:error:"

GUARD_FAILED = _P + "guardFailed"
INVALID_TRANSITION = _P + "invalidTransition"
MALFORMED = _P + "malformed"
ORDER_NOT_FOUND = _P + "orderNotFound"
PAYMENT_REQUIRED = _P + "paymentRequired"
UNAUTHORIZED = _P + "unauthorized"
UNAVAILABLE = _P + "unavailable"

_DEFAULT_USER_MESSAGES: dict[str, str] = {
    GUARD_FAILED: "Order no longer available",
    INVALID_TRANSITION: "Could not update order",
    MALFORMED: "Could not update order",
    ORDER_NOT_FOUND: "Order no longer available",
    PAYMENT_REQUIRED: "Confirm payment before completing the order",
    UNAUTHORIZED: "You are not allowed to do that",
    UNAVAILABLE: "Could not reach the server, please try again",
}

_RETRYABLE = frozenset({UNAVAILABLE})


# ---------------------------------------------------------------------------
# Problem exception
# ---------------------------------------------------------------------------


class OrderProblem(Exception):
    """A recoverable, user-visible workflow failure.

    Parameters
    ----------
    error_type:
        One of the URN constants above.
    detail:
        Developer-facing explanation (logged, never shown).
    user_message:
        Short text for the actor; defaults per *error_type*.
    retryable:
        Whether re-invoking the same action may succeed; defaults to
        ``True`` only for :data:`UNAVAILABLE`.
    order_id:
        The order concerned, when known.

    """

    def __init__(
        self,
        error_type: str,
        detail: str,
        *,
        user_message: str | None = None,
        retryable: bool | None = None,
        order_id: Any = None,  # noqa: ANN401
    ) -> None:
        self.error_type = error_type
        self.detail = detail
        self.user_message = user_message or _DEFAULT_USER_MESSAGES.get(
            error_type, "Could not update order"
        )
        self.retryable = error_type in _RETRYABLE if retryable is None else retryable
        self.order_id = order_id
        super().__init__(detail)

    @property
    def kind(self) -> str:
        """Short type name, e.g. ``"guardFailed"``."""
        return self.error_type.removeprefix(_P)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "type": self.error_type,
            "detail": self.detail,
            "message": self.user_message,
            "retryable": self.retryable,
        }
        if self.order_id is not None:
            body["order_id"] = str(self.order_id)
        return body


# ---------------------------------------------------------------------------
# Store-level failures
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """Base class for failures reported by an order store."""


class StoreUnavailableError(StoreError):
    """Transient failure: connection lost, timeout, pool exhausted."""


class StorePermissionError(StoreError):
    """The data layer refused the write (row-level security)."""
