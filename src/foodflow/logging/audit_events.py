"""Structured order audit events.

Emits standardized events on the ``foodflow.audit`` logger with a
consistent ``event_id`` field for filtering.  Customer data is
redacted via :func:`~foodflow.logging.sanitize.sanitize_for_logs`
before emission.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from foodflow.logging.sanitize import sanitize_for_logs

if TYPE_CHECKING:
    from uuid import UUID

audit_log = logging.getLogger("foodflow.audit")


def _emit(
    event_id: str,
    message: str,
    *args: Any,  # noqa: ANN401
    order_id: UUID | None = None,
    severity: str = "INFO",
    **extra: Any,  # noqa: ANN401
) -> None:
    """Emit a structured audit event with sanitized *extra* fields."""
    data: dict[str, object] = {
        "event_id": event_id,
        "severity": severity,
    }
    if order_id is not None:
        data["order_id"] = str(order_id)
    data.update(sanitize_for_logs(extra))
    level = getattr(logging, severity.upper(), logging.INFO)
    audit_log.log(level, message, *args, extra=data)


def transition_applied(
    order_id: UUID,
    from_status: str,
    to_status: str,
    actor_id: UUID,
    actor_role: str,
) -> None:
    _emit(
        "foodflow.audit.transition_applied",
        "Order %s: %s -> %s",
        order_id,
        from_status,
        to_status,
        order_id=order_id,
        from_status=from_status,
        to_status=to_status,
        actor_id=str(actor_id),
        actor_role=actor_role,
    )


def claim_lost(order_id: UUID, actor_id: UUID, current_status: str | None) -> None:
    """Log a deliverer claim that matched no row."""
    _emit(
        "foodflow.audit.claim_lost",
        "Claim of order %s by %s lost",
        order_id,
        actor_id,
        order_id=order_id,
        actor_id=str(actor_id),
        current_status=current_status,
    )


def transition_denied(
    order_id: UUID,
    target_status: str,
    actor_id: UUID,
    actor_role: str,
    reason: str,
) -> None:
    """Log a transition refused before or by the store."""
    _emit(
        "foodflow.audit.transition_denied",
        "Transition of order %s to %s denied: %s",
        order_id,
        target_status,
        reason,
        order_id=order_id,
        target_status=target_status,
        actor_id=str(actor_id),
        actor_role=actor_role,
        reason=reason,
        severity="WARNING",
    )


def rollback(order_id: UUID, target_status: str, error_type: str) -> None:
    _emit(
        "foodflow.audit.rollback",
        "Optimistic change of order %s to %s rolled back (%s)",
        order_id,
        target_status,
        error_type,
        order_id=order_id,
        target_status=target_status,
        error_type=error_type,
    )


def subscription_opened(screen: str, scope: str) -> None:
    _emit(
        "foodflow.audit.subscription_opened",
        "Screen %s subscribed to %s",
        screen,
        scope,
        screen_name=screen,
        scope=scope,
        severity="DEBUG",
    )


def subscription_closed(screen: str) -> None:
    _emit(
        "foodflow.audit.subscription_closed",
        "Screen %s unsubscribed",
        screen,
        screen_name=screen,
        severity="DEBUG",
    )
