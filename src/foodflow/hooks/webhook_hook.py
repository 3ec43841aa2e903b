"""Webhook hook streaming order events to an HTTP endpoint."""

from __future__ import annotations

import json
import logging
from typing import Any

from foodflow.hooks.base import Hook

log = logging.getLogger(__name__)


class OrderWebhookHook(Hook):
    """POSTs order lifecycle events as JSON to ``config.webhook_url``."""

    def __init__(self, config: dict | None = None) -> None:
        super().__init__(config)
        self._url = self.config.get("webhook_url", "")
        self._timeout = self.config.get("timeout_seconds", 10)

    @classmethod
    def validate_config(cls, config: dict) -> None:
        url = config.get("webhook_url", "")
        if url and not url.startswith(("http://", "https://")):
            msg = f"webhook_url must be an http(s) URL, got {url!r}"
            raise ValueError(msg)

    def _send(self, event: str, data: dict[str, Any]) -> None:
        if not self._url:
            return
        import urllib.request

        payload = json.dumps({"event": event, "data": data}, default=str).encode("utf-8")
        req = urllib.request.Request(  # noqa: S310
            self._url,
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=self._timeout):  # noqa: S310
            log.debug("Delivered %s webhook for order %s", event, data.get("order_id"))

    def on_order_transition(self, ctx: dict[str, Any]) -> None:
        self._send("order.transition", ctx)

    def on_order_completion(self, ctx: dict[str, Any]) -> None:
        self._send("order.completion", ctx)

    def on_order_claim_lost(self, ctx: dict[str, Any]) -> None:
        self._send("order.claim_lost", ctx)
