# swishmatch/integrations/webhook.py
from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import Any

import httpx

from .base import EventSink, SinkDeliveryResult

log = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-GoSwish-Signature"


class WebhookSink(EventSink):
    """POSTs {"type", "data"} as JSON; signs the body with HMAC-SHA256 when a secret is set."""

    def __init__(self, url: str, secret: str | None = None, timeout_s: int = 20) -> None:
        self.url = url
        self.secret = secret
        self.timeout_s = timeout_s

    def sign(self, body: bytes) -> str | None:
        if not self.secret:
            return None
        return hmac.new(self.secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

    async def deliver(self, event_type: str, payload: dict[str, Any]) -> SinkDeliveryResult:
        body = json.dumps({"type": event_type, "data": payload}, default=str).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        sig = self.sign(body)
        if sig:
            headers[SIGNATURE_HEADER] = sig

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                r = await client.post(self.url, content=body, headers=headers)
        except httpx.HTTPError as e:
            log.warning("webhook delivery to %s failed: %s", self.url, e)
            return SinkDeliveryResult(ok=False, error=str(e))

        if 200 <= r.status_code < 300:
            return SinkDeliveryResult(ok=True)
        return SinkDeliveryResult(ok=False, error=f"HTTP {r.status_code}: {r.text[:500]}")
