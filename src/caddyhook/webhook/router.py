"""GitHub webhook verification and event dispatch.

Signature: ``X-Hub-Signature-256: sha256=<hex>`` is HMAC-SHA256 of the raw
body keyed with the shared secret. Deliveries that only carry the legacy
``X-Hub-Signature: sha1=<hex>`` header are checked with HMAC-SHA1.

Callbacks are registered per event name and awaited with
``(delivery_id, event_name, event)``. A callback that raises turns the
delivery into an ``error`` result; it never propagates to the HTTP layer.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from caddyhook.logging import get_logger
from caddyhook.webhook.events import parse_event

log = get_logger("caddyhook.webhook.router")

HEADER_EVENT = "X-GitHub-Event"
HEADER_DELIVERY = "X-GitHub-Delivery"
HEADER_SIGNATURE_256 = "X-Hub-Signature-256"
HEADER_SIGNATURE_SHA1 = "X-Hub-Signature"

EventCallback = Callable[[str, str, Any], Awaitable[Any]]


class WebhookError(Exception):
    """Base exception for webhook errors."""


class WebhookSignatureError(WebhookError):
    """Raised when the delivery signature is missing or wrong."""


class WebhookParseError(WebhookError):
    """Raised when the delivery cannot be parsed."""


@dataclass
class DispatchResult:
    """What happened to one delivery."""

    status: str  # "processed" | "ignored" | "pong" | "error"
    event: str
    delivery_id: str
    result: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result = self.result
        if hasattr(result, "to_dict"):
            result = result.to_dict()
        return {
            "status": self.status,
            "event": self.event,
            "delivery_id": self.delivery_id,
            "result": result,
            "error": self.error,
        }


class EventDispatcher(Protocol):
    """Anything that can verify and dispatch a signed webhook delivery."""

    async def handle(self, headers: Mapping[str, str], body: bytes) -> DispatchResult: ...


def compute_signature(secret: str, body: bytes, algorithm: str = "sha256") -> str:
    """Return the header value GitHub would send for *body*."""
    digest = hmac.new(secret.encode("utf-8"), body, getattr(hashlib, algorithm)).hexdigest()
    return f"{algorithm}={digest}"


class WebhookRouter:
    """Verifies GitHub deliveries and routes them to registered callbacks."""

    def __init__(self, secret: str) -> None:
        self._secret = secret
        self._callbacks: dict[str, list[EventCallback]] = {}

    def on(self, event_name: str, callback: EventCallback) -> None:
        """Register *callback* for deliveries of type *event_name*."""
        self._callbacks.setdefault(event_name, []).append(callback)

    def on_push(self, callback: EventCallback) -> None:
        self.on("push", callback)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(self, headers: Mapping[str, str], body: bytes) -> None:
        """Check the delivery signature.

        Raises:
            WebhookSignatureError: Signature header missing, malformed or wrong.
        """
        header = headers.get(HEADER_SIGNATURE_256)
        algorithm = "sha256"
        if not header:
            header = headers.get(HEADER_SIGNATURE_SHA1)
            algorithm = "sha1"
        if not header:
            raise WebhookSignatureError("missing signature header")

        prefix, _, sent = header.partition("=")
        if prefix != algorithm or not sent:
            raise WebhookSignatureError(f"malformed signature header (expected {algorithm}=...)")

        # Header bytes may be arbitrary; compare_digest only accepts ASCII str
        expected = compute_signature(self._secret, body, algorithm).encode("ascii")
        received = f"{algorithm}={sent}".encode("utf-8", "surrogateescape")
        if not hmac.compare_digest(expected, received):
            raise WebhookSignatureError("signature mismatch")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def handle(self, headers: Mapping[str, str], body: bytes) -> DispatchResult:
        """Verify, parse and dispatch one delivery.

        Raises:
            WebhookSignatureError: The delivery is not authentic.
            WebhookParseError: Event header or payload is unusable.
        """
        self.verify(headers, body)

        event_name = headers.get(HEADER_EVENT, "").strip().lower()
        if not event_name:
            raise WebhookParseError(f"missing {HEADER_EVENT} header")
        delivery_id = headers.get(HEADER_DELIVERY, "unknown")

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise WebhookParseError(f"invalid JSON payload: {exc}") from exc
        if not isinstance(payload, dict):
            raise WebhookParseError("payload must be a JSON object")

        if event_name == "ping":
            log.info("webhook_ping", delivery_id=delivery_id, zen=payload.get("zen"))
            return DispatchResult(status="pong", event=event_name, delivery_id=delivery_id)

        callbacks = self._callbacks.get(event_name)
        if not callbacks:
            log.debug("webhook_event_ignored", github_event=event_name, delivery_id=delivery_id)
            return DispatchResult(status="ignored", event=event_name, delivery_id=delivery_id)

        try:
            event = parse_event(event_name, payload)
        except ValueError as exc:
            raise WebhookParseError(str(exc)) from exc

        result = DispatchResult(status="processed", event=event_name, delivery_id=delivery_id)
        with structlog.contextvars.bound_contextvars(
            delivery_id=delivery_id, github_event=event_name
        ):
            for callback in callbacks:
                try:
                    result.result = await callback(delivery_id, event_name, event)
                except Exception as exc:
                    log.exception("webhook_callback_failed", error=str(exc))
                    result.status = "error"
                    result.error = str(exc)
                    break
        return result
