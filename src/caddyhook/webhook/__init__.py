"""GitHub webhook ingress: signature checks, event routing and HTTP endpoint."""

from caddyhook.webhook.events import PushEvent
from caddyhook.webhook.router import (
    DispatchResult,
    EventDispatcher,
    WebhookError,
    WebhookParseError,
    WebhookRouter,
    WebhookSignatureError,
)

__all__ = [
    "DispatchResult",
    "EventDispatcher",
    "PushEvent",
    "WebhookError",
    "WebhookParseError",
    "WebhookRouter",
    "WebhookSignatureError",
]
