"""GitHub webhook intake for the mirror.

- WebhookHandler: validates X-Hub-Signature-256 and parses JSON payloads
- WebhookReceiver: queues payloads and feeds them to the EventRouter one
  at a time from a single worker task
"""

from repomirror.webhook.handler import (
    WebhookError,
    WebhookHandler,
    WebhookParseError,
    WebhookValidationError,
    compute_signature,
)
from repomirror.webhook.receiver import WebhookReceiver

__all__ = [
    "WebhookError",
    "WebhookHandler",
    "WebhookParseError",
    "WebhookReceiver",
    "WebhookValidationError",
    "compute_signature",
]
