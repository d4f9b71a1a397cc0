"""GitHub webhook request validation and parsing.

When a secret is configured every delivery must carry a valid
``X-Hub-Signature-256`` header (HMAC-SHA256 of the raw body). Without a
secret, deliveries are trusted as-is.
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

HEADER_EVENT = "X-GitHub-Event"
HEADER_SIGNATURE = "X-Hub-Signature-256"
HEADER_DELIVERY = "X-GitHub-Delivery"

SIGNATURE_PREFIX = "sha256="


class WebhookError(Exception):
    """Base exception for webhook errors."""


class WebhookValidationError(WebhookError):
    """Raised when webhook signature validation fails."""


class WebhookParseError(WebhookError):
    """Raised when webhook payload cannot be parsed."""


def compute_signature(secret: str, body: bytes) -> str:
    """Return the ``sha256=...`` signature GitHub would send for body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


class WebhookHandler:
    """Validates and parses GitHub webhook deliveries.

    Attributes:
        secret: The webhook secret, or None to skip signature validation.
    """

    def __init__(self, secret: Optional[str] = None) -> None:
        self.secret = secret or None

    def validate_signature(self, headers: Mapping[str, str], body: bytes) -> bool:
        """Check the delivery's HMAC-SHA256 signature.

        Returns:
            True if no secret is configured or the signature matches.
        """
        if self.secret is None:
            return True

        signature_header = headers.get(HEADER_SIGNATURE, "")
        if not signature_header:
            logger.warning("Missing webhook signature header")
            return False

        if not signature_header.startswith(SIGNATURE_PREFIX):
            logger.warning("Invalid signature format (expected sha256=...)")
            return False

        return hmac.compare_digest(compute_signature(self.secret, body), signature_header)

    def parse(self, headers: Mapping[str, str], body: bytes) -> Dict[str, Any]:
        """Validate a delivery and return its JSON payload.

        Args:
            headers: HTTP headers of the delivery.
            body: Raw request body.

        Returns:
            The decoded payload object.

        Raises:
            WebhookValidationError: If the signature is invalid.
            WebhookParseError: If the body is not a JSON object.
        """
        if not self.validate_signature(headers, body):
            raise WebhookValidationError("Invalid webhook signature")

        try:
            payload: Any = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise WebhookParseError(f"Invalid JSON payload: {e}") from e

        if not isinstance(payload, dict):
            raise WebhookParseError(
                f"Invalid payload: expected object, got {type(payload).__name__}"
            )

        logger.debug(
            "Webhook received",
            extra={
                "github_event": headers.get(HEADER_EVENT, "unknown"),
                "delivery_id": headers.get(HEADER_DELIVERY, "unknown"),
                "action": payload.get("action"),
            },
        )
        return payload

    @staticmethod
    def is_ping(headers: Mapping[str, str]) -> bool:
        """Return True for GitHub's hook-registration ping."""
        return headers.get(HEADER_EVENT, "") == "ping"
