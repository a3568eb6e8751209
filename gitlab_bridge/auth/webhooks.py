"""Authenticity checks for inbound GitLab webhook deliveries.

Two independent schemes are supported and chosen by which header a delivery
carries: the shared secret in ``X-Gitlab-Token`` or an HMAC-SHA256 signature
of the raw body.  All secret comparisons go through :func:`hmac.compare_digest`.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
from typing import Any, List, Literal, Mapping, Optional, Sequence, Tuple, Union, get_args

from .errors import WebhookSignatureError
from .models import SecretStrengthReport, WebhookMetadata, WebhookValidationResult

logger = logging.getLogger(__name__)

WEBHOOK_TOKEN_HEADER = "X-Gitlab-Token"
WEBHOOK_EVENT_HEADER = "X-Gitlab-Event"
WEBHOOK_INSTANCE_HEADER = "X-Gitlab-Instance"
REQUEST_ID_HEADER = "X-Request-Id"
WEBHOOK_SIGNATURE_HEADERS: Tuple[str, ...] = (
    "X-Gitlab-Signature-256",
    "X-Hub-Signature-256",
)

SIGNATURE_PREFIX = "sha256="
SIGNATURE_PATTERN = re.compile(r"[0-9a-fA-F]{64}")

WebhookEvent = Literal[
    "Push Hook",
    "Tag Push Hook",
    "Issue Hook",
    "Confidential Issue Hook",
    "Note Hook",
    "Confidential Note Hook",
    "Merge Request Hook",
    "Wiki Page Hook",
    "Pipeline Hook",
    "Job Hook",
    "Deployment Hook",
    "Feature Flag Hook",
    "Release Hook",
    "Emoji Hook",
    "Member Hook",
    "Subgroup Hook",
]

WEBHOOK_EVENTS: Tuple[str, ...] = get_args(WebhookEvent)

COMMON_SECRETS: Tuple[str, ...] = (
    "your-webhook-secret-here",
    "secret",
    "password",
    "webhook",
    "test",
)

HeaderValue = Union[str, Sequence[str], None]
Headers = Mapping[str, HeaderValue]
Payload = Union[str, bytes]


def get_header(headers: Headers, *names: str) -> Optional[str]:
    """Return the first value of the first header in ``names`` that is present.

    Lookup is case-insensitive; list values yield their first element.
    """
    lowered = {key.lower(): value for key, value in headers.items()}
    for name in names:
        value = lowered.get(name.lower())
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value:
            return value
    return None


def _to_bytes(value: Payload) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def validate_webhook_token(received_token: Any, expected_secret: Any) -> bool:
    """Compare a received webhook token with the configured secret.

    Tokens of different length still go through a full-width comparison of
    zero-padded buffers before ``False`` is returned.
    """
    if not isinstance(received_token, str) or not isinstance(expected_secret, str):
        return False
    if not received_token or not expected_secret:
        return False

    received = received_token.encode("utf-8")
    expected = expected_secret.encode("utf-8")

    if len(received) != len(expected):
        width = max(len(received), len(expected))
        hmac.compare_digest(received.ljust(width, b"\0"), expected.ljust(width, b"\0"))
        return False

    return hmac.compare_digest(received, expected)


def compute_webhook_signature(payload: Payload, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``payload`` keyed by ``secret``."""
    return hmac.new(_to_bytes(secret), _to_bytes(payload), hashlib.sha256).hexdigest()


def validate_webhook_signature(payload: Payload, signature: str, secret: str) -> bool:
    """Verify an HMAC-SHA256 ``signature`` of ``payload``.

    ``signature`` may carry a ``sha256=`` prefix.  Malformed signatures are
    rejected, never raised.
    """
    if not payload or not signature or not secret:
        return False

    if signature.startswith(SIGNATURE_PREFIX):
        signature = signature[len(SIGNATURE_PREFIX) :]

    if not SIGNATURE_PATTERN.fullmatch(signature):
        return False

    received = bytes.fromhex(signature)
    expected = bytes.fromhex(compute_webhook_signature(payload, secret))
    return hmac.compare_digest(received, expected)


def validate_webhook_request(
    headers: Headers, body: Payload, secret: Optional[str]
) -> WebhookValidationResult:
    """Validate a webhook delivery and resolve its event type."""
    if not secret or not secret.strip():
        return WebhookValidationResult(valid=False, reason="Webhook secret not configured")

    token = get_header(headers, WEBHOOK_TOKEN_HEADER)
    if token is not None:
        if not validate_webhook_token(token, secret):
            return WebhookValidationResult(valid=False, reason="Invalid webhook token")
    else:
        signature = get_header(headers, *WEBHOOK_SIGNATURE_HEADERS)
        if signature is None:
            return WebhookValidationResult(
                valid=False, reason="Missing webhook token header"
            )
        if not validate_webhook_signature(body, signature, secret):
            return WebhookValidationResult(valid=False, reason="Invalid webhook signature")

    event = get_header(headers, WEBHOOK_EVENT_HEADER)
    if event is not None and event not in WEBHOOK_EVENTS:
        return WebhookValidationResult(
            valid=False, event=event, reason=f"Unknown webhook event type: {event}"
        )

    return WebhookValidationResult(valid=True, event=event)


def require_valid_webhook(headers: Headers, body: Payload, secret: Optional[str]) -> Optional[str]:
    """Validate a webhook delivery and return its event.

    Raises:
        WebhookSignatureError: With the rejection reason if validation fails.
    """
    result = validate_webhook_request(headers, body, secret)
    if not result.valid:
        logger.warning(f"Rejected webhook delivery: {result.reason}")
        raise WebhookSignatureError(result.reason)
    return result.event


def extract_webhook_metadata(headers: Headers) -> WebhookMetadata:
    return WebhookMetadata(
        event=get_header(headers, WEBHOOK_EVENT_HEADER),
        instance=get_header(headers, WEBHOOK_INSTANCE_HEADER),
        request_id=get_header(headers, REQUEST_ID_HEADER),
    )


def validate_secret_strength(secret: Optional[str]) -> SecretStrengthReport:
    """Audit a webhook secret and collect every weakness found.

    This is advisory; nothing here blocks a delivery.
    """
    if not secret:
        return SecretStrengthReport(valid=False, issues=["Secret is empty"])

    issues: List[str] = []
    if len(secret) < 32:
        issues.append("Secret should be at least 32 characters")
    if secret.isascii() and secret.isalpha():
        issues.append("Secret should contain mixed character types")
    if len(secret) > 1 and len(set(secret)) == 1:
        issues.append("Secret should not be a repeated character")
    lowered = secret.lower()
    if any(common in lowered for common in COMMON_SECRETS):
        issues.append("Secret appears to be a placeholder or common value")

    return SecretStrengthReport(valid=not issues, issues=issues)


__all__ = [
    "WEBHOOK_TOKEN_HEADER",
    "WEBHOOK_EVENT_HEADER",
    "WEBHOOK_INSTANCE_HEADER",
    "REQUEST_ID_HEADER",
    "WEBHOOK_SIGNATURE_HEADERS",
    "WEBHOOK_EVENTS",
    "WebhookEvent",
    "get_header",
    "validate_webhook_token",
    "compute_webhook_signature",
    "validate_webhook_signature",
    "validate_webhook_request",
    "require_valid_webhook",
    "extract_webhook_metadata",
    "validate_secret_strength",
]
