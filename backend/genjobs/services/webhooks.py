from typing import Any, Optional

from genjobs.core.config import WEBHOOK_BASE_URL
from genjobs.schemas.generation import (
    GenerationResult,
    Pending,
    TokenMismatch,
    UnexpectedResponse,
)
from genjobs.services.classify import classify_payload


def webhook_url_for(track_id: str, base_url: Optional[str] = None) -> Optional[str]:
    base = WEBHOOK_BASE_URL if base_url is None else base_url
    if not base:
        return None
    return f"{base.rstrip('/')}/webhooks/{track_id}"


def _received_token(notification: Any) -> Optional[str]:
    raw = notification.get("track_id")
    if raw is None or isinstance(raw, bool):
        return None
    return str(raw)


def match_webhook(notification: Any, expected_token: str) -> GenerationResult:
    """Correlate a webhook payload with its request and classify it.

    Pure: no I/O and no deduplication. A pending notification is anomalous
    because deliveries are only made for finished jobs.
    """
    if not isinstance(notification, dict):
        return UnexpectedResponse(
            message="webhook payload is not a JSON object", raw=notification
        )
    received = _received_token(notification)
    if received != expected_token:
        return TokenMismatch(expected=expected_token, received=received)

    result = classify_payload(notification)
    if isinstance(result, Pending):
        return UnexpectedResponse(
            message="webhook notification reports a job still processing",
            raw=notification,
        )
    return result
