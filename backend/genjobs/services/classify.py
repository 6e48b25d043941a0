"""Three-way classification shared by submit, poll and webhook payloads."""

import json
from typing import Any, Dict, Optional

from genjobs.schemas.generation import (
    EmptyOutput,
    Failure,
    GenerationResult,
    JobHandle,
    MissingJobId,
    Pending,
    Success,
    UnexpectedResponse,
)

SUCCESS_STATUSES = frozenset({"success"})
FAILURE_STATUSES = frozenset({"error", "failed"})
PENDING_STATUSES = frozenset({"processing"})

FALLBACK_FAILURE_MESSAGE = "remote service reported a failure without a message"

# Keys consumed by classification; everything else lands in Success.metadata.
_RESERVED_KEYS = frozenset({"status", "output"})


def _failure_message(body: Dict[str, Any]) -> str:
    # The platform occasionally misspells the key.
    raw = body.get("message")
    if raw is None:
        raw = body.get("messege")
    if raw is None:
        return FALLBACK_FAILURE_MESSAGE
    if isinstance(raw, (dict, list)):
        return json.dumps(raw, sort_keys=True)
    text = str(raw).strip()
    return text or FALLBACK_FAILURE_MESSAGE


def _job_id(body: Dict[str, Any]) -> Optional[str]:
    raw = body.get("id")
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, str)):
        value = str(raw).strip()
        return value or None
    return None


def _eta(body: Dict[str, Any]) -> Optional[float]:
    raw = body.get("eta")
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    return float(raw)


def _fetch_url(body: Dict[str, Any]) -> Optional[str]:
    raw = body.get("fetch_result")
    if isinstance(raw, str) and raw.startswith(("http://", "https://")):
        return raw
    return None


def classify_payload(body: Any) -> GenerationResult:
    if not isinstance(body, dict):
        return UnexpectedResponse(message="response body is not a JSON object", raw=body)

    status = body.get("status")
    if not isinstance(status, str):
        return UnexpectedResponse(message="response carries no status field", raw=body)

    if status in SUCCESS_STATUSES:
        outputs = body.get("output")
        if outputs is None or outputs == []:
            return EmptyOutput(raw=body)
        if not isinstance(outputs, list) or not all(
            isinstance(url, str) and url for url in outputs
        ):
            return UnexpectedResponse(
                message="output is not a list of URLs", raw=body
            )
        metadata = {k: v for k, v in body.items() if k not in _RESERVED_KEYS}
        return Success(outputs=list(outputs), metadata=metadata)

    if status in FAILURE_STATUSES:
        code = body.get("code")
        return Failure(
            message=_failure_message(body),
            remote_code=code if isinstance(code, (int, str)) and not isinstance(code, bool) else None,
        )

    if status in PENDING_STATUSES:
        job_id = _job_id(body)
        if job_id is None:
            return MissingJobId(raw=body)
        return Pending(
            handle=JobHandle(id=job_id, eta=_eta(body), fetch_url=_fetch_url(body))
        )

    return UnexpectedResponse(message=f"unrecognized status: {status!r}", raw=body)

