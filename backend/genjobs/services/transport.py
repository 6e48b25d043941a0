import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from genjobs.core.config import (
    BACKOFF_BASE_SEC,
    BACKOFF_MAX_SEC,
    CONNECT_TIMEOUT_SEC,
    MAX_ATTEMPTS,
    REQUEST_TIMEOUT_SEC,
)
from genjobs.core.logging import logger

DEFAULT_TIMEOUT = httpx.Timeout(REQUEST_TIMEOUT_SEC, connect=CONNECT_TIMEOUT_SEC)

Sleep = Callable[[float], Awaitable[Any]]
Clock = Callable[[], float]

_NO_BODY = object()


class TransportFailure(RuntimeError):
    def __init__(
        self, message: str, attempts: int, status_code: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.status_code = status_code


class MalformedResponse(RuntimeError):
    def __init__(self, message: str, status_code: int, text: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.text = text


def build_headers() -> Dict[str, str]:
    return {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }


def backoff_delay(
    attempt: int, base: float, cap: float, retry_after: Optional[str] = None
) -> float:
    if retry_after and retry_after.isdigit():
        return min(cap, max(base, float(retry_after)))
    return min(cap, base * (2 ** (attempt - 1)))


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return _NO_BODY
    try:
        return response.json()
    except ValueError:
        return _NO_BODY


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    json_body: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    max_attempts: int = MAX_ATTEMPTS,
    backoff_base: float = BACKOFF_BASE_SEC,
    backoff_max: float = BACKOFF_MAX_SEC,
    sleep: Sleep = asyncio.sleep,
    clock: Optional[Clock] = None,
    deadline: Optional[float] = None,
) -> Any:
    """Send one logical request and return its parsed JSON body.

    Request errors (connection, DNS, TLS, timeouts, decoding) and non-2xx
    responses without a parseable body are retried with exponential backoff.
    Any response that carries JSON is returned as-is regardless of HTTP
    status; interpreting it is the caller's job.
    """
    attempts_allowed = max(1, max_attempts)
    attempt = 0
    while True:
        attempt += 1
        status_code: Optional[int] = None
        retry_after: Optional[str] = None
        try:
            response = await client.request(
                method,
                url,
                headers=headers or build_headers(),
                json=json_body,
            )
        except httpx.RequestError as exc:
            detail = f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
        else:
            body = _parse_body(response)
            if body is not _NO_BODY:
                return body
            if response.is_success:
                raise MalformedResponse(
                    f"HTTP {response.status_code} response is not JSON",
                    response.status_code,
                    response.text,
                )
            status_code = response.status_code
            retry_after = response.headers.get("Retry-After")
            detail = f"HTTP {status_code}: {response.text.strip()[:200] or response.reason_phrase}"

        if attempt >= attempts_allowed:
            raise TransportFailure(detail, attempt, status_code)
        delay = backoff_delay(attempt, backoff_base, backoff_max, retry_after)
        if deadline is not None and clock is not None and clock() + delay >= deadline:
            raise TransportFailure(
                f"{detail} (no time left to retry)", attempt, status_code
            )
        logger.warning(
            f"{method} {url} failed (attempt {attempt}/{attempts_allowed}): "
            f"{detail}; retrying in {delay:.1f}s"
        )
        await sleep(delay)
