import asyncio
import time
from typing import Any, Optional

import httpx

from genjobs.core.config import (
    API_BASE_URL,
    API_KEY,
    BACKOFF_BASE_SEC,
    BACKOFF_MAX_SEC,
    MAX_ATTEMPTS,
)
from genjobs.core.logging import logger
from genjobs.schemas.generation import (
    Cancelled,
    GenerationRequest,
    GenerationResult,
    JobHandle,
    Pending,
    Timeout,
    TransportError,
    UnexpectedResponse,
)
from genjobs.services.catalog import ENDPOINTS, derive_fetch_path, poll_settings_for
from genjobs.services.classify import classify_payload
from genjobs.services.transport import (
    DEFAULT_TIMEOUT,
    Clock,
    MalformedResponse,
    Sleep,
    TransportFailure,
    request_json,
)


class AsyncJobClient:
    """Submit generation requests and drive pending jobs to a terminal result.

    Every outcome, including transport failures and timeouts, is returned as
    a result value. Only transport failures are retried, inside a single
    call, with bounded exponential backoff.

    One ``httpx.AsyncClient`` is shared by all calls, so any number of
    ``resolve`` loops for different handles may run concurrently; each loop
    keeps at most one request in flight.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        api_key: str = API_KEY,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_base: float = BACKOFF_BASE_SEC,
        backoff_max: float = BACKOFF_MAX_SEC,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self._sleep = sleep
        self._clock = clock
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    async def __aenter__(self) -> "AsyncJobClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def endpoint_url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        spec = ENDPOINTS.get(endpoint)
        if spec is not None:
            endpoint = spec.path
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def fetch_url(self, endpoint: str, job_id: str) -> str:
        return self.endpoint_url(derive_fetch_path(endpoint).format(id=job_id))

    async def _call(
        self,
        url: str,
        body: dict,
        deadline: Optional[float] = None,
    ) -> GenerationResult:
        try:
            payload = await request_json(
                self._client,
                "POST",
                url,
                json_body=body,
                max_attempts=self.max_attempts,
                backoff_base=self.backoff_base,
                backoff_max=self.backoff_max,
                sleep=self._sleep,
                clock=self._clock,
                deadline=deadline,
            )
        except TransportFailure as exc:
            logger.error(f"request to {url} failed after {exc.attempts} attempt(s): {exc}")
            return TransportError(
                message=str(exc), attempts=exc.attempts, status_code=exc.status_code
            )
        except MalformedResponse as exc:
            return UnexpectedResponse(message=str(exc), raw=exc.text)
        return classify_payload(payload)

    async def submit(self, request: GenerationRequest) -> GenerationResult:
        url = self.endpoint_url(request.endpoint)
        result = await self._call(url, request.body(self.api_key))
        if isinstance(result, Pending) and result.handle.fetch_url is None:
            try:
                fetch_url = self.fetch_url(request.endpoint, result.handle.id)
            except ValueError as exc:
                result = UnexpectedResponse(message=str(exc), raw=result.model_dump())
            else:
                result = Pending(
                    handle=result.handle.model_copy(update={"fetch_url": fetch_url})
                )
        logger.info(f"submitted {request.endpoint}: {result.kind}")
        return result

    async def poll(
        self, handle: JobHandle, deadline: Optional[float] = None
    ) -> GenerationResult:
        if not handle.fetch_url:
            raise ValueError(f"job {handle.id} has no fetch URL to poll")
        body = {"key": self.api_key} if self.api_key else {}
        return await self._call(handle.fetch_url, body, deadline=deadline)

    async def resolve(
        self,
        handle: JobHandle,
        poll_interval: float,
        timeout: float,
        cancel: Optional[asyncio.Event] = None,
    ) -> GenerationResult:
        if poll_interval <= 0 or timeout <= 0:
            raise ValueError("poll_interval and timeout must be positive")
        if not handle.fetch_url:
            raise ValueError(f"job {handle.id} has no fetch URL to poll")

        started = self._clock()
        deadline = started + timeout
        polls = 0
        while True:
            if cancel is not None and cancel.is_set():
                logger.info(f"job {handle.id} polling cancelled after {polls} poll(s)")
                return Cancelled(handle=handle, polls=polls)
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await self._sleep(min(poll_interval, remaining))
            if cancel is not None and cancel.is_set():
                logger.info(f"job {handle.id} polling cancelled after {polls} poll(s)")
                return Cancelled(handle=handle, polls=polls)
            if self._clock() >= deadline:
                break
            polls += 1
            result = await self.poll(handle, deadline=deadline)
            if not isinstance(result, Pending):
                logger.info(f"job {handle.id} finished after {polls} poll(s): {result.kind}")
                return result

        elapsed = self._clock() - started
        logger.warning(f"job {handle.id} timed out after {elapsed:.1f}s and {polls} poll(s)")
        return Timeout(handle=handle, elapsed=elapsed, polls=polls)

    async def generate(
        self,
        request: GenerationRequest,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> GenerationResult:
        if cancel is not None and cancel.is_set():
            return Cancelled()
        result = await self.submit(request)
        if not isinstance(result, Pending):
            return result
        defaults = poll_settings_for(request.endpoint)
        return await self.resolve(
            result.handle,
            poll_interval if poll_interval is not None else defaults.poll_interval,
            timeout if timeout is not None else defaults.timeout,
            cancel=cancel,
        )
