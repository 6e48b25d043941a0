"""Shared pytest fixtures for genjobs tests."""

import asyncio
import json
from typing import Any, Callable, Dict, Iterable, List

import httpx
import pytest

from genjobs.services.client import AsyncJobClient

BASE_URL = "https://api.test/api"


class FakeClock:
    """Simulated monotonic clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


class ScriptedAPI:
    """Fake remote API for ``httpx.MockTransport``.

    Requests whose path contains ``/fetch/`` are polls and are answered from
    ``poll_responses`` in order, then ``poll_default``; every other request is
    a submit answered with ``submit_response``. A scripted item may be a dict
    (sent as JSON with status 200), an ``httpx.Response``, an exception to
    raise, or a callable taking the request.
    """

    def __init__(
        self,
        submit_response: Any = None,
        poll_responses: Iterable[Any] = (),
        poll_default: Any = None,
    ) -> None:
        self.submit_response = submit_response
        self.poll_responses = list(poll_responses)
        self.poll_default = poll_default
        self.submits: List[Dict[str, Any]] = []
        self.submit_paths: List[str] = []
        self.polls: List[str] = []
        self.poll_bodies: List[Dict[str, Any]] = []
        self.in_flight: Dict[str, int] = {}
        self.max_in_flight: Dict[str, int] = {}

    def _next(self, request: httpx.Request) -> Any:
        body = json.loads(request.content) if request.content else {}
        if "/fetch/" in request.url.path:
            self.polls.append(request.url.path)
            self.poll_bodies.append(body)
            if self.poll_responses:
                return self.poll_responses.pop(0)
            return self.poll_default
        self.submits.append(body)
        self.submit_paths.append(request.url.path)
        item = self.submit_response
        if isinstance(item, list):
            return item.pop(0)
        return item

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.in_flight[path] = self.in_flight.get(path, 0) + 1
        self.max_in_flight[path] = max(
            self.max_in_flight.get(path, 0), self.in_flight[path]
        )
        try:
            await asyncio.sleep(0)
            item = self._next(request)
            if callable(item):
                item = item(request)
            if isinstance(item, BaseException):
                raise item
            if isinstance(item, httpx.Response):
                return item
            return httpx.Response(200, json=item)
        finally:
            self.in_flight[path] -= 1


@pytest.fixture
def fake_clock() -> FakeClock:
    """Simulated clock shared by a client and its test."""
    return FakeClock()


@pytest.fixture
def make_client(fake_clock: FakeClock) -> Callable[..., AsyncJobClient]:
    """Build an AsyncJobClient wired to a ScriptedAPI and the fake clock.

    Returns:
        Factory taking the ScriptedAPI plus AsyncJobClient keyword overrides.
    """

    def factory(api: ScriptedAPI, **overrides: Any) -> AsyncJobClient:
        options: Dict[str, Any] = {
            "http_client": httpx.AsyncClient(transport=httpx.MockTransport(api)),
            "max_attempts": 3,
            "backoff_base": 0.5,
            "backoff_max": 8.0,
            "sleep": fake_clock.sleep,
            "clock": fake_clock,
        }
        options.update(overrides)
        return AsyncJobClient(base_url=BASE_URL, api_key="test-key", **options)

    return factory


@pytest.fixture
def scripted_api() -> Callable[..., ScriptedAPI]:
    """Factory for ScriptedAPI instances."""
    return ScriptedAPI


@pytest.fixture
def arun() -> Callable[[Any], Any]:
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run


@pytest.fixture
def tmp_db(tmp_path) -> str:
    """Path for a throwaway sqlite database."""
    return str(tmp_path / "genjobs-test.db")
