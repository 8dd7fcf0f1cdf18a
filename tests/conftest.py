"""
Shared fixtures for the WaveSpeed client tests.

FakeService scripts the prediction API behind httpx.MockTransport so no
test touches the network.
"""
from __future__ import annotations

import itertools
import json
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from wavespeed.infra.settings import Settings, clear_settings_cache
from wavespeed.inference.client import Client

TEST_API_KEY = "test-key"
TEST_BASE_URL = "https://api.test.local"
TEST_MODEL = "wavespeed-ai/z-image/turbo"


# ============================================================================
# Response builders
# ============================================================================


def prediction_payload(
    prediction_id: Optional[str] = "req-123",
    status: str = "processing",
    outputs: Optional[List[Any]] = None,
    error: Optional[str] = None,
    code: int = 200,
) -> Dict[str, Any]:
    """Build a submit/result response body."""
    data: Dict[str, Any] = {"status": status, "outputs": outputs or []}
    if prediction_id is not None:
        data["id"] = prediction_id
    if error is not None:
        data["error"] = error
    return {"code": code, "message": "success", "data": data}


# ============================================================================
# Fake service
# ============================================================================


class FakeService:
    """
    Scriptable stand-in for the prediction API.

    Each route holds a queue of steps. A step is a dict (200 JSON body),
    an httpx.Response, an exception instance (raised), or a callable taking
    the request and returning any of those. The last step repeats once the
    queue is exhausted.
    """

    def __init__(self):
        self.routes: Dict[str, List[Any]] = defaultdict(list)
        self.requests: Dict[str, List[httpx.Request]] = defaultdict(list)

    def on(self, route: str, *steps: Any) -> "FakeService":
        self.routes[route].extend(steps)
        return self

    def on_submit(self, *steps: Any) -> "FakeService":
        return self.on("submit", *steps)

    def on_result(self, *steps: Any) -> "FakeService":
        return self.on("result", *steps)

    def on_upload(self, *steps: Any) -> "FakeService":
        return self.on("upload", *steps)

    def count(self, route: str) -> int:
        return len(self.requests[route])

    def submitted_bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests["submit"]]

    @staticmethod
    def _route(request: httpx.Request) -> str:
        path = request.url.path
        if path.endswith("/media/upload/binary"):
            return "upload"
        if path.endswith("/result"):
            return "result"
        return "submit"

    def _next_step(self, route: str, index: int) -> Any:
        steps = self.routes.get(route)
        if not steps:
            return httpx.Response(404, text=f"no script for {route}")
        return steps[min(index, len(steps) - 1)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        route = self._route(request)
        index = len(self.requests[route])
        self.requests[route].append(request)

        step = self._next_step(route, index)
        if callable(step) and not isinstance(step, httpx.Response):
            step = step(request)
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, httpx.Response):
            return step
        return httpx.Response(200, json=step)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def unique_ids(status: str = "completed", outputs: Optional[List[Any]] = None) -> Callable:
    """Submit step that hands out a fresh prediction id per request."""
    counter = itertools.count(1)

    def step(request: httpx.Request) -> Dict[str, Any]:
        return prediction_payload(
            prediction_id=f"req-{next(counter)}",
            status=status,
            outputs=outputs,
        )
    return step


class RecordingSleep:
    """Awaitable sleep replacement that records delays without waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep developer WAVESPEED_* variables out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("WAVESPEED_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(os.path.dirname(__file__))
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        API_KEY=TEST_API_KEY,
        BASE_URL=TEST_BASE_URL,
        MAX_RETRIES=0,
        MAX_CONNECTION_RETRIES=0,
        RETRY_INTERVAL=0.5,
        POLL_INTERVAL=0.25,
        _env_file=None,
    )


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_client(settings, service, recording_sleep):
    """Build clients wired to the fake service."""

    def factory(**kwargs: Any) -> Client:
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("transport", service.transport())
        kwargs.setdefault("sleep", recording_sleep)
        return Client(**kwargs)

    return factory
