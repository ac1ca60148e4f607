"""
Pytest configuration and shared fixtures.

The upstream model endpoint is replaced by an httpx.MockTransport that serves
queued replies and records every request it receives.
"""

import json
from typing import Callable, List, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from foodcal.api.routes_analyze import get_analyzer
from foodcal.core.analyzer import FoodAnalyzer
from foodcal.core.config import Settings, get_settings
from foodcal.main import create_app

TEST_API_KEY = "sk-test-123456"


def make_settings(**overrides) -> Settings:
    values = {
        "BAILIAN_API_KEY": TEST_API_KEY,
        "BAILIAN_API_BASE_URL": "https://upstream.test/v1",
        "VISION_MODEL_NAME": "vision-test",
        "INFERENCE_MODEL_NAME": "text-test",
        "REQUEST_TIMEOUT_SECONDS": 5,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def chat_reply(content) -> httpx.Response:
    return httpx.Response(
        200,
        json={"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]},
    )


Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """Serves queued replies in order; each reply is a Response or a callable(request)."""

    def __init__(self):
        self.replies: List[Reply] = []
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def queue(self, *replies: Reply) -> "FakeUpstream":
        self.replies.extend(replies)
        return self

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.replies:
            raise AssertionError(f"Unexpected upstream call: {request.method} {request.url}")
        reply = self.replies.pop(0)
        if callable(reply):
            return reply(request)
        return reply

    @property
    def calls(self) -> int:
        return len(self.requests)

    def payload(self, i: int) -> dict:
        return json.loads(self.requests[i].content)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def client_for(upstream):
    """Builds a TestClient whose analyzer talks to the fake upstream."""

    def _build(settings: Settings) -> TestClient:
        app = create_app(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_analyzer] = lambda: FoodAnalyzer(settings, transport=upstream.transport)
        return TestClient(app)

    return _build


@pytest.fixture
def client(client_for, settings) -> TestClient:
    return client_for(settings)
