"""
Shared fixtures for proxy tests.

The shortener backend is simulated with httpx.MockTransport injected into
the app factory, so no test opens a socket.
"""

from typing import Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from domain_proxy.core.setting import Settings
from domain_proxy.main import create_app

BACKEND_ORIGIN = "https://backend.internal"


class FakeBackend:
    """
    Records every outbound request and answers with a configurable handler.

    The handler may be sync or async; by default the backend answers
    302 to https://real-target.com/page.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable = lambda request: httpx.Response(
            302, headers={"Location": "https://real-target.com/page"}
        )

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self.handler(request)

    @property
    def last(self) -> Optional[httpx.Request]:
        return self.requests[-1] if self.requests else None

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def make_settings(**overrides) -> Settings:
    values = {"BACKEND_ORIGIN": BACKEND_ORIGIN}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def settings():
    return make_settings(EXEMPT_HOSTS="tinyslash.com, www.tinyslash.com")


@pytest.fixture
def make_client(backend):
    """Factory building a TestClient for the given settings."""
    clients = []

    def _make(settings: Settings) -> TestClient:
        app = create_app(settings, transport=backend.transport())
        client = TestClient(app, follow_redirects=False)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)
