"""Shared fixtures: relay apps wired to an in-process Cashfree stub."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from cashrelay.common.config import RelaySettings
from cashrelay.services.relay.main import create_app


def make_settings(**overrides) -> RelaySettings:
    values = {
        "cashfree_app_id": "test-app-id",
        "cashfree_secret_key": "test-secret",
        "cashfree_environment": "sandbox",
        "otel_exporter_otlp_endpoint": None,
    }
    values.update(overrides)
    return RelaySettings(_env_file=None, **values)


class StubUpstream:
    """Records every request and answers with a preset response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body = {}
        self.raise_exc: Exception | None = None

    def respond(self, status_code: int = 200, body=None) -> None:
        self.status_code = status_code
        self.body = body

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None:
            raise self.raise_exc
        if self.body is None:
            return httpx.Response(self.status_code)
        if isinstance(self.body, str):
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def upstream():
    return StubUpstream()


@pytest.fixture
def client(upstream):
    app = create_app(make_settings(), transport=httpx.MockTransport(upstream.handler))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def unconfigured_client(upstream):
    settings = make_settings(cashfree_app_id=None, cashfree_secret_key=None)
    app = create_app(settings, transport=httpx.MockTransport(upstream.handler))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def client_factory(upstream):
    """Build a TestClient for custom settings overrides."""

    clients = []

    def _build(**overrides) -> TestClient:
        app = create_app(make_settings(**overrides), transport=httpx.MockTransport(upstream.handler))
        c = TestClient(app)
        clients.append(c)
        return c

    yield _build
    for c in clients:
        c.close()
