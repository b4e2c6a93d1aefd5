from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from nexus.clients.netlify import NetlifyClient
from nexus.models import ComponentRecord, PageRecord, SiteDescriptor


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, reason: str = "OK") -> None:
        self.status_code = status_code
        self.reason = reason
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode("utf-8")

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """Scripted stand-in for requests.Session; records every request."""

    def __init__(self, responses: list | None = None) -> None:
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        for value in (kwargs.get("headers") or {}).values():
            # http.client encodes header values as latin-1
            value.encode("latin-1")

        body = kwargs.get("data")
        if body is not None and hasattr(body, "read"):
            # Drain upload bodies the way the transport would
            kwargs["body"] = b"".join(body)
        self.calls.append({"method": method, "url": url, **kwargs})

        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


def site_payload(site_id: str = "site-123", name: str = "my-site-1") -> FakeResponse:
    return FakeResponse(201, {"id": site_id, "name": name, "ssl_url": f"https://{name}.netlify.app"})


def deploy_payload(state: str, deploy_id: str = "deploy-456", **extra: Any) -> FakeResponse:
    return FakeResponse(200, {"id": deploy_id, "site_id": "site-123", "state": state, **extra})


def connection_error() -> requests.exceptions.ConnectionError:
    return requests.exceptions.ConnectionError("Connection refused")


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def sleeps() -> list:
    return []


@pytest.fixture
def client(session: FakeSession, sleeps: list) -> NetlifyClient:
    return NetlifyClient(
        "nfp_test_token",
        api_url="https://api.netlify.test/api/v1",
        session=session,
        sleep=sleeps.append,
    )


@pytest.fixture
def site() -> SiteDescriptor:
    return SiteDescriptor(
        name="Acme Bakery",
        description="Fresh bread every morning",
        pages=[
            PageRecord(id="p1", title="Home", slug="home", content="<p>Hello</p>"),
            PageRecord(id="p2", title="About", slug="about", content="<p>About us</p>"),
        ],
    )


@pytest.fixture
def components() -> list[ComponentRecord]:
    return [
        ComponentRecord(id="c2", type="centered-hero", order=1, properties={"heading": "Bread"}),
        ComponentRecord(id="c1", type="simple-navbar", order=0, properties={"logo": "Acme"}),
        ComponentRecord(id="c3", type="simple-footer", order=2, properties={}),
    ]
