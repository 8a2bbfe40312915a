"""Pytest configuration and fixtures for nessus-rest tests."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from nessus_rest.client import NessusClient
from nessus_rest.config import NessusSettings


class FakeScanner:
    """Scripted stand-in for a Nessus server, used as an httpx.MockTransport handler.

    Each route holds a queue of replies consumed one per request; the last
    reply repeats. A reply is a JSON-able object (200), a ``(status, json)``
    tuple, ``bytes`` (200 raw body), an exception to raise, or a callable
    taking the request.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Any) -> "FakeScanner":
        self.routes.setdefault((method.upper(), path), []).extend(replies)
        return self

    def calls(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method.upper() and r.url.path == path)

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": "The requested file was not found."})

        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        if isinstance(reply, bytes):
            return httpx.Response(200, content=reply)
        if isinstance(reply, tuple):
            status_code, body = reply
            return httpx.Response(status_code, json=body)
        return httpx.Response(200, json=reply)


@pytest.fixture
def scanner() -> FakeScanner:
    """Empty fake scanner; tests add the routes they need."""
    return FakeScanner()


@pytest.fixture
def sleeps() -> list[float]:
    """Records every sleep instead of sleeping."""
    return []


@pytest.fixture
def settings() -> NessusSettings:
    """Settings for testing: no autologin, no real waiting."""
    return NessusSettings(
        url="https://nessus.test:8834/",
        username="admin",
        password="secret",
        http_retry=3,
        http_sleep=0.5,
        poll_sleep=2,
        autologin=False,
    )


@pytest.fixture
def make_client(
    scanner: FakeScanner,
    settings: NessusSettings,
    sleeps: list[float],
) -> Callable[..., NessusClient]:
    """Factory building clients wired to the fake scanner."""

    def _make(**overrides: Any) -> NessusClient:
        return NessusClient(
            settings,
            transport=httpx.MockTransport(scanner),
            sleep=sleeps.append,
            **overrides,
        )

    return _make


@pytest.fixture
def client(make_client: Callable[..., NessusClient]) -> NessusClient:
    """Client wired to the fake scanner."""
    return make_client()


@pytest.fixture
def logged_in_client(scanner: FakeScanner, client: NessusClient) -> NessusClient:
    """Client that already holds token ``t1``; later logins get ``t2``."""
    scanner.add("POST", "/session", {"token": "t1"}, {"token": "t2"})
    assert client.authenticate("admin", "secret")
    return client
