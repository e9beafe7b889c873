from __future__ import annotations

import json
import os
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest

# Settings are read at import time; point the console at a fake upstream
# before anything imports app.core.config.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SERVER_BASE_URL", "http://users-api.test")

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402

UPSTREAM_BASE_URL = "http://users-api.test"


class FakeScheduler:
    """Manual clock standing in for the event loop's call_later."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[_FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], object]) -> _FakeTimer:
        timer = _FakeTimer(self.now + delay, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[_FakeTimer]:
        return [t for t in self._timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in sorted(self.pending, key=lambda t: t.when):
            if timer.when <= self.now:
                timer.fired = True
                timer.callback()


class _FakeTimer:
    def __init__(self, when: float, callback: Callable[[], object]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeUsersApi:
    """In-memory stand-in for the upstream users API.

    ``list_body`` is what GET /getUsers returns, so tests can switch the
    response shape; ``fail_get`` / ``fail_add`` make the next calls fail
    with the given status code.
    """

    def __init__(self) -> None:
        self.users: list[dict] = [
            {"name": "Ann", "email": "ann@example.com"},
            {"name": "Bob", "email": "bob@example.com"},
        ]
        self.list_body: object | None = None
        self.fail_get: int | None = None
        self.fail_add: int | None = None
        self.get_calls = 0
        self.add_calls: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and request.url.path == "/getUsers":
            self.get_calls += 1
            if self.fail_get is not None:
                return httpx.Response(self.fail_get, json={"message": "list broke"})
            body = self.users if self.list_body is None else self.list_body
            return httpx.Response(200, json=body)
        if request.method == "POST" and request.url.path == "/addUser":
            payload = json.loads(request.content)
            self.add_calls.append(payload)
            if self.fail_add is not None:
                return httpx.Response(self.fail_add, json={"message": "add broke"})
            self.users.append(payload)
            return httpx.Response(201, json={"ok": True})
        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def upstream() -> FakeUsersApi:
    return FakeUsersApi()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def client(upstream: FakeUsersApi) -> Iterator[TestClient]:
    app.state.users_api_transport = upstream.transport()
    with TestClient(app, follow_redirects=False) as c:
        yield c
    app.state.users_api_transport = None
