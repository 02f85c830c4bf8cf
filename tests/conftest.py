"""Conftest: a recording stand-in for ``aiohttp.ClientSession``.

The client only uses ``session.request(...)`` as an async context manager
and ``session.close()``, so tests queue canned responses on a fake session
instead of patching aiohttp internals.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

import pytest

from taskboard_api import RequestThrottle, TaskboardApiClient

BASE_ID = "appTEST"
API_KEY = "patTEST"


class FakeResponse:
    """Minimal stand-in for ``aiohttp.ClientResponse``."""

    def __init__(
        self,
        status: int = 200,
        payload: Any = None,
        *,
        headers: dict[str, str] | None = None,
        text: str = "",
    ) -> None:
        self.status = status
        self.headers = headers or {}
        self._payload = payload if payload is not None else {}
        self._text = text

    async def json(self) -> Any:
        return self._payload

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *_: Any) -> None:
        return None


@dataclass
class RecordedRequest:
    method: str
    url: str
    kwargs: dict[str, Any]
    sent_at: float

    @property
    def params(self) -> list[tuple[str, str]]:
        return self.kwargs.get("params", [])

    @property
    def json(self) -> Any:
        return self.kwargs.get("json")

    def param(self, key: str) -> str | None:
        for k, v in self.params:
            if k == key:
                return v
        return None


@dataclass
class FakeSession:
    """Replays queued responses in order and records every request."""

    responses: deque = field(default_factory=deque)
    calls: list[RecordedRequest] = field(default_factory=list)
    closed: bool = False

    def queue(self, *responses: FakeResponse | BaseException) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append(RecordedRequest(method, url, kwargs, time.monotonic()))
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.responses.popleft()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


def record(record_id: str, **fields: Any) -> dict[str, Any]:
    """Build a raw Airtable record."""
    return {"id": record_id, "createdTime": "2025-01-01T00:00:00.000Z", "fields": fields}


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def throttle() -> RequestThrottle:
    return RequestThrottle(min_interval=0)


@pytest.fixture
def client(session: FakeSession, throttle: RequestThrottle) -> TaskboardApiClient:
    return TaskboardApiClient(
        session,  # type: ignore[arg-type]
        api_key=API_KEY,
        base_id=BASE_ID,
        throttle=throttle,
    )
