"""HTTP doubles shared by the test modules."""

from __future__ import annotations

import json
from typing import Any, Callable, List

import httpx


class RecordingTransport:
    """httpx transport double that records requests and replays handlers in order."""

    def __init__(self, *handlers: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handlers = list(handlers)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.handlers.pop(0) if len(self.handlers) > 1 else self.handlers[0]
        return handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def json_response(data: Any, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code,
            content=json.dumps(data).encode("utf-8"),
            headers={"content-type": "application/json"},
        )

    return handler


def fail_with(exc_type: type = httpx.ConnectError) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("connection refused", request=request)

    return handler


