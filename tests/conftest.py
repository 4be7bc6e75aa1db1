import json
import os
import sys
from typing import Any, Callable, List

import httpx
import pytest


def pytest_configure():
    # Ensure `src/` is importable as top-level for `rmcloud.*`, `tokens.*`, `upload.*`
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


class Recorder:
    """Wraps a MockTransport handler and keeps every request it saw."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self), timeout=10.0)

    def json_bodies(self) -> List[Any]:
        return [json.loads(r.content) for r in self.requests if r.content]


@pytest.fixture
def recorder():
    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> Recorder:
        return Recorder(handler)

    return _make
