"""Shared pytest fixtures for controller gateway tests."""

import copy
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from rpc import ConnectionResolver  # noqa: E402


class MockResponse:
    """Stand-in for an aiohttp response used as an async context manager."""

    def __init__(self, status: int, json_data: Any = None, *,
                 headers: Optional[Dict[str, str]] = None, reason: str = "",
                 json_exc: Optional[Exception] = None) -> None:
        self.status = status
        self.reason = reason
        self.headers = headers or {}
        self._json = json_data
        self._json_exc = json_exc
        self.json_calls = 0

    async def __aenter__(self) -> "MockResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def json(self, content_type: Optional[str] = "application/json") -> Any:
        self.json_calls += 1
        if self._json_exc is not None:
            raise self._json_exc
        return self._json


class FakeSession:
    """Records posts and replays queued responses or exceptions."""

    def __init__(self) -> None:
        self._queue: List[Any] = []
        self.post_calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self._queue.extend(responses)

    def post(self, url: str, **kwargs: Any) -> Any:
        self.post_calls.append({"url": url, **copy.deepcopy({k: v for k, v in kwargs.items() if k != "timeout"}),
                                "timeout": kwargs.get("timeout")})
        if not self._queue:
            raise AssertionError("Unexpected post call with no queued response")
        result = self._queue.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def body(self, index: int = 0) -> Dict[str, Any]:
        return json.loads(self.post_calls[index]["data"])

    def authorization(self, index: int = 0) -> Optional[str]:
        return self.post_calls[index]["headers"].get("Authorization")


class StaticSecrets:
    """Secret store backed by a plain dict."""

    def __init__(self, values: Optional[Dict[str, str]] = None) -> None:
        self.values = values or {}

    def get(self, name: str) -> Optional[str]:
        return self.values.get(name)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def resolver():
    """Resolver with host and credentials coming from secrets."""
    return ConnectionResolver({}, StaticSecrets({
        'SHELLY_HOST': '192.168.2.163',
        'SHELLY_USERNAME': 'admin',
        'SHELLY_PASSWORD': 'shellyrats',
    }))
