import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, List, Optional
from unittest.mock import MagicMock

import httpx
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from unireq.core.response import TransportResult  # noqa: E402


def pytest_configure(config):
    # Register the asyncio marker so pytest doesn't warn when it's used.
    config.addinivalue_line(
        "markers", "asyncio: mark test to run in an asyncio event loop"
    )
    # Add custom markers for test organization
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "auth: mark test as testing authentication"
    )


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch, tmp_path):
    """Isolate tests from the developer's environment.

    Removes ``UNIREQ_*`` variables and runs each test from an empty
    directory so no ``.env`` file is picked up by ClientSettings.
    """
    for name in list(os.environ):
        if name.upper().startswith("UNIREQ_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


def make_result(
    status: int = 200,
    data: Any = None,
    *,
    url: str = "https://api.example.com/",
    content_type: Optional[str] = "application/json",
    body: Optional[bytes] = None,
    headers: Optional[dict] = None,
) -> TransportResult:
    """Build a TransportResult with a bytes payload."""
    all_headers = dict(headers or {})
    if content_type is not None:
        all_headers["content-type"] = content_type
    if body is None:
        if data is None:
            body = b""
        elif isinstance(data, str) and content_type != "application/json":
            body = data.encode("utf-8")
        else:
            body = json.dumps(data).encode("utf-8")
    return TransportResult(
        status=status, headers=httpx.Headers(all_headers), url=url, raw=body
    )


class StubTransport:
    """Transport double that records requests and delegates to ``handler``.

    ``handler(request, ctx)`` may return a TransportResult, raise, or be a
    coroutine function.
    """

    def __init__(self, handler: Callable[..., Any]):
        self.handler = handler
        self.requests: List[Any] = []
        self.contexts: List[Any] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def send(self, request, ctx):
        self.requests.append(request)
        self.contexts.append(ctx)
        result = self.handler(request, ctx)
        if hasattr(result, "__await__"):
            result = await result
        return result


@pytest.fixture
def result_factory():
    """Factory fixture for TransportResult values."""
    return make_result


@pytest.fixture
def stub_transport():
    """Factory fixture: ``stub_transport(handler)`` returns a StubTransport."""
    return StubTransport


@pytest.fixture
def json_transport():
    """Transport echoing method and URL back as JSON."""
    return StubTransport(
        lambda request, ctx: make_result(
            data={"method": request.method, "url": request.url}, url=request.url
        )
    )


@pytest.fixture
def mock_listener():
    """Event listener mock."""
    return MagicMock()


# Rely on pytest-asyncio for async test handling; no custom hook needed.
