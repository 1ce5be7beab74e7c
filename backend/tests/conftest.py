"""
DevServe — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── fake_clock: Manually advanced clock for rate-limit windows
    ├── cdn_assets / cdn_calls: Fake CDN contents and the URLs it was asked for
    ├── cdn_client: httpx.AsyncClient backed by MockTransport serving cdn_assets
    ├── make_settings: Settings factory with test-friendly defaults
    ├── app: FastAPI app wired to cdn_client
    └── test_client: HTTPX AsyncClient talking to `app` over ASGITransport
"""

import os
from typing import Dict, List, Tuple

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Environment overrides BEFORE any app imports
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEV"] = "false"

from devserve.config import Settings  # noqa: E402
from devserve.main import create_app  # noqa: E402

CDN_LIB_URL = "https://cdn.example.com/lib.js"


class FakeClock:
    """Stand-in for time.monotonic that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def cdn_assets() -> Dict[str, Tuple[int, bytes, str]]:
    """URL → (status, body, content-type) served by the fake CDN."""
    return {
        CDN_LIB_URL: (200, b"console.log('lib');", "application/javascript"),
        CDN_LIB_URL + ".map": (200, b'{"version":3}', "application/json"),
    }


@pytest.fixture
def cdn_calls() -> List[str]:
    return []


@pytest.fixture
def cdn_client(cdn_assets, cdn_calls):
    """
    Provides an httpx client whose requests never leave the process.

    Unknown URLs answer 404 Not Found.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        cdn_calls.append(url)
        status, body, content_type = cdn_assets.get(url, (404, b"", "text/plain"))
        return httpx.Response(status, content=body, headers={"content-type": content_type})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_settings():
    """Settings factory; keyword arguments override the test defaults."""

    def factory(**overrides) -> Settings:
        values = {
            "dev": False,
            "vendor_map": {"lib.js": CDN_LIB_URL},
            "vendor_route": "/",
            "log_level": "WARNING",
        }
        values.update(overrides)
        return Settings(**values)

    return factory


@pytest.fixture
def app(make_settings, cdn_client):
    return create_app(make_settings(), http_client=cdn_client)


@pytest_asyncio.fixture
async def test_client(app):
    """
    Provides an async HTTP test client for endpoint testing.

    Requests arrive from client address 127.0.0.1 (ASGITransport default).
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
