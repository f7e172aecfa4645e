"""
Live-stack fixtures.

Session-scoped fixtures ensure API readiness before test execution.
"""

import os
import time
from collections.abc import Generator

import httpx
import pytest

BASE_URL = os.environ.get("LECTERN_API_URL", "http://localhost:8000")


@pytest.fixture(scope="session")
def wait_for_api():
    """
    Block until the API is ready or timeout expires.

    Polls /health endpoint with 1s intervals for up to 30s.
    """
    url = f"{BASE_URL}/health"
    timeout = 30
    start = time.time()

    print("\n[Test] Waiting for API...")
    while time.time() - start < timeout:
        try:
            res = httpx.get(url, timeout=1.0)
            if res.status_code == 200:
                print("API Ready")
                return
        except httpx.RequestError:
            time.sleep(1)

    pytest.fail("API unreachable. Is the stack running?")


@pytest.fixture(scope="session")
def api_client(wait_for_api) -> Generator[httpx.Client, None, None]:
    """Client for /api/v1 carrying the shared API key."""
    with httpx.Client(
        base_url=f"{BASE_URL}/api/v1",
        headers={"X-API-Key": os.environ["REQUIRED_API_KEY"]},
        timeout=120.0,
    ) as client:
        yield client
