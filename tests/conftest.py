"""
pytest configuration and shared fixtures for the SwiftAid dispatch tests.

Key concern: every test must start from the same seeded state.
We achieve this by:
  1. Dropping the process-wide AppState before each test, so the next
     access rebuilds a freshly seeded repository, coordinator and hub.
  2. Resetting the slowapi in-memory counters so POST /api/emergencies
     never trips the rate limit because of earlier tests.

Sample data after the reset (ids are stable):
  user 1        john.doe
  hospital 1    Memorial Hospital        34.0522, -118.2437
  hospital 2    Community Medical Center 34.0548, -118.2456
  ambulance 1   Ambulance #247           34.0500, -118.2400
  ambulance 2   Ambulance #156           34.0550, -118.2500
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")


@pytest.fixture(autouse=True)
def fresh_state():
    """Rebuild dispatch state from the seed and clear rate-limit counters."""
    from swiftaid.core.rate_limit import limiter
    from swiftaid.core.state import reset_state

    reset_state()
    limiter.reset()
    yield
    reset_state()


@pytest.fixture()
async def client():
    """
    HTTPX async test client wired to the FastAPI app.

    Usage:
        async def test_something(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from swiftaid.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def emergency_payload(**overrides) -> dict:
    """A valid POST /api/emergencies body near downtown LA."""
    payload = {
        "type": "Cardiac",
        "location": {"latitude": 34.0505, "longitude": -118.2405, "address": "1 Main St"},
        "patient": {"firstName": "Jane", "lastName": "Roe", "phoneNumber": "555-0100"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def make_payload():
    return emergency_payload
