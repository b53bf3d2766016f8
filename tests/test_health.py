"""
Tests for the /health endpoint and the API root.

Verifies:
  - Returns HTTP 200 with status="ok" (API liveness check)
  - Reports repository counts and live connection count
  - Root / endpoint returns API metadata
  - Docs are served outside production
"""


async def test_health_returns_200(client):
    """Health endpoint must always return 200 if the API process is alive."""
    response = await client.get("/health")
    assert response.status_code == 200


async def test_health_response_schema(client):
    data = (await client.get("/health")).json()

    assert data["status"] == "ok"
    assert data["version"] == "0.1.0"
    assert data["environment"] == "test"
    assert data["connections"] == 0


async def test_health_reports_repository_counts(client, make_payload):
    await client.post("/api/emergencies", json=make_payload())
    data = (await client.get("/health")).json()

    assert data["repository"]["ambulances"] == 2
    assert data["repository"]["hospitals"] == 2
    assert data["repository"]["emergencies"] == 1


async def test_root_endpoint(client):
    """Root / must return API metadata with status=running."""
    response = await client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "running"
    assert data["websocket"] == "/ws"
    assert "version" in data
    assert "name" in data


async def test_docs_available_in_test_env(client):
    """OpenAPI docs are disabled only when ENVIRONMENT=production."""
    response = await client.get("/docs")
    assert response.status_code == 200
