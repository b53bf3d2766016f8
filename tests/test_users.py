"""
Tests for /api/user and /api/activities.
"""

from swiftaid.core.repository import InMemoryRepository
from swiftaid.core.state import get_repository, init_state


async def test_current_user_without_password(client):
    r = await client.get("/api/user")
    assert r.status_code == 200

    data = r.json()
    assert data == {
        "id": 1,
        "username": "john.doe",
        "firstName": "John",
        "lastName": "Doe",
        "phoneNumber": "(555) 123-4567",
    }
    assert "password" not in data


async def test_current_user_missing_is_404(client):
    init_state(InMemoryRepository())
    r = await client.get("/api/user")
    assert r.status_code == 404
    assert r.json() == {"message": "User not found"}


async def test_seeded_activities_newest_first(client):
    r = await client.get("/api/activities")
    assert r.status_code == 200

    data = r.json()
    assert [a["type"] for a in data] == ["Emergency Request", "Medical Record Updated"]
    assert set(data[0]) == {"id", "type", "date", "status"}


async def test_activities_are_per_requester(client):
    get_repository().create_activity("Someone Else", "Info", user_id=2)
    r = await client.get("/api/activities")
    assert "Someone Else" not in [a["type"] for a in r.json()]
