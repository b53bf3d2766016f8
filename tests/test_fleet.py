"""
Tests for the fleet routes: /api/hospitals/nearby and /api/ambulances.
"""


async def test_nearby_hospitals_sorted_with_distance(client):
    r = await client.get("/api/hospitals/nearby", params={"latitude": 34.0505, "longitude": -118.2405})
    assert r.status_code == 200

    data = r.json()
    assert [h["name"] for h in data] == ["Memorial Hospital", "Community Medical Center"]
    assert data[0]["distance"] == f"{data[0]['distanceValue']:.1f} km"
    assert data[0]["distanceValue"] <= data[1]["distanceValue"]
    assert data[0]["latitude"] == "34.0522"


async def test_nearby_hospitals_at_a_hospital(client):
    r = await client.get("/api/hospitals/nearby", params={"latitude": 34.0548, "longitude": -118.2456})
    data = r.json()
    assert data[0]["name"] == "Community Medical Center"
    assert data[0]["distance"] == "0.0 km"


async def test_nearby_hospitals_requires_coordinates(client):
    r = await client.get("/api/hospitals/nearby", params={"latitude": 34.05})
    assert r.status_code == 400
    assert r.json() == {"message": "Latitude and longitude are required"}


async def test_nearby_hospitals_rejects_out_of_range(client):
    r = await client.get("/api/hospitals/nearby", params={"latitude": 95, "longitude": 0})
    assert r.status_code == 400


async def test_list_ambulances(client):
    r = await client.get("/api/ambulances")
    assert r.status_code == 200

    data = r.json()
    assert [a["id"] for a in data] == [1, 2]
    assert data[0] == {
        "id": 1,
        "name": "Ambulance #247",
        "status": "Available",
        "latitude": "34.05",
        "longitude": "-118.24",
        "speed": 0,
    }


async def test_nearby_hospitals_non_numeric_is_400(client):
    r = await client.get("/api/hospitals/nearby", params={"latitude": "north", "longitude": 0})
    assert r.status_code == 400
