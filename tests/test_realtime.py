"""
End-to-end tests for the /ws channel through the real FastAPI app.

Uses Starlette's TestClient as a context manager so every socket and REST
call in a test runs against one app instance and one event loop.

Verifies:
  - The requester → responder flow: POST an emergency, announce it with
    NEW_EMERGENCY, the other client gets EMERGENCY_ALERT and the sender
    does not
  - STATUS_UPDATE reaches both clients
  - AMBULANCE_LOCATION is persisted (visible via GET /api/ambulances) and
    fanned out
  - Garbage and binary frames do not close the connection
  - A server-side re-dispatch (auto_redispatch) is pushed as EMERGENCY_UPDATE
"""

import json

import pytest
from fastapi.testclient import TestClient

from swiftaid.main import app


@pytest.fixture()
def tc():
    with TestClient(app) as test_client:
        yield test_client


def test_new_emergency_alerts_other_clients_only(tc, make_payload):
    created = tc.post("/api/emergencies", json=make_payload())
    assert created.status_code == 201
    emergency = created.json()

    with tc.websocket_connect("/ws") as responder, tc.websocket_connect("/ws") as requester:
        requester.send_json({"type": "AUTH", "requesterId": 1})
        requester.send_json({"type": "NEW_EMERGENCY", "emergency": emergency})

        alert = responder.receive_json()
        assert alert == {"type": "EMERGENCY_ALERT", "emergency": emergency}

        # The sender's next frame is the status update, not its own alert
        updated = {**emergency, "status": "EnRoute"}
        requester.send_json({"type": "STATUS_UPDATE", "emergency": updated})

        assert requester.receive_json() == {"type": "EMERGENCY_UPDATE", "emergency": updated}
        assert responder.receive_json() == {"type": "EMERGENCY_UPDATE", "emergency": updated}


def test_cancel_is_broadcast(tc):
    with tc.websocket_connect("/ws") as a, tc.websocket_connect("/ws") as b:
        a.send_json({"type": "CANCEL_EMERGENCY", "emergencyId": 12})
        assert a.receive_json() == {"type": "EMERGENCY_CANCELLED", "emergencyId": 12}
        assert b.receive_json() == {"type": "EMERGENCY_CANCELLED", "emergencyId": 12}


def test_ambulance_location_is_persisted_and_broadcast(tc):
    with tc.websocket_connect("/ws") as responder, tc.websocket_connect("/ws") as dispatcher:
        responder.send_json(
            {"type": "AMBULANCE_LOCATION", "ambulanceId": 1, "latitude": 34.0511, "longitude": -118.2411, "speed": 42}
        )

        for ws in (responder, dispatcher):
            message = ws.receive_json()
            assert message["type"] == "AMBULANCE_LOCATION_UPDATE"
            assert message["ambulance"]["id"] == 1
            assert message["ambulance"]["latitude"] == "34.0511"
            assert message["ambulance"]["speed"] == 42

    ambulances = {a["id"]: a for a in tc.get("/api/ambulances").json()}
    assert ambulances[1]["latitude"] == "34.0511"
    assert ambulances[1]["longitude"] == "-118.2411"
    assert ambulances[2]["latitude"] == "34.055"


def test_garbage_frames_keep_connection_open(tc):
    with tc.websocket_connect("/ws") as ws:
        ws.send_text("definitely not json")
        ws.send_text(json.dumps({"type": "UNKNOWN_THING", "payload": 1}))
        ws.send_json({"type": "CANCEL_EMERGENCY"})

        ws.send_json({"type": "CANCEL_EMERGENCY", "emergencyId": 3})
        assert ws.receive_json() == {"type": "EMERGENCY_CANCELLED", "emergencyId": 3}


def test_binary_frames_are_accepted(tc):
    with tc.websocket_connect("/ws") as ws:
        ws.send_bytes(json.dumps({"type": "CANCEL_EMERGENCY", "emergencyId": 5}).encode())
        assert ws.receive_json() == {"type": "EMERGENCY_CANCELLED", "emergencyId": 5}


def test_health_counts_live_connections(tc):
    with tc.websocket_connect("/ws") as ws:
        # Round trip first so the socket is surely registered
        ws.send_json({"type": "CANCEL_EMERGENCY", "emergencyId": 1})
        ws.receive_json()
        assert tc.get("/health").json()["connections"] == 1


def test_redispatch_is_pushed_as_update(tc, make_payload):
    from swiftaid.core.state import get_coordinator

    get_coordinator().auto_redispatch = True
    first = tc.post("/api/emergencies", json=make_payload()).json()
    tc.post("/api/emergencies", json=make_payload())
    pending = tc.post("/api/emergencies", json=make_payload()).json()
    assert pending["status"] == "Pending"

    with tc.websocket_connect("/ws") as ws:
        ws.send_json({"type": "CANCEL_EMERGENCY", "emergencyId": 0})
        ws.receive_json()

        assert tc.delete(f"/api/emergencies/{first['id']}").status_code == 204

        message = ws.receive_json()
        assert message["type"] == "EMERGENCY_UPDATE"
        assert message["emergency"]["id"] == pending["id"]
        assert message["emergency"]["status"] == "Dispatched"
        assert message["emergency"]["ambulance"]["id"] == first["ambulance"]["id"]
