"""
realtime.py — The /ws WebSocket endpoint.

Every client (requester app, responder app, dispatcher screen) keeps one
connection open here. Frames are JSON objects tagged by "type"; see
swiftaid/models/messages.py for the full union and swiftaid/realtime/hub.py
for the routing rules.

Connection lifecycle:
  1. accept, register with the hub
  2. read text frames until the client goes away, handing each to the hub
  3. unregister immediately on close; nothing is buffered for it

TESTING
───────
  pytest tests/test_realtime.py -v

  # Manual test with wscat (npm i -g wscat):
  wscat -c ws://localhost:8000/ws
  > {"type": "AUTH", "requesterId": 1}
  > {"type": "AMBULANCE_LOCATION", "ambulanceId": 1, "latitude": 34.051, "longitude": -118.241}
"""

import logging

from fastapi import APIRouter, WebSocket

from swiftaid.core.state import get_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def dispatch_channel(websocket: WebSocket):
    """Register the socket with the hub and feed it every inbound frame."""
    hub = get_hub()
    await websocket.accept()
    connection = hub.register(websocket)
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                # Client closed the tab or lost network
                break
            raw = frame.get("text") or frame.get("bytes")
            if raw:
                await hub.handle_text(connection, raw)
    except Exception as exc:
        logger.warning("WebSocket error: %s", exc)
    finally:
        hub.unregister(connection)
