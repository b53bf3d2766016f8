"""
hub.py — Real-time fan-out hub for the /ws channel.

The hub owns the registry of live connections (insertion order) and is the
only component that touches it. Each connection may be tagged with a
requester id once an AUTH frame arrives on it.

ROUTING TABLE
─────────────
  AUTH                → tag the connection, no broadcast
  NEW_EMERGENCY       → EMERGENCY_ALERT to every connection except the sender
  STATUS_UPDATE       → EMERGENCY_UPDATE to every connection, sender included
  CANCEL_EMERGENCY    → EMERGENCY_CANCELLED to every connection
  AMBULANCE_LOCATION  → repository.update_ambulance_location(), then
                        AMBULANCE_LOCATION_UPDATE to every connection;
                        unknown ambulance → logged and dropped

Anything unparseable or with an unknown "type" is logged and dropped; the
connection stays open. A repository mutation always completes before its
broadcast starts, and a broadcast walks the registry in order. A send that
fails on one connection is logged and the walk continues.

Delivery is best effort: closed connections are removed at once and
nothing is buffered for them. Clients resync through the REST API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from swiftaid.core.repository import InMemoryRepository
from swiftaid.models.emergency import EmergencyOut
from swiftaid.models.entities import CamelModel
from swiftaid.models.messages import (
    AmbulanceLocationMessage,
    AmbulanceLocationUpdateMessage,
    AuthMessage,
    CancelEmergencyMessage,
    EmergencyAlertMessage,
    EmergencyCancelledMessage,
    EmergencyUpdateMessage,
    NewEmergencyMessage,
    StatusUpdateMessage,
    encode_message,
    parse_client_message,
)

logger = logging.getLogger(__name__)


class TextSocket(Protocol):
    """What the hub needs from a connection: Starlette's WebSocket fits."""

    async def send_text(self, data: str) -> None: ...


@dataclass(eq=False)
class Connection:
    """One live connection, compared by identity."""
    websocket: TextSocket
    requester_id: Optional[int] = None


class ConnectionHub:
    def __init__(self, repository: InMemoryRepository) -> None:
        self.repository = repository
        self._connections: list[Connection] = []

    # ── Registry ──────────────────────────────────────────────────────────────

    @property
    def connections(self) -> tuple[Connection, ...]:
        return tuple(self._connections)

    def register(self, websocket: TextSocket) -> Connection:
        connection = Connection(websocket=websocket)
        self._connections.append(connection)
        logger.info("WebSocket client connected (%d live)", len(self._connections))
        return connection

    def unregister(self, connection: Connection) -> None:
        try:
            self._connections.remove(connection)
        except ValueError:
            return
        logger.info(
            "WebSocket client disconnected (requester=%s, %d live)",
            connection.requester_id,
            len(self._connections),
        )

    # ── Inbound ───────────────────────────────────────────────────────────────

    async def handle_text(self, connection: Connection, raw: str | bytes) -> None:
        """Parse one inbound frame and route it. Never raises."""
        try:
            message = parse_client_message(raw)
        except ValidationError as exc:
            logger.warning("Dropped malformed WebSocket message: %s", exc.errors()[0]["msg"])
            return

        try:
            await self._route(connection, message)
        except Exception as exc:
            logger.exception("Failed to handle %s message: %s", message.type, exc)

    async def _route(self, connection: Connection, message: Any) -> None:
        if isinstance(message, AuthMessage):
            connection.requester_id = message.requester_id
            logger.info("Client associated with requester %d", message.requester_id)

        elif isinstance(message, NewEmergencyMessage):
            await self.broadcast(
                EmergencyAlertMessage(emergency=message.emergency), exclude=connection
            )

        elif isinstance(message, StatusUpdateMessage):
            await self.broadcast(EmergencyUpdateMessage(emergency=message.emergency))

        elif isinstance(message, CancelEmergencyMessage):
            await self.broadcast(EmergencyCancelledMessage(emergency_id=message.emergency_id))

        elif isinstance(message, AmbulanceLocationMessage):
            ambulance = self.repository.update_ambulance_location(
                message.ambulance_id, message.latitude, message.longitude, message.speed
            )
            if ambulance is None:
                logger.warning("Location update for unknown ambulance %d dropped", message.ambulance_id)
                return
            await self.broadcast(AmbulanceLocationUpdateMessage(ambulance=ambulance))

    # ── Outbound ──────────────────────────────────────────────────────────────

    async def broadcast(self, message: CamelModel, exclude: Optional[Connection] = None) -> int:
        """Send to every live connection (minus `exclude`). Returns how many sends succeeded."""
        payload = encode_message(message)
        delivered = 0
        for connection in list(self._connections):
            if connection is exclude:
                continue
            if await self._send(connection, payload):
                delivered += 1
        return delivered

    async def publish_update(self, emergency: EmergencyOut) -> int:
        """Broadcast a server-side emergency change (e.g. a re-dispatch) as EMERGENCY_UPDATE."""
        return await self.broadcast(EmergencyUpdateMessage(emergency=emergency))

    async def _send(self, connection: Connection, payload: str) -> bool:
        try:
            await connection.websocket.send_text(payload)
            return True
        except Exception as exc:
            logger.warning("Send to WebSocket client failed: %s", exc)
            return False
