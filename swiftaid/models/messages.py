"""
messages.py — Real-time channel message union.

Every frame on /ws is a JSON object tagged by its "type" field. The two
directions are closed unions:

  ClientMessage  (client → hub)
    AUTH                {requesterId}
    NEW_EMERGENCY       {emergency}
    STATUS_UPDATE       {emergency}
    CANCEL_EMERGENCY    {emergencyId}
    AMBULANCE_LOCATION  {ambulanceId, latitude, longitude, speed?}

  ServerMessage  (hub → clients)
    EMERGENCY_ALERT            {emergency}
    EMERGENCY_UPDATE           {emergency}
    EMERGENCY_CANCELLED        {emergencyId}
    AMBULANCE_LOCATION_UPDATE  {ambulance}

Parsing goes through a pydantic discriminated union, so an unknown "type"
or a malformed payload surfaces as a single pydantic.ValidationError that
callers log and drop. Unknown extra fields are ignored.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import AliasChoices, Field, TypeAdapter

from swiftaid.models.emergency import EmergencyOut
from swiftaid.models.entities import Ambulance, CamelModel


# ── Client → hub ──────────────────────────────────────────────────────────────

class AuthMessage(CamelModel):
    type: Literal["AUTH"] = "AUTH"
    # Older clients announce themselves with "userId".
    requester_id: int = Field(
        validation_alias=AliasChoices("requesterId", "userId", "requester_id"),
        serialization_alias="requesterId",
    )


class NewEmergencyMessage(CamelModel):
    type: Literal["NEW_EMERGENCY"] = "NEW_EMERGENCY"
    emergency: EmergencyOut


class StatusUpdateMessage(CamelModel):
    type: Literal["STATUS_UPDATE"] = "STATUS_UPDATE"
    emergency: EmergencyOut


class CancelEmergencyMessage(CamelModel):
    type: Literal["CANCEL_EMERGENCY"] = "CANCEL_EMERGENCY"
    emergency_id: int


class AmbulanceLocationMessage(CamelModel):
    type: Literal["AMBULANCE_LOCATION"] = "AMBULANCE_LOCATION"
    ambulance_id: int
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    speed: Optional[float] = None


ClientMessage = Annotated[
    Union[
        AuthMessage,
        NewEmergencyMessage,
        StatusUpdateMessage,
        CancelEmergencyMessage,
        AmbulanceLocationMessage,
    ],
    Field(discriminator="type"),
]


# ── Hub → clients ─────────────────────────────────────────────────────────────

class EmergencyAlertMessage(CamelModel):
    type: Literal["EMERGENCY_ALERT"] = "EMERGENCY_ALERT"
    emergency: EmergencyOut


class EmergencyUpdateMessage(CamelModel):
    type: Literal["EMERGENCY_UPDATE"] = "EMERGENCY_UPDATE"
    emergency: EmergencyOut


class EmergencyCancelledMessage(CamelModel):
    type: Literal["EMERGENCY_CANCELLED"] = "EMERGENCY_CANCELLED"
    emergency_id: int


class AmbulanceLocationUpdateMessage(CamelModel):
    type: Literal["AMBULANCE_LOCATION_UPDATE"] = "AMBULANCE_LOCATION_UPDATE"
    ambulance: Ambulance


ServerMessage = Annotated[
    Union[
        EmergencyAlertMessage,
        EmergencyUpdateMessage,
        EmergencyCancelledMessage,
        AmbulanceLocationUpdateMessage,
    ],
    Field(discriminator="type"),
]


_client_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)
_server_adapter: TypeAdapter[ServerMessage] = TypeAdapter(ServerMessage)


def parse_client_message(raw: str | bytes) -> ClientMessage:
    """Parse one inbound frame. Raises pydantic.ValidationError on anything invalid."""
    return _client_adapter.validate_json(raw)


def parse_server_message(raw: str | bytes) -> ServerMessage:
    """Parse one outbound frame (client side). Raises pydantic.ValidationError."""
    return _server_adapter.validate_json(raw)


def encode_message(message: CamelModel) -> str:
    """Serialise a message with camelCase keys, ready for send_text()."""
    return message.model_dump_json(by_alias=True)
