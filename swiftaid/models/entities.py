"""
entities.py — Stored records owned by the repository.

Every entity serialises with camelCase keys (createdAt, phoneNumber, …) so
the JSON the API and the WebSocket emit matches what the web clients read.
Python code always uses the snake_case attribute names.

Coordinates are kept as exact decimal text ("34.0522") rather than floats
so a location read back by id is byte-identical to what was stored.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# ── Enumerations ──────────────────────────────────────────────────────────────

EmergencyType = Literal["Cardiac", "Injury", "Respiratory", "Other"]
EmergencyStatus = Literal[
    "Pending", "Dispatched", "EnRoute", "Arrived", "Completed", "Cancelled"
]
AmbulanceStatus = Literal["Available", "Dispatched", "EnRoute", "OnScene"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"Completed", "Cancelled"})


class CamelModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Entities ──────────────────────────────────────────────────────────────────

class User(CamelModel):
    """A requester. Owned by the profile collaborator; only the id matters here."""
    id: int
    username: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None


class Location(CamelModel):
    id: int
    latitude: str
    longitude: str
    address: str


class Ambulance(CamelModel):
    id: int
    name: str
    status: AmbulanceStatus = "Available"
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    speed: Optional[float] = None


class Hospital(CamelModel):
    id: int
    name: str
    latitude: str
    longitude: str
    address: str


class PatientInfo(CamelModel):
    first_name: str
    last_name: str
    phone_number: str
    notes: Optional[str] = None


class Emergency(CamelModel):
    """One incident from creation to Completed / Cancelled."""
    id: int
    type: EmergencyType
    status: EmergencyStatus = "Pending"
    created_at: datetime

    # Relations by id
    user_id: int
    location_id: int
    ambulance_id: Optional[int] = None
    hospital_id: Optional[int] = None

    # Snapshots embedded at write time
    patient_info: PatientInfo
    location_info: Location
    ambulance_info: Optional[Ambulance] = None
    hospital_info: Optional[Hospital] = None

    eta: Optional[int] = None  # minutes

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class Activity(CamelModel):
    """Append-only audit entry, one per significant lifecycle event."""
    id: int
    type: str
    status: str
    date: datetime
    user_id: Optional[int] = None
    emergency_id: Optional[int] = None
