"""
emergency.py — Pydantic schemas for request / response bodies.

Separation of concerns (same split as the entity models):
  EmergencyCreate   — what the requester app sends to POST /api/emergencies
  StatusUpdate      — body of PATCH /api/emergencies/{id}/status
  EmergencyOut      — the composed view every endpoint and message returns
  UserOut           — requester profile without the password
  ActivityOut       — trimmed activity row for the history screen
  NearbyHospital    — hospital annotated with its distance from a point
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from swiftaid.models.entities import (
    Ambulance,
    CamelModel,
    EmergencyStatus,
    EmergencyType,
    Hospital,
    Location,
    PatientInfo,
)


# ── Request bodies ────────────────────────────────────────────────────────────

class LocationIn(CamelModel):
    latitude: float = Field(strict=True, ge=-90, le=90)
    longitude: float = Field(strict=True, ge=-180, le=180)
    address: str = Field(min_length=1)

    @field_validator("address")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class PatientIn(CamelModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)
    notes: Optional[str] = None

    @field_validator("first_name", "last_name", "phone_number")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class EmergencyCreate(CamelModel):
    """Payload for POST /api/emergencies."""
    type: EmergencyType
    location: LocationIn
    patient: PatientIn


class StatusUpdate(CamelModel):
    """Payload for PATCH /api/emergencies/{id}/status."""
    status: EmergencyStatus


# ── Responses ─────────────────────────────────────────────────────────────────

class EmergencyOut(CamelModel):
    """Composed request view: the emergency plus its embedded snapshots."""
    id: int
    type: EmergencyType
    status: EmergencyStatus
    created_at: datetime
    patient: PatientInfo
    location: Location
    ambulance: Optional[Ambulance] = None
    destination_hospital: Optional[Hospital] = None
    eta: Optional[int] = None


class UserOut(CamelModel):
    """Safe requester representation — no password."""
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None


class ActivityOut(CamelModel):
    id: int
    type: str
    date: datetime
    status: str


class NearbyHospital(Hospital):
    distance: str          # formatted for display, e.g. "1.2 km"
    distance_value: float  # raw kilometres, used for sorting
