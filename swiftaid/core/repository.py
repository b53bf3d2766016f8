"""
In-memory repository: the single source of truth for every entity.

Architecture decision: one dict table per entity type keyed by an integer
id, plus one monotonic counter per table. All methods are synchronous and
never await, so under the single-threaded event loop each call is atomic:
no handler can observe a half-applied write. If this is ever backed by a
real concurrent store, assignment needs per-entity locking (or optimistic
versioning) to keep "at most one ambulance per open emergency".

Records handed out are deep copies. Callers mutate state only through the
update_* / assign_* methods below.

Missing ids never raise: read and update methods return None instead, and
the dispatch coordinator turns that into a NotFound error where relevant.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, TypeVar

from swiftaid.models.entities import (
    Activity,
    Ambulance,
    AmbulanceStatus,
    CamelModel,
    Emergency,
    EmergencyStatus,
    EmergencyType,
    Hospital,
    Location,
    PatientInfo,
    User,
)

logger = logging.getLogger(__name__)

NowFn = Callable[[], datetime]
M = TypeVar("M", bound=CamelModel)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def decimal_text(value: float | str | Decimal) -> str:
    """
    Render a coordinate as exact decimal text: 34.05 → "34.05", 34.0 → "34".

    Goes through repr() so the shortest round-tripping form of a float is
    kept; strings are normalised the same way.
    """
    dec = Decimal(value) if isinstance(value, (str, Decimal)) else Decimal(repr(float(value)))
    text = format(dec.normalize(), "f")
    return "0" if text in ("-0", "0") else text


def _snapshot(record: Optional[M]) -> Optional[M]:
    return record.model_copy(deep=True) if record is not None else None


class InMemoryRepository:
    """Map-keyed storage for users, locations, ambulances, hospitals, emergencies, activities."""

    def __init__(self, now_fn: NowFn = _utcnow) -> None:
        self._now = now_fn

        self._users: dict[int, User] = {}
        self._locations: dict[int, Location] = {}
        self._ambulances: dict[int, Ambulance] = {}
        self._hospitals: dict[int, Hospital] = {}
        self._emergencies: dict[int, Emergency] = {}
        self._activities: dict[int, Activity] = {}

        self._user_ids = itertools.count(1)
        self._location_ids = itertools.count(1)
        self._ambulance_ids = itertools.count(1)
        self._hospital_ids = itertools.count(1)
        self._emergency_ids = itertools.count(1)
        self._activity_ids = itertools.count(1)

    # ── Users ─────────────────────────────────────────────────────────────────

    def create_user(
        self,
        username: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> User:
        user = User(
            id=next(self._user_ids),
            username=username,
            password=password,
            first_name=first_name,
            last_name=last_name,
            phone_number=phone_number,
        )
        self._users[user.id] = user
        return _snapshot(user)

    def get_user(self, user_id: int) -> Optional[User]:
        return _snapshot(self._users.get(user_id))

    # ── Locations ─────────────────────────────────────────────────────────────

    def create_location(self, latitude: float | str, longitude: float | str, address: str) -> Location:
        location = Location(
            id=next(self._location_ids),
            latitude=decimal_text(latitude),
            longitude=decimal_text(longitude),
            address=address,
        )
        self._locations[location.id] = location
        return _snapshot(location)

    def get_location(self, location_id: int) -> Optional[Location]:
        return _snapshot(self._locations.get(location_id))

    # ── Ambulances ────────────────────────────────────────────────────────────

    def create_ambulance(
        self,
        name: str,
        status: AmbulanceStatus = "Available",
        latitude: float | str | None = None,
        longitude: float | str | None = None,
        speed: Optional[float] = None,
    ) -> Ambulance:
        ambulance = Ambulance(
            id=next(self._ambulance_ids),
            name=name,
            status=status,
            latitude=decimal_text(latitude) if latitude is not None else None,
            longitude=decimal_text(longitude) if longitude is not None else None,
            speed=speed,
        )
        self._ambulances[ambulance.id] = ambulance
        return _snapshot(ambulance)

    def get_ambulance(self, ambulance_id: int) -> Optional[Ambulance]:
        return _snapshot(self._ambulances.get(ambulance_id))

    def list_ambulances(self) -> list[Ambulance]:
        return [_snapshot(a) for a in self._ambulances.values()]

    def get_available_ambulance(self) -> Optional[Ambulance]:
        """First ambulance in id order whose status is Available."""
        for ambulance in self._ambulances.values():
            if ambulance.status == "Available":
                return _snapshot(ambulance)
        return None

    def update_ambulance_status(self, ambulance_id: int, status: AmbulanceStatus) -> Optional[Ambulance]:
        ambulance = self._ambulances.get(ambulance_id)
        if ambulance is None:
            return None
        ambulance.status = status
        return _snapshot(ambulance)

    def update_ambulance_location(
        self,
        ambulance_id: int,
        latitude: float | str,
        longitude: float | str,
        speed: Optional[float] = None,
    ) -> Optional[Ambulance]:
        """Overwrite position; speed only changes when one is supplied."""
        ambulance = self._ambulances.get(ambulance_id)
        if ambulance is None:
            return None
        ambulance.latitude = decimal_text(latitude)
        ambulance.longitude = decimal_text(longitude)
        if speed is not None:
            ambulance.speed = speed
        return _snapshot(ambulance)

    # ── Hospitals ─────────────────────────────────────────────────────────────

    def create_hospital(self, name: str, latitude: float | str, longitude: float | str, address: str) -> Hospital:
        hospital = Hospital(
            id=next(self._hospital_ids),
            name=name,
            latitude=decimal_text(latitude),
            longitude=decimal_text(longitude),
            address=address,
        )
        self._hospitals[hospital.id] = hospital
        return _snapshot(hospital)

    def get_hospital(self, hospital_id: int) -> Optional[Hospital]:
        return _snapshot(self._hospitals.get(hospital_id))

    def list_hospitals(self) -> list[Hospital]:
        return [_snapshot(h) for h in self._hospitals.values()]

    # ── Emergencies ───────────────────────────────────────────────────────────

    def create_emergency(
        self,
        type: EmergencyType,
        user_id: int,
        location: Location,
        patient_info: PatientInfo,
    ) -> Emergency:
        """Store a new emergency. Status always starts as Pending."""
        emergency = Emergency(
            id=next(self._emergency_ids),
            type=type,
            status="Pending",
            created_at=self._now(),
            user_id=user_id,
            location_id=location.id,
            patient_info=patient_info.model_copy(deep=True),
            location_info=location.model_copy(deep=True),
        )
        self._emergencies[emergency.id] = emergency
        return _snapshot(emergency)

    def get_emergency(self, emergency_id: int) -> Optional[Emergency]:
        return _snapshot(self._emergencies.get(emergency_id))

    def list_emergencies_for_user(self, user_id: int) -> list[Emergency]:
        """Newest first."""
        owned = [e for e in self._emergencies.values() if e.user_id == user_id]
        owned.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return [_snapshot(e) for e in owned]

    def oldest_pending_emergency(self) -> Optional[Emergency]:
        """Oldest Pending emergency with no ambulance attached."""
        pending = [
            e for e in self._emergencies.values()
            if e.status == "Pending" and e.ambulance_id is None
        ]
        if not pending:
            return None
        return _snapshot(min(pending, key=lambda e: (e.created_at, e.id)))

    def update_emergency_status(self, emergency_id: int, status: EmergencyStatus) -> Optional[Emergency]:
        """
        Overwrite the status field only.

        Terminal states are NOT enforced here; the dispatch coordinator owns
        that rule.
        """
        emergency = self._emergencies.get(emergency_id)
        if emergency is None:
            return None
        emergency.status = status
        return _snapshot(emergency)

    def set_emergency_eta(self, emergency_id: int, eta: Optional[int]) -> Optional[Emergency]:
        emergency = self._emergencies.get(emergency_id)
        if emergency is None:
            return None
        emergency.eta = eta
        return _snapshot(emergency)

    def assign_ambulance_to_emergency(self, emergency_id: int, ambulance_id: int) -> Optional[Emergency]:
        emergency = self._emergencies.get(emergency_id)
        ambulance = self._ambulances.get(ambulance_id)
        if emergency is None or ambulance is None:
            return None
        emergency.ambulance_id = ambulance.id
        emergency.ambulance_info = ambulance.model_copy(deep=True)
        return _snapshot(emergency)

    def assign_hospital_to_emergency(self, emergency_id: int, hospital_id: int) -> Optional[Emergency]:
        emergency = self._emergencies.get(emergency_id)
        hospital = self._hospitals.get(hospital_id)
        if emergency is None or hospital is None:
            return None
        emergency.hospital_id = hospital.id
        emergency.hospital_info = hospital.model_copy(deep=True)
        return _snapshot(emergency)

    # ── Activities ────────────────────────────────────────────────────────────

    def create_activity(
        self,
        type: str,
        status: str,
        user_id: Optional[int],
        emergency_id: Optional[int] = None,
        date: Optional[datetime] = None,
    ) -> Activity:
        activity = Activity(
            id=next(self._activity_ids),
            type=type,
            status=status,
            date=date or self._now(),
            user_id=user_id,
            emergency_id=emergency_id,
        )
        self._activities[activity.id] = activity
        return _snapshot(activity)

    def list_activities_for_user(self, user_id: int) -> list[Activity]:
        """Newest first; records created in the same instant keep creation order reversed."""
        owned = [a for a in self._activities.values() if a.user_id == user_id]
        owned.sort(key=lambda a: (a.date, a.id), reverse=True)
        return [_snapshot(a) for a in owned]

    # ── Introspection ─────────────────────────────────────────────────────────

    def now(self) -> datetime:
        return self._now()

    def counts(self) -> dict[str, int]:
        return {
            "users": len(self._users),
            "ambulances": len(self._ambulances),
            "hospitals": len(self._hospitals),
            "emergencies": len(self._emergencies),
            "activities": len(self._activities),
        }


# ── Seed data ─────────────────────────────────────────────────────────────────
#
# Fixed sample data loaded on startup: one requester, two hospitals and two
# ambulances in downtown Los Angeles, plus two historical activity rows so the
# history screen is not empty.

def seed(repository: InMemoryRepository) -> None:
    """Populate a fresh repository with the default sample data."""
    user = repository.create_user(
        username="john.doe",
        password="password123",
        first_name="John",
        last_name="Doe",
        phone_number="(555) 123-4567",
    )

    repository.create_hospital(
        name="Memorial Hospital",
        latitude="34.0522",
        longitude="-118.2437",
        address="123 Hospital St, Los Angeles, CA",
    )
    repository.create_hospital(
        name="Community Medical Center",
        latitude="34.0548",
        longitude="-118.2456",
        address="456 Medical Ave, Los Angeles, CA",
    )

    repository.create_ambulance(
        name="Ambulance #247", status="Available", latitude="34.0500", longitude="-118.2400", speed=0
    )
    repository.create_ambulance(
        name="Ambulance #156", status="Available", latitude="34.0550", longitude="-118.2500", speed=0
    )

    now = repository.now()
    repository.create_activity(
        type="Emergency Request", status="Resolved", user_id=user.id, date=now - timedelta(days=5)
    )
    repository.create_activity(
        type="Medical Record Updated", status="Info", user_id=user.id, date=now - timedelta(days=10)
    )
    logger.info("Seeded repository: %s", repository.counts())
