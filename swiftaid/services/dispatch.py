"""
dispatch.py — Dispatch coordinator: request creation and lifecycle.

HOW DISPATCH WORKS
──────────────────
1. The requester app POSTs {type, location, patient}.
2. The payload is validated; every failing field is reported at once.
3. A Location and a Pending Emergency are written to the repository.
4. The first Available ambulance (by id) is marked Dispatched and linked,
   the nearest hospital (Haversine) is linked, the placeholder ETA is set,
   and the emergency moves to Dispatched.
   No ambulance free → the emergency simply stays Pending. Not an error.
5. A "Request Created" activity row mirrors the resulting status.
6. The composed view (emergency + embedded ambulance / hospital) is returned.

LIFECYCLE
─────────
  Pending ─(ambulance found)→ Dispatched → EnRoute → Arrived → Completed
  any non-terminal ─────────→ Cancelled

Completed and Cancelled are terminal: update_status() refuses to move a
terminal emergency and cancel() on one is a no-op. Completing or cancelling
releases the attached ambulance back to Available.

Dispatch is attempted once, at creation. With auto_redispatch enabled, a
released ambulance is handed straight to the oldest Pending emergency.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

from swiftaid.core.repository import InMemoryRepository
from swiftaid.models.emergency import EmergencyOut, LocationIn, PatientIn
from swiftaid.models.entities import Emergency, EmergencyStatus, EmergencyType, PatientInfo
from swiftaid.services.geo import nearest_facility

logger = logging.getLogger(__name__)

ACTIVITY_REQUEST_CREATED = "Request Created"
ACTIVITY_REQUEST_CANCELLED = "Request Cancelled"
ACTIVITY_REQUEST_COMPLETED = "Request Completed"

_type_adapter: TypeAdapter[EmergencyType] = TypeAdapter(EmergencyType)


# ── Errors ────────────────────────────────────────────────────────────────────

class DispatchError(Exception):
    """Base class for coordinator failures surfaced to callers."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EmergencyValidationError(DispatchError):
    """The create payload is malformed. `errors` lists every failing field."""

    def __init__(self, errors: list[dict[str, str]]):
        self.errors = errors
        super().__init__("Invalid request body")


class EmergencyNotFoundError(DispatchError):
    def __init__(self, emergency_id: int):
        self.emergency_id = emergency_id
        super().__init__("Emergency not found")


class TerminalStateError(DispatchError):
    """The emergency is Completed or Cancelled and cannot change any more."""

    def __init__(self, emergency_id: int, status: str):
        self.emergency_id = emergency_id
        self.status = status
        super().__init__(f"Emergency {emergency_id} is already {status}")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _field_errors(exc: ValidationError, prefix: str = "") -> list[dict[str, str]]:
    """Flatten a pydantic ValidationError into [{field, message}] rows."""
    rows = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err["loc"])
        field = f"{prefix}.{path}" if prefix and path else (prefix or path)
        rows.append({"field": field, "message": err["msg"]})
    return rows


def _coerce(
    model: type[BaseModel], value: Any, prefix: str, errors: list[dict[str, str]]
) -> Optional[BaseModel]:
    if isinstance(value, model):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True)
    if not isinstance(value, Mapping):
        errors.append({"field": prefix, "message": "Input should be an object"})
        return None
    try:
        return model.model_validate(value)
    except ValidationError as exc:
        errors.extend(_field_errors(exc, prefix))
        return None


def compose(emergency: Emergency) -> EmergencyOut:
    """Build the API view of a stored emergency."""
    return EmergencyOut(
        id=emergency.id,
        type=emergency.type,
        status=emergency.status,
        created_at=emergency.created_at,
        patient=emergency.patient_info,
        location=emergency.location_info,
        ambulance=emergency.ambulance_info,
        destination_hospital=emergency.hospital_info,
        eta=emergency.eta,
    )


# ── Coordinator ───────────────────────────────────────────────────────────────

class DispatchCoordinator:
    """Orchestrates creation, status changes and cancellation of emergencies."""

    def __init__(
        self,
        repository: InMemoryRepository,
        eta_minutes: int = 8,
        auto_redispatch: bool = False,
    ) -> None:
        self.repository = repository
        self.eta_minutes = eta_minutes
        self.auto_redispatch = auto_redispatch
        self._redispatched: list[EmergencyOut] = []

    # ── Queries ───────────────────────────────────────────────────────────────

    def get_request(self, request_id: int) -> EmergencyOut:
        emergency = self.repository.get_emergency(request_id)
        if emergency is None:
            raise EmergencyNotFoundError(request_id)
        return compose(emergency)

    def list_requests(self, requester_id: int) -> list[EmergencyOut]:
        return [compose(e) for e in self.repository.list_emergencies_for_user(requester_id)]

    # ── Commands ──────────────────────────────────────────────────────────────

    def create_request(
        self,
        type: Any,
        location: Any,
        patient: Any,
        requester_id: int,
    ) -> EmergencyOut:
        """
        Validate, persist and try to dispatch a new emergency.

        `location` / `patient` may be the pydantic models or plain dicts
        (camelCase or snake_case keys). Raises EmergencyValidationError with
        every failing field.
        """
        errors: list[dict[str, str]] = []
        try:
            emergency_type = _type_adapter.validate_python(type)
        except ValidationError as exc:
            errors.extend(_field_errors(exc, "type"))
            emergency_type = None
        location_in: Optional[LocationIn] = _coerce(LocationIn, location, "location", errors)
        patient_in: Optional[PatientIn] = _coerce(PatientIn, patient, "patient", errors)

        if errors:
            logger.info("Rejected emergency request: %d invalid field(s)", len(errors))
            raise EmergencyValidationError(errors)

        location_record = self.repository.create_location(
            location_in.latitude, location_in.longitude, location_in.address
        )
        emergency = self.repository.create_emergency(
            type=emergency_type,
            user_id=requester_id,
            location=location_record,
            patient_info=PatientInfo(**patient_in.model_dump()),
        )

        dispatched = self._dispatch(emergency.id)
        if dispatched is None:
            logger.warning("No ambulance available, emergency %d left Pending", emergency.id)
        emergency = dispatched or emergency

        self.repository.create_activity(
            type=ACTIVITY_REQUEST_CREATED,
            status=emergency.status,
            user_id=requester_id,
            emergency_id=emergency.id,
        )
        logger.info("Emergency %d created (%s, %s)", emergency.id, emergency.type, emergency.status)
        return compose(emergency)

    def update_status(self, request_id: int, new_status: EmergencyStatus) -> EmergencyOut:
        emergency = self.repository.get_emergency(request_id)
        if emergency is None:
            raise EmergencyNotFoundError(request_id)
        if emergency.is_terminal:
            raise TerminalStateError(request_id, emergency.status)

        if new_status == "Cancelled":
            self.cancel(request_id)
            return self.get_request(request_id)

        updated = self.repository.update_emergency_status(request_id, new_status)
        if new_status == "Completed":
            self.repository.create_activity(
                type=ACTIVITY_REQUEST_COMPLETED,
                status="Completed",
                user_id=emergency.user_id,
                emergency_id=emergency.id,
            )
            if emergency.ambulance_id is not None:
                self._release(emergency.ambulance_id)
        logger.info("Emergency %d: %s → %s", request_id, emergency.status, new_status)
        return compose(updated)

    def cancel(self, request_id: int) -> None:
        """
        Cancel an emergency and free its ambulance.

        Cancelling an already terminal emergency changes nothing.
        """
        emergency = self.repository.get_emergency(request_id)
        if emergency is None:
            raise EmergencyNotFoundError(request_id)
        if emergency.is_terminal:
            logger.info("Cancel ignored: emergency %d is already %s", request_id, emergency.status)
            return

        self.repository.update_emergency_status(request_id, "Cancelled")
        if emergency.ambulance_id is not None:
            self._release(emergency.ambulance_id)
        self.repository.create_activity(
            type=ACTIVITY_REQUEST_CANCELLED,
            status="Cancelled",
            user_id=emergency.user_id,
            emergency_id=emergency.id,
        )
        logger.info("Emergency %d cancelled", request_id)

    def dispatch_pending(self) -> list[EmergencyOut]:
        """
        Hand Available ambulances to Pending emergencies, oldest first.

        Only runs with auto_redispatch enabled. Newly dispatched emergencies
        are also queued for take_redispatched().
        """
        if not self.auto_redispatch:
            return []
        dispatched = []
        while self.repository.get_available_ambulance() is not None:
            pending = self.repository.oldest_pending_emergency()
            if pending is None:
                break
            emergency = self._dispatch(pending.id)
            logger.info("Re-dispatched pending emergency %d", emergency.id)
            dispatched.append(compose(emergency))
        self._redispatched.extend(dispatched)
        return dispatched

    def take_redispatched(self) -> list[EmergencyOut]:
        """Drain emergencies re-dispatched since the last call, for broadcasting."""
        drained, self._redispatched = self._redispatched, []
        return drained

    # ── Internals ─────────────────────────────────────────────────────────────

    def _dispatch(self, emergency_id: int) -> Optional[Emergency]:
        """Attach the first Available ambulance and the nearest hospital."""
        ambulance = self.repository.get_available_ambulance()
        if ambulance is None:
            return None

        self.repository.update_ambulance_status(ambulance.id, "Dispatched")
        emergency = self.repository.assign_ambulance_to_emergency(emergency_id, ambulance.id)

        hospital = nearest_facility(
            float(emergency.location_info.latitude),
            float(emergency.location_info.longitude),
            self.repository.list_hospitals(),
        )
        if hospital is not None:
            self.repository.assign_hospital_to_emergency(emergency_id, hospital.id)

        self.repository.set_emergency_eta(emergency_id, self.eta_minutes)
        emergency = self.repository.update_emergency_status(emergency_id, "Dispatched")
        logger.info(
            "Ambulance %d dispatched to emergency %d (hospital: %s)",
            ambulance.id,
            emergency_id,
            hospital.name if hospital else "none",
        )
        return emergency

    def _release(self, ambulance_id: int) -> None:
        self.repository.update_ambulance_status(ambulance_id, "Available")
        logger.info("Ambulance %d released", ambulance_id)
        self.dispatch_pending()
