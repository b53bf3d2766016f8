"""
emergencies.py — Emergency request routes.

Routes:
  POST   /api/emergencies              — create + dispatch (rate limited)
  GET    /api/emergencies              — the current requester's emergencies
  GET    /api/emergencies/{id}         — composed emergency view
  PATCH  /api/emergencies/{id}/status  — move an emergency along its lifecycle
  DELETE /api/emergencies/{id}         — cancel and release the ambulance

All the business rules live in DispatchCoordinator; this module only maps
its errors onto HTTP:
  EmergencyValidationError → 400 { message, errors: [{field, message}] }
  EmergencyNotFoundError   → 404
  TerminalStateError       → 409

These routes do not broadcast on their own: the client that made the call
announces the change on /ws (NEW_EMERGENCY, STATUS_UPDATE, CANCEL_EMERGENCY).
The one exception is a server-side re-dispatch (auto_redispatch), which no
client knows about, so it is pushed as EMERGENCY_UPDATE from here.

TESTING
───────
  pytest tests/test_emergencies.py -v

  curl -X POST http://localhost:8000/api/emergencies \\
    -H 'Content-Type: application/json' \\
    -d '{"type": "Cardiac",
         "location": {"latitude": 34.05, "longitude": -118.24, "address": "1 Main St"},
         "patient": {"firstName": "Jane", "lastName": "Doe", "phoneNumber": "555-0000"}}'
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from swiftaid.core.config import settings
from swiftaid.core.rate_limit import limiter
from swiftaid.core.state import get_coordinator, get_hub
from swiftaid.models.emergency import EmergencyCreate, EmergencyOut, StatusUpdate
from swiftaid.realtime.hub import ConnectionHub
from swiftaid.services.dispatch import (
    DispatchCoordinator,
    EmergencyNotFoundError,
    EmergencyValidationError,
    TerminalStateError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/emergencies", tags=["emergencies"])


async def _announce_redispatched(coordinator: DispatchCoordinator, hub: ConnectionHub) -> None:
    for emergency in coordinator.take_redispatched():
        await hub.publish_update(emergency)


@router.post("", response_model=EmergencyOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.emergency_rate_limit)
async def create_emergency(
    request: Request,
    payload: EmergencyCreate,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
):
    """
    Create an emergency and try to dispatch an ambulance to it right away.

    With no ambulance free the emergency comes back Pending with
    ambulance = null; that is a normal 201, not an error.
    """
    try:
        return coordinator.create_request(
            payload.type,
            payload.location,
            payload.patient,
            requester_id=settings.default_requester_id,
        )
    except EmergencyValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": exc.message, "errors": exc.errors},
        )


@router.get("", response_model=list[EmergencyOut])
async def list_emergencies(coordinator: DispatchCoordinator = Depends(get_coordinator)):
    """The current requester's emergencies, newest first."""
    return coordinator.list_requests(settings.default_requester_id)


@router.get("/{emergency_id}", response_model=EmergencyOut)
async def get_emergency(
    emergency_id: int,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
):
    try:
        return coordinator.get_request(emergency_id)
    except EmergencyNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)


@router.patch("/{emergency_id}/status", response_model=EmergencyOut)
async def update_emergency_status(
    emergency_id: int,
    payload: StatusUpdate,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    hub: ConnectionHub = Depends(get_hub),
):
    """Apply a lifecycle status. Completed / Cancelled emergencies are frozen (409)."""
    try:
        emergency = coordinator.update_status(emergency_id, payload.status)
    except EmergencyNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except TerminalStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)

    await _announce_redispatched(coordinator, hub)
    return emergency


@router.delete("/{emergency_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_emergency(
    emergency_id: int,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    hub: ConnectionHub = Depends(get_hub),
):
    """Cancel the emergency; its ambulance goes back to Available."""
    try:
        coordinator.cancel(emergency_id)
    except EmergencyNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)

    await _announce_redispatched(coordinator, hub)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
