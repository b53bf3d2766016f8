"""
users.py — Current requester routes.

Routes:
  GET /api/user        — the current requester's profile (no password)
  GET /api/activities  — the requester's activity history, newest first

There is no authentication layer: "current requester" is always
settings.default_requester_id.
"""

from fastapi import APIRouter, Depends, HTTPException

from swiftaid.core.config import settings
from swiftaid.core.repository import InMemoryRepository
from swiftaid.core.state import get_repository
from swiftaid.models.emergency import ActivityOut, UserOut

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/user", response_model=UserOut)
async def get_current_user(repository: InMemoryRepository = Depends(get_repository)):
    """Return the current requester, password stripped."""
    user = repository.get_user(settings.default_requester_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserOut(**user.model_dump(exclude={"password"}))


@router.get("/activities", response_model=list[ActivityOut])
async def list_activities(repository: InMemoryRepository = Depends(get_repository)):
    """Activity rows for the history screen."""
    activities = repository.list_activities_for_user(settings.default_requester_id)
    return [
        ActivityOut(id=a.id, type=a.type, date=a.date, status=a.status)
        for a in activities
    ]
