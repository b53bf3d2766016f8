"""
Health check endpoint.

Used by:
  - Docker HEALTHCHECK instruction
  - Load balancers / orchestrators
  - The requester and responder apps to check API connectivity

Returns liveness plus a snapshot of the repository and the number of live
WebSocket connections, so callers can tell "API down" from "nobody is
listening on the real-time channel".
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from swiftaid.core.config import settings
from swiftaid.core.repository import InMemoryRepository
from swiftaid.core.state import get_hub, get_repository
from swiftaid.realtime.hub import ConnectionHub

logger = logging.getLogger(__name__)
router = APIRouter()

VERSION = "0.1.0"


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    environment: str
    repository: dict[str, int]  # entity counts
    connections: int  # live WebSocket clients


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check(
    repository: InMemoryRepository = Depends(get_repository),
    hub: ConnectionHub = Depends(get_hub),
) -> HealthResponse:
    """Liveness of the API with repository counts and live connection count."""
    return HealthResponse(
        status="ok",
        version=VERSION,
        environment=settings.environment,
        repository=repository.counts(),
        connections=len(hub.connections),
    )
