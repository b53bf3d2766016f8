"""
fleet.py — Hospital and ambulance read routes.

Routes:
  GET /api/hospitals/nearby?latitude=&longitude=  — every hospital with its
                                                    distance, closest first
  GET /api/ambulances                             — every ambulance, for
                                                    clients resyncing after
                                                    a WebSocket reconnect

Distances are Haversine kilometres rounded to one decimal, returned both
formatted ("1.2 km") and raw (distanceValue) so the client can sort.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from swiftaid.core.repository import InMemoryRepository
from swiftaid.core.state import get_repository
from swiftaid.models.emergency import NearbyHospital
from swiftaid.models.entities import Ambulance
from swiftaid.services.geo import facilities_by_distance

router = APIRouter(prefix="/api", tags=["fleet"])


@router.get("/hospitals/nearby", response_model=list[NearbyHospital])
async def nearby_hospitals(
    latitude: Optional[float] = Query(default=None, ge=-90, le=90),
    longitude: Optional[float] = Query(default=None, ge=-180, le=180),
    repository: InMemoryRepository = Depends(get_repository),
):
    if latitude is None or longitude is None:
        raise HTTPException(status_code=400, detail="Latitude and longitude are required")

    ranked = facilities_by_distance(latitude, longitude, repository.list_hospitals())
    return [
        NearbyHospital(
            **hospital.model_dump(),
            distance=f"{km:.1f} km",
            distance_value=km,
        )
        for hospital, km in ranked
    ]


@router.get("/ambulances", response_model=list[Ambulance])
async def list_ambulances(repository: InMemoryRepository = Depends(get_repository)):
    return repository.list_ambulances()
