"""
geo.py — Great-circle distance and nearest-hospital selection.

Pure functions, no I/O. Hospitals carry their coordinates as decimal text,
so callers hand over the records as stored and the conversion to float
happens here.

USAGE
─────
    from swiftaid.services.geo import distance, nearest_facility

    distance(34.05, -118.24, 34.0522, -118.2437)   # → 0.4
    nearest_facility(34.05, -118.24, repository.list_hospitals())
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from swiftaid.models.entities import Hospital

EARTH_RADIUS_KM = 6371.0


def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance in kilometres between two points given in degrees,
    rounded to one decimal place.

    Symmetric, and exactly 0.0 for identical points.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


def facility_distance(latitude: float, longitude: float, hospital: Hospital) -> float:
    return distance(latitude, longitude, float(hospital.latitude), float(hospital.longitude))


def nearest_facility(
    latitude: float,
    longitude: float,
    facilities: Iterable[Hospital],
) -> Hospital | None:
    """
    Linear scan for the closest hospital.

    Ties keep the first one encountered, so with repository order the
    lowest id wins. Returns None when there are no hospitals at all.
    """
    nearest: Hospital | None = None
    best = math.inf
    for hospital in facilities:
        d = facility_distance(latitude, longitude, hospital)
        if d < best:
            best = d
            nearest = hospital
    return nearest


def facilities_by_distance(
    latitude: float,
    longitude: float,
    facilities: Sequence[Hospital],
) -> list[tuple[Hospital, float]]:
    """Every hospital paired with its distance, closest first (stable on ties)."""
    scored = [(h, facility_distance(latitude, longitude, h)) for h in facilities]
    return sorted(scored, key=lambda pair: pair[1])
