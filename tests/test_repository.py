"""
Tests for swiftaid/core/repository.py.

Verifies:
  - Ids are sequential per entity type, starting at 1
  - Coordinates are stored as exact decimal text
  - Records handed out are snapshots (mutating them changes nothing)
  - Missing ids yield None instead of raising
  - Available-ambulance selection is by id order
  - Location updates keep the previous speed when none is given
  - Emergencies always start Pending; listings are newest first
  - The seed loads the expected sample data
"""

from datetime import datetime, timedelta, timezone

import pytest

from swiftaid.core.repository import InMemoryRepository, decimal_text, seed
from swiftaid.models.entities import PatientInfo


class Clock:
    """Deterministic now_fn: every call advances one second."""

    def __init__(self):
        self.current = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture()
def repo():
    return InMemoryRepository(now_fn=Clock())


def _patient() -> PatientInfo:
    return PatientInfo(first_name="Jane", last_name="Roe", phone_number="555-0100")


def _emergency(repo, user_id=1):
    location = repo.create_location(34.05, -118.24, "1 Main St")
    return repo.create_emergency(type="Injury", user_id=user_id, location=location, patient_info=_patient())


# ── decimal_text ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "value, expected",
    [
        (34.05, "34.05"),
        (-118.2437, "-118.2437"),
        (34.0, "34"),
        ("34.0500", "34.05"),
        (0.0, "0"),
        (-0.0, "0"),
        (1e-7, "0.0000001"),
    ],
)
def test_decimal_text(value, expected):
    assert decimal_text(value) == expected


# ── Ids and snapshots ─────────────────────────────────────────────────────────

def test_ids_are_sequential_per_table(repo):
    assert repo.create_ambulance("A").id == 1
    assert repo.create_ambulance("B").id == 2
    assert repo.create_hospital("H", 1, 2, "addr").id == 1
    assert repo.create_location(1, 2, "addr").id == 1


def test_location_round_trips_exact_text(repo):
    location = repo.create_location(34.0522, -118.2437, "123 Hospital St")
    stored = repo.get_location(location.id)
    assert stored.latitude == "34.0522"
    assert stored.longitude == "-118.2437"
    assert stored == location


def test_returned_records_are_snapshots(repo):
    ambulance = repo.create_ambulance("A")
    ambulance.status = "OnScene"
    assert repo.get_ambulance(ambulance.id).status == "Available"


def test_missing_ids_return_none(repo):
    assert repo.get_user(99) is None
    assert repo.get_emergency(99) is None
    assert repo.update_ambulance_status(99, "Dispatched") is None
    assert repo.update_ambulance_location(99, 1, 2) is None
    assert repo.update_emergency_status(99, "Completed") is None
    assert repo.assign_ambulance_to_emergency(99, 1) is None
    assert repo.assign_hospital_to_emergency(99, 1) is None


# ── Ambulances ────────────────────────────────────────────────────────────────

def test_available_ambulance_is_first_by_id(repo):
    repo.create_ambulance("A", status="Dispatched")
    repo.create_ambulance("B")
    repo.create_ambulance("C")
    assert repo.get_available_ambulance().name == "B"


def test_no_available_ambulance(repo):
    repo.create_ambulance("A", status="OnScene")
    assert repo.get_available_ambulance() is None


def test_location_update_keeps_speed_when_missing(repo):
    ambulance = repo.create_ambulance("A", latitude=1, longitude=2, speed=30)
    updated = repo.update_ambulance_location(ambulance.id, 34.051, -118.241)
    assert (updated.latitude, updated.longitude, updated.speed) == ("34.051", "-118.241", 30)

    updated = repo.update_ambulance_location(ambulance.id, 34.052, -118.242, speed=0)
    assert updated.speed == 0


# ── Emergencies ───────────────────────────────────────────────────────────────

def test_emergency_starts_pending_with_snapshots(repo):
    emergency = _emergency(repo)
    assert emergency.status == "Pending"
    assert emergency.eta is None
    assert emergency.ambulance_id is None
    assert emergency.location_info.address == "1 Main St"
    assert emergency.patient_info.first_name == "Jane"


def test_assign_ambulance_embeds_snapshot(repo):
    ambulance = repo.create_ambulance("A")
    emergency = _emergency(repo)
    assigned = repo.assign_ambulance_to_emergency(emergency.id, ambulance.id)
    assert assigned.ambulance_id == ambulance.id
    assert assigned.ambulance_info.name == "A"


def test_emergencies_listed_newest_first(repo):
    first = _emergency(repo)
    second = _emergency(repo)
    _emergency(repo, user_id=2)
    assert [e.id for e in repo.list_emergencies_for_user(1)] == [second.id, first.id]


def test_oldest_pending_emergency(repo):
    first = _emergency(repo)
    second = _emergency(repo)
    assert repo.oldest_pending_emergency().id == first.id
    repo.update_emergency_status(first.id, "Cancelled")
    assert repo.oldest_pending_emergency().id == second.id


def test_oldest_pending_skips_emergencies_with_ambulance(repo):
    ambulance = repo.create_ambulance("A")
    first = _emergency(repo)
    second = _emergency(repo)
    repo.assign_ambulance_to_emergency(first.id, ambulance.id)

    assert repo.oldest_pending_emergency().id == second.id
    repo.assign_ambulance_to_emergency(second.id, ambulance.id)
    assert repo.oldest_pending_emergency() is None


def test_activities_newest_first(repo):
    old = repo.create_activity("Old", "Info", user_id=1, date=repo.now() - timedelta(days=3))
    new = repo.create_activity("New", "Info", user_id=1)
    assert [a.id for a in repo.list_activities_for_user(1)] == [new.id, old.id]
    assert repo.list_activities_for_user(2) == []


# ── Seed ──────────────────────────────────────────────────────────────────────

def test_seed_loads_sample_data(repo):
    seed(repo)
    assert repo.counts() == {
        "users": 1,
        "ambulances": 2,
        "hospitals": 2,
        "emergencies": 0,
        "activities": 2,
    }
    assert repo.get_user(1).username == "john.doe"
    assert [a.name for a in repo.list_ambulances()] == ["Ambulance #247", "Ambulance #156"]
    assert all(a.status == "Available" for a in repo.list_ambulances())
    assert repo.list_hospitals()[0].longitude == "-118.2437"
