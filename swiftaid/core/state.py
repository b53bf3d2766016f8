"""
Process-wide application state: repository, dispatch coordinator, hub.

Architecture decision: a single AppState instance shared across all
requests via a module-level singleton. FastAPI dependencies (get_repository,
get_coordinator, get_hub) give routes clean access without importing the
singleton directly, and tests swap or reset it in one place.

State is built lazily on first access (and eagerly from the app lifespan),
so transports that skip lifespan events, like httpx's ASGITransport, still
see a seeded repository.
"""

import logging
from typing import Optional

from swiftaid.core.config import settings
from swiftaid.core.repository import InMemoryRepository, seed
from swiftaid.realtime.hub import ConnectionHub
from swiftaid.services.dispatch import DispatchCoordinator

logger = logging.getLogger(__name__)


class AppState:
    """
    Holds the live service objects.

    Tests reset or replace .repository / .coordinator / .hub here.
    """

    repository: Optional[InMemoryRepository] = None
    coordinator: Optional[DispatchCoordinator] = None
    hub: Optional[ConnectionHub] = None


# Module-level singleton — all app code references this object
app_state = AppState()


def init_state(repository: Optional[InMemoryRepository] = None) -> AppState:
    """
    Build (or rebuild) the repository, coordinator and hub.

    A fresh repository is seeded with the sample data; pass one in to start
    from a custom data set instead.
    """
    if repository is None:
        repository = InMemoryRepository()
        seed(repository)
    app_state.repository = repository
    app_state.coordinator = DispatchCoordinator(
        repository,
        eta_minutes=settings.eta_minutes,
        auto_redispatch=settings.auto_redispatch,
    )
    app_state.hub = ConnectionHub(repository)
    logger.info("Dispatch state initialised (auto_redispatch=%s)", settings.auto_redispatch)
    return app_state


def reset_state() -> None:
    """Drop all state; the next access rebuilds it from the seed."""
    app_state.repository = None
    app_state.coordinator = None
    app_state.hub = None


def _ensure() -> AppState:
    if app_state.repository is None:
        init_state()
    return app_state


def get_repository() -> InMemoryRepository:
    """FastAPI dependency — the entity repository."""
    return _ensure().repository


def get_coordinator() -> DispatchCoordinator:
    """FastAPI dependency — the dispatch coordinator."""
    return _ensure().coordinator


def get_hub() -> ConnectionHub:
    """FastAPI dependency — the real-time fan-out hub."""
    return _ensure().hub
