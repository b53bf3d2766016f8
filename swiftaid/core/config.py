"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. Server-side and client-side (session) settings live
in the same object so the simulator script and the API agree on defaults.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the requester / responder web apps.
    cors_origins_str: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Identity ──────────────────────────────────────────────────
    # There is no auth layer: every REST call acts on behalf of this requester.
    default_requester_id: int = 1

    # ─── Dispatch ──────────────────────────────────────────────────
    # Fixed ETA (minutes) reported for every request until routing exists.
    eta_minutes: int = 8

    # When True, a freed ambulance is handed to the oldest Pending request.
    # Off by default: dispatch is attempted only when a request is created.
    auto_redispatch: bool = False

    # slowapi limit string for POST /api/emergencies, counted per client IP.
    # Raise it where many requesters share one address.
    emergency_rate_limit: str = "30/minute"

    # ─── Real-time client session ──────────────────────────────────
    hub_url: str = "ws://localhost:8000/ws"
    reconnect_interval_seconds: float = 3.0
    max_reconnect_delay_seconds: float = 30.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton — import this everywhere instead of instantiating Settings()
settings = Settings()
