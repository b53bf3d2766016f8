"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address.

Usage in routes:
    from fastapi import Request
    from swiftaid.core.rate_limit import limiter

    @router.post("/api/emergencies")
    @limiter.limit(settings.emergency_rate_limit)
    async def create_emergency(request: Request, payload: EmergencyCreate):
        ...

Wired into the app in main.py (app.state.limiter + RateLimitExceeded handler).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Key requests by client IP.
# Once requesters authenticate this can key on the requester id instead.
limiter = Limiter(key_func=get_remote_address)
