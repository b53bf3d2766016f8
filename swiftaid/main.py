"""
SwiftAid Dispatch API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups, maps
errors onto the { "message": ... } JSON shape the clients read, and builds
the in-memory dispatch state on startup.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager

Run locally:
  uvicorn swiftaid.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from swiftaid.core.config import settings
from swiftaid.core.rate_limit import limiter
from swiftaid.core.state import init_state
from swiftaid.routes.emergencies import router as emergencies_router
from swiftaid.routes.fleet import router as fleet_router
from swiftaid.routes.health import VERSION
from swiftaid.routes.health import router as health_router
from swiftaid.routes.realtime import router as realtime_router
from swiftaid.routes.users import router as users_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Code before `yield` runs on startup; code after runs on shutdown.

    State is process-lifetime only: every start reseeds the sample data.
    """
    logger.info("Starting SwiftAid Dispatch API (env: %s)", settings.environment)
    init_state()
    yield
    logger.info("Shutting down SwiftAid Dispatch API")


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="SwiftAid Dispatch API",
    description=(
        "Emergency request intake, ambulance dispatch and real-time "
        "status / location fan-out."
    ),
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Attach the limiter to app state so slowapi can find it.
# Routes opt-in with @limiter.limit(...) + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ─── Error mapping ─────────────────────────────────────────────────────────────
# Clients read { "message": ... } (plus "errors" for validation failures).

def _field_name(loc: tuple) -> str:
    # Drop the "body" / "query" / "path" prefix FastAPI puts on every location
    parts = [str(p) for p in loc]
    if parts and parts[0] in ("body", "query", "path"):
        parts = parts[1:]
    return ".".join(parts)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [{"field": _field_name(err["loc"]), "message": err["msg"]} for err in exc.errors()]
    logger.info("Rejected %s %s: %d invalid field(s)", request.method, request.url.path, len(errors))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request body", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    content = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


# ─── Middleware ─────────────────────────────────────────────────────────────────
# CORS: allow the requester and responder web apps to call the API.
# In production, restrict allow_origins to your actual domain.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(users_router)
app.include_router(emergencies_router)
app.include_router(fleet_router)
app.include_router(realtime_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "SwiftAid Dispatch API",
        "version": VERSION,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
        "websocket": "/ws",
    }
