"""
api/main.py -- FastAPI application entry point for the Connected Office API.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests          -- method, path, status, latency, client
  2. SlowAPIMiddleware     -- enforces default rate limits from api.limiter
  3. CORSMiddleware        -- adds CORS headers for allowed browser origins
  4. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  5. session_gate          -- rejects tokens whose session row is closed (api/middleware.py)

Lifespan opens both stores, builds the services on top of them and stores
everything on app.state; shutdown closes the stores.

Every error response body is a single plain-text message.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import PlainTextResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.middleware import session_gate
from api.models import HealthResponse
from api.routes.categories import router as categories_router
from api.routes.devices import router as devices_router
from api.routes.security import router as security_router
from api.routes.zones import router as zones_router
from auth.identity import IdentityProvider
from auth.security import SecurityService
from auth.store import UserStore
from core.config import get_settings
from core.results import WebApiError
from office.services import CategoryService, DeviceService, ZoneService
from office.store import OfficeStore

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("connectedoffice.api")

# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def wire_app_state(app: FastAPI, user_store: UserStore, office_store: OfficeStore) -> None:
    """Build every service on top of the given stores and publish them on app.state.

    Shared by the real lifespan and the test lifespan so both wire the
    application identically; only the stores differ.
    """
    app.state.user_store = user_store
    app.state.office_store = office_store
    app.state.security_service = SecurityService(IdentityProvider(user_store), user_store)
    app.state.category_service = CategoryService(office_store)
    app.state.zone_service = ZoneService(office_store)
    app.state.device_service = DeviceService(office_store)


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores on startup and close them on shutdown.

    Both stores share Settings.database_url; their table sets do not overlap.
    """
    logger.info("Connected Office API starting up")
    database_url = get_settings().database_url
    user_store = UserStore(database_url)
    office_store = OfficeStore(database_url)
    wire_app_state(app, user_store, office_store)
    logger.info("Stores initialized")

    yield

    office_store.close()
    user_store.close()
    logger.info("Connected Office API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Connected Office API",
    description="Inventory of office devices, their categories and zones, with JWT-secured access.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() and @app.middleware both insert at the outside of the
# stack, so the last registration sees the request first.
# ---------------------------------------------------------------------------

_settings = get_settings()

# Innermost, so TrustedHost rejects bad hosts before any session lookup and
# CORS headers are added to the gate's 401 as well.
app.middleware("http")(session_gate)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=True,
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler, including requests the session gate rejects.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(categories_router, prefix="/api", tags=["Categories"])
app.include_router(zones_router, prefix="/api", tags=["Zones"])
app.include_router(devices_router, prefix="/api", tags=["Devices"])
app.include_router(security_router, prefix="/api", tags=["Security"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers answer with a plain-text body holding one message so clients
# can show it as-is.
# ---------------------------------------------------------------------------


@app.exception_handler(WebApiError)
async def web_api_error_handler(request: Request, exc: WebApiError) -> PlainTextResponse:
    """Render a failed service Result (raised by unwrap()) as status code + message."""
    return PlainTextResponse(exc.message, status_code=exc.status_code)


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> PlainTextResponse:
    """Return 429 when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    Synchronous because SlowAPIMiddleware calls it directly, without awaiting.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = PlainTextResponse(f"Too many requests. Limit: {exc.detail}", status_code=429)
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> PlainTextResponse:
    """Return 400 when the body or a path parameter fails validation (bad JSON, bad GUID)."""
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}" for err in exc.errors()
    )
    return PlainTextResponse(f"The request is not valid. {problems}".strip(), status_code=400)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    """Plain-text rendering for HTTPException (role gates, unknown routes, bad methods)."""
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged with its traceback, never written to the
    response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return PlainTextResponse("An unexpected error occurred.", status_code=500)


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No rate limit and no auth --
# health checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and per-store reachability."""
    components = {
        "app": "ok",
        "user_store": "ok" if request.app.state.user_store.ping() else "error",
        "office_store": "ok" if request.app.state.office_store.ping() else "error",
    }
    status = "healthy" if all(v == "ok" for v in components.values()) else "degraded"
    return HealthResponse(status=status, version=API_VERSION, components=components)
