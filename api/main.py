"""
api/main.py -- FastAPI application entry point for the users/products service.

Run with:      python main.py
               uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan builds the MemoryDB on startup and hands it to routes through
app.state.db. There is no module-level store: each app lifetime gets a fresh
one, and all state is gone when the process exits.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse, ServiceInfoResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.products import router as products_router
from api.routes.v1.users import router as users_router
from auth.tokens import hash_password
from core.config import Settings, get_settings
from memdb.models import Product, User
from memdb.store import MemoryDB

__version__ = "1.0.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("memdb.api")

# ---------------------------------------------------------------------------
# Demo data
# ---------------------------------------------------------------------------


def seed_demo_data(db: MemoryDB, settings: Settings) -> None:
    """Insert one admin user and one product through the normal create path.

    Going through create_user()/create_product() keeps the id counters in
    step with the data, so the first API-created user gets id 2, not a
    colliding id 1.
    """
    hashed = hash_password(settings.admin_password) if settings.admin_password else None
    admin = db.create_user(
        User(
            username="admin",
            email="admin@example.com",
            full_name="System Administrator",
            hashed_password=hashed,
            is_active=True,
        )
    )
    if hashed is None:
        logger.warning("ADMIN_PASSWORD not set -- seeded admin user cannot log in")
    product = db.create_product(
        Product(
            name="Python Field Guide",
            description="From first steps to production services",
            price=99.99,
            stock=100,
            category="books",
            is_active=True,
        )
    )
    logger.info("Seeded demo data (user %d, product %d)", admin.id, product.id)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the store on startup; drop it on shutdown.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    logger.info("memdb API starting up")
    app.state.db = MemoryDB()
    if _settings.seed_demo_data:
        seed_demo_data(app.state.db, _settings)

    yield

    logger.info(
        "memdb API shutdown complete (%d users, %d products discarded)",
        app.state.db.count_users(),
        app.state.db.count_products(),
    )


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="memdb API",
    description="Users and products CRUD over a thread-safe in-memory store.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(products_router, prefix="/api/v1", tags=["Products"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error and a Retry-After header."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI HTTP exceptions.

    Route handlers raise HTTPException with detail=ErrorDetail(...).model_dump()
    (a dict). A dict detail is used directly as the error field rather than
    stringified.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The exception is logged with its traceback; the client only sees a
    generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Service info and health
#
# Defined directly in main.py (not in a router) so they are always reachable.
# No rate limit -- health checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/", tags=["Health"])
async def service_info() -> ServiceInfoResponse:
    """Describe the service."""
    return ServiceInfoResponse(
        service="memdb API",
        version=__version__,
        description="Users and products CRUD over a thread-safe in-memory store.",
        features=["user management", "product management", "in-memory store", "JWT auth", "REST API"],
        timestamp=datetime.now(timezone.utc),
    )


@app.get("/api/v1/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version and component status."""
    db_status = "ok" if isinstance(getattr(request.app.state, "db", None), MemoryDB) else "error"
    return HealthResponse(
        status="healthy" if db_status == "ok" else "degraded",
        version=__version__,
        components={"app": "ok", "store": db_status},
    )
