"""
api/main.py -- FastAPI application entry point for CredGate.

Exposes the auth core (register, login, authorize) over HTTP. The core itself
(auth/) knows nothing about HTTP; this module owns status codes and framing.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan reads Settings once, builds the user store, AuthService and
AccessGuard, and parks them on app.state. A missing SECRET_KEY makes
get_settings() raise before the first request can be served.
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
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import AuthError
from auth.guard import AccessGuard
from auth.service import AuthService
from auth.store import UserStore
from core.config import get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("credgate.api")

# Read once at import: middleware configuration needs it before lifespan runs,
# and a bad SECRET_KEY should stop the process here.
settings = get_settings()

# ---------------------------------------------------------------------------
# Error code -> HTTP status
# ---------------------------------------------------------------------------

AUTH_ERROR_STATUS: dict[str, int] = {
    "validation_error": 422,
    "invalid_role": 422,
    "user_exists": 409,
    "invalid_credentials": 401,
    "unauthenticated": 401,
    "forbidden": 403,
    "storage_unavailable": 503,
}


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the auth components on startup and dispose of the store on shutdown.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. Components are constructed from the Settings object explicitly:
    nothing inside auth/ reads configuration on its own.
    """
    logger.info("CredGate API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.auth_service = AuthService.from_settings(settings, app.state.user_store)
    app.state.guard = AccessGuard(app.state.auth_service.issuer)
    logger.info(
        "Auth initialized (token_expire_seconds=%d, bcrypt_rounds=%d)",
        settings.token_expire_seconds,
        settings.bcrypt_rounds,
    )

    yield

    app.state.user_store.close()
    logger.info("CredGate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CredGate API",
    description="Password registration, login and role-gated bearer tokens.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the current stack, so the LAST one added is the
# outermost. Register innermost-first: SlowAPI -> CORS -> TrustedHost.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Logs method, path, status and latency. Never logs headers or bodies: they
# carry bearer tokens and passwords.
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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Translate auth-core outcomes into HTTP responses.

    401 responses carry WWW-Authenticate: Bearer. For token failures the detail
    field holds the cause code (token_expired, invalid_signature,
    malformed_token) so clients can tell "log in again" from "bad token".
    """
    status_code = AUTH_ERROR_STATUS.get(exc.code, 400)
    response = _error(status_code, exc.code, exc.message, exc.detail)
    if status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    if status_code == 503:
        logger.warning("Storage unavailable on %s %s", request.method, request.url.path)
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Retry-After is the length of the violated limit's window in seconds
    ("5/minute" -> 60, "2/hour" -> 3600).
    """
    response = _error(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(exc.limit.limit.get_expiry())
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with the same envelope as service-level validation errors.

    Only field locations and messages are echoed back -- never the submitted
    input, which may contain a password.
    """
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}" for err in exc.errors()
    )
    return _error(422, "validation_error", "Request validation failed.", problems)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404, 405, ...)."""
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit and no auth -- load balancers must be able to poll it.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and a database round-trip check."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=__version__,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
