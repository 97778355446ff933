"""
FastAPI application entry point for the help-desk portal.

Configures:
  • CORS middleware for the browser front end
  • Signed session cookie and sliding renewal of the auth cookie
  • Lifespan events for the shared backend HTTP client
  • Exception handlers mapping portal errors to JSON responses
  • API routers for auth, tickets, dashboard, technician, admin and user views
  • Health check endpoint
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from helpdesk_portal.config import get_settings
from helpdesk_portal.errors import (
    ErrorResponse,
    GatewayNetworkError,
    PortalError,
    RemoteFailureError,
    UnauthorizedError,
    ValidationError,
)
from helpdesk_portal.routers import admin, auth, dashboard, technician, tickets, users
from helpdesk_portal.services.gateway import create_http_client
from helpdesk_portal.services.session import clear_auth_cookie, cookie_already_set, set_auth_cookie

# ═══════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
# Lifespan — startup / shutdown
# ═══════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the backend HTTP client on startup and close it on shutdown."""
    logger.info("Starting help-desk portal (env=%s)...", settings.app_env)
    app.state.http_client = create_http_client(settings)
    logger.info(
        "Backend API at %s (timeout=%.0fs)",
        settings.api_base, settings.api_timeout_seconds,
    )

    yield

    logger.info("Shutting down help-desk portal...")
    await app.state.http_client.aclose()
    logger.info("Shutdown complete.")


# ═══════════════════════════════════════════════════════════════════
# App Creation
# ═══════════════════════════════════════════════════════════════════

app = FastAPI(
    title="Help-Desk Portal API",
    description=(
        "Web front end for the support ticketing service. Proxies ticket, "
        "technician and report operations to the backend API and computes "
        "the admin dashboard statistics."
    ),
    version="0.1.0",
    lifespan=lifespan,
)


# ═══════════════════════════════════════════════════════════════════
# Middleware
# ═══════════════════════════════════════════════════════════════════

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Signed (itsdangerous) cookie holding the profile and roles captured at login.
# It is re-sent on every response while non-empty, which slides its expiry.
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret_key,
    session_cookie=settings.session_cookie_name,
    max_age=settings.session_max_age,
    same_site="strict",
    https_only=settings.cookie_secure,
)


@app.middleware("http")
async def renew_session_cookie(request: Request, call_next):
    """Re-issue the auth cookie on each authenticated request (sliding expiry)."""
    response = await call_next(request)
    token = request.cookies.get(settings.auth_cookie_name)
    if token and response.status_code != 401 and not cookie_already_set(response, settings.auth_cookie_name):
        set_auth_cookie(response, token, settings)
    return response


# ═══════════════════════════════════════════════════════════════════
# Exception Handlers
# ═══════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: PortalError, *, message: str | None = None,
                    login_url: str | None = None) -> JSONResponse:
    body = ErrorResponse(
        error_code=error.error_code,
        message=message or error.message,
        details=error.details if settings.is_development else None,
        login_url=login_url,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError):
    logger.info("Unauthorized request to %s: %s", request.url.path, exc.message)
    request.session.clear()
    response = _error_response(401, exc, login_url=settings.login_path)
    clear_auth_cookie(response, settings)
    return response


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return _error_response(422, exc)


@app.exception_handler(RemoteFailureError)
async def remote_failure_handler(request: Request, exc: RemoteFailureError):
    logger.error(
        "Backend rejected %s %s (HTTP %d): %s",
        request.method, request.url.path, exc.status_code, exc.raw_body[:500],
    )
    return _error_response(502, exc, message="The operation could not be completed. Please try again.")


@app.exception_handler(GatewayNetworkError)
async def network_error_handler(request: Request, exc: GatewayNetworkError):
    logger.error("Backend unreachable for %s %s: %s", request.method, request.url.path, exc.details)
    return _error_response(502, exc, message="Connection error. Check your connection and try again.")


# ═══════════════════════════════════════════════════════════════════
# Routers
# ═══════════════════════════════════════════════════════════════════

app.include_router(auth.router)
app.include_router(tickets.router)
app.include_router(dashboard.router)
app.include_router(technician.router)
app.include_router(admin.router)
app.include_router(users.router)


# ═══════════════════════════════════════════════════════════════════
# Health Check
# ═══════════════════════════════════════════════════════════════════

@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint for container orchestrators and load balancers.
    Reports the configured backend without calling it.
    """
    return {
        "status": "healthy",
        "service": "helpdesk-portal",
        "version": "0.1.0",
        "environment": settings.app_env,
        "backend": settings.api_base,
    }


@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Help-Desk Portal API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
        "login": settings.login_path,
    }
