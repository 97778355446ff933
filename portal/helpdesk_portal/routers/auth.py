"""
Authentication endpoints: sign in, sign out and the current profile.

The backend's JWT is kept in an HTTP-only cookie; the profile and roles
captured at login go into the signed session cookie. Nothing is stored
server-side.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from helpdesk_portal.config import get_settings
from helpdesk_portal.errors import GatewayNetworkError, PortalError, RemoteFailureError
from helpdesk_portal.models.ticket import AuthSession, LoginRequest
from helpdesk_portal.routers.deps import get_gateway, require_session
from helpdesk_portal.services import session as sessions
from helpdesk_portal.services.gateway import ApiGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _profile(session: AuthSession) -> dict:
    return {
        "id": session.user_id,
        "name": session.name,
        "email": session.email,
        "roles": [r.value for r in session.roles],
    }


# ═══════════════════════════════════════════════════════════════════
# POST /auth/login
# ═══════════════════════════════════════════════════════════════════

@router.post("/login")
async def login(
    credentials: LoginRequest,
    request: Request,
    gateway: ApiGateway = Depends(get_gateway),
):
    """
    Exchange credentials for a session cookie.

    Failures come back as 401 (bad credentials, blocked or unknown account)
    or 502 (backend unreachable) with a message fit for the login form.
    """
    settings = get_settings()
    request.session.clear()
    try:
        result = await gateway.login(credentials.email, credentials.password)
    except PortalError as e:
        logger.warning("Login failed for %s: %s", credentials.email, e.message)
        status = 502 if isinstance(e, GatewayNetworkError) else 401
        if isinstance(e, RemoteFailureError) and e.status_code >= 500:
            status = 502
        return JSONResponse(
            status_code=status,
            content={"success": False, "message": sessions.login_failure_message(e)},
        )

    session = sessions.session_from_login(result) if result is not None else None
    if session is None:
        logger.warning("Login for %s returned no usable token", credentials.email)
        return JSONResponse(
            status_code=401,
            content={"success": False, "message": "Invalid email or password."},
        )

    sessions.store_session(request.session, session)
    response = JSONResponse(
        content={
            "success": True,
            "user": _profile(session),
            "redirectUrl": sessions.landing_route(session),
        }
    )
    sessions.set_auth_cookie(response, result.token, settings)
    logger.info("User %s signed in (roles=%s)", session.user_id, [r.value for r in session.roles])
    return response


# ═══════════════════════════════════════════════════════════════════
# POST /auth/logout
# ═══════════════════════════════════════════════════════════════════

@router.post("/logout")
async def logout(request: Request):
    request.session.clear()
    response = JSONResponse(content={"success": True, "redirectUrl": get_settings().login_path})
    sessions.clear_auth_cookie(response, get_settings())
    return response


@router.get("/me")
async def me(session: AuthSession = Depends(require_session)):
    """Profile of the signed-in caller."""
    return _profile(session)
