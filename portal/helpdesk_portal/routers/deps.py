"""
FastAPI dependencies: the per-request gateway and the caller's session.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request

from helpdesk_portal.config import get_settings
from helpdesk_portal.errors import UnauthorizedError
from helpdesk_portal.models.ticket import AuthSession, Role
from helpdesk_portal.services.gateway import ApiGateway
from helpdesk_portal.services.session import load_session

logger = logging.getLogger(__name__)


def get_token(request: Request) -> Optional[str]:
    return request.cookies.get(get_settings().auth_cookie_name) or None


def get_gateway(request: Request) -> ApiGateway:
    """Gateway bound to the shared HTTP client and this caller's token."""
    return ApiGateway(request.app.state.http_client, get_token(request))


def get_session(request: Request) -> Optional[AuthSession]:
    return load_session(request.session, get_token(request))


def require_session(session: Optional[AuthSession] = Depends(get_session)) -> AuthSession:
    if session is None:
        raise UnauthorizedError("Please sign in to continue")
    return session


def require_roles(*roles: Role) -> Callable[..., AuthSession]:
    """Dependency factory: signed in and holding at least one of ``roles``."""

    def _check(session: AuthSession = Depends(require_session)) -> AuthSession:
        if not session.has_role(*roles):
            logger.warning(
                "User %s (roles=%s) denied; requires one of %s",
                session.user_id, [r.value for r in session.roles], [r.value for r in roles],
            )
            raise HTTPException(status_code=403, detail="Access denied")
        return session

    return _check


def degraded_notice(gateway: ApiGateway) -> Optional[str]:
    """Inline notice for a view whose reads fell back to empty data."""
    if gateway.unauthorized:
        return "Your session has expired. Please sign in again."
    if gateway.degraded:
        return "Some data could not be loaded. Showing what is available."
    return None
