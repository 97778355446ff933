"""
Session handling for the portal.

The backend issues a JWT at login. The portal keeps it in an HTTP-only
cookie for the proxied calls, and keeps the profile and roles captured at
login in a signed session cookie (Starlette ``SessionMiddleware``). Each
request rebuilds the caller's ``AuthSession`` from that signed copy; the
token's own claims are never trusted after login. The stored copy carries
a fingerprint of the token, so a swapped token cookie signs the caller out.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
import time
from typing import Any, MutableMapping, Optional

from fastapi.responses import Response
from pydantic import ValidationError as PydanticValidationError

from helpdesk_portal.config import Settings
from helpdesk_portal.errors import PortalError, RemoteFailureError, UnauthorizedError
from helpdesk_portal.models.ticket import AuthSession, LoginResult, Role

logger = logging.getLogger(__name__)

# Claim names as emitted by ASP.NET Identity tokens, plus the short forms.
_ROLE_CLAIMS = (
    "role",
    "roles",
    "http://schemas.microsoft.com/ws/2008/06/identity/claims/role",
)
_ID_CLAIMS = (
    "sub",
    "nameid",
    "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier",
)
_NAME_CLAIMS = (
    "name",
    "unique_name",
    "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/name",
)
_EMAIL_CLAIMS = (
    "email",
    "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/emailaddress",
)
_TECHNICIAN_CLAIMS = ("EsTecnico", "isTechnician")

_ROLE_ALIASES = {
    "admin": Role.ADMIN,
    "administrador": Role.ADMIN,
    "tecnico": Role.TECHNICIAN,
    "técnico": Role.TECHNICIAN,
    "technician": Role.TECHNICIAN,
    "usuario": Role.USER,
    "user": Role.USER,
}


# ═══════════════════════════════════════════════════════════════════
# Token claims
# ═══════════════════════════════════════════════════════════════════

def read_token_claims(token: str) -> dict[str, Any]:
    """Decode the JWT payload segment; malformed tokens yield ``{}``."""
    parts = token.split(".")
    if len(parts) != 3:
        return {}
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(segment))
    except (binascii.Error, ValueError):
        logger.warning("Could not decode session token payload")
        return {}
    return claims if isinstance(claims, dict) else {}


def _first_claim(claims: dict[str, Any], names: tuple[str, ...]) -> str:
    for name in names:
        value = claims.get(name)
        if value:
            return str(value)
    return ""


def _roles_from_claims(claims: dict[str, Any]) -> list[Role]:
    roles: list[Role] = []
    for name in _ROLE_CLAIMS:
        raw = claims.get(name)
        values = raw if isinstance(raw, list) else [raw] if raw else []
        for value in values:
            role = _ROLE_ALIASES.get(str(value).strip().lower())
            if role is not None and role not in roles:
                roles.append(role)
    return roles


def _claims_flag(claims: dict[str, Any], names: tuple[str, ...]) -> bool:
    for name in names:
        value = claims.get(name)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() == "true"
    return False


def token_expired(token: str, now: Optional[float] = None) -> bool:
    """True when the token's ``exp`` claim lies in the past."""
    exp = read_token_claims(token).get("exp")
    return isinstance(exp, (int, float)) and exp < (now if now is not None else time.time())


def session_from_token(
    token: Optional[str],
    *,
    is_technician: Optional[bool] = None,
    now: Optional[float] = None,
) -> Optional[AuthSession]:
    """
    Build a session from a bearer token's claims.

    Returns None for a missing or expired token. A token without role claims
    gets ``Tecnico`` or ``Usuario`` from ``is_technician`` (falling back to
    the token's own technician flag).
    """
    if not token:
        return None
    if token_expired(token, now):
        logger.info("Session token expired")
        return None
    claims = read_token_claims(token)

    roles = _roles_from_claims(claims)
    if not roles:
        technician = is_technician if is_technician is not None else _claims_flag(claims, _TECHNICIAN_CLAIMS)
        roles = [Role.TECHNICIAN if technician else Role.USER]

    return AuthSession(
        token=token,
        user_id=_first_claim(claims, _ID_CLAIMS),
        name=_first_claim(claims, _NAME_CLAIMS),
        email=_first_claim(claims, _EMAIL_CLAIMS),
        roles=roles,
    )


def session_from_login(result: LoginResult) -> Optional[AuthSession]:
    """
    Session for a fresh login answer.

    Roles come from the token, or from the answer's technician flag when the
    token has none. Identity comes from the answer, then from the token.
    """
    session = session_from_token(result.token, is_technician=result.is_technician)
    if session is None:
        return None
    session.user_id = result.id or session.user_id
    session.name = result.full_name or session.name
    session.email = result.email or session.email
    return session


# ═══════════════════════════════════════════════════════════════════
# Signed session store
# ═══════════════════════════════════════════════════════════════════

SESSION_KEY = "user"


def token_fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()[:16]


def store_session(store: MutableMapping[str, Any], session: AuthSession) -> None:
    """Save ``session`` (without the token itself) into the signed store."""
    store[SESSION_KEY] = {
        **session.model_dump(mode="json"),
        "fingerprint": token_fingerprint(session.token),
    }


def load_session(
    store: MutableMapping[str, Any],
    token: Optional[str],
    *,
    now: Optional[float] = None,
) -> Optional[AuthSession]:
    """
    Rebuild the caller's session from the signed store.

    Returns None when there is no stored session or no token, when the token
    is not the one the session was issued for, or when it has expired.
    """
    data = store.get(SESSION_KEY)
    if not token or not isinstance(data, dict):
        return None
    if data.get("fingerprint") != token_fingerprint(token):
        logger.warning("Session cookie does not match the presented token")
        return None
    if token_expired(token, now):
        logger.info("Session token expired")
        return None
    try:
        return AuthSession.model_validate({**data, "token": token})
    except PydanticValidationError as e:
        logger.warning("Discarding unreadable stored session: %s", e)
        return None


def landing_route(session: AuthSession) -> str:
    """Where the caller goes right after signing in."""
    if session.has_role(Role.ADMIN):
        return "/admin/dashboard"
    if session.has_role(Role.TECHNICIAN):
        return "/technician/queue"
    return "/"


def login_failure_message(error: PortalError) -> str:
    """User-facing text for a failed login, from the backend's answer."""
    if isinstance(error, UnauthorizedError):
        return "Invalid email or password."
    if isinstance(error, RemoteFailureError):
        text = error.raw_body.lower()
        if "bloqueado" in text or "blocked" in text:
            return "Your account is blocked. Contact the administrator."
        if "credenciales" in text or "invalid" in text:
            return "Invalid email or password."
        if "no encontrado" in text or "not found" in text:
            return "That email address is not registered."
        return "Could not sign in. Please try again."
    return "Connection error. Check your connection and try again."


# ═══════════════════════════════════════════════════════════════════
# Cookie
# ═══════════════════════════════════════════════════════════════════

def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.session_max_age,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="strict",
    )


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="strict",
    )


def cookie_already_set(response: Response, name: str) -> bool:
    """True when the response already sets or clears cookie ``name``."""
    prefix = f"{name}="
    return any(h.startswith(prefix) for h in response.headers.getlist("set-cookie"))
