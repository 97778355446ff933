"""
Shared fixtures for portal tests.

Provides:
  • mock_settings – Settings built from dummy env values
  • backend – a fake ticketing backend (httpx.MockTransport) with routable answers
  • test_client – FastAPI TestClient whose HTTP client talks to ``backend``
  • make_token / sign_in – unsigned JWT-shaped tokens and a login helper
  • sample tickets and technicians in the backend's camelCase wire format
"""

from __future__ import annotations

import base64
import json
import os
import sys
import time
from pathlib import Path
from typing import Any, Callable, Optional, Union
from unittest.mock import patch

import httpx
import pytest

# ── Ensure portal package is importable ───────────────────────────
_PORTAL_DIR = str(Path(__file__).resolve().parent.parent)
if _PORTAL_DIR not in sys.path:
    sys.path.insert(0, _PORTAL_DIR)


# ═══════════════════════════════════════════════════════════════════
# Environment — set dummy env vars BEFORE importing app modules
# ═══════════════════════════════════════════════════════════════════

BACKEND_URL = "http://backend.test/api"

_DUMMY_ENV = {
    "APP_ENV": "test",
    "LOG_LEVEL": "WARNING",
    "CORS_ORIGINS": "http://localhost:5173",
    "API_BASE_URL": BACKEND_URL,
    "API_TIMEOUT_SECONDS": "5",
    "COOKIE_SECURE": "false",
    "SESSION_SECRET_KEY": "test-session-secret-key-0123456789",
}

# Direct assignment so values from a developer shell don't leak in.
for k, v in _DUMMY_ENV.items():
    os.environ[k] = v


# ═══════════════════════════════════════════════════════════════════
# Fake backend
# ═══════════════════════════════════════════════════════════════════

Answer = Union[httpx.Response, Callable[[httpx.Request], httpx.Response], Exception]


class FakeBackend:
    """
    Routes ``(METHOD, path)`` to canned answers; ``path`` is relative to the
    API base (``"tickets"``, ``"tickets/7/assign"``). Unrouted calls get 404.
    Every request seen is kept in ``requests``.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Answer] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, answer: Any = None, *, status: int = 200) -> None:
        if isinstance(answer, (httpx.Response, Exception)) or callable(answer):
            self.routes[(method.upper(), path)] = answer
        elif answer is None:
            self.routes[(method.upper(), path)] = httpx.Response(status)
        elif isinstance(answer, (bytes, str)):
            self.routes[(method.upper(), path)] = httpx.Response(status, content=answer)
        else:
            self.routes[(method.upper(), path)] = httpx.Response(status, json=answer)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and _relative(r) == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.routes.get((request.method, _relative(request)))
        if answer is None:
            return httpx.Response(404, text="not routed")
        if isinstance(answer, Exception):
            raise answer
        if callable(answer) and not isinstance(answer, httpx.Response):
            return answer(request)
        return answer

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url=BACKEND_URL + "/",
        )


def _relative(request: httpx.Request) -> str:
    path = request.url.path
    prefix = httpx.URL(BACKEND_URL).path.rstrip("/") + "/"
    return path[len(prefix):] if path.startswith(prefix) else path.lstrip("/")


def json_body(request: httpx.Request) -> Any:
    return json.loads(request.content)


# ═══════════════════════════════════════════════════════════════════
# Tokens
# ═══════════════════════════════════════════════════════════════════

def _b64(data: dict) -> str:
    raw = json.dumps(data).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def make_token(
    user_id: str = "u-1",
    *,
    roles: Optional[list[str]] = None,
    name: str = "Ana Torres",
    email: str = "ana@example.com",
    expires_in: int = 3600,
    **extra: Any,
) -> str:
    """Unsigned JWT-shaped token carrying the given claims."""
    claims: dict[str, Any] = {
        "sub": user_id,
        "name": name,
        "email": email,
        "exp": int(time.time()) + expires_in,
        **extra,
    }
    if roles:
        claims["role"] = roles if len(roles) > 1 else roles[0]
    return f"{_b64({'alg': 'HS256', 'typ': 'JWT'})}.{_b64(claims)}.c2lnbmF0dXJl"


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════

@pytest.fixture()
def mock_settings():
    """Return a Settings instance built from the dummy environment."""
    from helpdesk_portal.config import get_settings
    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture()
def backend():
    return FakeBackend()


@pytest.fixture()
def test_client(mock_settings, backend):
    """
    FastAPI TestClient whose backend HTTP client is wired to ``backend``.

    No network is touched: the lifespan builds its client through the
    patched factory.
    """
    with patch("helpdesk_portal.main.create_http_client", side_effect=lambda s: backend.client()):
        from fastapi.testclient import TestClient
        from helpdesk_portal.main import app
        with TestClient(app) as client:
            yield client


@pytest.fixture()
def sign_in(test_client, backend):
    """
    Log ``test_client`` in through ``POST /auth/login`` for the given roles.

    The backend answer marks the caller as a technician when ``Tecnico`` is
    among ``roles``. The login call is dropped from ``backend.requests``.
    """

    def _sign_in(*roles: str, user_id: str = "u-1", **claims: Any) -> str:
        token = make_token(user_id, roles=list(roles), **claims)
        backend.on("POST", "auth/login", {
            "id": user_id,
            "fullName": claims.get("name", "Ana Torres"),
            "email": claims.get("email", "ana@example.com"),
            "isTechnician": "Tecnico" in roles,
            "token": token,
        })
        resp = test_client.post("/auth/login", json={"email": "ana@example.com", "password": "pw"})
        assert resp.status_code == 200, resp.text
        del backend.routes[("POST", "auth/login")]
        backend.requests.clear()
        return token

    return _sign_in


@pytest.fixture()
def sample_tickets():
    """Backend ticket documents spanning statuses, priorities and dates."""
    return [
        {
            "id": 1,
            "title": "Printer jam",
            "description": "Paper stuck in tray 2",
            "problemType": "Hardware",
            "priority": "Alta",
            "status": "En espera",
            "requesterId": "u-10",
            "requesterName": "Luis Pérez",
            "createdAt": "2024-03-10T09:00:00",
        },
        {
            "id": 2,
            "title": "VPN drops",
            "description": "Disconnects every hour",
            "problemType": "Network",
            "priority": "Media",
            "status": "En progreso",
            "requesterId": "u-11",
            "requesterName": "Marta Gil",
            "technicianId": "t-1",
            "technicianName": "Carlos Ruiz",
            "createdAt": "2024-03-12T10:00:00",
        },
        {
            "id": 3,
            "title": "Monitor flicker",
            "description": "Flickers on startup",
            "problemType": "Hardware",
            "priority": "Baja",
            "status": "Terminado",
            "requesterId": "u-10",
            "requesterName": "Luis Pérez",
            "technicianId": "t-2",
            "technicianName": "Elena Sanz",
            "createdAt": "2024-03-01T08:00:00",
            "resolvedAt": "2024-03-01T12:00:00",
        },
    ]


@pytest.fixture()
def sample_technicians():
    return [
        {"id": "t-1", "fullName": "Carlos Ruiz", "email": "carlos@example.com", "isTechnician": True},
        {"id": "t-2", "fullName": "Elena Sanz", "email": "elena@example.com", "isTechnician": True},
        {"id": "t-3", "fullName": "Iván Mora", "email": "ivan@example.com", "isTechnician": True},
    ]
