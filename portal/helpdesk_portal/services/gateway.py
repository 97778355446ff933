"""
API Gateway — the single path from the portal to the ticketing backend.

Every outbound call goes through ``ApiGateway.invoke``, which attaches the
caller's bearer token and classifies the HTTP answer into an ``Outcome``:

  • 401                       → UNAUTHORIZED
  • 2xx, 204 / empty body     → EMPTY
  • other non-2xx             → REMOTE_FAILURE (status + raw body kept)
  • 2xx with body             → SUCCESS, or DECODE_ERROR if it does not
                                 match the expected shape
  • timeout / transport error → NETWORK_ERROR

On top of that, ``read`` degrades every failure to a default value so list
and dashboard views always render, while ``write`` raises the matching
``helpdesk_portal.errors`` exception so the caller can tell the user.

There are no retries and no caching; the shared ``httpx.AsyncClient``
carries the configured timeout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from functools import lru_cache
from typing import Any, Generic, Optional, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter

from helpdesk_portal.config import Settings
from helpdesk_portal.errors import GatewayNetworkError, RemoteFailureError, UnauthorizedError
from helpdesk_portal.models.admin import (
    EquipmentIncident,
    InventoryItem,
    UserAccount,
    UserCreateRequest,
    UserUpdateRequest,
)
from helpdesk_portal.models.ticket import (
    Equipment,
    LoginResult,
    Role,
    Technician,
    Ticket,
    TicketCreateRequest,
    TicketStatus,
    TicketUpdateRequest,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


# ═══════════════════════════════════════════════════════════════════
# Outcome
# ═══════════════════════════════════════════════════════════════════

class OutcomeKind(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    UNAUTHORIZED = "unauthorized"
    REMOTE_FAILURE = "remote_failure"
    DECODE_ERROR = "decode_error"
    NETWORK_ERROR = "network_error"


@dataclass
class Outcome(Generic[T]):
    """Typed result of one backend call."""

    kind: OutcomeKind
    data: Optional[T] = None
    status_code: Optional[int] = None
    raw_body: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.EMPTY)

    def describe(self) -> str:
        if self.kind is OutcomeKind.REMOTE_FAILURE:
            return f"{self.kind.value} {self.status_code}: {self.raw_body[:200]}"
        if self.error:
            return f"{self.kind.value}: {self.error}"
        return self.kind.value


@dataclass
class Degradation:
    """A read that fell back to its default value."""

    path: str
    kind: OutcomeKind


# ═══════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════

def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Build the shared client used for every backend call (one per app)."""
    return httpx.AsyncClient(
        base_url=settings.api_base,
        timeout=settings.api_timeout_seconds,
    )


@lru_cache(maxsize=64)
def _adapter(expect: Any) -> TypeAdapter:
    return TypeAdapter(expect)


def _to_json(body: Any) -> Any:
    if isinstance(body, BaseModel):
        return body.model_dump(mode="json", by_alias=True, exclude_none=True)
    return body


# ═══════════════════════════════════════════════════════════════════
# Gateway
# ═══════════════════════════════════════════════════════════════════

class ApiGateway:
    """
    Per-request gateway bound to one caller's token.

    Args:
        client: Shared ``httpx.AsyncClient`` (base URL + timeout configured).
        token: Bearer token from the caller's session, or None.
    """

    def __init__(self, client: httpx.AsyncClient, token: Optional[str] = None):
        self._client = client
        self._token = token
        self.degraded: list[Degradation] = []

    @property
    def unauthorized(self) -> bool:
        """True when any read in this request was rejected with 401."""
        return any(d.kind is OutcomeKind.UNAUTHORIZED for d in self.degraded)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    # ── Core call ─────────────────────────────────────────────────

    async def invoke(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        expect: Any = None,
        binary: bool = False,
        params: Optional[dict[str, Any]] = None,
    ) -> Outcome:
        """
        Perform one backend call and classify the answer.

        Args:
            method: HTTP method.
            path: Path relative to the backend base URL.
            body: Payload for write methods, sent as JSON.
            expect: Type the JSON body must validate against (e.g. ``list[Ticket]``).
                    None returns the decoded JSON as-is.
            binary: Return the raw bytes instead of decoding JSON.
            params: Optional query string parameters.
        """
        method = method.upper()
        path = path.lstrip("/")
        kwargs: dict[str, Any] = {"headers": self._headers()}
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if body is not None and method in WRITE_METHODS:
            kwargs["json"] = _to_json(body)

        logger.info("Backend %s /%s", method, path)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("Backend %s /%s timed out: %s", method, path, e)
            return Outcome(OutcomeKind.NETWORK_ERROR, error=f"timed out ({type(e).__name__})")
        except httpx.RequestError as e:
            logger.error("Backend %s /%s failed: %s", method, path, e)
            return Outcome(OutcomeKind.NETWORK_ERROR, error=str(e) or type(e).__name__)

        return self._classify(method, path, response, expect, binary)

    def _classify(
        self,
        method: str,
        path: str,
        response: httpx.Response,
        expect: Any,
        binary: bool,
    ) -> Outcome:
        status = response.status_code
        logger.info("Backend %s /%s → %d", method, path, status)

        if status == 401:
            logger.warning("Unauthorized access to /%s", path)
            return Outcome(OutcomeKind.UNAUTHORIZED, status_code=status)

        if not response.is_success:
            raw = response.text
            logger.warning("Backend %s /%s failed: %d - %s", method, path, status, raw[:200])
            return Outcome(OutcomeKind.REMOTE_FAILURE, status_code=status, raw_body=raw)

        if status == 204 or response.headers.get("content-length") == "0" or not response.content:
            return Outcome(OutcomeKind.EMPTY, status_code=status)

        if binary:
            logger.info("Backend /%s returned %d bytes", path, len(response.content))
            return Outcome(OutcomeKind.SUCCESS, data=response.content, status_code=status)

        try:
            if expect is None:
                data = response.json()
            else:
                data = _adapter(expect).validate_json(response.content)
        except ValueError as e:
            logger.error("Could not decode /%s response: %s", path, e)
            return Outcome(
                OutcomeKind.DECODE_ERROR,
                status_code=status,
                raw_body=response.text,
                error=str(e)[:500],
            )
        return Outcome(OutcomeKind.SUCCESS, data=data, status_code=status)

    # ── Read / write policies ─────────────────────────────────────

    async def read(
        self,
        path: str,
        expect: Any,
        default: Any = None,
        *,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """GET that never raises: anything but SUCCESS returns ``default``."""
        outcome = await self.invoke("GET", path, expect=expect, params=params)
        if outcome.kind is OutcomeKind.SUCCESS:
            return outcome.data
        if outcome.kind is OutcomeKind.EMPTY:
            logger.info("No content for /%s", path.lstrip("/"))
        else:
            logger.warning("Read /%s degraded to default (%s)", path.lstrip("/"), outcome.describe())
            self.degraded.append(Degradation(path=path, kind=outcome.kind))
        return default

    async def read_bytes(self, path: str, *, params: Optional[dict[str, Any]] = None) -> bytes:
        """Binary GET that never raises: anything but SUCCESS returns ``b""``."""
        outcome = await self.invoke("GET", path, binary=True, params=params)
        if outcome.kind is OutcomeKind.SUCCESS:
            return outcome.data
        if outcome.kind is not OutcomeKind.EMPTY:
            logger.warning("Download /%s degraded to empty (%s)", path.lstrip("/"), outcome.describe())
            self.degraded.append(Degradation(path=path, kind=outcome.kind))
        return b""

    async def write(self, method: str, path: str, body: Any = None, expect: Any = None) -> Any:
        """
        Write call whose failures propagate.

        Returns the decoded body, or None when the backend accepted the
        write without a usable body (EMPTY, or a body that did not decode).

        Raises:
            UnauthorizedError: backend answered 401.
            RemoteFailureError: any other non-2xx answer.
            GatewayNetworkError: timeout or transport failure.
        """
        outcome = await self.invoke(method, path, body, expect=expect)
        kind = outcome.kind
        if kind is OutcomeKind.SUCCESS:
            return outcome.data
        if kind is OutcomeKind.EMPTY:
            return None
        if kind is OutcomeKind.DECODE_ERROR:
            logger.warning(
                "%s /%s accepted but response did not decode: %s",
                method.upper(), path.lstrip("/"), outcome.error,
            )
            return None
        if kind is OutcomeKind.UNAUTHORIZED:
            raise UnauthorizedError("Unauthorized access", details=f"{method.upper()} /{path.lstrip('/')}")
        if kind is OutcomeKind.REMOTE_FAILURE:
            raise RemoteFailureError(
                f"Backend error ({outcome.status_code})",
                status_code=outcome.status_code or 0,
                raw_body=outcome.raw_body,
            )
        raise GatewayNetworkError(
            "Could not reach the ticketing backend",
            details=outcome.error,
        )

    # ═══════════════════════════════════════════════════════════════
    # Backend operations
    # ═══════════════════════════════════════════════════════════════

    async def list_tickets(self) -> list[Ticket]:
        return await self.read("tickets", list[Ticket], [])

    async def list_my_tickets(self) -> list[Ticket]:
        return await self.read("tickets/mine", list[Ticket], [])

    async def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        return await self.read(f"tickets/{ticket_id}", Ticket, None)

    async def list_technicians(self) -> list[Technician]:
        return await self.read("technicians", list[Technician], [])

    async def list_equipment(self) -> list[Equipment]:
        return await self.read("equipment", list[Equipment], [])

    async def create_ticket(self, request: TicketCreateRequest) -> Optional[Ticket]:
        return await self.write("POST", "tickets", request, expect=Ticket)

    async def update_ticket(self, ticket_id: int, update: TicketUpdateRequest) -> None:
        await self.write("PUT", f"tickets/{ticket_id}", update)

    async def take_ticket(self, ticket_id: int, technician_id: str) -> None:
        """Put a ticket in progress under the given technician."""
        await self.update_ticket(
            ticket_id,
            TicketUpdateRequest(status=TicketStatus.IN_PROGRESS, technician_id=technician_id),
        )

    async def assign_ticket(self, ticket_id: int, technician_id: str) -> None:
        await self.write("PUT", f"tickets/{ticket_id}/assign", {"technicianId": technician_id})

    async def resolve_ticket(self, ticket_id: int, comment: Optional[str]) -> None:
        await self.write("PUT", f"tickets/{ticket_id}/resolve", {"comment": comment or ""})

    async def cancel_ticket(self, ticket_id: int, comment: Optional[str]) -> None:
        await self.write(
            "PUT",
            f"tickets/{ticket_id}/cancel",
            {"comment": comment or "Cancelled by the requester"},
        )

    async def login(self, email: str, password: str) -> Optional[LoginResult]:
        return await self.write(
            "POST", "auth/login", {"email": email, "password": password}, expect=LoginResult,
        )

    async def download_report(
        self,
        report_type: str,
        fmt: str = "Excel",
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> bytes:
        params = {
            "format": fmt,
            "startDate": start.isoformat() if start else None,
            "endDate": end.isoformat() if end else None,
        }
        return await self.read_bytes(f"reports/{report_type}", params=params)

    # ── Equipment and inventory ───────────────────────────────────

    async def get_equipment(self, equipment_id: int) -> Optional[Equipment]:
        return await self.read(f"equipment/{equipment_id}", Equipment, None)

    async def list_equipment_history(self, equipment_id: int) -> list[EquipmentIncident]:
        return await self.read(f"equipment/{equipment_id}/history", list[EquipmentIncident], [])

    async def list_inventory(self) -> list[InventoryItem]:
        return await self.read("inventory", list[InventoryItem], [])

    # ── User accounts ─────────────────────────────────────────────

    async def list_users(self) -> list[UserAccount]:
        return await self.read("users", list[UserAccount], [])

    async def get_user(self, user_id: str) -> Optional[UserAccount]:
        return await self.read(f"users/{user_id}", UserAccount, None)

    async def list_available_technicians(self) -> list[Technician]:
        """
        Technicians for the assignment picker.

        When the roster endpoint yields nothing, the user list is filtered
        down to accounts holding the technician role or flag.
        """
        technicians = await self.list_technicians()
        if technicians:
            return technicians
        logger.info("Technician roster empty; falling back to the user list")
        return [
            Technician(id=u.id, full_name=u.full_name, email=u.email, is_technician=u.is_technician)
            for u in await self.list_users()
            if u.acts_as_technician
        ]

    async def create_user(self, request: UserCreateRequest) -> Any:
        """Register an employee (``Usuario``) or a staff account (``Tecnico`` / ``Admin``)."""
        body: dict[str, Any] = {
            "fullName": request.full_name,
            "email": request.email,
            "password": request.password,
        }
        if request.user_type is Role.USER:
            path = "auth/register-employee"
            body.update(phone=request.phone, department=request.department, position=request.position)
            body = {k: v for k, v in body.items() if v is not None}
        else:
            path = "auth/register"
            body["isTechnician"] = True
        return await self.write("POST", path, body)

    async def update_user(self, user_id: str, update: UserUpdateRequest) -> None:
        await self.write("PUT", f"users/{user_id}", update)

    async def block_user(self, user_id: str, block: bool) -> None:
        await self.write("POST", f"users/{user_id}/block", {"block": block})

    async def reset_password(self, user_id: str, new_password: str) -> None:
        await self.write("POST", f"users/{user_id}/reset-password", {"newPassword": new_password})
