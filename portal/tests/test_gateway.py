"""
Tests for the API gateway (helpdesk_portal.services.gateway).

Covers:
  • Outcome classification for every kind of backend answer
  • Reads degrade to defaults and record the degradation
  • Writes raise UnauthorizedError / RemoteFailureError / GatewayNetworkError
  • Bearer header, query params and binary downloads
  • Account operations and the technician roster fallback
"""

from datetime import date

import httpx
import pytest

from conftest import FakeBackend, json_body
from helpdesk_portal.errors import GatewayNetworkError, RemoteFailureError, UnauthorizedError
from helpdesk_portal.models.admin import UserCreateRequest
from helpdesk_portal.models.ticket import Role, Ticket, TicketCreateRequest, TicketStatus
from helpdesk_portal.services.gateway import ApiGateway, OutcomeKind

TICKET = {"id": 7, "title": "VPN", "status": "En progreso", "createdAt": "2024-03-12T10:00:00"}


@pytest.fixture()
def fake():
    return FakeBackend()


@pytest.fixture()
def gateway(fake):
    return ApiGateway(fake.client(), token="tok-123")


# ═══════════════════════════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════════════════════════

class TestInvoke:
    @pytest.mark.asyncio
    async def test_success_decodes_expected_type(self, gateway, fake):
        fake.on("GET", "tickets", [TICKET])
        outcome = await gateway.invoke("GET", "tickets", expect=list[Ticket])
        assert outcome.kind is OutcomeKind.SUCCESS
        assert outcome.ok
        assert outcome.data[0].status is TicketStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_unauthorized(self, gateway, fake):
        fake.on("GET", "tickets", status=401)
        outcome = await gateway.invoke("GET", "tickets")
        assert outcome.kind is OutcomeKind.UNAUTHORIZED
        assert not outcome.ok
        assert outcome.status_code == 401

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_body(self, gateway, fake):
        fake.on("GET", "tickets", "database offline", status=500)
        outcome = await gateway.invoke("GET", "tickets")
        assert outcome.kind is OutcomeKind.REMOTE_FAILURE
        assert outcome.status_code == 500
        assert outcome.raw_body == "database offline"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [200, 204])
    async def test_empty_body(self, gateway, fake, status):
        fake.on("GET", "tickets", status=status)
        outcome = await gateway.invoke("GET", "tickets", expect=list[Ticket])
        assert outcome.kind is OutcomeKind.EMPTY

    @pytest.mark.asyncio
    async def test_decode_error(self, gateway, fake):
        fake.on("GET", "tickets", "<html>maintenance</html>")
        outcome = await gateway.invoke("GET", "tickets", expect=list[Ticket])
        assert outcome.kind is OutcomeKind.DECODE_ERROR
        assert "maintenance" in outcome.raw_body

    @pytest.mark.asyncio
    async def test_shape_mismatch_is_decode_error(self, gateway, fake):
        fake.on("GET", "tickets", {"items": []})
        outcome = await gateway.invoke("GET", "tickets", expect=list[Ticket])
        assert outcome.kind is OutcomeKind.DECODE_ERROR

    @pytest.mark.asyncio
    async def test_network_error(self, gateway, fake):
        fake.on("GET", "tickets", httpx.ConnectError("connection refused"))
        outcome = await gateway.invoke("GET", "tickets")
        assert outcome.kind is OutcomeKind.NETWORK_ERROR
        assert "refused" in outcome.error

    @pytest.mark.asyncio
    async def test_timeout(self, gateway, fake):
        fake.on("GET", "tickets", httpx.ReadTimeout("slow"))
        outcome = await gateway.invoke("GET", "tickets")
        assert outcome.kind is OutcomeKind.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_bearer_header_and_params(self, gateway, fake):
        fake.on("GET", "tickets", [])
        await gateway.invoke("GET", "/tickets", params={"a": "1", "b": None})
        sent = fake.requests[0]
        assert sent.headers["Authorization"] == "Bearer tok-123"
        assert sent.headers["Accept"] == "application/json"
        assert sent.url.params.get("a") == "1"
        assert "b" not in sent.url.params

    @pytest.mark.asyncio
    async def test_no_token_no_authorization_header(self, fake):
        fake.on("GET", "tickets", [])
        await ApiGateway(fake.client()).invoke("GET", "tickets")
        assert "Authorization" not in fake.requests[0].headers


# ═══════════════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════════════

class TestReads:
    @pytest.mark.asyncio
    async def test_401_yields_empty_collection(self, gateway, fake):
        fake.on("GET", "tickets", status=401)
        assert await gateway.list_tickets() == []
        assert gateway.unauthorized is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer,status", [
        ("boom", 500),
        ("not json", 200),
        (httpx.ConnectError("down"), 200),
    ])
    async def test_failures_degrade(self, gateway, fake, answer, status):
        fake.on("GET", "technicians", answer, status=status)
        assert await gateway.list_technicians() == []
        assert len(gateway.degraded) == 1
        assert gateway.unauthorized is False

    @pytest.mark.asyncio
    async def test_empty_is_not_degraded(self, gateway, fake):
        fake.on("GET", "equipment", status=204)
        assert await gateway.list_equipment() == []
        assert gateway.degraded == []

    @pytest.mark.asyncio
    async def test_get_ticket_missing(self, gateway, fake):
        assert await gateway.get_ticket(42) is None

    @pytest.mark.asyncio
    async def test_download_report(self, gateway, fake):
        fake.on("GET", "reports/tickets", b"PK\x03\x04xlsx")
        content = await gateway.download_report("tickets", "Excel", date(2024, 1, 1), date(2024, 1, 31))
        assert content == b"PK\x03\x04xlsx"
        params = fake.requests[0].url.params
        assert params["format"] == "Excel"
        assert params["startDate"] == "2024-01-01"
        assert params["endDate"] == "2024-01-31"

    @pytest.mark.asyncio
    async def test_download_failure_is_empty_bytes(self, gateway, fake):
        fake.on("GET", "reports/tickets", "nope", status=500)
        assert await gateway.download_report("tickets") == b""


# ═══════════════════════════════════════════════════════════════════
# Writes
# ═══════════════════════════════════════════════════════════════════

class TestWrites:
    @pytest.mark.asyncio
    async def test_401_raises(self, gateway, fake):
        fake.on("PUT", "tickets/7/assign", status=401)
        with pytest.raises(UnauthorizedError):
            await gateway.assign_ticket(7, "t-1")

    @pytest.mark.asyncio
    async def test_remote_failure_raises_with_status(self, gateway, fake):
        fake.on("PUT", "tickets/7/resolve", "already closed", status=409)
        with pytest.raises(RemoteFailureError) as exc:
            await gateway.resolve_ticket(7, "done")
        assert exc.value.status_code == 409
        assert exc.value.raw_body == "already closed"

    @pytest.mark.asyncio
    async def test_network_error_raises(self, gateway, fake):
        fake.on("POST", "tickets", httpx.ConnectError("refused"))
        request = TicketCreateRequest(title="VPN", description="Drops", problem_type="Network")
        with pytest.raises(GatewayNetworkError):
            await gateway.create_ticket(request)

    @pytest.mark.asyncio
    async def test_create_sends_camel_case(self, gateway, fake):
        fake.on("POST", "tickets", TICKET, status=201)
        request = TicketCreateRequest(title="VPN", description="Drops", problem_type="Network")
        created = await gateway.create_ticket(request)
        assert created.id == 7
        assert json_body(fake.requests[0]) == {
            "title": "VPN", "description": "Drops", "problemType": "Network", "priority": "Medium",
        }

    @pytest.mark.asyncio
    async def test_undecodable_write_answer_is_accepted(self, gateway, fake):
        fake.on("POST", "tickets", "Created", status=201)
        request = TicketCreateRequest(title="VPN", description="Drops", problem_type="Network")
        assert await gateway.create_ticket(request) is None

    @pytest.mark.asyncio
    async def test_take_ticket_payload(self, gateway, fake):
        fake.on("PUT", "tickets/3", status=204)
        await gateway.take_ticket(3, "t-9")
        assert json_body(fake.requests[0]) == {"status": "InProgress", "technicianId": "t-9"}

    @pytest.mark.asyncio
    async def test_cancel_default_comment(self, gateway, fake):
        fake.on("PUT", "tickets/3/cancel", status=204)
        await gateway.cancel_ticket(3, None)
        assert json_body(fake.requests[0]) == {"comment": "Cancelled by the requester"}


# ═══════════════════════════════════════════════════════════════════
# Accounts
# ═══════════════════════════════════════════════════════════════════

class TestAccounts:
    @pytest.mark.asyncio
    async def test_available_technicians_fallback_after_roster_failure(self, gateway, fake):
        fake.on("GET", "technicians", "boom", status=500)
        fake.on("GET", "users", [
            {"id": "t-1", "fullName": "Carlos", "roles": ["Tecnico", "Admin"]},
            {"id": "u-1", "fullName": "Ana", "roles": ["Usuario"]},
        ])
        technicians = await gateway.list_available_technicians()
        assert [t.id for t in technicians] == ["t-1"]
        assert len(gateway.degraded) == 1

    @pytest.mark.asyncio
    async def test_create_employee_endpoint(self, gateway, fake):
        fake.on("POST", "auth/register-employee", status=204)
        await gateway.create_user(UserCreateRequest(
            full_name="Ana", email="ana@x.com", password="Secret123", phone="555-0101",
        ))
        assert json_body(fake.requests[0]) == {
            "fullName": "Ana", "email": "ana@x.com", "password": "Secret123", "phone": "555-0101",
        }

    @pytest.mark.asyncio
    async def test_create_staff_endpoint(self, gateway, fake):
        fake.on("POST", "auth/register", status=204)
        await gateway.create_user(UserCreateRequest(
            full_name="Iván", email="ivan@x.com", password="Secret123", user_type=Role.TECHNICIAN,
            department="IT",
        ))
        assert json_body(fake.calls("POST", "auth/register")[0]) == {
            "fullName": "Iván", "email": "ivan@x.com", "password": "Secret123", "isTechnician": True,
        }

    @pytest.mark.asyncio
    async def test_block_unauthorized_raises(self, gateway, fake):
        fake.on("POST", "users/u-1/block", status=401)
        with pytest.raises(UnauthorizedError):
            await gateway.block_user("u-1", True)
