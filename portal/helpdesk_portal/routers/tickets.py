"""
Ticket API endpoints.

Handles the requester-facing ticket flows (create, list own tickets, view
detail, cancel) plus the full list used by staff. Every call is proxied to
the ticketing backend through the gateway.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from helpdesk_portal.models.ticket import (
    AuthSession,
    CommentRequest,
    Role,
    Ticket,
    TicketCreateRequest,
)
from helpdesk_portal.routers.deps import degraded_notice, get_gateway, require_roles, require_session
from helpdesk_portal.services import queues
from helpdesk_portal.services.gateway import ApiGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tickets", tags=["tickets"])


# ═══════════════════════════════════════════════════════════════════
# GET /api/tickets — All tickets (staff)
# ═══════════════════════════════════════════════════════════════════

@router.get("")
async def list_tickets(
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_roles(Role.ADMIN, Role.TECHNICIAN)),
):
    """List every ticket. Backend failures yield an empty list with a notice."""
    tickets = await gateway.list_tickets()
    return {
        "tickets": [t.model_dump(mode="json", by_alias=True) for t in tickets],
        "total_count": len(tickets),
        "notice": degraded_notice(gateway),
    }


# ═══════════════════════════════════════════════════════════════════
# GET /api/tickets/mine — Caller's own tickets
# ═══════════════════════════════════════════════════════════════════

@router.get("/mine")
async def list_my_tickets(
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_session),
):
    """
    List the caller's tickets.

    Also returns the first few as ``recent`` for the home view.
    """
    tickets = await gateway.list_my_tickets()
    return {
        "tickets": [t.model_dump(mode="json", by_alias=True) for t in tickets],
        "recent": [t.model_dump(mode="json", by_alias=True) for t in queues.recent_tickets(tickets)],
        "total_count": len(tickets),
        "notice": degraded_notice(gateway),
    }


# ═══════════════════════════════════════════════════════════════════
# POST /api/tickets — Create a ticket
# ═══════════════════════════════════════════════════════════════════

@router.post("", status_code=201)
async def create_ticket(
    request: TicketCreateRequest,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_session),
):
    """
    Submit a new ticket.

    The body is validated before anything is sent to the backend; a
    backend failure surfaces as a single user-facing error.
    """
    created: Optional[Ticket] = await gateway.create_ticket(request)
    logger.info(
        "Ticket created by %s (type=%s, priority=%s)",
        session.user_id, request.problem_type, request.priority.value,
    )
    return {
        "success": True,
        "message": "Ticket created successfully.",
        "ticket": created.model_dump(mode="json", by_alias=True) if created else None,
        "redirectUrl": "/tickets/mine",
    }


# ═══════════════════════════════════════════════════════════════════
# GET /api/tickets/{ticket_id} — Ticket detail
# ═══════════════════════════════════════════════════════════════════

@router.get("/{ticket_id}", response_model=Ticket)
async def get_ticket(
    ticket_id: int,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_session),
):
    """Full ticket details; 404 when the backend has nothing to show."""
    ticket = await gateway.get_ticket(ticket_id)
    if ticket is None:
        raise HTTPException(status_code=404, detail=f"Ticket '{ticket_id}' not found")
    return ticket


# ═══════════════════════════════════════════════════════════════════
# PUT /api/tickets/{ticket_id}/cancel — Cancel a ticket
# ═══════════════════════════════════════════════════════════════════

@router.put("/{ticket_id}/cancel")
async def cancel_ticket(
    ticket_id: int,
    body: Optional[CommentRequest] = None,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_session),
):
    """Cancel a ticket; an empty comment gets a default one."""
    await gateway.cancel_ticket(ticket_id, body.comment if body else None)
    logger.info("Ticket %s cancelled by %s", ticket_id, session.user_id)
    return {
        "success": True,
        "message": "Ticket cancelled successfully.",
        "redirectUrl": "/tickets/mine",
    }
