"""
Technician API endpoints.

Backs the technician work view: the four work queues, taking a pending
ticket, and resolving an assigned one.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from helpdesk_portal.models.reporting import TechnicianQueues
from helpdesk_portal.models.ticket import AuthSession, CommentRequest, Role
from helpdesk_portal.routers.deps import degraded_notice, get_gateway, require_roles
from helpdesk_portal.services import queues
from helpdesk_portal.services.gateway import ApiGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/technician", tags=["technician"])

require_staff = require_roles(Role.TECHNICIAN, Role.ADMIN)


@router.get("/queue", response_model=TechnicianQueues)
async def get_queue(
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_staff),
):
    """Assigned, pending, resolved and cancelled tickets for the caller."""
    tickets = await gateway.list_tickets()
    result = queues.technician_queues(tickets, session.user_id)
    result.notice = degraded_notice(gateway)
    return result


@router.post("/tickets/{ticket_id}/take")
async def take_ticket(
    ticket_id: int,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_staff),
):
    """Assign a pending ticket to the caller and mark it in progress."""
    await gateway.take_ticket(ticket_id, session.user_id)
    logger.info("Ticket %s taken by technician %s", ticket_id, session.user_id)
    return {"success": True, "message": "Ticket assigned successfully."}


@router.post("/tickets/{ticket_id}/resolve")
async def resolve_ticket(
    ticket_id: int,
    body: Optional[CommentRequest] = None,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_staff),
):
    await gateway.resolve_ticket(ticket_id, body.comment if body else None)
    logger.info("Ticket %s resolved by technician %s", ticket_id, session.user_id)
    return {"success": True, "message": "Ticket marked as resolved."}
