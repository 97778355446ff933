"""
Work queues for the technician view and the requester home view.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from helpdesk_portal.models.reporting import TechnicianQueues
from helpdesk_portal.models.ticket import Priority, Ticket, TicketStatus

RECENT_TICKET_LIMIT = 5

_CLOSED = (TicketStatus.DONE, TicketStatus.CANCELLED)


def _urgent_first(t: Ticket) -> tuple[bool, datetime]:
    # High priority first, then oldest first.
    return (t.priority is not Priority.HIGH, t.created_at)


def _latest_resolution(t: Ticket) -> datetime:
    return t.resolved_at or datetime.min


def technician_queues(tickets: Optional[Iterable[Ticket]], technician_id: str) -> TechnicianQueues:
    """Split the ticket list into the four queues shown to a technician."""
    tickets = list(tickets or ())
    mine = [t for t in tickets if t.technician_id == technician_id]

    return TechnicianQueues(
        assigned=sorted((t for t in mine if t.status not in _CLOSED), key=_urgent_first),
        pending=sorted(
            (t for t in tickets if not t.technician_id and t.status is TicketStatus.WAITING),
            key=_urgent_first,
        ),
        resolved=sorted(
            (t for t in mine if t.status is TicketStatus.DONE),
            key=_latest_resolution,
            reverse=True,
        ),
        cancelled=sorted(
            (t for t in mine if t.status is TicketStatus.CANCELLED),
            key=_latest_resolution,
            reverse=True,
        ),
    )


def recent_tickets(tickets: Optional[Iterable[Ticket]], limit: int = RECENT_TICKET_LIMIT) -> list[Ticket]:
    """The first ``limit`` tickets as the backend ordered them."""
    return list(tickets or ())[:limit]
