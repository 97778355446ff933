"""
Dashboard API endpoints.

Provides the admin dashboard: ticket statistics for a reporting period,
technician availability and the equipment count.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from helpdesk_portal.config import get_settings
from helpdesk_portal.models.reporting import (
    DashboardFilters,
    DashboardResponse,
    DateRange,
    Period,
    PeriodSelector,
)
from helpdesk_portal.models.ticket import AuthSession, Role
from helpdesk_portal.routers.deps import degraded_notice, get_gateway, require_roles
from helpdesk_portal.services import reporting
from helpdesk_portal.services.gateway import ApiGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    period: Optional[str] = Query(None, description="7days, 30days, 90days, thisMonth, lastMonth, thisYear, custom"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_roles(Role.ADMIN)),
):
    """
    Dashboard statistics for the selected period.

    The period is resolved first (start > end is rejected before any
    backend call), then tickets, technicians and equipment are fetched
    concurrently and aggregated.
    """
    settings = get_settings()
    selector = reporting.build_selector(period or settings.default_period, start, end)
    date_range = reporting.resolve_period(selector)

    tickets, technicians, equipment = await asyncio.gather(
        gateway.list_tickets(),
        gateway.list_technicians(),
        gateway.list_equipment(),
    )

    snapshot = reporting.aggregate(
        tickets,
        date_range.start,
        date_range.end,
        technicians=technicians,
        urgent_limit=settings.urgent_ticket_limit,
    )
    logger.info(
        "Dashboard for %s: %s → %d tickets in range",
        session.user_id, date_range.label, snapshot.total_tickets,
    )

    return DashboardResponse(
        period=selector.period,
        range=date_range,
        snapshot=snapshot,
        equipment_total=len(equipment),
        notice=degraded_notice(gateway),
    )


@router.post("/filters")
async def apply_filters(
    filters: DashboardFilters,
    session: AuthSession = Depends(require_roles(Role.ADMIN)),
):
    """
    Validate the filter form and echo the concrete range it stands for.

    A named period replaces any dates the form also carried; ``custom``
    keeps them.
    """
    reporting.validate_range(filters.start, filters.end)

    period = reporting.parse_period(filters.period) if filters.period else Period.CUSTOM
    if period is Period.CUSTOM:
        selector = reporting.build_selector(period.value, filters.start, filters.end)
    else:
        selector = PeriodSelector.named(period)
    date_range: DateRange = reporting.resolve_period(selector)

    return {
        "period": selector.period.value,
        "start": date_range.start.isoformat(),
        "end": date_range.end.isoformat(),
        "label": date_range.label,
    }
