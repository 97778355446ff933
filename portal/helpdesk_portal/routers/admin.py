"""
Admin API endpoints: technician roster, ticket assignment, report export,
and the equipment and inventory views.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from helpdesk_portal.models.admin import EquipmentDetail, InventoryOverview
from helpdesk_portal.models.ticket import AssignRequest, AuthSession, Role
from helpdesk_portal.routers.deps import degraded_notice, get_gateway, require_roles
from helpdesk_portal.services import reporting
from helpdesk_portal.services.gateway import ApiGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

require_admin = require_roles(Role.ADMIN)

_EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/technicians")
async def list_technicians(
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    technicians = await gateway.list_technicians()
    return {
        "technicians": [t.model_dump(mode="json", by_alias=True) for t in technicians],
        "total_count": len(technicians),
        "notice": degraded_notice(gateway),
    }


@router.get("/technicians/available")
async def list_available_technicians(
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    """Assignable technicians, from the roster or else the user list."""
    technicians = await gateway.list_available_technicians()
    return {
        "technicians": [t.model_dump(mode="json", by_alias=True) for t in technicians],
        "total_count": len(technicians),
        "notice": degraded_notice(gateway),
    }


@router.put("/tickets/{ticket_id}/assign")
async def assign_ticket(
    ticket_id: int,
    body: AssignRequest,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    """Assign a ticket to a technician."""
    if ticket_id <= 0:
        raise HTTPException(status_code=422, detail="Invalid ticket id")
    await gateway.assign_ticket(ticket_id, body.technician_id)
    logger.info("Ticket %s assigned to %s by %s", ticket_id, body.technician_id, session.user_id)
    return {"success": True, "message": "Ticket assigned successfully."}


@router.get("/reports/{report_type}")
async def export_report(
    report_type: str,
    format: str = Query("Excel", pattern="(?i)^(excel|pdf)$"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    """
    Download a report file produced by the backend.

    The bytes are passed through untouched; an empty answer means the
    backend could not build the report.
    """
    reporting.validate_range(start, end)
    content = await gateway.download_report(report_type, format, start, end)
    if not content:
        raise HTTPException(status_code=502, detail="The report could not be generated")

    if format.lower() == "pdf":
        media_type, extension = "application/pdf", "pdf"
    else:
        media_type, extension = _EXCEL_MEDIA_TYPE, "xlsx"
    filename = f"Report_{report_type}_{datetime.now():%Y%m%d%H%M%S}.{extension}"
    logger.info("Report %s exported by %s (%d bytes)", report_type, session.user_id, len(content))
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ═══════════════════════════════════════════════════════════════════
# Equipment and inventory
# ═══════════════════════════════════════════════════════════════════

@router.get("/equipment")
async def list_equipment(
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    equipment = await gateway.list_equipment()
    return {
        "equipment": [e.model_dump(mode="json", by_alias=True) for e in equipment],
        "total_count": len(equipment),
        "notice": degraded_notice(gateway),
    }


@router.get("/equipment/{equipment_id}", response_model=EquipmentDetail)
async def get_equipment(
    equipment_id: int,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    """One equipment item with its incident history; 404 when unknown."""
    equipment = await gateway.get_equipment(equipment_id)
    if equipment is None:
        raise HTTPException(status_code=404, detail=f"Equipment '{equipment_id}' not found")
    history = await gateway.list_equipment_history(equipment_id)
    return EquipmentDetail(equipment=equipment, history=history, notice=degraded_notice(gateway))


@router.get("/inventory", response_model=InventoryOverview)
async def list_inventory(
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    items = await gateway.list_inventory()
    return InventoryOverview.from_items(items, notice=degraded_notice(gateway))
