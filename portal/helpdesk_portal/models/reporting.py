"""
Pydantic models for dashboard reporting: period selection, resolved date
ranges, and the per-request snapshot handed to the presentation layer.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from helpdesk_portal.models.ticket import Ticket


# ═══════════════════════════════════════════════════════════════════
# Period Selection
# ═══════════════════════════════════════════════════════════════════

class Period(str, Enum):
    """Named reporting periods; CUSTOM carries an explicit range."""
    LAST_7_DAYS = "7days"
    LAST_30_DAYS = "30days"
    LAST_90_DAYS = "90days"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    THIS_YEAR = "thisYear"
    CUSTOM = "custom"


class DateRange(BaseModel):
    """Inclusive calendar-day range."""
    start: date
    end: date

    model_config = {"frozen": True}

    @computed_field
    @property
    def label(self) -> str:
        return f"{self.start:%d/%m/%Y} - {self.end:%d/%m/%Y}"


class PeriodSelector(BaseModel):
    """
    A named period, or CUSTOM together with its explicit range.

    The pairing is checked at construction so a CUSTOM selector without a
    range (or a named one with a stray range) cannot exist.
    """
    period: Period
    custom: Optional[DateRange] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _custom_iff_range(self) -> "PeriodSelector":
        if self.period is Period.CUSTOM and self.custom is None:
            raise ValueError("a custom period requires an explicit date range")
        if self.period is not Period.CUSTOM and self.custom is not None:
            raise ValueError(f"period '{self.period.value}' does not take a date range")
        return self

    @classmethod
    def named(cls, period: Period) -> "PeriodSelector":
        return cls(period=period)

    @classmethod
    def between(cls, start: date, end: date) -> "PeriodSelector":
        return cls(period=Period.CUSTOM, custom=DateRange(start=start, end=end))


# ═══════════════════════════════════════════════════════════════════
# Dashboard
# ═══════════════════════════════════════════════════════════════════

class UrgentTicket(BaseModel):
    id: int
    title: str
    requester_name: str = ""


class DashboardSnapshot(BaseModel):
    """Statistics derived from one ticket collection and one date range."""
    total_tickets: int = 0
    average_resolution_hours: float = 0.0
    technicians_total: int = 0
    technicians_available: int = 0
    tickets_by_problem_type: dict[str, int] = {}
    tickets_by_technician: dict[str, int] = {}
    urgent_tickets: list[UrgentTicket] = []


class DashboardResponse(BaseModel):
    """Snapshot plus the resolved range echo for the dashboard view."""
    period: Period
    range: DateRange
    snapshot: DashboardSnapshot = Field(default_factory=DashboardSnapshot)
    equipment_total: int = 0
    notice: Optional[str] = None


class DashboardFilters(BaseModel):
    """Filter form posted by the dashboard."""
    period: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None


# ═══════════════════════════════════════════════════════════════════
# Technician Work Queues
# ═══════════════════════════════════════════════════════════════════

class TechnicianQueues(BaseModel):
    assigned: list[Ticket] = []
    pending: list[Ticket] = []
    resolved: list[Ticket] = []
    cancelled: list[Ticket] = []
    notice: Optional[str] = None
