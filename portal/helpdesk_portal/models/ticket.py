"""
Pydantic models for the records the portal exchanges with the ticketing backend.

The backend owns every one of these records; the portal only reads them and
forwards write requests. Field names follow the backend's camelCase JSON via
aliases, and the Spanish status/priority labels the backend historically
emitted are normalized on the way in.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ═══════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════

class TicketStatus(str, Enum):
    """Lifecycle status values for a ticket."""
    WAITING = "Waiting"
    IN_PROGRESS = "InProgress"
    DONE = "Done"
    CANCELLED = "Cancelled"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return _STATUS_LABELS.get(value.strip().lower())
        return None


_STATUS_LABELS = {
    "waiting": TicketStatus.WAITING,
    "en espera": TicketStatus.WAITING,
    "inprogress": TicketStatus.IN_PROGRESS,
    "in progress": TicketStatus.IN_PROGRESS,
    "en progreso": TicketStatus.IN_PROGRESS,
    "done": TicketStatus.DONE,
    "terminado": TicketStatus.DONE,
    "cancelled": TicketStatus.CANCELLED,
    "cancelado": TicketStatus.CANCELLED,
}

OPEN_STATUSES = frozenset({TicketStatus.WAITING, TicketStatus.IN_PROGRESS})


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            return _PRIORITY_LABELS.get(value.strip().lower())
        return None


_PRIORITY_LABELS = {
    "low": Priority.LOW,
    "baja": Priority.LOW,
    "medium": Priority.MEDIUM,
    "media": Priority.MEDIUM,
    "high": Priority.HIGH,
    "alta": Priority.HIGH,
}


class Role(str, Enum):
    """Role claims carried by the backend-issued token."""
    ADMIN = "Admin"
    TECHNICIAN = "Tecnico"
    USER = "Usuario"


def _wall_clock(value: Optional[datetime]) -> Optional[datetime]:
    """Keep the backend's local wall-clock time; an offset, if any, is dropped."""
    if value is not None and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


# ═══════════════════════════════════════════════════════════════════
# Backend Records
# ═══════════════════════════════════════════════════════════════════

class Ticket(BaseModel):
    """A support request as returned by ``GET /tickets``."""
    id: int
    title: str = ""
    description: str = ""
    problem_type: str = Field(default="", alias="problemType")
    priority: Priority = Priority.MEDIUM
    status: TicketStatus = TicketStatus.WAITING
    requester_id: str = Field(default="", alias="requesterId")
    requester_name: str = Field(default="", alias="requesterName")
    technician_id: Optional[str] = Field(default=None, alias="technicianId")
    technician_name: Optional[str] = Field(default=None, alias="technicianName")
    created_at: datetime = Field(..., alias="createdAt")
    resolved_at: Optional[datetime] = Field(default=None, alias="resolvedAt")
    technician_comment: Optional[str] = Field(default=None, alias="technicianComment")

    model_config = {"populate_by_name": True}

    @field_validator("created_at", "resolved_at")
    @classmethod
    def _normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _wall_clock(v)

    @property
    def is_assigned(self) -> bool:
        return bool(self.technician_id or self.technician_name)


class Technician(BaseModel):
    """A technician identity record from ``GET /technicians``."""
    id: str
    full_name: str = Field(default="", alias="fullName")
    email: str = ""
    is_technician: bool = Field(default=True, alias="isTechnician")

    model_config = {"populate_by_name": True}


class Equipment(BaseModel):
    """An equipment item from ``GET /equipment``; the dashboard only counts these."""
    id: int
    name: str = ""
    type: str = ""
    brand: str = ""
    serial_number: str = Field(default="", alias="serialNumber")
    description: Optional[str] = None
    status: str = ""

    model_config = {"populate_by_name": True}


class LoginResult(BaseModel):
    """Answer of ``POST /auth/login``."""
    id: str = ""
    full_name: str = Field(default="", alias="fullName")
    email: str = ""
    is_technician: bool = Field(default=False, alias="isTechnician")
    token: str = ""

    model_config = {"populate_by_name": True}


# ═══════════════════════════════════════════════════════════════════
# Write Payloads (validated before any backend call)
# ═══════════════════════════════════════════════════════════════════

class TicketCreateRequest(BaseModel):
    """Body for creating a new ticket."""
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    problem_type: str = Field(..., min_length=1, alias="problemType")
    priority: Priority = Priority.MEDIUM

    model_config = {"populate_by_name": True}

    @field_validator("title", "description", "problem_type")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class TicketUpdateRequest(BaseModel):
    """Partial update forwarded to ``PUT /tickets/{id}``."""
    status: Optional[TicketStatus] = None
    technician_id: Optional[str] = Field(default=None, alias="technicianId")

    model_config = {"populate_by_name": True}


class AssignRequest(BaseModel):
    technician_id: str = Field(..., min_length=1, alias="technicianId")

    model_config = {"populate_by_name": True}


class CommentRequest(BaseModel):
    comment: Optional[str] = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


# ═══════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════

class AuthSession(BaseModel):
    """Identity of the caller, captured at login and kept in the signed session."""
    token: str = Field(..., exclude=True)
    user_id: str = ""
    name: str = ""
    email: str = ""
    roles: list[Role] = []

    def has_role(self, *roles: Role) -> bool:
        return any(r in self.roles for r in roles)
