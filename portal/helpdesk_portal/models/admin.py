"""
Pydantic models for the admin views beyond tickets: equipment history,
inventory stock and user accounts.

As with tickets, the backend owns these records. The portal lists them,
derives stock levels for display and forwards account changes.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from helpdesk_portal.models.ticket import Equipment, Role


# ═══════════════════════════════════════════════════════════════════
# Equipment
# ═══════════════════════════════════════════════════════════════════

class EquipmentIncident(BaseModel):
    """One entry of ``GET /equipment/{id}/history``."""
    id: int = 0
    description: str = ""
    status: str = ""
    reported_by: str = Field(default="", alias="reportedBy")
    reported_at: Optional[datetime] = Field(default=None, alias="reportedAt")

    model_config = {"populate_by_name": True}


class EquipmentDetail(BaseModel):
    equipment: Equipment
    history: list[EquipmentIncident] = []
    notice: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════
# Inventory
# ═══════════════════════════════════════════════════════════════════

class StockStatus(str, Enum):
    IN_STOCK = "InStock"
    LOW = "Low"
    OUT_OF_STOCK = "OutOfStock"


class InventoryItem(BaseModel):
    """A stock article from ``GET /inventory``."""
    id: int
    name: str = ""
    type: str = ""
    description: Optional[str] = None
    current_stock: int = Field(default=0, alias="currentStock")
    minimum_stock: int = Field(default=1, alias="minimumStock")
    active: bool = True

    model_config = {"populate_by_name": True}

    @computed_field
    @property
    def stock_status(self) -> StockStatus:
        if self.current_stock <= 0:
            return StockStatus.OUT_OF_STOCK
        if self.current_stock <= self.minimum_stock:
            return StockStatus.LOW
        return StockStatus.IN_STOCK


class InventoryOverview(BaseModel):
    """Inventory list with per-level counts."""
    items: list[InventoryItem] = []
    total_count: int = 0
    in_stock: int = 0
    low_stock: int = 0
    out_of_stock: int = 0
    notice: Optional[str] = None

    @classmethod
    def from_items(cls, items: list[InventoryItem], notice: Optional[str] = None) -> "InventoryOverview":
        levels = [i.stock_status for i in items]
        return cls(
            items=items,
            total_count=len(items),
            in_stock=levels.count(StockStatus.IN_STOCK),
            low_stock=levels.count(StockStatus.LOW),
            out_of_stock=levels.count(StockStatus.OUT_OF_STOCK),
            notice=notice,
        )


# ═══════════════════════════════════════════════════════════════════
# User Accounts
# ═══════════════════════════════════════════════════════════════════

class UserAccount(BaseModel):
    """A portal account as listed by ``GET /users``."""
    id: str
    full_name: str = Field(default="", alias="fullName")
    email: str = ""
    roles: list[str] = []
    is_technician: bool = Field(default=False, alias="isTechnician")
    blocked: bool = False
    email_confirmed: bool = Field(default=False, alias="emailConfirmed")
    phone: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    last_access: Optional[datetime] = Field(default=None, alias="lastAccess")

    model_config = {"populate_by_name": True}

    @property
    def acts_as_technician(self) -> bool:
        return self.is_technician or Role.TECHNICIAN.value in self.roles


class UserCreateRequest(BaseModel):
    """
    Body for creating an account.

    ``Usuario`` accounts are registered as employees with their contact
    details; ``Tecnico`` and ``Admin`` accounts are registered as staff.
    """
    full_name: str = Field(..., min_length=1, alias="fullName")
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=8)
    user_type: Role = Field(default=Role.USER, alias="userType")
    phone: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None

    model_config = {"populate_by_name": True}

    @field_validator("full_name", "email")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class UserUpdateRequest(BaseModel):
    """Partial account edit forwarded to ``PUT /users/{id}``."""
    full_name: Optional[str] = Field(default=None, alias="fullName")
    email: Optional[str] = None
    phone: Optional[str] = None
    is_technician: Optional[bool] = Field(default=None, alias="isTechnician")

    model_config = {"populate_by_name": True}


class BlockRequest(BaseModel):
    block: bool = True


class PasswordResetRequest(BaseModel):
    new_password: str = Field(..., min_length=8, alias="newPassword")

    model_config = {"populate_by_name": True}
