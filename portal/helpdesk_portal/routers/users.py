"""
User management API endpoints (admin only).

Lists accounts and forwards account changes to the backend: create, edit,
block or unblock, and password reset.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from helpdesk_portal.models.admin import (
    BlockRequest,
    PasswordResetRequest,
    UserAccount,
    UserCreateRequest,
    UserUpdateRequest,
)
from helpdesk_portal.models.ticket import AuthSession, Role
from helpdesk_portal.routers.deps import degraded_notice, get_gateway, require_roles
from helpdesk_portal.services.gateway import ApiGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["users"])

require_admin = require_roles(Role.ADMIN)


# ═══════════════════════════════════════════════════════════════════
# GET /api/admin/users
# ═══════════════════════════════════════════════════════════════════

@router.get("")
async def list_users(
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    users = await gateway.list_users()
    return {
        "users": [u.model_dump(mode="json", by_alias=True) for u in users],
        "total_count": len(users),
        "blocked_count": sum(1 for u in users if u.blocked),
        "notice": degraded_notice(gateway),
    }


# ═══════════════════════════════════════════════════════════════════
# POST /api/admin/users
# ═══════════════════════════════════════════════════════════════════

@router.post("", status_code=201)
async def create_user(
    body: UserCreateRequest,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    await gateway.create_user(body)
    logger.info("User %s (%s) created by %s", body.email, body.user_type.value, session.user_id)
    return {"success": True, "message": f"User {body.full_name} created successfully."}


# ═══════════════════════════════════════════════════════════════════
# GET / PUT /api/admin/users/{id}
# ═══════════════════════════════════════════════════════════════════

@router.get("/{user_id}", response_model=UserAccount)
async def get_user(
    user_id: str,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    user = await gateway.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=f"User '{user_id}' not found")
    return user


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    await gateway.update_user(user_id, body)
    logger.info("User %s updated by %s", user_id, session.user_id)
    return {"success": True, "message": "User updated successfully."}


# ═══════════════════════════════════════════════════════════════════
# Account actions
# ═══════════════════════════════════════════════════════════════════

@router.post("/{user_id}/block")
async def block_user(
    user_id: str,
    body: BlockRequest,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    """Block or unblock an account."""
    await gateway.block_user(user_id, body.block)
    action = "blocked" if body.block else "unblocked"
    logger.info("User %s %s by %s", user_id, action, session.user_id)
    return {"success": True, "message": f"User {action} successfully."}


@router.post("/{user_id}/reset-password")
async def reset_password(
    user_id: str,
    body: PasswordResetRequest,
    gateway: ApiGateway = Depends(get_gateway),
    session: AuthSession = Depends(require_admin),
):
    await gateway.reset_password(user_id, body.new_password)
    logger.info("Password of user %s reset by %s", user_id, session.user_id)
    return {"success": True, "message": "Password reset successfully."}
