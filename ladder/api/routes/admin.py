"""Admin user management and settings route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ladder.database.db import get_db_session
from ladder.database.models import Role
from ladder.services import auth_service, data_service, user_service
from ladder.api.auth_dependencies import require_admin
from ladder.api.routes import limiter, MUTATION_RATE_LIMIT
from ladder.models.schemas import SettingUpdate, UserResponse, UserRoleUpdate

logger = logging.getLogger(__name__)
router = APIRouter()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@router.get("/api/admin/users", response_model=List[UserResponse])
async def list_users(
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """List all users, newest first (admin only)."""
    try:
        return await user_service.list_users(session)
    except Exception as e:
        logger.error(f"Error fetching users: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching users: {str(e)}")


@router.patch("/api/admin/users", response_model=UserResponse)
@limiter.limit(MUTATION_RATE_LIMIT)
async def update_user_role(
    request: Request,
    payload: UserRoleUpdate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Change a user's role (admin only).

    Admins can't remove their own ADMIN role.
    """
    role = auth_service.parse_role(payload.role)
    if role is None:
        raise HTTPException(status_code=400, detail="Invalid role")

    if payload.user_id == user["id"] and role != Role.ADMIN:
        raise HTTPException(status_code=400, detail="Cannot remove your own admin role")

    try:
        updated = await user_service.update_user_role(session, payload.user_id, role)
        if updated is None:
            raise HTTPException(status_code=404, detail="User not found")
        return updated
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating user role: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating user role: {str(e)}")


# ---------------------------------------------------------------------------
# Settings endpoints
# ---------------------------------------------------------------------------


@router.get("/api/admin/settings/{key}")
async def get_setting_value(
    key: str,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a setting value (admin only)."""
    try:
        value = await data_service.get_setting(session, key)
        return {"key": key, "value": value}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting setting: {str(e)}")


@router.put("/api/admin/settings/{key}")
async def set_setting_value(
    key: str,
    payload: SettingUpdate,
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Set a setting value (admin only).

    "log_level" must be a standard level name and takes effect immediately.
    """
    value = payload.value.strip()
    if key == "log_level":
        value = value.upper()
        if value not in LOG_LEVELS:
            raise HTTPException(status_code=400, detail=f"log_level must be one of: {', '.join(LOG_LEVELS)}")

    try:
        await data_service.set_setting(session, key, value)
        if key == "log_level":
            logging.getLogger().setLevel(getattr(logging, value))
            logger.info(f"Log level changed to {value}")
        return {"success": True, "key": key, "value": value}
    except Exception as e:
        logger.error(f"Error setting value: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error setting value: {str(e)}")
