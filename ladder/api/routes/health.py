"""Health check route handler."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ladder.database.db import get_db_session

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/health")
async def health_check(session: AsyncSession = Depends(get_db_session)):
    """
    Health check endpoint.

    Returns:
        dict: Service status, with whether the database answered
    """
    try:
        await session.execute(text("SELECT 1"))
        return {"status": "healthy", "message": "API is running", "database": True}
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return {"status": "unhealthy", "database": False, "message": f"Error: {str(e)}"}
