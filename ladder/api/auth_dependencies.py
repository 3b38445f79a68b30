"""
Authentication dependencies for FastAPI routes.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from ladder.services import auth_service, user_service
from ladder.database.db import get_db_session
from ladder.database.models import Role

security = HTTPBearer()


async def get_current_user(
    session: AsyncSession = Depends(get_db_session),
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Dependency to get the current authenticated user from a bearer token.

    Args:
        session: Database session
        credentials: HTTP Bearer token credentials

    Returns:
        User dictionary

    Raises:
        HTTPException: If the token is unknown
    """
    user = await user_service.get_user_by_token(session, credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def make_require_role(required_role: Role):
    """Build a dependency that requires ``required_role`` or higher."""

    async def _dep(user: dict = Depends(get_current_user)) -> dict:
        if not auth_service.has_role(user.get("role"), required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Unauthorized - insufficient role",
            )
        return user

    return _dep


require_organizer = make_require_role(Role.ORGANIZER)
require_admin = make_require_role(Role.ADMIN)
