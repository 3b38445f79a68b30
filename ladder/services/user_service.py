"""
User service layer for user accounts, roles and API tokens.
"""

from typing import Optional, Dict, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from ladder.database.models import User, ApiToken, Role
from ladder.services import auth_service
from ladder.utils.datetime_utils import to_iso, utcnow
import logging

logger = logging.getLogger(__name__)


def _user_to_dict(user: User) -> Dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value if user.role else Role.USER.value,
        "created_at": to_iso(user.created_at),
    }


async def create_user(
    session: AsyncSession, email: str, name: Optional[str] = None, role: Role = Role.USER
) -> int:
    """
    Create a new user account.

    Args:
        session: Database session
        email: Email address (stored lowercase)
        name: Optional display name
        role: Initial role (default USER)

    Returns:
        User ID of the created user

    Raises:
        ValueError: If a user with this email already exists
    """
    email = email.strip().lower()
    result = await session.execute(select(User.id).where(func.lower(User.email) == email))
    if result.scalar_one_or_none():
        raise ValueError(f"Email {email} is already registered")

    new_user = User(email=email, name=name, role=role)
    session.add(new_user)
    await session.flush()
    user_id = new_user.id
    await session.commit()

    logger.info(f"Created user {user_id} with role {role.value}")
    return user_id


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get user by ID.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        User dictionary or None if not found
    """
    result = await session.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[Dict]:
    """
    Get user by email address (case-insensitive).

    Returns:
        User dictionary or None if not found
    """
    email = email.strip().lower() if email else None
    if not email:
        return None

    result = await session.execute(
        select(User)
        .where(func.lower(func.trim(User.email)) == email)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def issue_api_token(session: AsyncSession, user_id: int) -> str:
    """
    Create a bearer token for a user.

    The clear-text token is returned once and never stored.
    """
    token = auth_service.generate_token()
    session.add(ApiToken(user_id=user_id, token_hash=auth_service.hash_token(token)))
    await session.commit()
    logger.info(f"Issued API token for user {user_id}")
    return token


async def get_user_by_token(session: AsyncSession, token: str) -> Optional[Dict]:
    """
    Resolve a bearer token to its user.

    Returns:
        User dictionary or None if the token is unknown
    """
    if not token:
        return None

    token_hash = auth_service.hash_token(token)
    result = await session.execute(
        select(User)
        .join(ApiToken, ApiToken.user_id == User.id)
        .where(ApiToken.token_hash == token_hash)
    )
    user = result.scalar_one_or_none()
    if user is None:
        return None

    await session.execute(
        update(ApiToken).where(ApiToken.token_hash == token_hash).values(last_used_at=utcnow())
    )
    return _user_to_dict(user)


async def revoke_api_tokens(session: AsyncSession, user_id: int) -> int:
    """Delete every token of a user. Returns the number removed."""
    result = await session.execute(select(ApiToken).where(ApiToken.user_id == user_id))
    tokens = result.scalars().all()
    for token in tokens:
        await session.delete(token)
    await session.commit()
    return len(tokens)


async def list_users(session: AsyncSession) -> List[Dict]:
    """All users, newest first."""
    result = await session.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return [_user_to_dict(u) for u in result.scalars().all()]


async def update_user_role(session: AsyncSession, user_id: int, role: Role) -> Optional[Dict]:
    """
    Change a user's role.

    Returns:
        Updated user dictionary or None if the user doesn't exist
    """
    result = await session.execute(
        update(User)
        .where(User.id == user_id)
        .values(role=role, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None
    await session.commit()
    logger.info(f"Updated role for user {user_id} to {role.value}")
    return await get_user_by_id(session, user_id)
