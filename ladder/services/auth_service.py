"""
Role hierarchy and bearer token helpers.

Tokens are random URL-safe strings handed to the client once; only their
sha256 digest is stored (see ApiToken).
"""

import hashlib
import secrets
from typing import Optional, Union

from ladder.database.models import Role

ROLE_HIERARCHY = {
    Role.USER: 1,
    Role.ORGANIZER: 2,
    Role.ADMIN: 3,
}

TOKEN_BYTES = 32


def parse_role(role: Union[Role, str, None]) -> Optional[Role]:
    """Role enum from a string or enum, None if it isn't a known role."""
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def has_role(user_role: Union[Role, str, None], required_role: Union[Role, str]) -> bool:
    """
    Check if a user has the required role based on the role hierarchy.

    ADMIN satisfies ORGANIZER and USER, ORGANIZER satisfies USER. Unknown
    roles satisfy nothing.
    """
    user_level = ROLE_HIERARCHY.get(parse_role(user_role), 0)
    required = parse_role(required_role)
    if required is None:
        raise ValueError(f"Unknown role: {required_role}")
    return user_level >= ROLE_HIERARCHY[required]


def generate_token() -> str:
    """Generate a new opaque bearer token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Digest stored in place of the token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
