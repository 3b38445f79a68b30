#!/usr/bin/env python3
"""
Issue an API bearer token for a user, creating the user if needed.

The token is printed once; only its hash is stored.

Usage:
    python scripts/create_api_token.py organizer@example.com --role ORGANIZER
    python scripts/create_api_token.py organizer@example.com --revoke
"""

import argparse
import asyncio
import os
import sys

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from ladder.database import db  # noqa: E402
from ladder.database.models import Role  # noqa: E402
from ladder.services import user_service  # noqa: E402


async def run(email: str, name: str, role: str, revoke: bool) -> None:
    await db.init_database()

    async with db.AsyncSessionLocal() as session:
        user = await user_service.get_user_by_email(session, email)

        if revoke:
            if user is None:
                print(f"⚠️  No user with email {email}")
            else:
                removed = await user_service.revoke_api_tokens(session, user["id"])
                print(f"✓ Revoked {removed} token(s) for {email}")
            return

        if user is None:
            user_id = await user_service.create_user(session, email, name=name, role=Role(role))
            print(f"✓ Created user {email} ({role})")
        else:
            user_id = user["id"]
            if user["role"] != role:
                await user_service.update_user_role(session, user_id, Role(role))
                print(f"✓ Changed role of {email} to {role}")

        token = await user_service.issue_api_token(session, user_id)

    print(f"Token: {token}")
    await db.engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Issue an API token for a user")
    parser.add_argument("email", help="User email")
    parser.add_argument("--name", default=None, help="Display name for a new user")
    parser.add_argument("--role", default=Role.USER.value, choices=[r.value for r in Role])
    parser.add_argument("--revoke", action="store_true", help="Delete all of the user's tokens instead")
    args = parser.parse_args()
    asyncio.run(run(args.email, args.name, args.role, args.revoke))


if __name__ == "__main__":
    main()
