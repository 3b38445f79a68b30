#!/usr/bin/env python3
"""
Initialize default database values.
This is run on startup to create the bootstrap admin account.
"""

import asyncio
import logging
import os

from ladder.database import db
from ladder.database.models import Role
from ladder.services import user_service

logger = logging.getLogger(__name__)


async def init_defaults():
    """
    Initialize default database values.

    If DEFAULT_ADMIN_EMAIL is set, that user is created as (or promoted to)
    ADMIN.
    """
    async with db.AsyncSessionLocal() as session:
        admin_email = os.getenv("DEFAULT_ADMIN_EMAIL")
        if admin_email:
            admin = await user_service.get_user_by_email(session, admin_email)
            if admin is None:
                await user_service.create_user(session, admin_email, name="Admin", role=Role.ADMIN)
                logger.info(f"Created default admin: {admin_email}")
            elif admin["role"] != Role.ADMIN.value:
                await user_service.update_user_role(session, admin["id"], Role.ADMIN)
                logger.info(f"Promoted default admin: {admin_email}")
            else:
                logger.info(f"Default admin already exists: {admin_email}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_defaults())
