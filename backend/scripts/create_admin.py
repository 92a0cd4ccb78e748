"""
Create (or promote) the first ADMIN account.

Run locally:
  ADMIN_EMAIL=admin@barangay.gov.ph ADMIN_PASSWORD=secret123 python backend/scripts/create_admin.py

It uses the same DATABASE_* env vars as the backend (dotenv supported by core.config).
An existing account with the same email is promoted to ADMIN and re-activated;
its password is left alone unless ADMIN_RESET_PASSWORD=true.
"""

from __future__ import annotations

import asyncio
import logging
import os

from fastapi_users.password import PasswordHelper
from sqlalchemy import func, select

from core.logging import configure_logging
from db.database import User, async_session_maker, create_db_and_tables

logger = logging.getLogger("create_admin")

DEFAULT_ADMIN_EMAIL = "admin@barangay.gov.ph"


async def main() -> None:
    email = os.getenv("ADMIN_EMAIL", DEFAULT_ADMIN_EMAIL).strip().lower()
    password = os.getenv("ADMIN_PASSWORD", "admin123")
    reset_password = os.getenv("ADMIN_RESET_PASSWORD", "False").lower() == "true"

    await create_db_and_tables()
    helper = PasswordHelper()

    async with async_session_maker() as db:
        res = await db.execute(select(User).where(func.lower(User.email) == email))
        user = res.scalar_one_or_none()

        if user is None:
            user = User(
                email=email,
                hashed_password=helper.hash(password),
                first_name="System",
                last_name="Administrator",
                role="ADMIN",
                is_active=True,
                is_superuser=True,
                is_verified=True,
            )
            db.add(user)
            await db.commit()
            logger.info("Created admin %s", email)
            return

        user.role = "ADMIN"
        user.is_active = True
        user.is_superuser = True
        if reset_password:
            user.hashed_password = helper.hash(password)
        await db.commit()
        logger.info("Promoted existing user %s to ADMIN%s", email, " (password reset)" if reset_password else "")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
