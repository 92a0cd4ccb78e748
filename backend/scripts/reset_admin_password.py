"""
Reset a staff account's password from the command line.

Run locally:
  python backend/scripts/reset_admin_password.py admin@barangay.gov.ph newpassword
"""

from __future__ import annotations

import asyncio
import logging
import sys

from fastapi_users.password import PasswordHelper
from sqlalchemy import func, select

from core.auth import MIN_PASSWORD_LENGTH
from core.logging import configure_logging
from db.database import User, async_session_maker

logger = logging.getLogger("reset_admin_password")


async def main(email: str, password: str) -> int:
    if len(password) < MIN_PASSWORD_LENGTH:
        logger.error("Password must be at least %s characters long", MIN_PASSWORD_LENGTH)
        return 1

    async with async_session_maker() as db:
        res = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
        user = res.scalar_one_or_none()
        if user is None:
            logger.error("No user with email %s", email)
            return 1

        user.hashed_password = PasswordHelper().hash(password)
        user.is_active = True
        await db.commit()
        logger.info("Password reset for %s (%s)", user.email, user.role)
        return 0


if __name__ == "__main__":
    configure_logging()
    if len(sys.argv) != 3:
        logger.error("usage: reset_admin_password.py EMAIL NEW_PASSWORD")
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1], sys.argv[2])))
