"""
Resident portal authentication.

Residents are not fastapi-users accounts: they get their own bearer token,
signed with the same secret but a distinct audience so a resident token can
never pass as a staff token (or the reverse).
"""
import logging
import uuid
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi_users.jwt import decode_jwt, generate_jwt
from fastapi_users.password import PasswordHelper
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from db.database import get_async_session
from db.resident import Resident

logger = logging.getLogger(__name__)

RESIDENT_TOKEN_AUDIENCE = "barangay:resident"

password_helper = PasswordHelper()
resident_bearer = HTTPBearer(auto_error=False)


def create_resident_token(resident: Resident) -> str:
    data = {"sub": str(resident.id), "type": "resident", "aud": RESIDENT_TOKEN_AUDIENCE}
    return generate_jwt(data, settings.jwt_secret, settings.resident_token_lifetime_seconds)


def read_resident_token(token: str) -> Optional[uuid.UUID]:
    """Return the resident id carried by `token`, or None if it is not a valid resident token."""
    try:
        payload = decode_jwt(token, settings.jwt_secret, [RESIDENT_TOKEN_AUDIENCE])
    except jwt.PyJWTError:
        return None
    if payload.get("type") != "resident":
        return None
    try:
        return uuid.UUID(payload.get("sub"))
    except (TypeError, ValueError):
        return None


def hash_resident_password(password: str) -> str:
    return password_helper.hash(password)


def verify_resident_password(password: str, hashed: str) -> bool:
    verified, _ = password_helper.verify_and_update(password, hashed)
    return verified


async def current_resident(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(resident_bearer),
    db: AsyncSession = Depends(get_async_session),
) -> Resident:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    resident_id = read_resident_token(credentials.credentials)
    if resident_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    res = await db.execute(select(Resident).where(Resident.id == resident_id))
    resident = res.scalar_one_or_none()
    if not resident or resident.is_archived:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return resident
