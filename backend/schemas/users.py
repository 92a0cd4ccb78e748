# Pydantic schemas for staff accounts.
# fastapi-users provides the base read/create/update shapes; these add the
# barangay profile fields and the role.

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from fastapi_users import schemas
from pydantic import BaseModel

from schemas.common import Pagination


UserRole = Literal["ADMIN", "BARANGAY_CHAIRMAN", "SECRETARY", "CPDO", "TREASURER", "SK", "STAFF"]


class UserRead(schemas.BaseUser[UUID]):
    first_name: str
    last_name: str
    role: UserRole
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserCreate(schemas.BaseUserCreate):
    """Self-registration: the role is always STAFF."""

    first_name: str
    last_name: str


class UserUpdate(schemas.BaseUserUpdate):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class AdminUserCreate(schemas.BaseUserCreate):
    first_name: str
    last_name: str
    role: UserRole = "STAFF"


class AdminUserUpdate(schemas.BaseUserUpdate):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[UserRole] = None


class ChangePassword(BaseModel):
    current_password: str
    new_password: str


class UserList(BaseModel):
    users: list[UserRead]
    pagination: Pagination
