import logging
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi_users import exceptions
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.audit import create_audit_log
from core.auth import UserManager, get_user_manager, require_roles
from db.database import get_async_session
from db.users import User
from schemas.common import pagination_meta
from schemas.users import AdminUserCreate, AdminUserUpdate, UserList, UserRead

logger = logging.getLogger(__name__)

router = APIRouter()

user_admin = require_roles("ADMIN", "BARANGAY_CHAIRMAN")


async def _get_user_or_404(db: AsyncSession, user_id: UUID) -> User:
    res = await db.execute(select(User).where(User.id == user_id))
    u = res.scalar_one_or_none()
    if not u:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return u


@router.get("/", response_model=UserList)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    search: Optional[str] = None,
    user: User = Depends(user_admin),
    db: AsyncSession = Depends(get_async_session),
):
    conditions = []
    if search:
        qq = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(User.email).like(qq),
                func.lower(User.first_name).like(qq),
                func.lower(User.last_name).like(qq),
            )
        )

    total = (await db.execute(select(func.count()).select_from(User).where(*conditions))).scalar_one()
    res = await db.execute(
        select(User).where(*conditions).order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    users = [u.to_schema for u in res.scalars().all()]
    return {"users": users, "pagination": pagination_meta(page, limit, total)}


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: UUID,
    user: User = Depends(user_admin),
    db: AsyncSession = Depends(get_async_session),
):
    return await _get_user_or_404(db, user_id)


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: AdminUserCreate,
    request: Request,
    user: User = Depends(user_admin),
    user_manager: UserManager = Depends(get_user_manager),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        created = await user_manager.create(payload, safe=False, request=request)
    except exceptions.UserAlreadyExists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")
    except exceptions.InvalidPasswordException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.reason)

    create_audit_log(
        db, user.id, "CREATE", "USER", created.id,
        {"email": created.email, "first_name": created.first_name, "last_name": created.last_name, "role": created.role},
        request,
    )
    await db.commit()
    return {"message": "User created successfully", "user": UserRead.model_validate(created).model_dump()}


@router.put("/{user_id}", response_model=Dict)
async def update_user(
    user_id: UUID,
    payload: AdminUserUpdate,
    request: Request,
    user: User = Depends(user_admin),
    user_manager: UserManager = Depends(get_user_manager),
    db: AsyncSession = Depends(get_async_session),
):
    target = await _get_user_or_404(db, user_id)

    if target.id == user.id:
        if (payload.role is not None and payload.role != target.role) or (
            payload.is_active is not None and payload.is_active != target.is_active
        ):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role or status")

    changes = payload.model_dump(exclude_unset=True, exclude={"password"})
    try:
        updated = await user_manager.update(payload, target, safe=False, request=request)
    except exceptions.UserAlreadyExists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")
    except exceptions.InvalidPasswordException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.reason)

    if payload.password:
        changes["password_changed"] = True
    create_audit_log(db, user.id, "UPDATE", "USER", updated.id, changes, request)
    await db.commit()
    return {"message": "User updated successfully", "user": UserRead.model_validate(updated).model_dump()}


@router.delete("/{user_id}", response_model=Dict)
async def deactivate_user(
    user_id: UUID,
    request: Request,
    user: User = Depends(user_admin),
    db: AsyncSession = Depends(get_async_session),
):
    if user_id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")

    target = await _get_user_or_404(db, user_id)
    target.is_active = False
    create_audit_log(db, user.id, "DELETE", "USER", target.id, {"email": target.email}, request)
    await db.commit()
    return {"message": "User deactivated successfully"}
