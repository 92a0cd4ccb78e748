from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.audit import create_audit_log
from core.auth import current_active_user
from db.announcement import Announcement as AnnouncementModel
from db.base import utcnow
from db.database import get_async_session
from db.users import User
from schemas.announcements import AnnouncementCreate, AnnouncementUpdate
from schemas.common import pagination_meta

router = APIRouter()


async def _get_announcement_or_404(db: AsyncSession, announcement_id: UUID) -> AnnouncementModel:
    res = await db.execute(select(AnnouncementModel).where(AnnouncementModel.id == announcement_id))
    a = res.scalar_one_or_none()
    if not a:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return a


@router.get("/active", response_model=List[Dict])
async def list_active_announcements(db: AsyncSession = Depends(get_async_session)):
    """Public: up to 10 announcements currently in their display window, pinned first."""
    res = await db.execute(
        select(AnnouncementModel)
        .where(AnnouncementModel.active_filter(utcnow()))
        .order_by(AnnouncementModel.is_pinned.desc(), AnnouncementModel.created_at.desc())
        .limit(10)
    )
    return [a.to_schema for a in res.scalars().all()]


@router.get("/", response_model=Dict)
async def list_announcements(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    type: Optional[str] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    conditions = []
    if type:
        conditions.append(AnnouncementModel.type == type)

    total = (await db.execute(select(func.count()).select_from(AnnouncementModel).where(*conditions))).scalar_one()
    res = await db.execute(
        select(AnnouncementModel)
        .where(*conditions)
        .order_by(AnnouncementModel.is_pinned.desc(), AnnouncementModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    announcements = [a.to_schema for a in res.scalars().all()]
    return {"announcements": announcements, "pagination": pagination_meta(page, limit, total)}


@router.get("/{announcement_id}", response_model=Dict)
async def get_announcement(
    announcement_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return (await _get_announcement_or_404(db, announcement_id)).to_schema


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_announcement(
    payload: AnnouncementCreate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    a = AnnouncementModel(created_by=user.id, **payload.model_dump())
    db.add(a)
    await db.flush()
    create_audit_log(
        db, user.id, "CREATE", "ANNOUNCEMENT", a.id,
        {"action": "Created announcement", "title": a.title},
        request,
    )
    await db.commit()
    return a.to_schema


@router.put("/{announcement_id}", response_model=Dict)
async def update_announcement(
    announcement_id: UUID,
    payload: AnnouncementUpdate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    a = await _get_announcement_or_404(db, announcement_id)

    data = payload.model_dump(exclude_unset=True)
    new_attachments = data.pop("attachments", None)
    if new_attachments:
        a.attachments = list(a.attachments or []) + list(new_attachments)
    for key, value in data.items():
        if value is None and key in ("title", "content", "type", "is_pinned"):
            continue
        setattr(a, key, value)

    create_audit_log(
        db, user.id, "UPDATE", "ANNOUNCEMENT", a.id,
        {"action": "Updated announcement", "changes": data},
        request,
    )
    await db.commit()
    await db.refresh(a)
    return a.to_schema


@router.delete("/{announcement_id}", response_model=Dict)
async def delete_announcement(
    announcement_id: UUID,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    a = await _get_announcement_or_404(db, announcement_id)
    await db.delete(a)
    create_audit_log(db, user.id, "DELETE", "ANNOUNCEMENT", announcement_id, {"action": "Deleted announcement"}, request)
    await db.commit()
    return {"message": "Announcement deleted successfully"}
