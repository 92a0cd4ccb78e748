from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import require_roles
from db.audit import AuditLog as AuditLogModel
from db.database import get_async_session
from db.users import User
from schemas.audit import AuditLogRead
from schemas.common import pagination_meta

router = APIRouter()

audit_reader = require_roles("ADMIN", "BARANGAY_CHAIRMAN", "SECRETARY")


def _serialize_audit(log: AuditLogModel) -> dict:
    return {
        "id": log.id,
        "user_id": log.user_id,
        "action": log.action,
        "entity_type": log.entity_type,
        "entity_id": log.entity_id,
        "details": log.details,
        "ip_address": log.ip_address,
        "user_agent": log.user_agent,
        "created_at": log.created_at,
        "user": {
            "id": log.user.id,
            "email": log.user.email,
            "first_name": log.user.first_name,
            "last_name": log.user.last_name,
            "role": log.user.role,
        } if log.user else None,
    }


def _audit_query():
    return select(AuditLogModel).options(selectinload(AuditLogModel.user))


@router.get("/", response_model=Dict)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    user_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    action: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    user: User = Depends(audit_reader),
    db: AsyncSession = Depends(get_async_session),
):
    conditions = []
    if user_id:
        conditions.append(AuditLogModel.user_id == user_id)
    if entity_type:
        conditions.append(AuditLogModel.entity_type == entity_type)
    if action:
        conditions.append(func.lower(AuditLogModel.action).like(f"%{action.strip().lower()}%"))
    if start_date:
        conditions.append(AuditLogModel.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
    if end_date:
        # inclusive of the whole end day
        conditions.append(AuditLogModel.created_at < datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc))
    if search:
        qq = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(AuditLogModel.entity_type).like(qq),
                func.lower(AuditLogModel.entity_id).like(qq),
                func.lower(AuditLogModel.action).like(qq),
            )
        )

    total = (await db.execute(select(func.count()).select_from(AuditLogModel).where(*conditions))).scalar_one()
    res = await db.execute(
        _audit_query()
        .where(*conditions)
        .order_by(AuditLogModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    logs = [_serialize_audit(log) for log in res.scalars().all()]
    return {"logs": logs, "pagination": pagination_meta(page, limit, total)}


@router.get("/entity/{entity_type}/{entity_id}", response_model=List[AuditLogRead])
async def list_audit_logs_for_entity(
    entity_type: str,
    entity_id: str,
    user: User = Depends(audit_reader),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        _audit_query()
        .where(AuditLogModel.entity_type == entity_type)
        .where(AuditLogModel.entity_id == entity_id)
        .order_by(AuditLogModel.created_at.desc())
    )
    return [_serialize_audit(log) for log in res.scalars().all()]


@router.get("/{log_id}", response_model=AuditLogRead)
async def get_audit_log(
    log_id: UUID,
    user: User = Depends(audit_reader),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(_audit_query().where(AuditLogModel.id == log_id))
    log = res.scalar_one_or_none()
    if not log:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Audit log not found")
    return _serialize_audit(log)
