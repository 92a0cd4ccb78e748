from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.audit import create_audit_log
from core.auth import current_active_user
from db.database import get_async_session
from db.inventory.log import InventoryLog as InventoryLogModel
from db.official import Attendance as AttendanceModel, Official as OfficialModel
from db.users import User
from schemas.common import pagination_meta
from schemas.officials import AttendanceCreate, OfficialCreate, OfficialUpdate

router = APIRouter()


def _serialize_attendance(a: AttendanceModel) -> dict:
    return {
        "id": a.id,
        "official_id": a.official_id,
        "date": a.date,
        "time_in": a.time_in,
        "time_out": a.time_out,
        "remarks": a.remarks,
        "created_at": a.created_at,
    }


async def _get_official_or_404(db: AsyncSession, official_id: UUID) -> OfficialModel:
    res = await db.execute(select(OfficialModel).where(OfficialModel.id == official_id))
    o = res.scalar_one_or_none()
    if not o:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Official not found")
    return o


@router.get("/", response_model=Dict)
async def list_officials(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    is_active: Optional[bool] = None,
    position: Optional[str] = None,
    search: Optional[str] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    conditions = []
    if is_active is not None:
        conditions.append(OfficialModel.is_active == is_active)
    if position:
        conditions.append(func.lower(OfficialModel.position).like(f"%{position.strip().lower()}%"))
    if search:
        qq = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(OfficialModel.first_name).like(qq),
                func.lower(OfficialModel.last_name).like(qq),
                func.lower(OfficialModel.email).like(qq),
                func.lower(OfficialModel.contact_no).like(qq),
            )
        )

    total = (await db.execute(select(func.count()).select_from(OfficialModel).where(*conditions))).scalar_one()
    res = await db.execute(
        select(OfficialModel)
        .where(*conditions)
        .order_by(OfficialModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    officials = res.scalars().all()

    counts: dict = {}
    if officials:
        cres = await db.execute(
            select(AttendanceModel.official_id, func.count(AttendanceModel.id))
            .where(AttendanceModel.official_id.in_([o.id for o in officials]))
            .group_by(AttendanceModel.official_id)
        )
        counts = {oid: int(n) for oid, n in cres.all()}

    out = []
    for o in officials:
        row = o.to_schema
        row["attendance_count"] = counts.get(o.id, 0)
        out.append(row)
    return {"officials": out, "pagination": pagination_meta(page, limit, total)}


@router.get("/{official_id}", response_model=Dict)
async def get_official(
    official_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    o = await _get_official_or_404(db, official_id)
    ares = await db.execute(
        select(AttendanceModel)
        .where(AttendanceModel.official_id == official_id)
        .order_by(AttendanceModel.date.desc())
        .limit(30)
    )
    out = o.to_schema
    out["attendance"] = [_serialize_attendance(a) for a in ares.scalars().all()]
    return out


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_official(
    payload: OfficialCreate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    o = OfficialModel(**payload.model_dump())
    db.add(o)
    await db.flush()
    create_audit_log(
        db, user.id, "CREATE", "OFFICIAL", o.id,
        {"action": "Created official", "name": o.full_name, "position": o.position},
        request,
    )
    await db.commit()
    return o.to_schema


@router.put("/{official_id}", response_model=Dict)
async def update_official(
    official_id: UUID,
    payload: OfficialUpdate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    o = await _get_official_or_404(db, official_id)
    old = o.to_schema

    data = payload.model_dump(exclude_unset=True)
    for key, value in data.items():
        if value is None and key in ("first_name", "last_name", "position", "term_start", "documents", "is_active"):
            continue
        setattr(o, key, value)
    if o.term_end and o.term_end < o.term_start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="term_end must not be before term_start")

    create_audit_log(
        db, user.id, "UPDATE", "OFFICIAL", o.id,
        {"action": "Updated official", "changes": {"old": old, "new": data}},
        request,
    )
    await db.commit()
    await db.refresh(o)
    return o.to_schema


@router.delete("/{official_id}", response_model=Dict)
async def delete_official(
    official_id: UUID,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    o = await _get_official_or_404(db, official_id)

    released = (
        await db.execute(
            select(func.count()).select_from(InventoryLogModel).where(InventoryLogModel.released_to == official_id)
        )
    ).scalar_one()
    if released:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Official has inventory release records; deactivate the official instead",
        )

    await db.delete(o)
    create_audit_log(db, user.id, "DELETE", "OFFICIAL", official_id, {"action": "Deleted official"}, request)
    await db.commit()
    return {"message": "Official deleted successfully"}


@router.post("/{official_id}/attendance", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def record_attendance(
    official_id: UUID,
    payload: AttendanceCreate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    await _get_official_or_404(db, official_id)

    a = AttendanceModel(official_id=official_id, **payload.model_dump())
    db.add(a)
    await db.flush()
    create_audit_log(
        db, user.id, "CREATE", "ATTENDANCE", a.id,
        {"action": "Recorded attendance", "official_id": official_id},
        request,
    )
    await db.commit()
    return _serialize_attendance(a)


@router.get("/{official_id}/attendance", response_model=List[Dict])
async def list_attendance(
    official_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    await _get_official_or_404(db, official_id)

    stmt = select(AttendanceModel).where(AttendanceModel.official_id == official_id)
    if start_date:
        stmt = stmt.where(AttendanceModel.date >= start_date)
    if end_date:
        stmt = stmt.where(AttendanceModel.date <= end_date)
    res = await db.execute(stmt.order_by(AttendanceModel.date.desc()))
    return [_serialize_attendance(a) for a in res.scalars().all()]
