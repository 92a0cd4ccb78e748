from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.audit import create_audit_log
from core.auth import current_active_user
from db.database import get_async_session
from db.document import Document as DocumentModel
from db.household import Household as HouseholdModel
from db.resident import Resident as ResidentModel
from db.users import User
from schemas.common import pagination_meta
from schemas.residents import ResidentCreate, ResidentUpdate

router = APIRouter()


def _serialize_resident(r: ResidentModel) -> dict:
    out = r.to_schema
    out["full_name"] = r.full_name
    out["household"] = r.household.to_schema if r.household else None
    return out


async def _ensure_household(db: AsyncSession, household_id: Optional[UUID]) -> None:
    if household_id is None:
        return
    res = await db.execute(select(HouseholdModel.id).where(HouseholdModel.id == household_id))
    if res.scalar_one_or_none() is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Household not found")


async def _load_resident(db: AsyncSession, resident_id: UUID) -> ResidentModel:
    res = await db.execute(
        select(ResidentModel)
        .options(selectinload(ResidentModel.household))
        .where(ResidentModel.id == resident_id)
        .execution_options(populate_existing=True)
    )
    r = res.scalar_one_or_none()
    if not r:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resident not found")
    return r


@router.get("/", response_model=Dict)
async def list_residents(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    archived: bool = False,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    cond = ResidentModel.is_archived == archived
    total = (await db.execute(select(func.count()).select_from(ResidentModel).where(cond))).scalar_one()
    res = await db.execute(
        select(ResidentModel)
        .options(selectinload(ResidentModel.household))
        .where(cond)
        .order_by(ResidentModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    residents = [_serialize_resident(r) for r in res.scalars().all()]
    return {"residents": residents, "pagination": pagination_meta(page, limit, total)}


@router.get("/search", response_model=List[Dict])
async def search_residents(
    q: Optional[str] = None,
    household_number: Optional[str] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Active residents by name/address (`q`) and/or exact household number, at most 50."""
    q = (q or "").strip()
    household_number = (household_number or "").strip()
    if not q and not household_number:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query or household number is required",
        )

    stmt = (
        select(ResidentModel)
        .options(selectinload(ResidentModel.household))
        .where(ResidentModel.is_archived == False)  # noqa: E712
    )
    if q:
        qq = f"%{q.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(ResidentModel.first_name).like(qq),
                func.lower(ResidentModel.last_name).like(qq),
                func.lower(ResidentModel.middle_name).like(qq),
                func.lower(ResidentModel.address).like(qq),
            )
        )
    if household_number:
        stmt = stmt.join(HouseholdModel, ResidentModel.household_id == HouseholdModel.id).where(
            HouseholdModel.household_number == household_number
        )

    res = await db.execute(stmt.order_by(ResidentModel.last_name.asc()).limit(50))
    return [_serialize_resident(r) for r in res.scalars().all()]


@router.get("/{resident_id}", response_model=Dict)
async def get_resident(
    resident_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    r = await _load_resident(db, resident_id)
    dres = await db.execute(
        select(DocumentModel)
        .where(DocumentModel.resident_id == resident_id)
        .order_by(DocumentModel.issued_date.desc())
        .limit(10)
    )
    out = _serialize_resident(r)
    out["documents"] = [d.to_schema for d in dres.scalars().all()]
    return out


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_resident(
    payload: ResidentCreate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    await _ensure_household(db, payload.household_id)

    r = ResidentModel(**payload.model_dump())
    db.add(r)
    await db.flush()
    create_audit_log(
        db, user.id, "CREATE", "RESIDENT", r.id,
        {"action": "Created resident", "resident_name": r.full_name},
        request,
    )
    await db.commit()
    return _serialize_resident(await _load_resident(db, r.id))


@router.put("/{resident_id}", response_model=Dict)
async def update_resident(
    resident_id: UUID,
    payload: ResidentUpdate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    r = await _load_resident(db, resident_id)
    old = r.to_schema

    data = payload.model_dump(exclude_unset=True)
    if "household_id" in data:
        await _ensure_household(db, data["household_id"])
    for key, value in data.items():
        if value is None and key in ("first_name", "last_name", "address", "date_of_birth", "sex", "civil_status", "residency_status"):
            continue
        setattr(r, key, value)

    create_audit_log(
        db, user.id, "UPDATE", "RESIDENT", r.id,
        {"action": "Updated resident", "changes": {"old": old, "new": data}},
        request,
    )
    await db.commit()
    return _serialize_resident(await _load_resident(db, resident_id))


@router.patch("/{resident_id}/archive", response_model=Dict)
async def archive_resident(
    resident_id: UUID,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    r = await _load_resident(db, resident_id)
    r.is_archived = True
    create_audit_log(db, user.id, "ARCHIVE", "RESIDENT", r.id, {"action": "Archived resident"}, request)
    await db.commit()
    return {"message": "Resident archived successfully", "resident": _serialize_resident(r)}
