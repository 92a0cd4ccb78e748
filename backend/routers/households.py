from decimal import Decimal
from typing import Dict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.audit import create_audit_log
from core.auth import current_active_user
from core.numbers import generate_household_number
from db.database import get_async_session
from db.household import Household as HouseholdModel
from db.resident import Resident as ResidentModel
from db.users import User
from schemas.common import pagination_meta
from schemas.households import HouseholdCreate, HouseholdUpdate

router = APIRouter()

_NUMERIC_FIELDS = ("latitude", "longitude", "income")


def _to_decimal(v):
    if v is None:
        return None
    return Decimal(str(v))


async def _get_household_or_404(db: AsyncSession, household_id: UUID) -> HouseholdModel:
    res = await db.execute(select(HouseholdModel).where(HouseholdModel.id == household_id))
    h = res.scalar_one_or_none()
    if not h:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Household not found")
    return h


async def _active_residents(db: AsyncSession, household_ids: list) -> dict:
    by_household: dict = {hid: [] for hid in household_ids}
    if not household_ids:
        return by_household
    res = await db.execute(
        select(ResidentModel)
        .where(ResidentModel.household_id.in_(household_ids))
        .where(ResidentModel.is_archived == False)  # noqa: E712
        .order_by(ResidentModel.last_name.asc())
    )
    for r in res.scalars().all():
        by_household[r.household_id].append(r.to_schema)
    return by_household


@router.get("/", response_model=Dict)
async def list_households(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    total = (await db.execute(select(func.count()).select_from(HouseholdModel))).scalar_one()
    res = await db.execute(
        select(HouseholdModel)
        .order_by(HouseholdModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    households = res.scalars().all()
    ids = [h.id for h in households]

    residents = await _active_residents(db, ids)
    counts: dict = {}
    if ids:
        cres = await db.execute(
            select(ResidentModel.household_id, func.count(ResidentModel.id))
            .where(ResidentModel.household_id.in_(ids))
            .group_by(ResidentModel.household_id)
        )
        counts = {hid: int(n) for hid, n in cres.all()}

    out = []
    for h in households:
        row = h.to_schema
        row["residents"] = residents.get(h.id, [])
        row["resident_count"] = counts.get(h.id, 0)
        out.append(row)
    return {"households": out, "pagination": pagination_meta(page, limit, total)}


@router.get("/{household_id}", response_model=Dict)
async def get_household(
    household_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    h = await _get_household_or_404(db, household_id)
    out = h.to_schema
    out["residents"] = (await _active_residents(db, [h.id]))[h.id]
    return out


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_household(
    payload: HouseholdCreate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    data = payload.model_dump()
    for key in _NUMERIC_FIELDS:
        data[key] = _to_decimal(data[key])

    h = HouseholdModel(household_number=generate_household_number(), **data)
    db.add(h)
    await db.flush()
    create_audit_log(
        db, user.id, "CREATE", "HOUSEHOLD", h.id,
        {"action": "Created household", "household_number": h.household_number},
        request,
    )
    await db.commit()
    await db.refresh(h)
    return h.to_schema


@router.put("/{household_id}", response_model=Dict)
async def update_household(
    household_id: UUID,
    payload: HouseholdUpdate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    h = await _get_household_or_404(db, household_id)
    old = h.to_schema

    data = payload.model_dump(exclude_unset=True)
    for key, value in data.items():
        if value is None and key in ("head_name", "address", "household_size"):
            continue
        setattr(h, key, _to_decimal(value) if key in _NUMERIC_FIELDS else value)

    create_audit_log(
        db, user.id, "UPDATE", "HOUSEHOLD", h.id,
        {"action": "Updated household", "changes": {"old": old, "new": data}},
        request,
    )
    await db.commit()
    await db.refresh(h)
    return h.to_schema


@router.delete("/{household_id}", response_model=Dict)
async def delete_household(
    household_id: UUID,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    h = await _get_household_or_404(db, household_id)

    # Members stay on file without a household.
    await db.execute(
        update(ResidentModel).where(ResidentModel.household_id == h.id).values(household_id=None)
    )
    await db.delete(h)
    create_audit_log(db, user.id, "DELETE", "HOUSEHOLD", household_id, {"action": "Deleted household"}, request)
    await db.commit()
    return {"message": "Household deleted successfully"}
