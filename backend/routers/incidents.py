from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.audit import create_audit_log
from core.auth import current_active_user
from core.incidents import incident_query, serialize_incident
from core.numbers import generate_incident_number
from db.database import get_async_session
from db.incident import Incident as IncidentModel
from db.resident import Resident as ResidentModel
from db.users import User
from schemas.common import pagination_meta
from schemas.incidents import IncidentCreate, IncidentStatusUpdate, IncidentUpdate

router = APIRouter()


async def _load_incident(db: AsyncSession, incident_id: UUID) -> IncidentModel:
    res = await db.execute(
        incident_query().where(IncidentModel.id == incident_id).execution_options(populate_existing=True)
    )
    i = res.scalar_one_or_none()
    if not i:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Incident not found")
    return i


async def _ensure_residents(db: AsyncSession, *resident_ids: Optional[UUID]) -> None:
    wanted = {rid for rid in resident_ids if rid is not None}
    if not wanted:
        return
    res = await db.execute(select(ResidentModel.id).where(ResidentModel.id.in_(wanted)))
    if len(set(res.scalars().all())) != len(wanted):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Resident not found")


@router.get("/", response_model=Dict)
async def list_incidents(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    status_filter: Optional[str] = Query(None, alias="status"),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    conditions = []
    if status_filter:
        conditions.append(IncidentModel.status == status_filter)

    total = (await db.execute(select(func.count()).select_from(IncidentModel).where(*conditions))).scalar_one()
    res = await db.execute(
        incident_query()
        .where(*conditions)
        .order_by(IncidentModel.incident_date.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    incidents = [serialize_incident(i) for i in res.scalars().all()]
    return {"incidents": incidents, "pagination": pagination_meta(page, limit, total)}


@router.get("/{incident_id}", response_model=Dict)
async def get_incident(
    incident_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return serialize_incident(await _load_incident(db, incident_id))


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_incident(
    payload: IncidentCreate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    await _ensure_residents(db, payload.complainant_id, payload.respondent_id)

    i = IncidentModel(
        incident_number=generate_incident_number(),
        created_by=user.id,
        **payload.model_dump(),
    )
    db.add(i)
    await db.flush()
    create_audit_log(
        db, user.id, "CREATE", "INCIDENT", i.id,
        {"action": "Created incident", "incident_number": i.incident_number},
        request,
    )
    await db.commit()
    return serialize_incident(await _load_incident(db, i.id))


@router.put("/{incident_id}", response_model=Dict)
async def update_incident(
    incident_id: UUID,
    payload: IncidentUpdate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    i = await _load_incident(db, incident_id)
    data = payload.model_dump(exclude_unset=True)
    await _ensure_residents(db, data.get("complainant_id"), data.get("respondent_id"))

    new_attachments = data.pop("attachments", None)
    if new_attachments:
        i.attachments = list(i.attachments or []) + list(new_attachments)
    for key, value in data.items():
        if value is None and key in ("narrative", "incident_date", "status"):
            continue
        setattr(i, key, value)

    create_audit_log(
        db, user.id, "UPDATE", "INCIDENT", i.id,
        {"action": "Updated incident", "changes": data},
        request,
    )
    await db.commit()
    return serialize_incident(await _load_incident(db, incident_id))


@router.patch("/{incident_id}/status", response_model=Dict)
async def update_incident_status(
    incident_id: UUID,
    payload: IncidentStatusUpdate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    i = await _load_incident(db, incident_id)
    i.status = payload.status
    create_audit_log(
        db, user.id, "UPDATE_STATUS", "INCIDENT", i.id,
        {"action": "Updated incident status", "status": payload.status},
        request,
    )
    await db.commit()
    return serialize_incident(await _load_incident(db, incident_id))
