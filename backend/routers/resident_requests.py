"""Staff side of the resident portal: document-request processing and complaint review."""
import logging
from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.audit import create_audit_log
from core.auth import require_roles
from core.documents import (
    document_request_query,
    issue_document_for_request,
    serialize_document_request,
    try_render_document_pdf,
)
from core.incidents import incident_query, serialize_incident
from db.base import utcnow
from db.database import get_async_session
from db.document import DocumentRequest as DocumentRequestModel
from db.incident import COMPLAINT_MARKER, Incident as IncidentModel
from db.resident import Resident as ResidentModel
from db.users import User
from schemas.common import pagination_meta
from schemas.documents import DocumentRequestUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

staff_reviewer = require_roles("ADMIN", "SECRETARY", "BARANGAY_CHAIRMAN")

ISSUING_STATUSES = ("APPROVED", "COMPLETED")


async def _load_request(db: AsyncSession, request_id: UUID) -> DocumentRequestModel:
    res = await db.execute(
        document_request_query()
        .where(DocumentRequestModel.id == request_id)
        .execution_options(populate_existing=True)
    )
    r = res.scalar_one_or_none()
    if not r:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document request not found")
    return r


@router.get("/document-requests", response_model=Dict)
async def list_document_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    user: User = Depends(staff_reviewer),
    db: AsyncSession = Depends(get_async_session),
):
    conditions = []
    if status_filter:
        conditions.append(DocumentRequestModel.status == status_filter)
    if search:
        qq = f"%{search.strip().lower()}%"
        matching_residents = select(ResidentModel.id).where(
            or_(
                func.lower(ResidentModel.first_name).like(qq),
                func.lower(ResidentModel.last_name).like(qq),
            )
        )
        conditions.append(
            or_(
                func.lower(DocumentRequestModel.request_number).like(qq),
                DocumentRequestModel.resident_id.in_(matching_residents),
            )
        )

    total = (
        await db.execute(select(func.count()).select_from(DocumentRequestModel).where(*conditions))
    ).scalar_one()
    res = await db.execute(
        document_request_query()
        .where(*conditions)
        .order_by(DocumentRequestModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    requests = [serialize_document_request(r) for r in res.scalars().all()]
    return {"requests": requests, "pagination": pagination_meta(page, limit, total)}


@router.get("/complaints", response_model=Dict)
async def list_resident_complaints(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    user: User = Depends(staff_reviewer),
    db: AsyncSession = Depends(get_async_session),
):
    """Incidents filed through the resident portal (narrative carries the complaint marker)."""
    conditions = [IncidentModel.narrative.contains(COMPLAINT_MARKER)]
    if status_filter:
        conditions.append(IncidentModel.status == status_filter)
    if search:
        qq = f"%{search.strip().lower()}%"
        matching_residents = select(ResidentModel.id).where(
            or_(
                func.lower(ResidentModel.first_name).like(qq),
                func.lower(ResidentModel.last_name).like(qq),
            )
        )
        conditions.append(
            or_(
                func.lower(IncidentModel.incident_number).like(qq),
                func.lower(IncidentModel.narrative).like(qq),
                IncidentModel.complainant_id.in_(matching_residents),
            )
        )

    total = (await db.execute(select(func.count()).select_from(IncidentModel).where(*conditions))).scalar_one()
    res = await db.execute(
        incident_query()
        .where(*conditions)
        .order_by(IncidentModel.incident_date.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    complaints = [serialize_incident(i) for i in res.scalars().all()]
    return {"complaints": complaints, "pagination": pagination_meta(page, limit, total)}


@router.put("/document-requests/{request_id}", response_model=Dict)
async def update_document_request(
    request_id: UUID,
    payload: DocumentRequestUpdate,
    request: Request,
    user: User = Depends(staff_reviewer),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Record a staff decision on a request.

    Approving or completing it issues the linked Document (once) and renders its
    certificate. A failed render is logged and the request is still updated; the
    document is simply left without a file path.
    """
    r = await _load_request(db, request_id)

    try:
        if payload.status in ISSUING_STATUSES:
            document, created = await issue_document_for_request(db, r, user.id)
            if not document.file_path:
                await try_render_document_pdf(db, document, r.resident, user.id)
            if created:
                create_audit_log(
                    db, user.id, "CREATE", "DOCUMENT", document.id,
                    {
                        "action": "Document created from request",
                        "document_type": r.document_type,
                        "document_number": document.document_number,
                        "request_number": r.request_number,
                    },
                    request,
                )

        r.status = payload.status
        r.processed_by = user.id
        r.processed_at = utcnow()
        if payload.notes:
            r.notes = payload.notes
        if payload.rejected_reason:
            r.rejected_reason = payload.rejected_reason
        if "fee" in payload.model_fields_set:
            r.fee = Decimal(str(payload.fee)) if payload.fee is not None else None

        create_audit_log(
            db, user.id, "UPDATE", "DOCUMENT_REQUEST", r.id,
            {"action": "Document request updated", "status": payload.status, "request_number": r.request_number},
            request,
        )
        await db.commit()
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.exception("update_document_request failed for %s", request_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to update document request: {e}")

    r = await _load_request(db, request_id)
    return {"message": "Document request updated successfully", "request": serialize_document_request(r)}
