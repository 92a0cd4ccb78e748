import logging
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.documents import (
    DOCUMENT_TYPES,
    document_request_query,
    serialize_document_request,
    try_render_document_pdf,
)
from core.numbers import generate_complaint_number, generate_request_number
from core.portal_auth import (
    create_resident_token,
    current_resident,
    hash_resident_password,
    verify_resident_password,
)
from db.announcement import Announcement as AnnouncementModel
from db.base import utcnow
from db.database import get_async_session
from db.document import Document as DocumentModel, DocumentRequest as DocumentRequestModel
from db.incident import COMPLAINT_MARKER, Incident as IncidentModel
from db.resident import Resident as ResidentModel
from schemas.common import pagination_meta
from schemas.portal import (
    ComplaintCreate,
    PaymentCallback,
    PortalDocumentRequestCreate,
    ResidentLogin,
    ResidentSetPassword,
)

logger = logging.getLogger(__name__)

router = APIRouter()

PAYMENT_STATUS_BY_CALLBACK = {"success": "PAID", "pending": "PENDING"}


# ---- public ----

@router.post("/login", response_model=Dict)
async def resident_login(
    payload: ResidentLogin,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Log a resident in by contact number.

    Residents who have set a portal password must give it; everyone else proves
    identity with their date of birth and is told to set a password.
    """
    res = await db.execute(
        select(ResidentModel)
        .where(ResidentModel.contact_no == payload.contact_no)
        .where(ResidentModel.is_archived == False)  # noqa: E712
        .order_by(ResidentModel.created_at.asc())
        .limit(1)
    )
    resident = res.scalar_one_or_none()
    if not resident:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials or resident not found")

    has_password = bool(resident.hashed_password)
    logger.debug("Resident login attempt for %s (password set: %s)", resident.id, has_password)

    if has_password:
        if not payload.password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is required")
        if not verify_resident_password(payload.password, resident.hashed_password):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")
    else:
        if payload.date_of_birth is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Date of birth is required for first-time login",
            )
        if payload.date_of_birth != resident.date_of_birth:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid date of birth")

    return {
        "token": create_resident_token(resident),
        "resident": {
            "id": resident.id,
            "first_name": resident.first_name,
            "last_name": resident.last_name,
            "contact_no": resident.contact_no,
            "address": resident.address,
        },
        "requires_password_setup": not has_password,
    }


@router.get("/announcements", response_model=Dict)
async def list_public_announcements(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_session),
):
    cond = AnnouncementModel.active_filter(utcnow())
    total = (await db.execute(select(func.count()).select_from(AnnouncementModel).where(cond))).scalar_one()
    res = await db.execute(
        select(AnnouncementModel)
        .where(cond)
        .order_by(AnnouncementModel.is_pinned.desc(), AnnouncementModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    announcements = [a.to_schema for a in res.scalars().all()]
    return {"announcements": announcements, "pagination": pagination_meta(page, limit, total)}


@router.get("/document-types", response_model=Dict)
async def get_document_types():
    return {"types": DOCUMENT_TYPES}


# ---- authenticated resident ----

@router.post("/set-password", response_model=Dict)
async def set_resident_password(
    payload: ResidentSetPassword,
    resident: ResidentModel = Depends(current_resident),
    db: AsyncSession = Depends(get_async_session),
):
    if not payload.password or not payload.confirm_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password and confirmation are required")
    if payload.password != payload.confirm_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Passwords do not match")
    if len(payload.password) < 6:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password must be at least 6 characters long")

    resident.hashed_password = hash_resident_password(payload.password)
    await db.commit()
    return {"message": "Password set successfully"}


@router.get("/documents", response_model=Dict)
async def list_my_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    resident: ResidentModel = Depends(current_resident),
    db: AsyncSession = Depends(get_async_session),
):
    cond = DocumentModel.resident_id == resident.id
    total = (await db.execute(select(func.count()).select_from(DocumentModel).where(cond))).scalar_one()
    res = await db.execute(
        select(DocumentModel)
        .where(cond)
        .order_by(DocumentModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    documents = [
        {
            "id": d.id,
            "document_number": d.document_number,
            "document_type": d.document_type,
            "issued_date": d.issued_date,
            "purpose": d.purpose,
            "file_path": d.file_path,
        }
        for d in res.scalars().all()
    ]
    return {"documents": documents, "pagination": pagination_meta(page, limit, total)}


@router.get("/requests", response_model=Dict)
async def list_my_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    resident: ResidentModel = Depends(current_resident),
    db: AsyncSession = Depends(get_async_session),
):
    conditions = [DocumentRequestModel.resident_id == resident.id]
    if status_filter:
        conditions.append(DocumentRequestModel.status == status_filter)

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


async def _load_own_request(db: AsyncSession, request_id: UUID, resident_id: UUID) -> DocumentRequestModel:
    res = await db.execute(
        document_request_query()
        .where(DocumentRequestModel.id == request_id)
        .where(DocumentRequestModel.resident_id == resident_id)
        .execution_options(populate_existing=True)
    )
    r = res.scalar_one_or_none()
    if not r:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    return r


@router.get("/requests/{request_id}", response_model=Dict)
async def get_my_request(
    request_id: UUID,
    resident: ResidentModel = Depends(current_resident),
    db: AsyncSession = Depends(get_async_session),
):
    r = await _load_own_request(db, request_id, resident.id)

    # Approved documents whose certificate was never rendered get one on first view.
    document = r.document
    if document and not document.file_path and r.status in ("APPROVED", "COMPLETED"):
        issuer_id = r.processed_by or document.issued_by
        if await try_render_document_pdf(db, document, r.resident, issuer_id):
            await db.commit()
            r = await _load_own_request(db, request_id, resident.id)

    return serialize_document_request(r)


@router.post("/requests", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_my_request(
    payload: PortalDocumentRequestCreate,
    resident: ResidentModel = Depends(current_resident),
    db: AsyncSession = Depends(get_async_session),
):
    r = DocumentRequestModel(
        request_number=generate_request_number(),
        resident_id=resident.id,
        document_type=payload.document_type,
        purpose=payload.purpose,
        status="PENDING",
        payment_status="UNPAID",
    )
    db.add(r)
    await db.commit()
    r = await _load_own_request(db, r.id, resident.id)
    return {"message": "Document request submitted successfully", "request": serialize_document_request(r)}


@router.post("/complaints", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def submit_complaint(
    payload: ComplaintCreate,
    resident: ResidentModel = Depends(current_resident),
    db: AsyncSession = Depends(get_async_session),
):
    narrative = (
        f"{COMPLAINT_MARKER}\n"
        f"Subject: {payload.subject}\n"
        f"Category: {payload.category or 'General'}\n\n"
        f"{payload.description}"
    )
    incident = IncidentModel(
        incident_number=generate_complaint_number(),
        complainant_id=resident.id,
        narrative=narrative,
        incident_date=utcnow(),
        status="PENDING",
        attachments=list(payload.attachments),
        created_by=None,
    )
    db.add(incident)
    await db.commit()
    logger.info("Complaint %s filed by resident %s", incident.incident_number, resident.id)
    return {
        "message": "Complaint/request submitted successfully",
        "incident": {
            "id": incident.id,
            "incident_number": incident.incident_number,
            "status": incident.status,
        },
    }


@router.post("/payment/callback", response_model=Dict)
async def payment_callback(
    payload: PaymentCallback,
    resident: ResidentModel = Depends(current_resident),
    db: AsyncSession = Depends(get_async_session),
):
    r = await _load_own_request(db, payload.request_id, resident.id)

    r.payment_status = PAYMENT_STATUS_BY_CALLBACK.get(payload.status.strip().lower(), "FAILED")
    r.payment_method = payload.payment_method
    r.payment_reference = payload.payment_reference
    await db.commit()
    return {"message": "Payment status updated", "payment_status": r.payment_status}
