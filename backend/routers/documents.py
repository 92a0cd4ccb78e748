import logging
import os
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import FileResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.audit import create_audit_log
from core.auth import current_active_user
from core.documents import DOCUMENT_TYPES, render_document_pdf
from core.numbers import generate_document_number
from db.database import get_async_session
from db.document import Document as DocumentModel
from db.resident import Resident as ResidentModel
from db.users import User
from schemas.common import pagination_meta
from schemas.documents import DocumentCreate

logger = logging.getLogger(__name__)

router = APIRouter()


def _serialize_document(d: DocumentModel, full_resident: bool = False) -> dict:
    out = d.to_schema
    if d.resident is None:
        out["resident"] = None
    elif full_resident:
        out["resident"] = d.resident.to_schema
    else:
        out["resident"] = {
            "id": d.resident.id,
            "first_name": d.resident.first_name,
            "last_name": d.resident.last_name,
            "address": d.resident.address,
        }
    out["issuer"] = (
        {"id": d.issuer.id, "first_name": d.issuer.first_name, "last_name": d.issuer.last_name}
        if d.issuer
        else None
    )
    return out


async def _load_document(db: AsyncSession, document_id: UUID) -> DocumentModel:
    res = await db.execute(
        select(DocumentModel)
        .options(selectinload(DocumentModel.resident), selectinload(DocumentModel.issuer))
        .where(DocumentModel.id == document_id)
        .execution_options(populate_existing=True)
    )
    d = res.scalar_one_or_none()
    if not d:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return d


@router.get("/types", response_model=Dict)
async def get_document_types(user: User = Depends(current_active_user)):
    return {"types": DOCUMENT_TYPES}


@router.get("/", response_model=Dict)
async def list_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    type: Optional[str] = None,
    resident_id: Optional[UUID] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    conditions = []
    if type:
        conditions.append(DocumentModel.document_type == type)
    if resident_id:
        conditions.append(DocumentModel.resident_id == resident_id)

    total = (await db.execute(select(func.count()).select_from(DocumentModel).where(*conditions))).scalar_one()
    res = await db.execute(
        select(DocumentModel)
        .options(selectinload(DocumentModel.resident), selectinload(DocumentModel.issuer))
        .where(*conditions)
        .order_by(DocumentModel.issued_date.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    documents = [_serialize_document(d) for d in res.scalars().all()]
    return {"documents": documents, "pagination": pagination_meta(page, limit, total)}


@router.get("/{document_id}", response_model=Dict)
async def get_document(
    document_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return _serialize_document(await _load_document(db, document_id), full_resident=True)


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_document(
    payload: DocumentCreate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(select(ResidentModel.id).where(ResidentModel.id == payload.resident_id))
    if res.scalar_one_or_none() is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resident not found")

    d = DocumentModel(
        document_number=generate_document_number(payload.document_type),
        document_type=payload.document_type,
        resident_id=payload.resident_id,
        issued_by=user.id,
        purpose=payload.purpose,
        template=payload.template,
    )
    db.add(d)
    await db.flush()
    create_audit_log(
        db, user.id, "CREATE", "DOCUMENT", d.id,
        {"action": "Issued document", "document_type": d.document_type, "document_number": d.document_number},
        request,
    )
    await db.commit()
    return _serialize_document(await _load_document(db, d.id), full_resident=True)


@router.get("/{document_id}/pdf")
async def download_document_pdf(
    document_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Render the certificate (always fresh), store its path and return the file."""
    d = await _load_document(db, document_id)
    try:
        output_path = await render_document_pdf(db, d, d.resident, d.issued_by or user.id)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.exception("PDF generation failed for document %s", d.document_number)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to generate PDF: {e}")

    return FileResponse(
        output_path,
        media_type="application/pdf",
        filename=os.path.basename(output_path),
    )
