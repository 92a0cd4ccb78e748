"""Certificate issuance shared by staff documents, request approval and the portal."""
import logging
from typing import Optional
from uuid import UUID

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.numbers import generate_document_number
from core.pdf import CertificateData, certificate_path, generate_certificate_pdf
from db.document import Document, DocumentRequest
from db.resident import Resident
from db.users import User

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = [
    {"value": "INDIGENCY", "label": "Certificate of Indigency"},
    {"value": "RESIDENCY", "label": "Certificate of Residency"},
    {"value": "CLEARANCE", "label": "Barangay Clearance"},
    {"value": "SOLO_PARENT", "label": "Solo Parent Certificate"},
    {"value": "GOOD_MORAL", "label": "Certificate of Good Moral Character"},
]


async def _issuer_name(db: AsyncSession, user_id: Optional[UUID]) -> Optional[str]:
    if not user_id:
        return None
    res = await db.execute(select(User).where(User.id == user_id))
    user = res.scalar_one_or_none()
    return user.full_name if user else None


async def render_document_pdf(
    db: AsyncSession,
    document: Document,
    resident: Resident,
    issued_by: Optional[UUID] = None,
) -> str:
    """Generate the certificate PDF and set `document.file_path`.

    Returns the absolute path on disk. Raises on any failure; callers decide
    whether that is fatal.
    """
    issuer = await _issuer_name(db, issued_by or document.issued_by)
    if not issuer:
        raise LookupError(f"No issuer found for document {document.id}")

    output_path, public_path = certificate_path(document.document_number)
    await run_in_threadpool(
        generate_certificate_pdf,
        CertificateData(
            document_number=document.document_number,
            document_type=document.document_type,
            resident_name=resident.full_name,
            resident_address=resident.address,
            purpose=document.purpose,
            issued_date=document.issued_date,
            issued_by=issuer,
            template=document.template,
        ),
        output_path,
    )
    document.file_path = public_path
    return output_path


async def try_render_document_pdf(
    db: AsyncSession,
    document: Document,
    resident: Resident,
    issued_by: Optional[UUID] = None,
) -> bool:
    """Best-effort PDF generation: failures are logged and swallowed."""
    try:
        await render_document_pdf(db, document, resident, issued_by)
    except Exception:
        logger.exception("Error generating PDF for document %s", document.document_number)
        return False
    logger.info("PDF generated: %s", document.file_path)
    return True


async def issue_document_for_request(
    db: AsyncSession,
    request: DocumentRequest,
    issued_by: UUID,
) -> tuple[Document, bool]:
    """Create the Document linked to `request` if it does not exist yet.

    Returns (document, created).
    """
    res = await db.execute(select(Document).where(Document.request_id == request.id))
    document = res.scalar_one_or_none()
    if document:
        return document, False

    document = Document(
        document_number=generate_document_number(request.document_type),
        document_type=request.document_type,
        resident_id=request.resident_id,
        issued_by=issued_by,
        purpose=request.purpose,
        request_id=request.id,
    )
    db.add(document)
    await db.flush()
    return document, True


def document_request_query():
    """SELECT DocumentRequest with everything `serialize_document_request` reads."""
    return select(DocumentRequest).options(
        selectinload(DocumentRequest.resident),
        selectinload(DocumentRequest.processor),
        selectinload(DocumentRequest.document),
    )


def serialize_document_request(r: DocumentRequest) -> dict:
    resident = r.resident
    return {
        "id": r.id,
        "request_number": r.request_number,
        "resident_id": r.resident_id,
        "document_type": r.document_type,
        "purpose": r.purpose,
        "status": r.status,
        "notes": r.notes,
        "rejected_reason": r.rejected_reason,
        "fee": float(r.fee) if r.fee is not None else None,
        "payment_status": r.payment_status,
        "payment_method": r.payment_method,
        "payment_reference": r.payment_reference,
        "processed_by": r.processed_by,
        "processed_at": r.processed_at,
        "created_at": r.created_at,
        "updated_at": r.updated_at,
        "resident": {
            "id": resident.id,
            "first_name": resident.first_name,
            "last_name": resident.last_name,
            "address": resident.address,
            "contact_no": resident.contact_no,
        } if resident else None,
        "processor": {
            "first_name": r.processor.first_name,
            "last_name": r.processor.last_name,
        } if r.processor else None,
        "document": {
            "id": r.document.id,
            "document_number": r.document.document_number,
            "file_path": r.document.file_path,
        } if r.document else None,
    }
