from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from schemas.common import strip_or_none


DocumentType = Literal["INDIGENCY", "RESIDENCY", "CLEARANCE", "SOLO_PARENT", "GOOD_MORAL"]
RequestStatus = Literal["PENDING", "PROCESSING", "APPROVED", "REJECTED", "COMPLETED", "CANCELLED"]
PaymentStatus = Literal["UNPAID", "PENDING", "PAID", "FAILED"]


class DocumentCreate(BaseModel):
    document_type: DocumentType
    resident_id: UUID
    purpose: Optional[str] = None
    template: Optional[str] = None

    @field_validator("purpose", "template")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)


class DocumentRequestUpdate(BaseModel):
    """Staff decision on a resident's document request."""

    status: RequestStatus
    notes: Optional[str] = None
    rejected_reason: Optional[str] = None
    fee: Optional[float] = Field(None, ge=0)

    @field_validator("notes", "rejected_reason")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)
