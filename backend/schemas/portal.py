from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from schemas.common import strip_or_none, strip_required
from schemas.documents import DocumentType


class ResidentLogin(BaseModel):
    contact_no: str
    date_of_birth: Optional[date] = None
    password: Optional[str] = None

    @field_validator("contact_no")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)


class ResidentSetPassword(BaseModel):
    password: str
    confirm_password: str


class PortalDocumentRequestCreate(BaseModel):
    document_type: DocumentType
    purpose: Optional[str] = None

    @field_validator("purpose")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)


class ComplaintCreate(BaseModel):
    subject: str
    description: str
    category: Optional[str] = None
    attachments: List[str] = []

    @field_validator("subject", "description")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("category")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)


class PaymentCallback(BaseModel):
    request_id: UUID
    status: str
    payment_reference: Optional[str] = None
    payment_method: Optional[str] = None
