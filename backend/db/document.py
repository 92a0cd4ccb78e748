import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class Document(Base):
    __tablename__ = "documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_number = Column(String, nullable=False, unique=True, index=True)
    # INDIGENCY | RESIDENCY | CLEARANCE | SOLO_PARENT | GOOD_MORAL
    document_type = Column(Text, nullable=False, index=True)
    resident_id = Column(Uuid, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False, index=True)
    issued_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    issued_date = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    purpose = Column(Text, nullable=True)
    template = Column(Text, nullable=True)
    file_path = Column(String, nullable=True)
    request_id = Column(Uuid, ForeignKey("document_requests.id", ondelete="SET NULL"), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    resident = relationship("Resident", back_populates="documents")
    issuer = relationship("User")
    request = relationship("DocumentRequest", back_populates="document")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "document_number": self.document_number,
            "document_type": self.document_type,
            "resident_id": self.resident_id,
            "issued_by": self.issued_by,
            "issued_date": self.issued_date,
            "purpose": self.purpose,
            "template": self.template,
            "file_path": self.file_path,
            "request_id": self.request_id,
        }


class DocumentRequest(Base):
    __tablename__ = "document_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    request_number = Column(String, nullable=False, unique=True, index=True)
    resident_id = Column(Uuid, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False, index=True)
    document_type = Column(Text, nullable=False)
    purpose = Column(Text, nullable=True)

    # PENDING | PROCESSING | APPROVED | REJECTED | COMPLETED | CANCELLED
    status = Column(Text, nullable=False, default="PENDING", index=True)
    notes = Column(Text, nullable=True)
    rejected_reason = Column(Text, nullable=True)
    fee = Column(Numeric(10, 2), nullable=True)

    # UNPAID | PENDING | PAID | FAILED
    payment_status = Column(Text, nullable=False, default="UNPAID")
    payment_method = Column(String, nullable=True)
    payment_reference = Column(String, nullable=True)

    processed_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    resident = relationship("Resident")
    processor = relationship("User")
    document = relationship("Document", back_populates="request", uselist=False)
