import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship
from .base import Base, utcnow

# Narrative prefix marking incidents filed through the resident portal.
COMPLAINT_MARKER = "[COMPLAINT/REQUEST]"


class Incident(Base):
    __tablename__ = "incidents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    incident_number = Column(String, nullable=False, unique=True, index=True)
    complainant_id = Column(Uuid, ForeignKey("residents.id", ondelete="SET NULL"), nullable=True, index=True)
    respondent_id = Column(Uuid, ForeignKey("residents.id", ondelete="SET NULL"), nullable=True, index=True)
    narrative = Column(Text, nullable=False)
    incident_date = Column(DateTime(timezone=True), nullable=False, index=True)
    actions_taken = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="PENDING", index=True)  # PENDING | IN_PROGRESS | RESOLVED | CLOSED
    hearing_date = Column(DateTime(timezone=True), nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    # NULL for complaints submitted by residents
    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    complainant = relationship("Resident", foreign_keys=[complainant_id])
    respondent = relationship("Resident", foreign_keys=[respondent_id])
    creator = relationship("User")
