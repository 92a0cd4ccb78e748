import uuid
from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class Official(Base):
    __tablename__ = "officials"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    position = Column(String, nullable=False, index=True)
    term_start = Column(Date, nullable=False)
    term_end = Column(Date, nullable=True)
    contact_no = Column(String, nullable=True)
    email = Column(String, nullable=True)
    photo = Column(String, nullable=True)
    documents = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    attendance = relationship("Attendance", back_populates="official", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "position": self.position,
            "term_start": self.term_start,
            "term_end": self.term_end,
            "contact_no": self.contact_no,
            "email": self.email,
            "photo": self.photo,
            "documents": list(self.documents or []),
            "is_active": bool(self.is_active),
            "created_at": self.created_at,
        }


class Attendance(Base):
    __tablename__ = "attendance"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    official_id = Column(Uuid, ForeignKey("officials.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    time_in = Column(DateTime(timezone=True), nullable=True)
    time_out = Column(DateTime(timezone=True), nullable=True)
    remarks = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    official = relationship("Official", back_populates="attendance")
