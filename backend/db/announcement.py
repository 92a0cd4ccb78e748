import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text, Uuid, and_, or_
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    type = Column(Text, nullable=False, default="GENERAL", index=True)  # GENERAL | URGENT | NOTICE | EVENT
    is_pinned = Column(Boolean, nullable=False, default=False)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    creator = relationship("User")

    @classmethod
    def active_filter(cls, now):
        """Shown when `now` falls inside the optional start/end window."""
        return and_(
            or_(cls.start_date.is_(None), cls.start_date <= now),
            or_(cls.end_date.is_(None), cls.end_date >= now),
        )

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "type": self.type,
            "is_pinned": bool(self.is_pinned),
            "start_date": self.start_date,
            "end_date": self.end_date,
            "attachments": list(self.attachments or []),
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
