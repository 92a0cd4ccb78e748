from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy import Column, DateTime, String, Text

from .base import Base, utcnow

USER_ROLES = ("ADMIN", "BARANGAY_CHAIRMAN", "SECRETARY", "CPDO", "TREASURER", "SK", "STAFF")


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"

    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    # ADMIN | BARANGAY_CHAIRMAN | SECRETARY | CPDO | TREASURER | SK | STAFF
    role = Column(Text, nullable=False, default="STAFF", index=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def to_schema(self):
        """Convert User model to schema dictionary format"""
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "is_active": self.is_active,
            "is_superuser": self.is_superuser,
            "last_login": self.last_login,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
