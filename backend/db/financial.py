import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class FinancialRecord(Base):
    __tablename__ = "financial_records"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    record_number = Column(String, nullable=False, unique=True, index=True)
    type = Column(Text, nullable=False, index=True)  # BUDGET | EXPENSE | INCOME | ALLOCATION
    category = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(Date, nullable=False, index=True)
    receipt_path = Column(String, nullable=True)
    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    creator = relationship("User")
