import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from ..base import Base, utcnow


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    item_name = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, index=True)
    unit = Column(Text, nullable=False, default="pcs")

    # Only the ledger writes this after creation.
    quantity = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)

    location = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    qr_code = Column(String, nullable=True, unique=True, index=True)

    # Items are never hard-deleted; logs keep pointing at them.
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    logs = relationship("InventoryLog", back_populates="item", order_by="InventoryLog.created_at.desc()")

    @property
    def is_low_stock(self) -> bool:
        return int(self.quantity or 0) <= int(self.min_stock or 0)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "item_name": self.item_name,
            "category": self.category,
            "unit": self.unit,
            "quantity": int(self.quantity or 0),
            "min_stock": int(self.min_stock or 0),
            "location": self.location,
            "notes": self.notes,
            "qr_code": self.qr_code,
            "is_active": bool(self.is_active),
            "is_low_stock": self.is_low_stock,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
