import uuid

from fastapi_users_db_sqlalchemy.generics import GUID

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from ..base import Base, utcnow


class InventoryLog(Base):
    __tablename__ = "inventory_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    item_id = Column(
        Uuid,
        ForeignKey("inventory_items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    type = Column(Text, nullable=False, index=True)  # ADD | REMOVE | RELEASE | RETURN | ADJUSTMENT
    # The submitted amount; for ADJUSTMENT this is the new absolute quantity.
    quantity = Column(Integer, nullable=False)
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    released_to = Column(Uuid, ForeignKey("officials.id", ondelete="RESTRICT"), nullable=True, index=True)
    # same column type as users.id
    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    item = relationship("InventoryItem", back_populates="logs")
    recipient = relationship("Official")
    creator = relationship("User")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "item_id": self.item_id,
            "type": self.type,
            "quantity": int(self.quantity),
            "quantity_before": int(self.quantity_before),
            "quantity_after": int(self.quantity_after),
            "notes": self.notes,
            "released_to": self.released_to,
            "created_by": self.created_by,
            "created_at": self.created_at,
        }
