import uuid
from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class Household(Base):
    __tablename__ = "households"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    household_number = Column(String, nullable=False, unique=True, index=True)
    head_name = Column(String, nullable=False)
    address = Column(Text, nullable=False)
    latitude = Column(Numeric(10, 7), nullable=True)
    longitude = Column(Numeric(10, 7), nullable=True)
    income = Column(Numeric(12, 2), nullable=True)
    living_conditions = Column(Text, nullable=True)
    household_size = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    residents = relationship("Resident", back_populates="household", passive_deletes=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "household_number": self.household_number,
            "head_name": self.head_name,
            "address": self.address,
            "latitude": float(self.latitude) if self.latitude is not None else None,
            "longitude": float(self.longitude) if self.longitude is not None else None,
            "income": float(self.income) if self.income is not None else None,
            "living_conditions": self.living_conditions,
            "household_size": self.household_size,
            "created_at": self.created_at,
        }
