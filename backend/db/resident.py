import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class Resident(Base):
    __tablename__ = "residents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name = Column(String, nullable=False, index=True)
    middle_name = Column(String, nullable=True)
    last_name = Column(String, nullable=False, index=True)
    suffix = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=False)
    sex = Column(Text, nullable=False)  # MALE | FEMALE
    civil_status = Column(Text, nullable=False)  # SINGLE | MARRIED | WIDOWED | DIVORCED | SEPARATED
    address = Column(Text, nullable=False)
    contact_no = Column(String, nullable=True, index=True)
    occupation = Column(String, nullable=True)
    education = Column(Text, nullable=True)
    household_id = Column(Uuid, ForeignKey("households.id", ondelete="SET NULL"), nullable=True, index=True)
    residency_status = Column(Text, nullable=False, default="NEW")  # NEW | RETURNING | TRANSFERRED
    id_photo = Column(String, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False, index=True)

    # Portal credential; NULL until the resident sets one after a date-of-birth login.
    hashed_password = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    household = relationship("Household", back_populates="residents")
    documents = relationship("Document", back_populates="resident")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "first_name": self.first_name,
            "middle_name": self.middle_name,
            "last_name": self.last_name,
            "suffix": self.suffix,
            "date_of_birth": self.date_of_birth,
            "sex": self.sex,
            "civil_status": self.civil_status,
            "address": self.address,
            "contact_no": self.contact_no,
            "occupation": self.occupation,
            "education": self.education,
            "household_id": self.household_id,
            "residency_status": self.residency_status,
            "id_photo": self.id_photo,
            "is_archived": bool(self.is_archived),
            "created_at": self.created_at,
        }
