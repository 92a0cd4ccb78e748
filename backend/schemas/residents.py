from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from schemas.common import strip_or_none, strip_required


Sex = Literal["MALE", "FEMALE"]
CivilStatus = Literal["SINGLE", "MARRIED", "WIDOWED", "DIVORCED", "SEPARATED"]
ResidencyStatus = Literal["NEW", "RETURNING", "TRANSFERRED"]


class ResidentCreate(BaseModel):
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    suffix: Optional[str] = None
    date_of_birth: date
    sex: Sex
    civil_status: CivilStatus
    address: str
    contact_no: Optional[str] = None
    occupation: Optional[str] = None
    education: Optional[str] = None
    household_id: Optional[UUID] = None
    residency_status: ResidencyStatus = "NEW"

    @field_validator("first_name", "last_name", "address")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("middle_name", "suffix", "contact_no", "occupation", "education")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)


class ResidentUpdate(BaseModel):
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    suffix: Optional[str] = None
    date_of_birth: Optional[date] = None
    sex: Optional[Sex] = None
    civil_status: Optional[CivilStatus] = None
    address: Optional[str] = None
    contact_no: Optional[str] = None
    occupation: Optional[str] = None
    education: Optional[str] = None
    household_id: Optional[UUID] = None
    residency_status: Optional[ResidencyStatus] = None

    @field_validator("first_name", "last_name", "address")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("middle_name", "suffix", "contact_no", "occupation", "education")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)


class ResidentRead(BaseModel):
    id: UUID
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    suffix: Optional[str] = None
    date_of_birth: date
    sex: str
    civil_status: str
    address: str
    contact_no: Optional[str] = None
    occupation: Optional[str] = None
    education: Optional[str] = None
    household_id: Optional[UUID] = None
    residency_status: str
    id_photo: Optional[str] = None
    is_archived: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
