from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from schemas.common import strip_or_none, strip_required


class HouseholdCreate(BaseModel):
    head_name: str
    address: str
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    income: Optional[float] = Field(None, ge=0)
    living_conditions: Optional[str] = None
    household_size: int = Field(1, ge=1)

    @field_validator("head_name", "address")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("living_conditions")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)


class HouseholdUpdate(BaseModel):
    head_name: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    income: Optional[float] = Field(None, ge=0)
    living_conditions: Optional[str] = None
    household_size: Optional[int] = Field(None, ge=1)

    @field_validator("head_name", "address")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v


class HouseholdRead(BaseModel):
    id: UUID
    household_number: str
    head_name: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    income: Optional[float] = None
    living_conditions: Optional[str] = None
    household_size: int
    created_at: datetime
