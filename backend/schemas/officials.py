import datetime as dt
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from schemas.common import strip_or_none, strip_required


class OfficialCreate(BaseModel):
    first_name: str
    last_name: str
    position: str
    term_start: date
    term_end: Optional[date] = None
    contact_no: Optional[str] = None
    email: Optional[EmailStr] = None
    documents: List[str] = []
    is_active: bool = True

    @field_validator("first_name", "last_name", "position")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("contact_no")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)

    @model_validator(mode="after")
    def _term_order(self):
        if self.term_end and self.term_end < self.term_start:
            raise ValueError("term_end must not be before term_start")
        return self


class OfficialUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    position: Optional[str] = None
    term_start: Optional[date] = None
    term_end: Optional[date] = None
    contact_no: Optional[str] = None
    email: Optional[EmailStr] = None
    documents: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("first_name", "last_name", "position")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v


class AttendanceCreate(BaseModel):
    date: dt.date
    time_in: Optional[datetime] = None
    time_out: Optional[datetime] = None
    remarks: Optional[str] = None

    @model_validator(mode="after")
    def _time_order(self):
        if self.time_in and self.time_out and self.time_out < self.time_in:
            raise ValueError("time_out must not be before time_in")
        return self
