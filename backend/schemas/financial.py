import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from schemas.common import strip_required


FinancialType = Literal["BUDGET", "EXPENSE", "INCOME", "ALLOCATION"]


class FinancialRecordCreate(BaseModel):
    type: FinancialType
    category: str
    description: str
    amount: float = Field(..., ge=0)
    date: dt.date

    @field_validator("category", "description")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)


class FinancialRecordUpdate(BaseModel):
    type: Optional[FinancialType] = None
    category: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0)
    date: Optional[dt.date] = None

    @field_validator("category", "description")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v
