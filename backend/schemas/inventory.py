from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from schemas.common import Pagination, strip_or_none, strip_required


InventoryLogType = Literal["ADD", "REMOVE", "RELEASE", "RETURN", "ADJUSTMENT"]


class InventoryItemCreate(BaseModel):
    item_name: str
    category: str
    quantity: int = Field(0, ge=0)
    unit: str = "pcs"
    min_stock: int = Field(0, ge=0)
    location: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("item_name", "category")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("unit")
    @classmethod
    def _unit(cls, v: Optional[str]) -> str:
        return strip_or_none(v) or "pcs"

    @field_validator("location", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)


class InventoryItemUpdate(BaseModel):
    """Descriptive fields only; stock changes go through the log endpoint."""

    item_name: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    min_stock: Optional[int] = Field(None, ge=0)
    location: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("item_name", "category", "unit")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("location", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)


class InventoryLogCreate(BaseModel):
    type: InventoryLogType
    quantity: int
    notes: Optional[str] = None
    released_to: Optional[UUID] = None

    @field_validator("notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)

    @model_validator(mode="after")
    def _validate_quantity(self):
        if self.type == "ADJUSTMENT":
            if self.quantity < 0:
                raise ValueError("ADJUSTMENT quantity must be >= 0")
        elif self.quantity <= 0:
            raise ValueError(f"{self.type} quantity must be > 0")
        return self


class InventoryItemOut(BaseModel):
    id: UUID
    item_name: str
    category: str
    unit: str
    quantity: int
    min_stock: int
    location: Optional[str] = None
    notes: Optional[str] = None
    qr_code: Optional[str] = None
    is_active: bool
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InventoryListItemOut(InventoryItemOut):
    log_count: int = 0


class InventoryLogOut(BaseModel):
    id: UUID
    item_id: UUID
    type: InventoryLogType
    quantity: int
    quantity_before: int
    quantity_after: int
    notes: Optional[str] = None
    released_to: Optional[UUID] = None
    released_to_name: Optional[str] = None
    created_by: Optional[UUID] = None
    created_by_name: Optional[str] = None
    created_at: datetime


class InventoryItemDetailOut(InventoryItemOut):
    logs: List[InventoryLogOut] = []


class InventoryListOut(BaseModel):
    items: List[InventoryListItemOut]
    pagination: Pagination


class InventoryLogListOut(BaseModel):
    logs: List[InventoryLogOut]
    pagination: Pagination


class InventoryLogResult(BaseModel):
    log: InventoryLogOut
    item: InventoryItemOut


class InventoryQrCodeOut(BaseModel):
    qr_code: str
    item_name: str
