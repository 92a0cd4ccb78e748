from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, field_validator, model_validator

from schemas.common import strip_required


AnnouncementType = Literal["GENERAL", "URGENT", "NOTICE", "EVENT"]


class AnnouncementCreate(BaseModel):
    title: str
    content: str
    type: AnnouncementType = "GENERAL"
    is_pinned: bool = False
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    attachments: List[str] = []

    @field_validator("title", "content")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @model_validator(mode="after")
    def _window(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[AnnouncementType] = None
    is_pinned: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    attachments: Optional[List[str]] = None
