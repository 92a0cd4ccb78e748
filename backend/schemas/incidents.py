from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from schemas.common import strip_or_none, strip_required


IncidentStatus = Literal["PENDING", "IN_PROGRESS", "RESOLVED", "CLOSED"]


class IncidentCreate(BaseModel):
    complainant_id: Optional[UUID] = None
    respondent_id: Optional[UUID] = None
    narrative: str
    incident_date: datetime
    actions_taken: Optional[str] = None
    status: IncidentStatus = "PENDING"
    hearing_date: Optional[datetime] = None
    attachments: List[str] = []

    @field_validator("narrative")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("actions_taken")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        return strip_or_none(v)


class IncidentUpdate(BaseModel):
    complainant_id: Optional[UUID] = None
    respondent_id: Optional[UUID] = None
    narrative: Optional[str] = None
    incident_date: Optional[datetime] = None
    actions_taken: Optional[str] = None
    status: Optional[IncidentStatus] = None
    hearing_date: Optional[datetime] = None
    # appended to the existing list
    attachments: Optional[List[str]] = None


class IncidentStatusUpdate(BaseModel):
    status: IncidentStatus
