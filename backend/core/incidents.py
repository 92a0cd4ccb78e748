from sqlalchemy import select
from sqlalchemy.orm import selectinload

from db.incident import Incident
from db.resident import Resident


def incident_query():
    return select(Incident).options(
        selectinload(Incident.complainant),
        selectinload(Incident.respondent),
        selectinload(Incident.creator),
    )


def _resident_brief(r: Resident):
    if r is None:
        return None
    return {
        "id": r.id,
        "first_name": r.first_name,
        "last_name": r.last_name,
        "address": r.address,
        "contact_no": r.contact_no,
    }


def serialize_incident(i: Incident) -> dict:
    return {
        "id": i.id,
        "incident_number": i.incident_number,
        "complainant_id": i.complainant_id,
        "respondent_id": i.respondent_id,
        "narrative": i.narrative,
        "incident_date": i.incident_date,
        "actions_taken": i.actions_taken,
        "status": i.status,
        "hearing_date": i.hearing_date,
        "attachments": list(i.attachments or []),
        "created_by": i.created_by,
        "created_at": i.created_at,
        "updated_at": i.updated_at,
        "complainant": _resident_brief(i.complainant),
        "respondent": _resident_brief(i.respondent),
        "creator": {"first_name": i.creator.first_name, "last_name": i.creator.last_name} if i.creator else None,
    }
