import json
from typing import Any, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from db.audit import AuditLog


def _jsonable(details: Any) -> Any:
    # Round-trip through json so dates/UUIDs/Decimals land in the JSON column as strings.
    return json.loads(json.dumps(details, default=str))


def create_audit_log(
    db: AsyncSession,
    user_id: Optional[UUID],
    action: str,
    entity_type: str,
    entity_id: Any,
    details: Optional[dict] = None,
    request: Optional[Request] = None,
) -> AuditLog:
    """Stage an audit row on the session; it commits with the caller's transaction."""
    ip_address = None
    user_agent = None
    if request is not None:
        ip_address = request.client.host if request.client else None
        user_agent = request.headers.get("user-agent")

    log = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details=_jsonable(details) if details is not None else None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(log)
    return log
