from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    # Python-side default so the value is on the instance after flush
    # (async sessions cannot lazy-load expired server defaults).
    return datetime.now(timezone.utc)
