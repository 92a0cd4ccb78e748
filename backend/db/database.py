from collections.abc import AsyncGenerator
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from core.config import settings
from .base import Base
from .users import User
from .household import Household
from .resident import Resident
from .document import Document, DocumentRequest
from .incident import Incident
from .official import Official, Attendance
from .financial import FinancialRecord
from .announcement import Announcement
from .audit import AuditLog
from .inventory.item import InventoryItem
from .inventory.log import InventoryLog

logger = logging.getLogger(__name__)

__all__ = [
    "Base",
    "User",
    "Household",
    "Resident",
    "Document",
    "DocumentRequest",
    "Incident",
    "Official",
    "Attendance",
    "FinancialRecord",
    "Announcement",
    "AuditLog",
    "InventoryItem",
    "InventoryLog",
    "engine",
    "async_session_maker",
    "create_db_and_tables",
    "dispose_engine",
    "get_async_session",
]

# The one engine (and connection pool) for the whole process.
engine = create_async_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def dispose_engine():
    await engine.dispose()
    logger.info("Database engine disposed")


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
