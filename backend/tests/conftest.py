import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="barangay-uploads-"))

from datetime import date

import pytest
from fastapi import Depends, HTTPException, status
from fastapi_users.password import PasswordHelper
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.auth import current_active_user
from core.config import settings
from db.base import Base
from db.database import get_async_session
from db.official import Official
from db.resident import Resident
from db.users import User
from main import app

password_helper = PasswordHelper()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def uploads_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "uploads_dir", str(path))
    return path


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


class Actor:
    """Who the overridden `current_active_user` resolves to; None means anonymous."""

    def __init__(self):
        self.user_id = None

    def act_as(self, user):
        self.user_id = user.id if user is not None else None


@pytest.fixture
def actor():
    return Actor()


async def make_user(db: AsyncSession, email: str, role: str = "STAFF", password: str = "secret123", **kwargs) -> User:
    user = User(
        email=email,
        hashed_password=password_helper.hash(password),
        first_name=kwargs.pop("first_name", "Test"),
        last_name=kwargs.pop("last_name", role.title()),
        role=role,
        is_active=kwargs.pop("is_active", True),
        is_superuser=kwargs.pop("is_superuser", False),
        is_verified=True,
        **kwargs,
    )
    db.add(user)
    await db.commit()
    return user


async def make_resident(db: AsyncSession, **kwargs) -> Resident:
    values = {
        "first_name": "Juan",
        "last_name": "Dela Cruz",
        "date_of_birth": date(1990, 5, 17),
        "sex": "MALE",
        "civil_status": "SINGLE",
        "address": "Purok 3, Barangay San Isidro",
        "contact_no": "09171234567",
    }
    values.update(kwargs)
    resident = Resident(**values)
    db.add(resident)
    await db.commit()
    return resident


async def make_official(db: AsyncSession, **kwargs) -> Official:
    values = {
        "first_name": "Maria",
        "last_name": "Santos",
        "position": "Kagawad",
        "term_start": date(2023, 11, 30),
        "is_active": True,
    }
    values.update(kwargs)
    official = Official(**values)
    db.add(official)
    await db.commit()
    return official


@pytest.fixture
async def admin(db):
    return await make_user(db, "admin@barangay.gov.ph", role="ADMIN", first_name="Ada", last_name="Admin")


@pytest.fixture
async def staff(db):
    return await make_user(db, "staff@barangay.gov.ph", role="STAFF", first_name="Sam", last_name="Staff")


@pytest.fixture
async def resident(db):
    return await make_resident(db)


@pytest.fixture
async def official(db):
    return await make_official(db)


@pytest.fixture
async def client(session_maker, actor, admin):
    async def _get_session():
        async with session_maker() as session:
            yield session

    # Load the acting user through the request's own session so fastapi-users
    # updates operate on an object attached to it.
    async def _current_user(session: AsyncSession = Depends(get_async_session)) -> User:
        if actor.user_id is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        res = await session.execute(select(User).where(User.id == actor.user_id))
        user = res.scalar_one_or_none()
        if user is None or not user.is_active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        return user

    app.dependency_overrides[get_async_session] = _get_session
    app.dependency_overrides[current_active_user] = _current_user
    actor.act_as(admin)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()
