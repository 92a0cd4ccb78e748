import pytest
from sqlalchemy import select

from conftest import make_user
from db.users import User

pytestmark = pytest.mark.anyio


async def test_staff_jwt_login_records_last_login(client, staff, db):
    r = await client.post(
        "/api/auth/jwt/login",
        data={"username": "staff@barangay.gov.ph", "password": "secret123"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["token_type"] == "bearer"
    assert r.json()["access_token"]

    stored = (
        await db.execute(select(User).where(User.id == staff.id).execution_options(populate_existing=True))
    ).scalar_one()
    assert stored.last_login is not None

    r = await client.post(
        "/api/auth/jwt/login",
        data={"username": "staff@barangay.gov.ph", "password": "nope-nope"},
    )
    assert r.status_code == 400


async def test_register_creates_staff(client):
    r = await client.post(
        "/api/auth/register",
        json={"email": "new@barangay.gov.ph", "password": "secret123", "first_name": "Nora", "last_name": "New"},
    )
    assert r.status_code == 201, r.text
    assert r.json()["role"] == "STAFF"

    r = await client.post(
        "/api/auth/register",
        json={"email": "short@barangay.gov.ph", "password": "abc", "first_name": "S", "last_name": "P"},
    )
    assert r.status_code == 400


async def test_me_and_change_password(client, actor, staff):
    actor.act_as(staff)
    r = await client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["email"] == "staff@barangay.gov.ph"

    r = await client.put(
        "/api/auth/change-password",
        json={"current_password": "wrong", "new_password": "another1"},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Current password is incorrect"

    r = await client.put(
        "/api/auth/change-password",
        json={"current_password": "secret123", "new_password": "another1"},
    )
    assert r.status_code == 200, r.text

    r = await client.post("/api/auth/jwt/login", data={"username": "staff@barangay.gov.ph", "password": "another1"})
    assert r.status_code == 200


async def test_admin_manages_users(client, staff):
    r = await client.post(
        "/api/users/",
        json={
            "email": "secretary@barangay.gov.ph",
            "password": "secret123",
            "first_name": "Sofia",
            "last_name": "Reyes",
            "role": "SECRETARY",
        },
    )
    assert r.status_code == 201, r.text
    created = r.json()["user"]
    assert created["role"] == "SECRETARY"

    r = await client.post(
        "/api/users/",
        json={"email": "secretary@barangay.gov.ph", "password": "secret123", "first_name": "X", "last_name": "Y"},
    )
    assert r.status_code == 409

    r = await client.put(f"/api/users/{created['id']}", json={"role": "TREASURER", "last_name": "Reyes-Cruz"})
    assert r.status_code == 200, r.text
    assert r.json()["user"]["role"] == "TREASURER"
    assert r.json()["user"]["last_name"] == "Reyes-Cruz"

    r = await client.put(f"/api/users/{created['id']}", json={"email": "staff@barangay.gov.ph"})
    assert r.status_code == 409

    r = await client.get("/api/users/", params={"search": "reyes"})
    assert r.json()["pagination"]["total"] == 1

    r = await client.delete(f"/api/users/{created['id']}")
    assert r.json()["message"] == "User deactivated successfully"
    r = await client.get(f"/api/users/{created['id']}")
    assert r.json()["is_active"] is False


async def test_admin_cannot_demote_or_delete_self(client, admin):
    r = await client.put(f"/api/users/{admin.id}", json={"role": "STAFF"})
    assert r.status_code == 400
    r = await client.delete(f"/api/users/{admin.id}")
    assert r.status_code == 400

    r = await client.put(f"/api/users/{admin.id}", json={"first_name": "Adela"})
    assert r.status_code == 200
    assert r.json()["user"]["first_name"] == "Adela"


async def test_user_admin_requires_role(client, actor, db):
    staff_user = await make_user(db, "plain@barangay.gov.ph")
    actor.act_as(staff_user)
    r = await client.get("/api/users/")
    assert r.status_code == 403
    r = await client.get("/api/audit/")
    assert r.status_code == 403


async def test_superuser_passes_role_checks(client, actor, db):
    root = await make_user(db, "root@barangay.gov.ph", role="STAFF", is_superuser=True)
    actor.act_as(root)
    r = await client.get("/api/users/")
    assert r.status_code == 200


def test_default_admin_email_is_accepted_by_user_schemas():
    from pydantic import EmailStr, TypeAdapter

    from scripts.create_admin import DEFAULT_ADMIN_EMAIL

    assert TypeAdapter(EmailStr).validate_python(DEFAULT_ADMIN_EMAIL) == DEFAULT_ADMIN_EMAIL


async def test_admin_can_read_own_profile(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["email"] == "admin@barangay.gov.ph"
    assert r.json()["role"] == "ADMIN"
