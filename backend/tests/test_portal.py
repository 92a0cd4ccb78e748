import pytest
from sqlalchemy import select

from conftest import make_resident
from core.portal_auth import create_resident_token, read_resident_token
from db.document import DocumentRequest
from db.incident import COMPLAINT_MARKER, Incident

pytestmark = pytest.mark.anyio


async def _login(client, **payload):
    return await client.post("/api/portal/login", json=payload)


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


async def test_first_login_uses_date_of_birth(client, resident):
    r = await _login(client, contact_no="09171234567", date_of_birth="1990-05-17")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["requires_password_setup"] is True
    assert body["resident"]["id"] == str(resident.id)
    assert read_resident_token(body["token"]) == resident.id


async def test_login_failures(client, resident):
    r = await _login(client, contact_no="09990000000", date_of_birth="1990-05-17")
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials or resident not found"

    r = await _login(client, contact_no="09171234567")
    assert r.status_code == 400
    assert r.json()["detail"] == "Date of birth is required for first-time login"

    r = await _login(client, contact_no="09171234567", date_of_birth="1991-01-01")
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid date of birth"


async def test_archived_resident_cannot_log_in(client, db):
    await make_resident(db, contact_no="09170000001", is_archived=True)
    r = await _login(client, contact_no="09170000001", date_of_birth="1990-05-17")
    assert r.status_code == 401


async def test_set_password_then_password_login(client, resident):
    token = (await _login(client, contact_no="09171234567", date_of_birth="1990-05-17")).json()["token"]

    r = await client.post(
        "/api/portal/set-password",
        json={"password": "abc", "confirm_password": "abc"},
        headers=_bearer(token),
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Password must be at least 6 characters long"

    r = await client.post(
        "/api/portal/set-password",
        json={"password": "mabuhay1", "confirm_password": "mabuhay2"},
        headers=_bearer(token),
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Passwords do not match"

    r = await client.post(
        "/api/portal/set-password",
        json={"password": "mabuhay1", "confirm_password": "mabuhay1"},
        headers=_bearer(token),
    )
    assert r.status_code == 200

    # Date of birth no longer suffices once a password exists.
    r = await _login(client, contact_no="09171234567", date_of_birth="1990-05-17")
    assert r.status_code == 400
    assert r.json()["detail"] == "Password is required"

    r = await _login(client, contact_no="09171234567", password="wrong-one")
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid password"

    r = await _login(client, contact_no="09171234567", password="mabuhay1")
    assert r.status_code == 200
    assert r.json()["requires_password_setup"] is False


async def test_portal_token_required(client):
    r = await client.get("/api/portal/requests")
    assert r.status_code == 401
    assert r.json()["detail"] == "Authentication required"

    r = await client.get("/api/portal/requests", headers=_bearer("not-a-token"))
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired token"


async def test_staff_token_is_not_a_resident_token(client, admin):
    from core.auth import get_jwt_strategy

    staff_token = await get_jwt_strategy().write_token(admin)
    assert read_resident_token(staff_token) is None

    r = await client.get("/api/portal/documents", headers=_bearer(staff_token))
    assert r.status_code == 401


async def test_request_lifecycle_from_portal(client, resident, db):
    token = create_resident_token(resident)

    r = await client.post(
        "/api/portal/requests",
        json={"document_type": "RESIDENCY", "purpose": "School enrollment"},
        headers=_bearer(token),
    )
    assert r.status_code == 201, r.text
    request = r.json()["request"]
    assert request["status"] == "PENDING"
    assert request["payment_status"] == "UNPAID"
    assert request["request_number"].startswith("REQ-")
    assert request["document"] is None

    r = await client.get("/api/portal/requests", headers=_bearer(token))
    assert r.json()["pagination"]["total"] == 1

    r = await client.post(
        "/api/portal/payment/callback",
        json={"request_id": request["id"], "status": "success", "payment_reference": "GC-123", "payment_method": "GCASH"},
        headers=_bearer(token),
    )
    assert r.status_code == 200
    assert r.json()["payment_status"] == "PAID"

    r = await client.post(
        "/api/portal/payment/callback",
        json={"request_id": request["id"], "status": "cancelled"},
        headers=_bearer(token),
    )
    assert r.json()["payment_status"] == "FAILED"

    stored = (await db.execute(select(DocumentRequest).where(DocumentRequest.resident_id == resident.id))).scalar_one()
    assert stored.payment_method is None


async def test_cannot_see_other_residents_requests(client, resident, db):
    other = await make_resident(db, first_name="Ana", contact_no="09175550000")
    r = await client.post(
        "/api/portal/requests",
        json={"document_type": "CLEARANCE"},
        headers=_bearer(create_resident_token(resident)),
    )
    request_id = r.json()["request"]["id"]

    r = await client.get(f"/api/portal/requests/{request_id}", headers=_bearer(create_resident_token(other)))
    assert r.status_code == 404
    assert r.json()["detail"] == "Request not found"


async def test_invalid_document_type_rejected(client, resident):
    r = await client.post(
        "/api/portal/requests",
        json={"document_type": "PASSPORT"},
        headers=_bearer(create_resident_token(resident)),
    )
    assert r.status_code == 422


async def test_submit_complaint(client, resident, db):
    r = await client.post(
        "/api/portal/complaints",
        json={"subject": "Noise", "description": "Karaoke past midnight", "category": "Disturbance"},
        headers=_bearer(create_resident_token(resident)),
    )
    assert r.status_code == 201, r.text
    incident = r.json()["incident"]
    assert incident["incident_number"].startswith("COMP-")
    assert incident["status"] == "PENDING"

    stored = (await db.execute(select(Incident))).scalar_one()
    assert stored.narrative.startswith(COMPLAINT_MARKER)
    assert "Subject: Noise" in stored.narrative
    assert "Category: Disturbance" in stored.narrative
    assert stored.created_by is None
    assert stored.complainant_id == resident.id

    r = await client.get("/api/resident-requests/complaints")
    assert r.status_code == 200
    assert r.json()["pagination"]["total"] == 1


async def test_public_endpoints(client, actor):
    actor.act_as(None)
    r = await client.get("/api/portal/document-types")
    assert r.status_code == 200
    assert {t["value"] for t in r.json()["types"]} == {
        "INDIGENCY", "RESIDENCY", "CLEARANCE", "SOLO_PARENT", "GOOD_MORAL"
    }

    r = await client.get("/api/portal/announcements")
    assert r.status_code == 200
    assert r.json()["announcements"] == []
