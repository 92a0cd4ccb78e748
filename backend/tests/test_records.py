import io

import pytest
from openpyxl import load_workbook

from conftest import make_official, make_resident

pytestmark = pytest.mark.anyio


RESIDENT = {
    "first_name": "Jose",
    "last_name": "Rizal",
    "date_of_birth": "1985-06-19",
    "sex": "MALE",
    "civil_status": "MARRIED",
    "address": "Purok 1, Barangay San Isidro",
    "contact_no": "09181112222",
}


async def test_resident_crud_and_archive(client):
    r = await client.post("/api/residents/", json=RESIDENT)
    assert r.status_code == 201, r.text
    resident = r.json()
    assert resident["full_name"] == "Jose Rizal"
    assert resident["residency_status"] == "NEW"
    assert resident["household"] is None

    r = await client.put(f"/api/residents/{resident['id']}", json={"occupation": "Physician"})
    assert r.json()["occupation"] == "Physician"

    r = await client.get("/api/residents/search", params={"q": "riz"})
    assert [x["id"] for x in r.json()] == [resident["id"]]

    r = await client.patch(f"/api/residents/{resident['id']}/archive")
    assert r.status_code == 200
    assert r.json()["resident"]["is_archived"] is True

    r = await client.get("/api/residents/search", params={"q": "riz"})
    assert r.json() == []
    r = await client.get("/api/residents/", params={"archived": True})
    assert r.json()["pagination"]["total"] == 1
    r = await client.get("/api/residents/")
    assert r.json()["residents"] == []


async def test_resident_validation(client):
    r = await client.post("/api/residents/", json={**RESIDENT, "sex": "OTHER"})
    assert r.status_code == 422
    r = await client.post("/api/residents/", json={**RESIDENT, "household_id": "00000000-0000-0000-0000-000000000000"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Household not found"
    r = await client.get("/api/residents/search")
    assert r.status_code == 400


async def test_household_membership_and_delete(client):
    r = await client.post(
        "/api/households/",
        json={"head_name": "Jose Rizal", "address": "Purok 1", "income": 15000.5, "latitude": 14.5995, "longitude": 120.9842},
    )
    assert r.status_code == 201, r.text
    household = r.json()
    assert household["household_number"].startswith("HH-")

    r = await client.post("/api/residents/", json={**RESIDENT, "household_id": household["id"]})
    resident = r.json()
    assert resident["household"]["household_number"] == household["household_number"]

    r = await client.get("/api/residents/search", params={"household_number": household["household_number"]})
    assert [x["id"] for x in r.json()] == [resident["id"]]

    r = await client.get("/api/households/")
    (row,) = r.json()["households"]
    assert row["resident_count"] == 1
    assert row["residents"][0]["first_name"] == "Jose"

    r = await client.delete(f"/api/households/{household['id']}")
    assert r.status_code == 200

    r = await client.get(f"/api/residents/{resident['id']}")
    assert r.status_code == 200
    assert r.json()["household_id"] is None


async def test_household_coordinates_validated(client):
    r = await client.post("/api/households/", json={"head_name": "A", "address": "B", "latitude": 91})
    assert r.status_code == 422


async def test_official_attendance(client):
    r = await client.post(
        "/api/officials/",
        json={"first_name": "Andres", "last_name": "Bonifacio", "position": "Kagawad", "term_start": "2023-11-30"},
    )
    assert r.status_code == 201, r.text
    official = r.json()

    for day in ("2024-01-08", "2024-01-15", "2024-02-05"):
        r = await client.post(f"/api/officials/{official['id']}/attendance", json={"date": day, "remarks": "Session"})
        assert r.status_code == 201, r.text

    r = await client.get(
        f"/api/officials/{official['id']}/attendance",
        params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
    )
    assert [a["date"] for a in r.json()] == ["2024-01-15", "2024-01-08"]

    r = await client.get("/api/officials/", params={"search": "bonifacio"})
    assert r.json()["officials"][0]["attendance_count"] == 3

    r = await client.post(
        "/api/officials/",
        json={"first_name": "A", "last_name": "B", "position": "C", "term_start": "2024-01-01", "term_end": "2023-01-01"},
    )
    assert r.status_code == 422


async def test_official_with_releases_cannot_be_deleted(client, db):
    official = await make_official(db)
    other = await make_official(db, first_name="Emilio", last_name="Jacinto")

    r = await client.post("/api/inventory/", json={"item_name": "Tent", "category": "Equipment", "quantity": 3})
    item = r.json()
    r = await client.post(
        f"/api/inventory/{item['id']}/logs",
        json={"type": "RELEASE", "quantity": 1, "released_to": str(official.id)},
    )
    assert r.status_code == 201, r.text

    r = await client.delete(f"/api/officials/{official.id}")
    assert r.status_code == 409

    r = await client.put(f"/api/officials/{official.id}", json={"is_active": False})
    assert r.json()["is_active"] is False

    r = await client.delete(f"/api/officials/{other.id}")
    assert r.status_code == 200


async def test_financial_summary_and_export(client):
    records = [
        ("BUDGET", "Infrastructure", 100000, "2024-01-05"),
        ("EXPENSE", "Infrastructure", 25000.75, "2024-02-10"),
        ("INCOME", "Clearance fees", 1500, "2024-02-11"),
        ("EXPENSE", "Health", 4000, "2023-12-30"),
    ]
    for record_type, category, amount, day in records:
        r = await client.post(
            "/api/financial/",
            json={"type": record_type, "category": category, "description": f"{category} {day}", "amount": amount, "date": day},
        )
        assert r.status_code == 201, r.text
        assert r.json()["record_number"].startswith(record_type[:3])

    r = await client.get("/api/financial/summary", params={"year": 2024})
    summary = r.json()
    assert summary["total_budget"] == 100000.0
    assert summary["total_expenses"] == 25000.75
    assert summary["total_income"] == 1500.0
    assert summary["total_allocations"] == 0.0
    assert summary["by_category"] == {"Infrastructure": 125000.75, "Clearance fees": 1500.0}

    r = await client.get("/api/financial/summary", params={"month": "2024-02"})
    assert r.json()["total_budget"] == 0.0
    assert r.json()["total_expenses"] == 25000.75

    r = await client.get("/api/financial/summary", params={"month": "2024-13"})
    assert r.status_code == 400

    r = await client.get("/api/financial/export", params={"start_date": "2024-01-01"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/vnd.openxmlformats")
    ws = load_workbook(io.BytesIO(r.content))["Financial Records"]
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0][0] == "Record Number"
    assert len(rows) == 4
    assert rows[1][6] == "Ada Admin"

    r = await client.get("/api/financial/export", params={"format": "json"})
    assert len(r.json()) == 4

    r = await client.post(
        "/api/financial/",
        json={"type": "EXPENSE", "category": "X", "description": "Y", "amount": -1, "date": "2024-01-01"},
    )
    assert r.status_code == 422


async def test_incident_flow(client, db):
    complainant = await make_resident(db)
    respondent = await make_resident(db, first_name="Pedro", contact_no="09190000000")

    r = await client.post(
        "/api/incidents/",
        json={
            "complainant_id": str(complainant.id),
            "respondent_id": str(respondent.id),
            "narrative": "Boundary dispute over fence line",
            "incident_date": "2024-03-01T09:30:00Z",
            "attachments": ["/uploads/incidents/photo1.jpg"],
        },
    )
    assert r.status_code == 201, r.text
    incident = r.json()
    assert incident["incident_number"].startswith("INC-")
    assert incident["respondent"]["first_name"] == "Pedro"
    assert incident["creator"] == {"first_name": "Ada", "last_name": "Admin"}

    r = await client.put(
        f"/api/incidents/{incident['id']}",
        json={"actions_taken": "Mediation scheduled", "attachments": ["/uploads/incidents/photo2.jpg"]},
    )
    assert r.json()["attachments"] == ["/uploads/incidents/photo1.jpg", "/uploads/incidents/photo2.jpg"]

    r = await client.patch(f"/api/incidents/{incident['id']}/status", json={"status": "RESOLVED"})
    assert r.json()["status"] == "RESOLVED"

    r = await client.get("/api/incidents/", params={"status": "RESOLVED"})
    assert r.json()["pagination"]["total"] == 1

    r = await client.post(
        "/api/incidents/",
        json={"complainant_id": "00000000-0000-0000-0000-000000000000", "narrative": "x", "incident_date": "2024-03-01T09:30:00Z"},
    )
    assert r.status_code == 400


async def test_announcement_window(client, actor):
    for title, window in [
        ("Always", {}),
        ("Pinned", {"is_pinned": True}),
        ("Upcoming", {"start_date": "2999-01-01T00:00:00Z"}),
        ("Expired", {"end_date": "2000-01-01T00:00:00Z"}),
    ]:
        r = await client.post("/api/announcements/", json={"title": title, "content": "Details", **window})
        assert r.status_code == 201, r.text

    r = await client.post(
        "/api/announcements/",
        json={"title": "Bad", "content": "x", "start_date": "2024-02-01T00:00:00Z", "end_date": "2024-01-01T00:00:00Z"},
    )
    assert r.status_code == 422

    actor.act_as(None)
    r = await client.get("/api/announcements/active")
    assert r.status_code == 200
    assert [a["title"] for a in r.json()] == ["Pinned", "Always"]

    r = await client.get("/api/portal/announcements")
    assert r.json()["pagination"]["total"] == 2


async def test_health(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
