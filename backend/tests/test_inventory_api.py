import pytest

pytestmark = pytest.mark.anyio


async def _create_item(client, **overrides):
    payload = {"item_name": "Folding chair", "category": "Furniture", "quantity": 10, "min_stock": 5}
    payload.update(overrides)
    r = await client.post("/api/inventory/", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


async def test_create_item_records_opening_stock(client, uploads_dir):
    item = await _create_item(client)
    assert item["quantity"] == 10
    assert item["unit"] == "pcs"
    assert item["is_active"] is True
    assert item["qr_code"].startswith("INV-")
    assert (uploads_dir / "qrcodes" / f"{item['qr_code']}.png").exists()

    r = await client.get(f"/api/inventory/{item['id']}/logs")
    assert r.status_code == 200
    body = r.json()
    assert body["pagination"]["total"] == 1
    (log,) = body["logs"]
    assert log["type"] == "ADJUSTMENT"
    assert log["quantity_before"] == 0
    assert log["quantity_after"] == 10
    assert log["notes"] == "Initial stock"
    assert log["created_by_name"] == "Ada Admin"


async def test_create_item_without_stock_has_no_logs(client):
    item = await _create_item(client, quantity=0)
    r = await client.get(f"/api/inventory/{item['id']}")
    assert r.json()["logs"] == []


async def test_create_item_validation(client):
    r = await client.post("/api/inventory/", json={"item_name": "  ", "category": "Furniture"})
    assert r.status_code == 422
    r = await client.post("/api/inventory/", json={"item_name": "Chair", "category": "Furniture", "quantity": -1})
    assert r.status_code == 422


async def test_remove_and_overdraw_release(client, official):
    item = await _create_item(client)

    r = await client.post(f"/api/inventory/{item['id']}/logs", json={"type": "REMOVE", "quantity": 3})
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["item"]["quantity"] == 7
    assert body["log"]["quantity_before"] == 10
    assert body["log"]["quantity_after"] == 7

    r = await client.post(
        f"/api/inventory/{item['id']}/logs",
        json={"type": "RELEASE", "quantity": 10, "released_to": str(official.id)},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Insufficient quantity"

    r = await client.get(f"/api/inventory/{item['id']}")
    detail = r.json()
    assert detail["quantity"] == 7
    assert len(detail["logs"]) == 2


async def test_release_to_official_shows_recipient(client, official):
    item = await _create_item(client)
    r = await client.post(
        f"/api/inventory/{item['id']}/logs",
        json={"type": "RELEASE", "quantity": 4, "released_to": str(official.id), "notes": "Barangay assembly"},
    )
    assert r.status_code == 201, r.text
    log = r.json()["log"]
    assert log["released_to"] == str(official.id)
    assert log["released_to_name"] == "Maria Santos"
    assert r.json()["item"]["quantity"] == 6


async def test_release_without_official_is_rejected(client):
    item = await _create_item(client)
    r = await client.post(f"/api/inventory/{item['id']}/logs", json={"type": "RELEASE", "quantity": 1})
    assert r.status_code == 400
    assert "required" in r.json()["detail"]


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "ADD", "quantity": 0},
        {"type": "REMOVE", "quantity": -2},
        {"type": "ADJUSTMENT", "quantity": -1},
        {"type": "BORROW", "quantity": 1},
    ],
)
async def test_log_payload_validation(client, payload):
    item = await _create_item(client)
    r = await client.post(f"/api/inventory/{item['id']}/logs", json=payload)
    assert r.status_code == 422


async def test_adjustment_to_zero_is_allowed(client):
    item = await _create_item(client)
    r = await client.post(f"/api/inventory/{item['id']}/logs", json={"type": "ADJUSTMENT", "quantity": 0})
    assert r.status_code == 201, r.text
    assert r.json()["item"]["quantity"] == 0
    assert r.json()["item"]["is_low_stock"] is True


async def test_update_does_not_touch_quantity(client):
    item = await _create_item(client)
    r = await client.put(
        f"/api/inventory/{item['id']}",
        json={"location": "Hall storage", "min_stock": 2, "quantity": 99},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["location"] == "Hall storage"
    assert body["min_stock"] == 2
    assert body["quantity"] == 10


async def test_list_filters_and_soft_delete(client):
    chair = await _create_item(client, item_name="Folding chair", quantity=3, min_stock=5)
    await _create_item(client, item_name="Megaphone", category="Equipment", quantity=8, min_stock=1)

    r = await client.get("/api/inventory/", params={"low_stock": True})
    names = [i["item_name"] for i in r.json()["items"]]
    assert names == ["Folding chair"]
    assert r.json()["items"][0]["log_count"] == 1

    r = await client.get("/api/inventory/", params={"search": "mega"})
    assert [i["item_name"] for i in r.json()["items"]] == ["Megaphone"]

    r = await client.delete(f"/api/inventory/{chair['id']}")
    assert r.status_code == 200
    assert r.json()["message"] == "Inventory item deleted successfully"

    r = await client.get("/api/inventory/")
    assert [i["item_name"] for i in r.json()["items"]] == ["Megaphone"]
    r = await client.get("/api/inventory/", params={"include_inactive": True})
    assert r.json()["pagination"]["total"] == 2

    r = await client.post(f"/api/inventory/{chair['id']}/logs", json={"type": "ADD", "quantity": 1})
    assert r.status_code == 404


async def test_qrcode_endpoint(client):
    item = await _create_item(client)
    r = await client.get(f"/api/inventory/{item['id']}/qrcode")
    assert r.status_code == 200
    body = r.json()
    assert body["item_name"] == "Folding chair"
    assert body["qr_code"].startswith("data:image/png;base64,")


async def test_inventory_requires_login(client, actor):
    actor.act_as(None)
    r = await client.get("/api/inventory/")
    assert r.status_code == 401


async def test_audit_trail_for_inventory(client):
    item = await _create_item(client)
    await client.post(f"/api/inventory/{item['id']}/logs", json={"type": "ADD", "quantity": 2})

    r = await client.get(f"/api/audit/entity/INVENTORY/{item['id']}")
    assert r.status_code == 200
    assert [log["action"] for log in r.json()] == ["CREATE"]

    r = await client.get("/api/audit/", params={"entity_type": "INVENTORY_LOG"})
    assert r.json()["pagination"]["total"] == 1
    assert r.json()["logs"][0]["user"]["email"] == "admin@barangay.gov.ph"


async def test_update_with_null_min_stock_keeps_threshold(client):
    item = await _create_item(client, min_stock=4)
    r = await client.put(f"/api/inventory/{item['id']}", json={"min_stock": None, "notes": "Recounted"})
    assert r.status_code == 200, r.text
    assert r.json()["min_stock"] == 4
    assert r.json()["notes"] == "Recounted"


async def test_failed_create_leaves_no_qr_image(client, uploads_dir, monkeypatch):
    import routers.inventory

    async def _broken(*args, **kwargs):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(routers.inventory, "apply_inventory_log", _broken)
    r = await client.post("/api/inventory/", json={"item_name": "Generator", "category": "Equipment", "quantity": 2})
    assert r.status_code == 500

    qr_dir = uploads_dir / "qrcodes"
    assert not qr_dir.exists() or list(qr_dir.iterdir()) == []

    r = await client.get("/api/inventory/", params={"include_inactive": True})
    assert r.json()["items"] == []
