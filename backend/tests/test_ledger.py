import uuid

import pytest
from sqlalchemy import func, select

from conftest import make_official
from core.exceptions import InsufficientStockError, InvalidRecipientError, NotFoundError, ValidationError
from core.ledger import apply_inventory_log, compute_new_quantity
from db.inventory.item import InventoryItem
from db.inventory.log import InventoryLog


@pytest.mark.parametrize(
    "log_type,current,amount,expected",
    [
        ("ADD", 10, 5, 15),
        ("RETURN", 0, 3, 3),
        ("REMOVE", 10, 3, 7),
        ("RELEASE", 7, 7, 0),
        ("ADJUSTMENT", 7, 0, 0),
        ("ADJUSTMENT", 2, 40, 40),
    ],
)
def test_compute_new_quantity(log_type, current, amount, expected):
    assert compute_new_quantity(current, log_type, amount) == expected


def test_compute_new_quantity_rejects_overdraw():
    with pytest.raises(InsufficientStockError) as exc:
        compute_new_quantity(7, "RELEASE", 10)
    assert exc.value.available == 7
    assert exc.value.requested == 10
    assert exc.value.message == "Insufficient quantity"


def test_compute_new_quantity_rejects_unknown_type_and_negative_amount():
    with pytest.raises(ValidationError):
        compute_new_quantity(5, "TRANSFER", 1)
    with pytest.raises(ValidationError):
        compute_new_quantity(5, "ADD", -1)


async def _item(db, quantity=10, min_stock=5, **kwargs):
    item = InventoryItem(
        item_name=kwargs.pop("item_name", "Folding chair"),
        category=kwargs.pop("category", "Furniture"),
        quantity=quantity,
        min_stock=min_stock,
        **kwargs,
    )
    db.add(item)
    await db.commit()
    return item


async def _log_count(db, item_id):
    return (
        await db.execute(select(func.count()).select_from(InventoryLog).where(InventoryLog.item_id == item_id))
    ).scalar_one()


@pytest.mark.anyio
async def test_remove_then_overdraw_keeps_quantity(db, admin, official):
    item = await _item(db, quantity=10, min_stock=5)
    # the rollback below expires every loaded object
    item_id, admin_id, official_id = item.id, admin.id, official.id

    item, log = await apply_inventory_log(
        db, item_id=item_id, log_type="REMOVE", quantity=3, created_by=admin_id, notes="Damaged"
    )
    await db.commit()
    assert item.quantity == 7
    assert (log.quantity_before, log.quantity_after) == (10, 7)
    assert log.released_to is None

    with pytest.raises(InsufficientStockError):
        await apply_inventory_log(
            db, item_id=item_id, log_type="RELEASE", quantity=10, created_by=admin_id, released_to=official_id
        )
    await db.rollback()

    quantity = (await db.execute(select(InventoryItem.quantity).where(InventoryItem.id == item_id))).scalar_one()
    assert quantity == 7
    assert await _log_count(db, item_id) == 1


@pytest.mark.anyio
async def test_adjustment_sets_absolute_quantity(db, admin):
    item = await _item(db, quantity=12)
    item, log = await apply_inventory_log(
        db, item_id=item.id, log_type="ADJUSTMENT", quantity=0, created_by=admin.id, notes="Stock count"
    )
    await db.commit()
    assert item.quantity == 0
    assert log.quantity == 0
    assert (log.quantity_before, log.quantity_after) == (12, 0)
    assert item.is_low_stock


@pytest.mark.anyio
async def test_add_and_return_accumulate(db, admin):
    item = await _item(db, quantity=1)
    await apply_inventory_log(db, item_id=item.id, log_type="ADD", quantity=4, created_by=admin.id)
    item, _ = await apply_inventory_log(db, item_id=item.id, log_type="RETURN", quantity=2, created_by=admin.id)
    await db.commit()
    assert item.quantity == 7
    assert await _log_count(db, item.id) == 2


@pytest.mark.anyio
async def test_release_requires_an_official(db, admin):
    item = await _item(db)
    with pytest.raises(InvalidRecipientError, match="required"):
        await apply_inventory_log(db, item_id=item.id, log_type="RELEASE", quantity=1, created_by=admin.id)


@pytest.mark.anyio
async def test_release_to_unknown_official(db, admin):
    item = await _item(db)
    with pytest.raises(InvalidRecipientError, match="barangay officials"):
        await apply_inventory_log(
            db, item_id=item.id, log_type="RELEASE", quantity=1, created_by=admin.id, released_to=uuid.uuid4()
        )


@pytest.mark.anyio
async def test_release_to_inactive_official(db, admin):
    inactive = await make_official(db, first_name="Pedro", is_active=False)
    item = await _item(db)
    with pytest.raises(InvalidRecipientError, match="inactive"):
        await apply_inventory_log(
            db, item_id=item.id, log_type="RELEASE", quantity=1, created_by=admin.id, released_to=inactive.id
        )


@pytest.mark.anyio
async def test_release_records_recipient(db, admin, official):
    item = await _item(db, quantity=5)
    item, log = await apply_inventory_log(
        db, item_id=item.id, log_type="RELEASE", quantity=2, created_by=admin.id, released_to=official.id
    )
    await db.commit()
    assert item.quantity == 3
    assert log.released_to == official.id


@pytest.mark.anyio
async def test_recipient_is_dropped_for_non_release(db, admin, official):
    item = await _item(db, quantity=5)
    _, log = await apply_inventory_log(
        db, item_id=item.id, log_type="ADD", quantity=2, created_by=admin.id, released_to=official.id
    )
    assert log.released_to is None


@pytest.mark.anyio
async def test_inactive_item_is_not_found(db, admin):
    item = await _item(db, is_active=False)
    with pytest.raises(NotFoundError):
        await apply_inventory_log(db, item_id=item.id, log_type="ADD", quantity=1, created_by=admin.id)


@pytest.mark.anyio
async def test_log_creator_joins_staff_user(db, admin):
    from sqlalchemy.orm import selectinload

    item = await _item(db, quantity=2)
    _, log = await apply_inventory_log(db, item_id=item.id, log_type="ADD", quantity=1, created_by=admin.id)
    await db.commit()

    loaded = (
        await db.execute(
            select(InventoryLog)
            .options(selectinload(InventoryLog.creator))
            .where(InventoryLog.id == log.id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert loaded.creator is not None
    assert loaded.creator.full_name == "Ada Admin"


@pytest.mark.anyio
async def test_item_and_resident_read_schemas_accept_orm_rows(db):
    from conftest import make_resident
    from db.resident import Resident
    from schemas.inventory import InventoryItemOut
    from schemas.residents import ResidentRead

    item = await _item(db, quantity=3, min_stock=5)
    resident = await make_resident(db)

    loaded_item = (
        await db.execute(
            select(InventoryItem).where(InventoryItem.id == item.id).execution_options(populate_existing=True)
        )
    ).scalar_one()
    loaded_resident = (
        await db.execute(
            select(Resident).where(Resident.id == resident.id).execution_options(populate_existing=True)
        )
    ).scalar_one()

    out = InventoryItemOut.model_validate(loaded_item)
    assert out.id == item.id
    assert out.is_low_stock is True
    read = ResidentRead.model_validate(loaded_resident)
    assert read.last_name == "Dela Cruz"
    assert read.is_archived is False
