"""
Inventory stock ledger.

Every stock change goes through `apply_inventory_log`, which appends an
InventoryLog row and updates InventoryItem.quantity in the caller's
transaction. The caller commits (or rolls back) both together.
"""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InsufficientStockError, InvalidRecipientError, NotFoundError, ValidationError
from db.inventory.item import InventoryItem
from db.inventory.log import InventoryLog
from db.official import Official

logger = logging.getLogger(__name__)

LOG_TYPES = ("ADD", "REMOVE", "RELEASE", "RETURN", "ADJUSTMENT")
INCREASING_TYPES = ("ADD", "RETURN")
DECREASING_TYPES = ("REMOVE", "RELEASE")


def compute_new_quantity(current: int, log_type: str, amount: int) -> int:
    if log_type not in LOG_TYPES:
        raise ValidationError(f"Invalid log type: {log_type}")
    if amount < 0:
        raise ValidationError("quantity must not be negative")

    if log_type in INCREASING_TYPES:
        return current + amount
    if log_type in DECREASING_TYPES:
        new_quantity = current - amount
        if new_quantity < 0:
            raise InsufficientStockError(available=current, requested=amount)
        return new_quantity
    # ADJUSTMENT overrides the on-hand quantity
    return amount


async def _validate_recipient(db: AsyncSession, released_to: Optional[UUID]) -> Official:
    if not released_to:
        raise InvalidRecipientError("Released to (official ID) is required for releases")

    res = await db.execute(select(Official).where(Official.id == released_to))
    official = res.scalar_one_or_none()
    if not official:
        raise InvalidRecipientError("Invalid official ID. Items can only be released to barangay officials.")
    if not official.is_active:
        raise InvalidRecipientError("Cannot release item to inactive official")
    return official


async def apply_inventory_log(
    db: AsyncSession,
    *,
    item_id: UUID,
    log_type: str,
    quantity: int,
    created_by: Optional[UUID],
    notes: Optional[str] = None,
    released_to: Optional[UUID] = None,
) -> tuple[InventoryItem, InventoryLog]:
    # Row lock so concurrent writers on the same item serialize on the read of `quantity`.
    res = await db.execute(
        select(InventoryItem).where(InventoryItem.id == item_id).with_for_update()
    )
    item = res.scalar_one_or_none()
    if not item or not item.is_active:
        raise NotFoundError("Inventory item not found")

    if log_type == "RELEASE":
        await _validate_recipient(db, released_to)
    else:
        released_to = None

    before = int(item.quantity or 0)
    try:
        after = compute_new_quantity(before, log_type, int(quantity))
    except InsufficientStockError:
        logger.info(
            "Rejected %s of %s on item %s: only %s on hand",
            log_type, quantity, item_id, before,
        )
        raise

    log = InventoryLog(
        item_id=item.id,
        type=log_type,
        quantity=int(quantity),
        quantity_before=before,
        quantity_after=after,
        notes=notes,
        released_to=released_to,
        created_by=created_by,
    )
    db.add(log)
    item.quantity = after
    await db.flush()
    return item, log
