import logging
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.audit import create_audit_log
from core.auth import current_active_user
from core.exceptions import BarangayError
from core.ledger import apply_inventory_log
from core.qr import generate_qr_code_data_url, generate_qr_code_file, new_inventory_qr_data
from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from db.inventory.log import InventoryLog as InventoryLogModel
from db.users import User
from schemas.common import pagination_meta
from schemas.inventory import (
    InventoryItemCreate,
    InventoryItemDetailOut,
    InventoryItemOut,
    InventoryItemUpdate,
    InventoryListOut,
    InventoryLogCreate,
    InventoryLogListOut,
    InventoryLogResult,
    InventoryQrCodeOut,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _serialize_log(log: InventoryLogModel) -> dict:
    # creator/recipient must be eager-loaded by the caller
    out = log.to_schema
    out["created_by_name"] = log.creator.full_name if log.creator else None
    out["released_to_name"] = log.recipient.full_name if log.recipient else None
    return out


def _logs_query():
    return select(InventoryLogModel).options(
        selectinload(InventoryLogModel.creator),
        selectinload(InventoryLogModel.recipient),
    )


async def _get_item_or_404(db: AsyncSession, item_id: UUID) -> InventoryItemModel:
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id == item_id))
    item = res.scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found")
    return item


@router.get("/", response_model=InventoryListOut)
async def list_inventory_items(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    category: Optional[str] = None,
    search: Optional[str] = None,
    low_stock: bool = False,
    include_inactive: bool = False,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    List inventory items.

    - `search` matches name, category, location or QR identifier.
    - `low_stock` keeps items at or below their minimum stock.
    """
    conditions = []
    if not include_inactive:
        conditions.append(InventoryItemModel.is_active == True)  # noqa: E712
    if category:
        conditions.append(func.lower(InventoryItemModel.category).like(f"%{category.strip().lower()}%"))
    if search:
        qq = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(InventoryItemModel.item_name).like(qq),
                func.lower(InventoryItemModel.category).like(qq),
                func.lower(InventoryItemModel.location).like(qq),
                func.lower(InventoryItemModel.qr_code).like(qq),
            )
        )
    if low_stock:
        conditions.append(InventoryItemModel.quantity <= InventoryItemModel.min_stock)

    total = (
        await db.execute(select(func.count()).select_from(InventoryItemModel).where(*conditions))
    ).scalar_one()
    res = await db.execute(
        select(InventoryItemModel)
        .where(*conditions)
        .order_by(InventoryItemModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = res.scalars().all()

    counts: dict[UUID, int] = {}
    if items:
        cres = await db.execute(
            select(InventoryLogModel.item_id, func.count(InventoryLogModel.id))
            .where(InventoryLogModel.item_id.in_([it.id for it in items]))
            .group_by(InventoryLogModel.item_id)
        )
        counts = {item_id: int(n) for item_id, n in cres.all()}

    out = []
    for it in items:
        row = it.to_schema
        row["log_count"] = counts.get(it.id, 0)
        out.append(row)
    return {"items": out, "pagination": pagination_meta(page, limit, total)}


@router.get("/{item_id}", response_model=InventoryItemDetailOut)
async def get_inventory_item(
    item_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    item = await _get_item_or_404(db, item_id)
    res = await db.execute(
        _logs_query()
        .where(InventoryLogModel.item_id == item_id)
        .order_by(InventoryLogModel.created_at.desc())
        .limit(20)
    )
    out = item.to_schema
    out["logs"] = [_serialize_log(log) for log in res.scalars().all()]
    return out


@router.post("/", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryItemCreate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    qr_data = new_inventory_qr_data()
    try:
        item = InventoryItemModel(
            item_name=payload.item_name,
            category=payload.category,
            quantity=0,
            unit=payload.unit,
            min_stock=payload.min_stock,
            location=payload.location,
            notes=payload.notes,
            qr_code=qr_data,
            is_active=True,
        )
        db.add(item)
        await db.flush()

        # Opening stock goes through the ledger so the item starts with a matching log.
        if payload.quantity:
            await apply_inventory_log(
                db,
                item_id=item.id,
                log_type="ADJUSTMENT",
                quantity=payload.quantity,
                created_by=user.id,
                notes="Initial stock",
            )

        create_audit_log(
            db, user.id, "CREATE", "INVENTORY", item.id,
            {"action": "Created inventory item", "item_name": item.item_name},
            request,
        )
        await db.commit()
        await db.refresh(item)
    except BarangayError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.exception("create_inventory_item failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to create inventory item: {e}")

    # QR image only for committed items
    try:
        qr_path = await run_in_threadpool(generate_qr_code_file, qr_data)
        logger.info("QR code written to %s", qr_path)
    except OSError:
        logger.exception("Could not write QR image for item %s", item.id)
    return item.to_schema


@router.put("/{item_id}", response_model=InventoryItemOut)
async def update_inventory_item(
    item_id: UUID,
    payload: InventoryItemUpdate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    item = await _get_item_or_404(db, item_id)
    old = item.to_schema

    data = payload.model_dump(exclude_unset=True)
    for key, value in data.items():
        if key in ("item_name", "category", "unit", "min_stock") and value is None:
            continue
        setattr(item, key, value)

    create_audit_log(
        db, user.id, "UPDATE", "INVENTORY", item.id,
        {"action": "Updated inventory item", "changes": {"old": old, "new": data}},
        request,
    )
    await db.commit()
    await db.refresh(item)
    return item.to_schema


@router.delete("/{item_id}", response_model=Dict)
async def delete_inventory_item(
    item_id: UUID,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    item = await _get_item_or_404(db, item_id)
    item.is_active = False
    create_audit_log(
        db, user.id, "DELETE", "INVENTORY", item.id,
        {"action": "Deleted inventory item", "item_name": item.item_name},
        request,
    )
    await db.commit()
    return {"message": "Inventory item deleted successfully"}


@router.post("/{item_id}/logs", response_model=InventoryLogResult, status_code=status.HTTP_201_CREATED)
async def add_inventory_log(
    item_id: UUID,
    payload: InventoryLogCreate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        item, log = await apply_inventory_log(
            db,
            item_id=item_id,
            log_type=payload.type,
            quantity=payload.quantity,
            created_by=user.id,
            notes=payload.notes,
            released_to=payload.released_to,
        )
        create_audit_log(
            db, user.id, "CREATE", "INVENTORY_LOG", log.id,
            {"action": "Added inventory log", "type": payload.type, "quantity": payload.quantity},
            request,
        )
        await db.commit()
    except BarangayError as e:
        await db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.exception("add_inventory_log failed for item %s", item_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to add inventory log: {e}")

    res = await db.execute(
        _logs_query().where(InventoryLogModel.id == log.id).execution_options(populate_existing=True)
    )
    log = res.scalar_one()
    return {"log": _serialize_log(log), "item": item.to_schema}


@router.get("/{item_id}/logs", response_model=InventoryLogListOut)
async def list_inventory_logs(
    item_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    await _get_item_or_404(db, item_id)
    total = (
        await db.execute(
            select(func.count()).select_from(InventoryLogModel).where(InventoryLogModel.item_id == item_id)
        )
    ).scalar_one()
    res = await db.execute(
        _logs_query()
        .where(InventoryLogModel.item_id == item_id)
        .order_by(InventoryLogModel.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    logs: List[dict] = [_serialize_log(log) for log in res.scalars().all()]
    return {"logs": logs, "pagination": pagination_meta(page, limit, total)}


@router.get("/{item_id}/qrcode", response_model=InventoryQrCodeOut)
async def get_inventory_qrcode(
    item_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    item = await _get_item_or_404(db, item_id)
    if not item.qr_code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Item does not have a QR code")
    data_url = await run_in_threadpool(generate_qr_code_data_url, item.qr_code)
    return {"qr_code": data_url, "item_name": item.item_name}
