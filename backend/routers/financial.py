import calendar
import io
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.audit import create_audit_log
from core.auth import current_active_user
from core.numbers import generate_record_number
from db.database import get_async_session
from db.financial import FinancialRecord as FinancialRecordModel
from db.users import User
from schemas.common import pagination_meta
from schemas.financial import FinancialRecordCreate, FinancialRecordUpdate

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_HEADERS = ["Record Number", "Date", "Type", "Category", "Description", "Amount", "Created By"]
_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


def _serialize_record(r: FinancialRecordModel) -> dict:
    return {
        "id": r.id,
        "record_number": r.record_number,
        "type": r.type,
        "category": r.category,
        "description": r.description,
        "amount": float(r.amount),
        "date": r.date,
        "receipt_path": r.receipt_path,
        "created_by": r.created_by,
        "created_at": r.created_at,
        "updated_at": r.updated_at,
        "creator": {"first_name": r.creator.first_name, "last_name": r.creator.last_name} if r.creator else None,
    }


def _date_range(start_date: Optional[date], end_date: Optional[date]) -> list:
    conditions = []
    if start_date:
        conditions.append(FinancialRecordModel.date >= start_date)
    if end_date:
        conditions.append(FinancialRecordModel.date <= end_date)
    return conditions


def _period_bounds(year: Optional[int], month: Optional[str]) -> tuple[Optional[date], Optional[date]]:
    """`month` (YYYY-MM) wins over `year` when both are given."""
    if month:
        m = _MONTH_RE.match(month.strip())
        if not m or not 1 <= int(m.group(2)) <= 12:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="month must be YYYY-MM")
        y, mo = int(m.group(1)), int(m.group(2))
        return date(y, mo, 1), date(y, mo, calendar.monthrange(y, mo)[1])
    if year:
        return date(year, 1, 1), date(year, 12, 31)
    return None, None


def build_financial_workbook(records) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Financial Records"
    ws.append(EXPORT_HEADERS)
    for r in records:
        ws.append([
            r.record_number,
            r.date.isoformat(),
            r.type,
            r.category,
            r.description,
            float(r.amount),
            r.creator.full_name if r.creator else "",
        ])
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


async def _get_record_or_404(db: AsyncSession, record_id: UUID) -> FinancialRecordModel:
    res = await db.execute(
        select(FinancialRecordModel)
        .options(selectinload(FinancialRecordModel.creator))
        .where(FinancialRecordModel.id == record_id)
        .execution_options(populate_existing=True)
    )
    r = res.scalar_one_or_none()
    if not r:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Financial record not found")
    return r


@router.get("/", response_model=Dict)
async def list_financial_records(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    type: Optional[str] = None,
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    conditions = _date_range(start_date, end_date)
    if type:
        conditions.append(FinancialRecordModel.type == type)
    if category:
        conditions.append(func.lower(FinancialRecordModel.category).like(f"%{category.strip().lower()}%"))
    if search:
        qq = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(FinancialRecordModel.record_number).like(qq),
                func.lower(FinancialRecordModel.description).like(qq),
                func.lower(FinancialRecordModel.category).like(qq),
            )
        )

    total = (
        await db.execute(select(func.count()).select_from(FinancialRecordModel).where(*conditions))
    ).scalar_one()
    res = await db.execute(
        select(FinancialRecordModel)
        .options(selectinload(FinancialRecordModel.creator))
        .where(*conditions)
        .order_by(FinancialRecordModel.date.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    records = [_serialize_record(r) for r in res.scalars().all()]
    return {"records": records, "pagination": pagination_meta(page, limit, total)}


@router.get("/summary", response_model=Dict)
async def get_financial_summary(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[str] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    start, end = _period_bounds(year, month)
    res = await db.execute(
        select(FinancialRecordModel.type, FinancialRecordModel.category, FinancialRecordModel.amount)
        .where(*_date_range(start, end))
    )

    totals = {"BUDGET": Decimal("0"), "EXPENSE": Decimal("0"), "INCOME": Decimal("0"), "ALLOCATION": Decimal("0")}
    by_category: dict[str, Decimal] = {}
    for record_type, category, amount in res.all():
        amount = Decimal(str(amount))
        if record_type in totals:
            totals[record_type] += amount
        by_category[category] = by_category.get(category, Decimal("0")) + amount

    return {
        "total_budget": float(totals["BUDGET"]),
        "total_expenses": float(totals["EXPENSE"]),
        "total_income": float(totals["INCOME"]),
        "total_allocations": float(totals["ALLOCATION"]),
        "by_category": {k: float(v) for k, v in by_category.items()},
    }


@router.get("/export")
async def export_financial_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    format: str = Query("xlsx", pattern="^(xlsx|json)$"),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        select(FinancialRecordModel)
        .options(selectinload(FinancialRecordModel.creator))
        .where(*_date_range(start_date, end_date))
        .order_by(FinancialRecordModel.date.desc())
    )
    records = res.scalars().all()

    if format == "json":
        return [_serialize_record(r) for r in records]

    filename = f"financial-report-{int(datetime.now().timestamp() * 1000)}.xlsx"
    return StreamingResponse(
        io.BytesIO(build_financial_workbook(records)),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/{record_id}", response_model=Dict)
async def get_financial_record(
    record_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return _serialize_record(await _get_record_or_404(db, record_id))


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_financial_record(
    payload: FinancialRecordCreate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    r = FinancialRecordModel(
        record_number=generate_record_number(payload.type),
        type=payload.type,
        category=payload.category,
        description=payload.description,
        amount=Decimal(str(payload.amount)),
        date=payload.date,
        created_by=user.id,
    )
    db.add(r)
    await db.flush()
    create_audit_log(
        db, user.id, "CREATE", "FINANCIAL", r.id,
        {"action": "Created financial record", "record_number": r.record_number, "amount": payload.amount},
        request,
    )
    await db.commit()
    return _serialize_record(await _get_record_or_404(db, r.id))


@router.put("/{record_id}", response_model=Dict)
async def update_financial_record(
    record_id: UUID,
    payload: FinancialRecordUpdate,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    r = await _get_record_or_404(db, record_id)
    old = _serialize_record(r)

    data = payload.model_dump(exclude_unset=True)
    for key, value in data.items():
        if value is None:
            continue
        setattr(r, key, Decimal(str(value)) if key == "amount" else value)

    create_audit_log(
        db, user.id, "UPDATE", "FINANCIAL", r.id,
        {"action": "Updated financial record", "changes": {"old": old, "new": data}},
        request,
    )
    await db.commit()
    return _serialize_record(await _get_record_or_404(db, record_id))


@router.delete("/{record_id}", response_model=Dict)
async def delete_financial_record(
    record_id: UUID,
    request: Request,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    r = await _get_record_or_404(db, record_id)
    await db.delete(r)
    create_audit_log(db, user.id, "DELETE", "FINANCIAL", record_id, {"action": "Deleted financial record"}, request)
    await db.commit()
    return {"message": "Financial record deleted successfully"}
