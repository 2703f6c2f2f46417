"""Inventory count API"""

from typing import Any, List, Literal, Optional
from datetime import date, datetime, time, timedelta
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wms.core.auth.deps import Principal, require_permission
from wms.core.deps import get_db
from wms.core.permissions import MANAGE_MATERIALS
from wms.models.inventory_count import InventoryCount
from wms.schemas.inventory import (
    CountApproval, CountSessionCreate, InventoryCountCreate, InventoryCountListResponse,
    InventoryCountResponse,
)
from wms.services import inventory

router = APIRouter()


def build_count_response(count: InventoryCount) -> InventoryCountResponse:
    return InventoryCountResponse(
        id=count.id,
        warehouse_id=count.warehouse_id,
        material_id=count.material_id,
        material_name=count.material.name if count.material else "",
        counted_quantity=count.counted_quantity,
        system_quantity=count.system_quantity,
        variance=count.variance,
        status=count.status,
        notes=count.notes,
        counted_by=count.counted_by,
        approved_by=count.approved_by,
        approved_at=count.approved_at,
        count_date=count.count_date)


@router.post("/count", response_model=InventoryCountResponse, status_code=201)
async def record_count(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_MATERIALS)),
    count_in: InventoryCountCreate) -> Any:
    """Record a physical count"""
    count = await inventory.record_count(
        db, count_in.warehouse_id, count_in.material_id, count_in.counted_quantity,
        notes=count_in.notes, counted_by=principal.user_id,
    )
    return build_count_response(count)


@router.post("/count-session", response_model=List[InventoryCountResponse], status_code=201)
async def start_count_session(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_MATERIALS)),
    session_in: CountSessionCreate) -> Any:
    """Open pending counts for a set of materials"""
    counts = await inventory.start_count_session(
        db, session_in.warehouse_id, session_in.material_ids,
        notes=session_in.notes, counted_by=principal.user_id,
    )
    return [build_count_response(c) for c in counts]


@router.get("/counts", response_model=InventoryCountListResponse)
async def list_counts(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_MATERIALS)),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    warehouse_id: Optional[int] = Query(None),
    status: Optional[Literal["pending", "approved"]] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None)) -> Any:
    """List inventory counts"""
    query = select(InventoryCount).options(selectinload(InventoryCount.material))
    conditions = []
    if warehouse_id:
        conditions.append(InventoryCount.warehouse_id == warehouse_id)
    if status:
        conditions.append(InventoryCount.status == status)
    if date_from:
        conditions.append(InventoryCount.count_date >= datetime.combine(date_from, time.min))
    if date_to:
        conditions.append(InventoryCount.count_date < datetime.combine(date_to + timedelta(days=1), time.min))
    if conditions:
        query = query.where(and_(*conditions))

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    query = query.order_by(InventoryCount.count_date.desc(), InventoryCount.id.desc())
    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    return InventoryCountListResponse(
        data=[build_count_response(c) for c in result.scalars().all()],
        total=total,
        page=page,
        limit=limit
    )


@router.put("/counts/{count_id}/approve", response_model=InventoryCountResponse)
async def approve_count(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_MATERIALS)),
    count_id: int,
    approval_in: Optional[CountApproval] = None) -> Any:
    """Approve a count and book its variance"""
    approval_in = approval_in or CountApproval()
    count = await inventory.approve_count(
        db, count_id,
        approved_by=principal.user_id,
        counted_quantity=approval_in.counted_quantity,
        notes=approval_in.notes,
    )
    return build_count_response(count)
