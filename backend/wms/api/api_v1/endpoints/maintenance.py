"""Maintenance request API"""

from typing import Any, Optional
from datetime import datetime
from decimal import Decimal
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wms.core.auth.deps import Principal, get_current_principal, require_permission
from wms.core.deps import get_db
from wms.core.exceptions import NotFoundError
from wms.core.permissions import MANAGE_WAREHOUSES
from wms.models.maintenance import MaintenanceRequest
from wms.models.user import User
from wms.models.warehouse import Warehouse
from wms.schemas.maintenance import (
    MaintenanceAssign, MaintenanceCreate, MaintenanceListResponse, MaintenanceResponse,
    MaintenanceStatus, MaintenanceStatusUpdate, Priority,
)
from wms.services import notifications

router = APIRouter()


def build_maintenance_response(request: MaintenanceRequest) -> MaintenanceResponse:
    return MaintenanceResponse(
        id=request.id,
        warehouse_id=request.warehouse_id,
        warehouse_name=request.warehouse.name if request.warehouse else "",
        title=request.title,
        description=request.description,
        priority=request.priority,
        status=request.status,
        requested_by=request.requested_by,
        assigned_to=request.assigned_to,
        scheduled_date=request.scheduled_date,
        completed_date=request.completed_date,
        estimated_cost=float(request.estimated_cost) if request.estimated_cost is not None else None,
        actual_cost=float(request.actual_cost) if request.actual_cost is not None else None,
        notes=request.notes,
        created_at=request.created_at)


async def load_request(db: AsyncSession, request_id: int) -> MaintenanceRequest:
    result = await db.execute(
        select(MaintenanceRequest)
        .options(selectinload(MaintenanceRequest.warehouse))
        .where(MaintenanceRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one_or_none()
    if not request:
        raise NotFoundError("Maintenance request", request_id)
    return request


@router.get("/", response_model=MaintenanceListResponse)
async def list_requests(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_WAREHOUSES)),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    warehouse_id: Optional[int] = Query(None),
    status: Optional[MaintenanceStatus] = Query(None),
    priority: Optional[Priority] = Query(None)) -> Any:
    """List maintenance requests"""
    query = select(MaintenanceRequest).options(selectinload(MaintenanceRequest.warehouse))
    conditions = []
    if warehouse_id:
        conditions.append(MaintenanceRequest.warehouse_id == warehouse_id)
    if status:
        conditions.append(MaintenanceRequest.status == status)
    if priority:
        conditions.append(MaintenanceRequest.priority == priority)
    if conditions:
        query = query.where(and_(*conditions))

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    query = query.order_by(MaintenanceRequest.created_at.desc(), MaintenanceRequest.id.desc())
    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    return MaintenanceListResponse(
        data=[build_maintenance_response(r) for r in result.scalars().all()],
        total=total,
        page=page,
        limit=limit
    )


@router.post("/", response_model=MaintenanceResponse, status_code=201)
async def create_request(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    request_in: MaintenanceCreate) -> Any:
    """Report a maintenance need"""
    if not await db.get(Warehouse, request_in.warehouse_id):
        raise NotFoundError("Warehouse", request_in.warehouse_id)

    request = MaintenanceRequest(
        warehouse_id=request_in.warehouse_id,
        title=request_in.title,
        description=request_in.description,
        priority=request_in.priority,
        status="pending",
        requested_by=principal.user_id,
        scheduled_date=request_in.scheduled_date,
        estimated_cost=Decimal(str(request_in.estimated_cost)) if request_in.estimated_cost is not None else None,
        notes=request_in.notes,
    )
    db.add(request)
    await db.commit()

    await notifications.notify_maintenance(db, request, principal.user_id)
    return build_maintenance_response(await load_request(db, request.id))


@router.put("/{request_id}/status", response_model=MaintenanceResponse)
async def update_request_status(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_WAREHOUSES)),
    request_id: int,
    status_in: MaintenanceStatusUpdate) -> Any:
    """Update request status"""
    request = await load_request(db, request_id)
    request.status = status_in.status
    if status_in.status == "completed":
        request.completed_date = datetime.utcnow()
    if status_in.actual_cost is not None:
        request.actual_cost = Decimal(str(status_in.actual_cost))
    if status_in.notes is not None:
        request.notes = status_in.notes
    await db.commit()
    return build_maintenance_response(await load_request(db, request_id))


@router.put("/{request_id}/assign", response_model=MaintenanceResponse)
async def assign_request(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_WAREHOUSES)),
    request_id: int,
    assign_in: MaintenanceAssign) -> Any:
    """Assign a request to a user"""
    request = await load_request(db, request_id)
    if not await db.get(User, assign_in.assigned_to):
        raise NotFoundError("User", assign_in.assigned_to)
    request.assigned_to = assign_in.assigned_to
    if request.status == "pending":
        request.status = "in_progress"
    await db.commit()
    return build_maintenance_response(await load_request(db, request_id))
