"""Warehouse API"""

from typing import Any, Dict, Optional
from decimal import Decimal
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wms.core.auth.deps import Principal, get_current_principal, require_permission
from wms.core.deps import get_db
from wms.core.exceptions import ConflictError, NotFoundError
from wms.core.permissions import MANAGE_WAREHOUSES, TRANSFER_MATERIALS
from wms.models.material import Material
from wms.models.warehouse import Warehouse
from wms.schemas.common import Message
from wms.schemas.warehouse import (
    TransferRequest, TransferResponse, WarehouseCreate, WarehouseListResponse,
    WarehouseResponse, WarehouseUpdate, WarehouseUtilization,
)
from wms.services import ledger

router = APIRouter()

EMPTY_STATS = {"material_count": 0, "total_quantity": 0, "total_weight": 0.0, "total_value": 0.0}


async def warehouse_stats(db: AsyncSession, warehouse_id: Optional[int] = None) -> Dict[int, dict]:
    """Material count, units, weight and value per warehouse"""
    query = select(
        Material.warehouse_id,
        func.count(Material.id),
        func.coalesce(func.sum(Material.quantity), 0),
        func.coalesce(func.sum(Material.weight * Material.quantity), 0),
        func.coalesce(func.sum(Material.cost), 0),
    ).group_by(Material.warehouse_id)
    if warehouse_id is not None:
        query = query.where(Material.warehouse_id == warehouse_id)

    result = await db.execute(query)
    return {
        row[0]: {
            "material_count": row[1],
            "total_quantity": int(row[2] or 0),
            "total_weight": round(float(row[3] or 0), 3),
            "total_value": round(float(row[4] or 0), 2),
        }
        for row in result
    }


def build_warehouse_response(warehouse: Warehouse, stats: Optional[dict] = None) -> WarehouseResponse:
    stats = stats or EMPTY_STATS
    return WarehouseResponse(
        id=warehouse.id,
        name=warehouse.name,
        type=warehouse.type,
        type_display=warehouse.type_display,
        capacity=float(warehouse.capacity) if warehouse.capacity is not None else None,
        location=warehouse.location,
        manager_id=warehouse.manager_id,
        manager_name=warehouse.manager.name if warehouse.manager else None,
        is_active=warehouse.is_active,
        created_at=warehouse.created_at,
        **stats)


async def load_warehouse(db: AsyncSession, warehouse_id: int) -> Warehouse:
    result = await db.execute(
        select(Warehouse)
        .options(selectinload(Warehouse.manager))
        .where(Warehouse.id == warehouse_id)
        .execution_options(populate_existing=True)
    )
    warehouse = result.scalar_one_or_none()
    if not warehouse:
        raise NotFoundError("Warehouse", warehouse_id)
    return warehouse


@router.get("/", response_model=WarehouseListResponse)
async def list_warehouses(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    type: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None)) -> Any:
    """List warehouses with stock statistics"""
    query = select(Warehouse).options(selectinload(Warehouse.manager))
    conditions = []
    if type:
        conditions.append(Warehouse.type == type)
    if is_active is not None:
        conditions.append(Warehouse.is_active.is_(is_active))
    if conditions:
        query = query.where(and_(*conditions))

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(query.order_by(Warehouse.name).offset((page - 1) * limit).limit(limit))
    warehouses = result.scalars().all()
    stats = await warehouse_stats(db)
    return WarehouseListResponse(
        data=[build_warehouse_response(w, stats.get(w.id)) for w in warehouses],
        total=total,
        page=page,
        limit=limit
    )


@router.post("/", response_model=WarehouseResponse, status_code=201)
async def create_warehouse(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_WAREHOUSES)),
    warehouse_in: WarehouseCreate) -> Any:
    """Create a warehouse"""
    warehouse = Warehouse(
        name=warehouse_in.name,
        type=warehouse_in.type,
        capacity=Decimal(str(warehouse_in.capacity)) if warehouse_in.capacity is not None else None,
        location=warehouse_in.location,
        manager_id=warehouse_in.manager_id,
        is_active=True,
    )
    db.add(warehouse)
    await db.commit()
    return build_warehouse_response(await load_warehouse(db, warehouse.id))


@router.post("/transfer", response_model=TransferResponse)
async def transfer_material(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(TRANSFER_MATERIALS)),
    transfer_in: TransferRequest) -> Any:
    """Move material between warehouses"""
    result = await ledger.transfer(
        db,
        transfer_in.material_id,
        transfer_in.from_warehouse_id,
        transfer_in.to_warehouse_id,
        transfer_in.quantity,
        created_by=principal.user_id,
        notes=transfer_in.notes,
    )
    return TransferResponse(
        source_material_id=result.source.id,
        source_quantity=result.source.quantity,
        destination_material_id=result.destination.id,
        destination_quantity=result.destination.quantity,
        quantity=transfer_in.quantity)


@router.get("/{warehouse_id}", response_model=WarehouseResponse)
async def get_warehouse(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    warehouse_id: int) -> Any:
    """Warehouse detail"""
    warehouse = await load_warehouse(db, warehouse_id)
    stats = await warehouse_stats(db, warehouse_id)
    return build_warehouse_response(warehouse, stats.get(warehouse_id))


@router.get("/{warehouse_id}/utilization", response_model=WarehouseUtilization)
async def get_warehouse_utilization(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    warehouse_id: int) -> Any:
    """Stored weight against capacity, advisory only"""
    warehouse = await load_warehouse(db, warehouse_id)
    stats = (await warehouse_stats(db, warehouse_id)).get(warehouse_id, EMPTY_STATS)
    capacity = float(warehouse.capacity) if warehouse.capacity else None
    return WarehouseUtilization(
        warehouse_id=warehouse_id,
        capacity=capacity,
        total_weight=stats["total_weight"],
        utilization=round(stats["total_weight"] / capacity, 4) if capacity else None)


@router.put("/{warehouse_id}", response_model=WarehouseResponse)
async def update_warehouse(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_WAREHOUSES)),
    warehouse_id: int,
    warehouse_in: WarehouseUpdate) -> Any:
    """Update a warehouse"""
    warehouse = await load_warehouse(db, warehouse_id)
    update_data = warehouse_in.model_dump(exclude_unset=True)
    if "capacity" in update_data and update_data["capacity"] is not None:
        update_data["capacity"] = Decimal(str(update_data["capacity"]))
    for field, value in update_data.items():
        setattr(warehouse, field, value)
    await db.commit()
    warehouse = await load_warehouse(db, warehouse_id)
    stats = await warehouse_stats(db, warehouse_id)
    return build_warehouse_response(warehouse, stats.get(warehouse_id))


@router.delete("/{warehouse_id}", response_model=Message)
async def delete_warehouse(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_WAREHOUSES)),
    warehouse_id: int) -> Any:
    """Delete an empty warehouse"""
    warehouse = await load_warehouse(db, warehouse_id)
    materials = await db.execute(
        select(func.count(Material.id)).where(Material.warehouse_id == warehouse_id)
    )
    if materials.scalar():
        raise ConflictError("Cannot delete a warehouse that still holds materials")
    await db.delete(warehouse)
    await db.commit()
    return Message(message="Warehouse deleted", id=warehouse_id)
