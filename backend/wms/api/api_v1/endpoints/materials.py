"""Material API"""

from typing import Any, List, Optional
from decimal import Decimal
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wms.core.auth.deps import Principal, get_current_principal, require_permission
from wms.core.config import settings
from wms.core.deps import get_db
from wms.core.exceptions import ConflictError, NotFoundError
from wms.core.permissions import MANAGE_MATERIALS
from wms.models.material import Material, StockMovement
from wms.models.order import Order, OrderItem
from wms.models.warehouse import Warehouse
from wms.schemas.common import Message
from wms.schemas.material import (
    MaterialCreate, MaterialListResponse, MaterialResponse, MaterialStatusUpdate,
    MaterialUpdate, MaterialUsage, StockMovementResponse,
)
from wms.services import ledger, notifications
from wms.services.transaction import atomic

router = APIRouter()

DECIMAL_FIELDS = ("weight", "length", "width", "grammage", "cost")


def build_material_response(material: Material) -> MaterialResponse:
    return MaterialResponse(
        id=material.id,
        name=material.name,
        weight=float(material.weight) if material.weight is not None else None,
        quantity=material.quantity,
        length=float(material.length) if material.length is not None else None,
        width=float(material.width) if material.width is not None else None,
        type=material.type,
        grammage=float(material.grammage) if material.grammage is not None else None,
        invoice_number=material.invoice_number,
        quality=material.quality,
        roll_number=material.roll_number,
        source=material.source,
        cost=float(material.cost or 0),
        status=material.status,
        warehouse_id=material.warehouse_id,
        warehouse_name=material.warehouse.name if material.warehouse else "",
        total_weight=float(material.total_weight),
        created_at=material.created_at,
        updated_at=material.updated_at)


def build_movement_response(movement: StockMovement) -> StockMovementResponse:
    return StockMovementResponse(
        id=movement.id,
        material_id=movement.material_id,
        warehouse_id=movement.warehouse_id,
        movement_type=movement.movement_type,
        type_display=movement.type_display,
        quantity=movement.quantity,
        weight=float(movement.weight) if movement.weight is not None else None,
        quantity_before=movement.quantity_before,
        quantity_after=movement.quantity_after,
        reference_type=movement.reference_type,
        reference_id=movement.reference_id,
        notes=movement.notes,
        created_by=movement.created_by,
        created_at=movement.created_at)


def base_material_query():
    return select(Material).options(selectinload(Material.warehouse))


async def load_material(db: AsyncSession, material_id: int) -> Material:
    result = await db.execute(
        base_material_query()
        .where(Material.id == material_id)
        .execution_options(populate_existing=True)
    )
    material = result.scalar_one_or_none()
    if not material:
        raise NotFoundError("Material", material_id)
    return material


def _decimal_or_none(value: Optional[float]) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


@router.get("/", response_model=MaterialListResponse)
async def list_materials(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    warehouse_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Name contains")) -> Any:
    """List materials"""
    query = base_material_query()
    conditions = []
    if warehouse_id:
        conditions.append(Material.warehouse_id == warehouse_id)
    if status:
        conditions.append(Material.status == status)
    if type:
        conditions.append(Material.type == type)
    if search:
        conditions.append(Material.name.ilike(f"%{search}%"))
    if conditions:
        query = query.where(and_(*conditions))

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    query = query.order_by(Material.created_at.desc(), Material.id.desc())
    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    return MaterialListResponse(
        data=[build_material_response(m) for m in result.scalars().all()],
        total=total,
        page=page,
        limit=limit
    )


@router.get("/alerts/low-stock", response_model=List[MaterialResponse])
async def list_low_stock(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    threshold: Optional[int] = Query(None, ge=0, description="Defaults to LOW_STOCK_THRESHOLD")) -> Any:
    """Available materials at or below the threshold"""
    limit_qty = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    result = await db.execute(
        base_material_query()
        .where(and_(Material.status == "available", Material.quantity <= limit_qty))
        .order_by(Material.quantity.asc())
    )
    return [build_material_response(m) for m in result.scalars().all()]


@router.get("/alerts/expired", response_model=List[MaterialResponse])
async def list_expired(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)) -> Any:
    """Materials marked expired, most recently changed first"""
    result = await db.execute(
        base_material_query()
        .where(Material.status == "expired")
        .order_by(Material.updated_at.desc(), Material.id.desc())
    )
    return [build_material_response(m) for m in result.scalars().all()]


@router.post("/", response_model=MaterialResponse, status_code=201)
async def create_material(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_MATERIALS)),
    material_in: MaterialCreate) -> Any:
    """Receive a new material into a warehouse"""
    async with atomic(db, "Material creation"):
        if not await db.get(Warehouse, material_in.warehouse_id):
            raise NotFoundError("Warehouse", material_in.warehouse_id)
        entry = await ledger.intake(
            db,
            Material(
                name=material_in.name,
                weight=_decimal_or_none(material_in.weight),
                quantity=material_in.quantity,
                length=_decimal_or_none(material_in.length),
                width=_decimal_or_none(material_in.width),
                type=material_in.type,
                grammage=_decimal_or_none(material_in.grammage),
                invoice_number=material_in.invoice_number,
                quality=material_in.quality,
                roll_number=material_in.roll_number,
                warehouse_id=material_in.warehouse_id,
                source=material_in.source,
                cost=Decimal(str(material_in.cost)),
                status="available",
            ),
            created_by=principal.user_id,
        )

    await notifications.notify_new_material(db, entry.material, principal.user_id)
    return build_material_response(await load_material(db, entry.material.id))


@router.get("/{material_id}", response_model=MaterialResponse)
async def get_material(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    material_id: int) -> Any:
    """Material detail"""
    return build_material_response(await load_material(db, material_id))


@router.put("/{material_id}", response_model=MaterialResponse)
async def update_material(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_MATERIALS)),
    material_id: int,
    material_in: MaterialUpdate) -> Any:
    """Update descriptive fields"""
    material = await load_material(db, material_id)
    update_data = material_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if field in DECIMAL_FIELDS:
            value = _decimal_or_none(value)
            if field == "cost" and value is None:
                continue
        setattr(material, field, value)
    await db.commit()
    return build_material_response(await load_material(db, material_id))


@router.patch("/{material_id}/status", response_model=MaterialResponse)
async def update_material_status(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_MATERIALS)),
    material_id: int,
    status_in: MaterialStatusUpdate) -> Any:
    """Mark a material available, reserved, damaged or expired"""
    async with atomic(db, "Material status change"):
        await ledger.set_status(db, material_id, status_in.status)
    return build_material_response(await load_material(db, material_id))


@router.get("/{material_id}/movements", response_model=List[StockMovementResponse])
async def list_material_movements(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    material_id: int,
    limit: int = Query(100, ge=1, le=500)) -> Any:
    """Movement history, newest first"""
    await load_material(db, material_id)
    result = await db.execute(
        select(StockMovement)
        .where(StockMovement.material_id == material_id)
        .order_by(StockMovement.id.desc())
        .limit(limit)
    )
    return [build_movement_response(m) for m in result.scalars().all()]


@router.get("/{material_id}/usage-history", response_model=List[MaterialUsage])
async def get_usage_history(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    material_id: int) -> Any:
    """Order lines that used this material, newest order first"""
    await load_material(db, material_id)
    result = await db.execute(
        select(OrderItem, Order)
        .join(Order, OrderItem.order_id == Order.id)
        .where(OrderItem.material_id == material_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return [
        MaterialUsage(
            order_id=order.id,
            order_number=order.order_number,
            customer_name=order.customer_name,
            order_status=order.status,
            order_date=order.created_at,
            used_quantity=item.quantity,
            reserved_quantity=item.reserved_quantity or 0,
            total_price=float(item.total_price or 0))
        for item, order in result.all()
    ]


@router.delete("/{material_id}", response_model=Message)
async def delete_material(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_MATERIALS)),
    material_id: int) -> Any:
    """Delete a material no order refers to"""
    material = await load_material(db, material_id)
    referenced = await db.execute(
        select(func.count(OrderItem.id)).where(OrderItem.material_id == material_id)
    )
    if referenced.scalar():
        raise ConflictError("Cannot delete a material used by orders")
    await db.delete(material)
    await db.commit()
    return Message(message="Material deleted", id=material_id)
