"""Order API"""

from typing import Any, Optional
from datetime import date, datetime, time, timedelta
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.auth.deps import Principal, require_permission
from wms.core.deps import get_db
from wms.core.permissions import MANAGE_ORDERS
from wms.models.order import Order, OrderItem
from wms.schemas.common import Message
from wms.schemas.order import (
    OrderCreate, OrderItemResponse, OrderListResponse, OrderResponse, OrderStatus, OrderStatusUpdate,
)
from wms.services import order_workflow
from wms.services.order_workflow import base_order_query, load_order

router = APIRouter()


def build_item_response(item: OrderItem) -> OrderItemResponse:
    return OrderItemResponse(
        id=item.id,
        order_id=item.order_id,
        material_id=item.material_id,
        material_name=item.material.name if item.material else "",
        quantity=item.quantity,
        reserved_quantity=item.reserved_quantity or 0,
        weight=float(item.weight) if item.weight is not None else None,
        unit_price=float(item.unit_price or 0),
        total_price=float(item.total_price or 0),
        notes=item.notes)


def build_order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        customer_address=order.customer_address,
        plate_count=order.plate_count,
        delivery_method=order.delivery_method,
        delivery_method_display=order.delivery_method_display,
        status=order.status,
        status_display=order.status_display,
        total_amount=float(order.total_amount or 0),
        cutting_fee=float(order.cutting_fee or 0),
        notes=order.notes,
        created_by=order.created_by,
        created_at=order.created_at,
        updated_at=order.updated_at,
        completed_at=order.completed_at,
        items=[build_item_response(item) for item in order.items])


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_ORDERS)),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    customer: Optional[str] = Query(None, description="Customer name contains"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None)) -> Any:
    """List orders"""
    query = base_order_query()
    conditions = []

    if status:
        conditions.append(Order.status == status)
    if customer:
        conditions.append(Order.customer_name.ilike(f"%{customer}%"))
    if date_from:
        conditions.append(Order.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        conditions.append(Order.created_at < datetime.combine(date_to + timedelta(days=1), time.min))

    if conditions:
        query = query.where(and_(*conditions))

    count_query = select(func.count()).select_from(
        select(Order.id).where(and_(*conditions)).subquery() if conditions else Order
    )
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)

    result = await db.execute(query)
    orders = result.scalars().unique().all()

    return OrderListResponse(
        data=[build_order_response(o) for o in orders],
        total=total,
        page=page,
        limit=limit
    )


@router.post("/", response_model=OrderResponse, status_code=201)
async def create_order(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_ORDERS)),
    order_in: OrderCreate) -> Any:
    """Create an order and reserve its materials"""
    order = await order_workflow.create_order(db, order_in, created_by=principal.user_id)
    return build_order_response(order)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_ORDERS)),
    order_id: int) -> Any:
    """Order detail"""
    return build_order_response(await load_order(db, order_id))


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_ORDERS)),
    order_id: int,
    status_in: OrderStatusUpdate) -> Any:
    """Move an order through its workflow"""
    order = await order_workflow.set_status(
        db, order_id, status_in.status, notes=status_in.notes, changed_by=principal.user_id
    )
    return build_order_response(order)


@router.delete("/{order_id}", response_model=Message)
async def delete_order(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_ORDERS)),
    order_id: int) -> Any:
    """Delete an order and return its reserved stock"""
    await order_workflow.delete_order(db, order_id, deleted_by=principal.user_id)
    return Message(message="Order deleted", id=order_id)
