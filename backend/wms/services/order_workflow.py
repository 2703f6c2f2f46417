"""
Order workflow

Creating an order reserves every line through the ledger in one
transaction, so a failure on any line leaves no reservation behind.
Cancelling or deleting returns whatever an item still holds; completing
consumes the reservation and makes the materials available again.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wms.core.config import settings
from wms.core.exceptions import (
    ConflictError, InvalidStatusTransitionError, OrderNotFoundError, ValidationError,
)
from wms.models.invoice import Invoice
from wms.models.order import Order, OrderItem, ORDER_STATUSES
from wms.schemas.order import OrderCreate
from wms.services import ledger, notifications
from wms.services.ledger import CENT, OrderRef, unit_cost
from wms.services.numbering import flush_numbered, generate_number
from wms.services.transaction import atomic

logger = logging.getLogger(__name__)

ORDER_PREFIX = "ORD"


def base_order_query():
    """Order query with items and their materials loaded"""
    return select(Order).options(
        selectinload(Order.items).selectinload(OrderItem.material)
    )


async def load_order(db: AsyncSession, order_id: int) -> Order:
    result = await db.execute(
        base_order_query()
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise OrderNotFoundError(order_id)
    return order


def cutting_fee_for(order: Order, quantity: int) -> Decimal:
    """Flat per-unit fee for delivery methods that include cutting"""
    if not order.requires_cutting:
        return Decimal("0.00")
    return (Decimal(str(settings.CUTTING_FEE_PER_UNIT)) * quantity).quantize(CENT)


async def create_order(db: AsyncSession, order_in: OrderCreate, created_by: Optional[int] = None) -> Order:
    if not order_in.items:
        raise ValidationError("An order needs at least one item")
    material_ids = [item.material_id for item in order_in.items]
    if len(material_ids) != len(set(material_ids)):
        raise ValidationError("Each material may appear only once per order")

    async with atomic(db, "Order creation"):
        order_number = await generate_number(db, Order.order_number, ORDER_PREFIX)
        order = Order(
            order_number=order_number,
            customer_name=order_in.customer_name,
            customer_phone=order_in.customer_phone,
            customer_address=order_in.customer_address,
            plate_count=order_in.plate_count,
            delivery_method=order_in.delivery_method,
            status="pending",
            notes=order_in.notes,
            created_by=created_by,
        )
        db.add(order)
        await flush_numbered(db, Order.order_number, order_number)

        items_total = Decimal("0")
        cutting_fee = Decimal("0")
        for item_in in order_in.items:
            entry = await ledger.reserve(
                db, item_in.material_id, item_in.quantity,
                reference=OrderRef(order.id),
                created_by=created_by,
            )
            material = entry.material
            # Priced on the quantity the material had before this reservation
            unit_price = unit_cost(material.cost, entry.quantity_before)
            total_price = (unit_price * item_in.quantity).quantize(CENT)
            weight = None
            if material.weight is not None:
                weight = Decimal(str(material.weight)) * item_in.quantity

            db.add(OrderItem(
                order_id=order.id,
                material_id=material.id,
                quantity=item_in.quantity,
                reserved_quantity=item_in.quantity,
                weight=weight,
                unit_price=unit_price,
                total_price=total_price,
                notes=item_in.notes,
            ))
            items_total += total_price
            cutting_fee += cutting_fee_for(order, item_in.quantity)

        order.cutting_fee = cutting_fee
        order.total_amount = items_total + cutting_fee

    logger.info(f"Order {order.order_number} created with {len(order_in.items)} items, total {order.total_amount}")
    await notifications.notify_new_order(db, order, created_by)
    return await load_order(db, order.id)


async def _release_items(db: AsyncSession, order: Order, created_by: Optional[int], notes: str) -> None:
    for item in order.items:
        if item.reserved_quantity:
            await ledger.release(
                db, item.material_id, item.reserved_quantity,
                reference=OrderRef(order.id),
                created_by=created_by,
                notes=notes,
            )
            item.reserved_quantity = 0


async def set_status(
    db: AsyncSession,
    order_id: int,
    status: str,
    notes: Optional[str] = None,
    changed_by: Optional[int] = None,
) -> Order:
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Unknown order status '{status}'")

    async with atomic(db, "Order status change"):
        order = await load_order(db, order_id)
        if order.is_terminal:
            raise InvalidStatusTransitionError(order.status, status)

        if status == "completed":
            # Reservation is consumed; the remaining stock becomes available
            for item in order.items:
                await ledger.set_status(db, item.material_id, "available")
                item.reserved_quantity = 0
            order.completed_at = datetime.utcnow()
        elif status == "cancelled":
            await _release_items(db, order, changed_by, f"Order {order.order_number} cancelled")

        previous = order.status
        order.status = status
        if notes is not None:
            order.notes = notes

    logger.info(f"Order {order.order_number}: {previous} -> {status}")
    if status == "completed":
        await notifications.notify_order_completed(db, order, changed_by)
    return await load_order(db, order_id)


async def delete_order(db: AsyncSession, order_id: int, deleted_by: Optional[int] = None) -> None:
    async with atomic(db, "Order deletion"):
        invoiced = await db.execute(select(Invoice.id).where(Invoice.order_id == order_id))
        if invoiced.first():
            raise ConflictError(f"Order {order_id} has an invoice and cannot be deleted")

        items_result = await db.execute(
            select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
        )
        items = items_result.scalars().all()
        for item in items:
            if item.reserved_quantity:
                await ledger.release(
                    db, item.material_id, item.reserved_quantity,
                    reference=OrderRef(order_id),
                    created_by=deleted_by,
                    notes=f"Order {order_id} deleted",
                )

        await db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        result = await db.execute(delete(Order).where(Order.id == order_id))
        if result.rowcount != 1:
            raise OrderNotFoundError(order_id)

    logger.info(f"Order {order_id} deleted, {len(items)} items released")
