"""
Notification sink

Events are persisted once per recipient. Recipients are the active users
whose role holds the event's subscription capability. Emission runs after
the business transaction has committed; a failure here is logged and never
undoes that transaction.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.config import settings
from wms.core.permissions import (
    NOTIFY_INVOICES, NOTIFY_MAINTENANCE, NOTIFY_ORDERS, NOTIFY_STOCK, roles_with,
)
from wms.models.invoice import Invoice
from wms.models.maintenance import MaintenanceRequest
from wms.models.material import Material
from wms.models.notification import Notification
from wms.models.order import Order
from wms.models.user import User

logger = logging.getLogger(__name__)

EVENT_CAPABILITIES = {
    "new_order": NOTIFY_ORDERS,
    "order_completed": NOTIFY_ORDERS,
    "invoice_created": NOTIFY_INVOICES,
    "low_stock": NOTIFY_STOCK,
    "new_material": NOTIFY_STOCK,
    "maintenance_due": NOTIFY_MAINTENANCE,
}


async def recipients_for(db: AsyncSession, event_type: str) -> List[int]:
    capability = EVENT_CAPABILITIES.get(event_type)
    if capability is None:
        return []
    roles = roles_with(capability)
    result = await db.execute(
        select(User.id).where(and_(User.user_type.in_(roles), User.is_active.is_(True)))
    )
    return [row[0] for row in result]


async def emit(
    db: AsyncSession,
    event_type: str,
    title: str,
    message: str,
    *,
    priority: str = "medium",
    related_id: Optional[int] = None,
    related_type: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
    created_by: Optional[int] = None,
) -> int:
    """Persist one event for every subscribed user; returns the number written"""
    try:
        user_ids = await recipients_for(db, event_type)
        for user_id in user_ids:
            db.add(Notification(
                user_id=user_id,
                title=title,
                message=message,
                type=event_type,
                priority=priority,
                related_id=related_id,
                related_type=related_type,
                data=data,
                created_by=created_by,
            ))
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception(f"Failed to emit '{event_type}' notification")
        return 0
    logger.debug(f"'{event_type}' notification sent to {len(user_ids)} users")
    return len(user_ids)


async def notify_new_order(db: AsyncSession, order: Order, created_by: Optional[int] = None) -> int:
    return await emit(
        db, "new_order",
        "New order",
        f"Order {order.order_number} created for customer {order.customer_name}",
        related_id=order.id,
        related_type="order",
        data={
            "order_number": order.order_number,
            "customer_name": order.customer_name,
            "total_amount": float(order.total_amount or 0),
            "delivery_method": order.delivery_method,
        },
        created_by=created_by,
    )


async def notify_order_completed(db: AsyncSession, order: Order, created_by: Optional[int] = None) -> int:
    return await emit(
        db, "order_completed",
        "Order completed",
        f"Order {order.order_number} for {order.customer_name} is completed",
        related_id=order.id,
        related_type="order",
        data={"order_number": order.order_number},
        created_by=created_by,
    )


async def notify_invoice_created(db: AsyncSession, invoice: Invoice, created_by: Optional[int] = None) -> int:
    return await emit(
        db, "invoice_created",
        "New invoice",
        f"Invoice {invoice.invoice_number} created for {invoice.customer_name}",
        related_id=invoice.id,
        related_type="invoice",
        data={
            "invoice_number": invoice.invoice_number,
            "total_amount": float(invoice.total_amount or 0),
        },
        created_by=created_by,
    )


async def notify_new_material(db: AsyncSession, material: Material, created_by: Optional[int] = None) -> int:
    return await emit(
        db, "new_material",
        "New material",
        f"Material '{material.name}' added with quantity {material.quantity}",
        priority="low",
        related_id=material.id,
        related_type="material",
        data={"warehouse_id": material.warehouse_id, "quantity": material.quantity},
        created_by=created_by,
    )


async def notify_maintenance(db: AsyncSession, request: MaintenanceRequest, created_by: Optional[int] = None) -> int:
    return await emit(
        db, "maintenance_due",
        "Maintenance request",
        f"Maintenance requested for warehouse {request.warehouse_id}: {request.title}",
        priority=request.priority or "medium",
        related_id=request.id,
        related_type="maintenance",
        created_by=created_by,
    )


async def sweep_low_stock(db: AsyncSession, threshold: Optional[int] = None) -> int:
    """Notify about available materials at or below the threshold.

    Materials that already have an unread low_stock notification are skipped.
    Returns the number of materials reported.
    """
    threshold = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    result = await db.execute(
        select(Material)
        .where(and_(Material.status == "available", Material.quantity <= threshold))
        .order_by(Material.quantity.asc())
    )
    materials = result.scalars().all()
    if not materials:
        return 0

    pending = await db.execute(
        select(Notification.related_id).where(and_(
            Notification.type == "low_stock",
            Notification.is_read.is_(False),
            Notification.related_type == "material",
        ))
    )
    already_notified = {row[0] for row in pending}

    reported = 0
    for material in materials:
        if material.id in already_notified:
            continue
        await emit(
            db, "low_stock",
            "Low stock",
            f"Material '{material.name}' is down to {material.quantity} units",
            priority="high" if material.quantity == 0 else "medium",
            related_id=material.id,
            related_type="material",
            data={"warehouse_id": material.warehouse_id, "quantity": material.quantity},
        )
        reported += 1
    return reported
