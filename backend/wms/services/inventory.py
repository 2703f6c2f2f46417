"""Inventory counts: record, start a session, approve through the ledger"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wms.core.exceptions import ConflictError, NotFoundError, ValidationError
from wms.models.inventory_count import InventoryCount
from wms.models.material import Material
from wms.services import ledger
from wms.services.ledger import CountRef
from wms.services.transaction import atomic

logger = logging.getLogger(__name__)


async def load_count(db: AsyncSession, count_id: int) -> InventoryCount:
    result = await db.execute(
        select(InventoryCount)
        .options(selectinload(InventoryCount.material))
        .where(InventoryCount.id == count_id)
        .execution_options(populate_existing=True)
    )
    count = result.scalar_one_or_none()
    if not count:
        raise NotFoundError("Inventory count", count_id)
    return count


async def _material_in_warehouse(db: AsyncSession, material_id: int, warehouse_id: int) -> Material:
    material = await ledger.get_material(db, material_id)
    if material.warehouse_id != warehouse_id:
        raise ValidationError(f"Material {material_id} is not stored in warehouse {warehouse_id}")
    return material


async def record_count(
    db: AsyncSession,
    warehouse_id: int,
    material_id: int,
    counted_quantity: int,
    notes: Optional[str] = None,
    counted_by: Optional[int] = None,
) -> InventoryCount:
    async with atomic(db, "Inventory count"):
        material = await _material_in_warehouse(db, material_id, warehouse_id)
        count = InventoryCount(
            warehouse_id=warehouse_id,
            material_id=material_id,
            counted_quantity=counted_quantity,
            system_quantity=material.quantity,
            variance=counted_quantity - material.quantity,
            status="pending",
            notes=notes,
            counted_by=counted_by,
        )
        db.add(count)
    return await load_count(db, count.id)


async def start_count_session(
    db: AsyncSession,
    warehouse_id: int,
    material_ids: List[int],
    notes: Optional[str] = None,
    counted_by: Optional[int] = None,
) -> List[InventoryCount]:
    """Open a pending, not yet counted record for each material"""
    async with atomic(db, "Count session"):
        counts = []
        for material_id in dict.fromkeys(material_ids):
            material = await _material_in_warehouse(db, material_id, warehouse_id)
            count = InventoryCount(
                warehouse_id=warehouse_id,
                material_id=material_id,
                system_quantity=material.quantity,
                status="pending",
                notes=notes,
                counted_by=counted_by,
            )
            db.add(count)
            counts.append(count)
        await db.flush()
    logger.info(f"Count session for warehouse {warehouse_id} opened with {len(counts)} materials")
    return [await load_count(db, c.id) for c in counts]


async def approve_count(
    db: AsyncSession,
    count_id: int,
    approved_by: Optional[int] = None,
    counted_quantity: Optional[int] = None,
    notes: Optional[str] = None,
) -> InventoryCount:
    """Apply the variance against the current quantity and close the count"""
    async with atomic(db, "Count approval"):
        count = await db.get(InventoryCount, count_id)
        if not count:
            raise NotFoundError("Inventory count", count_id)
        if count.status == "approved":
            raise ConflictError(f"Inventory count {count_id} is already approved")
        if counted_quantity is not None:
            count.counted_quantity = counted_quantity
        if count.counted_quantity is None:
            raise ValidationError("Counted quantity is required before approval")

        material = await ledger.get_material(db, count.material_id)
        system_quantity = material.quantity
        delta = count.counted_quantity - system_quantity
        if delta:
            await ledger.adjust(
                db, material.id, delta,
                reference=CountRef(count.id),
                created_by=approved_by,
                notes=notes or f"Inventory count {count.id} approved",
            )
        count.system_quantity = system_quantity
        count.variance = delta
        count.status = "approved"
        count.approved_by = approved_by
        count.approved_at = datetime.utcnow()
        if notes is not None:
            count.notes = notes

    logger.info(f"Inventory count {count_id} approved, variance {delta}")
    return await load_count(db, count_id)
