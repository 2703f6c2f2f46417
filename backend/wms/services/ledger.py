"""
Inventory ledger

The only writer of Material.quantity / Material.status and the only producer
of StockMovement rows. Quantity changes are compare-and-set UPDATE
statements, so two concurrent reservations can never drive a material below
zero: the loser matches no row and gets InsufficientStockError.

reserve / release / adjust / set_status / intake join the caller's
transaction; transfer owns its own.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import ClassVar, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.exceptions import (
    InsufficientStockError, LedgerOperationFailed, MaterialUnavailableError,
    NotFoundError, ValidationError,
)
from wms.models.material import Material, StockMovement
from wms.models.warehouse import Warehouse
from wms.services.transaction import atomic

logger = logging.getLogger(__name__)

MATERIAL_STATUSES = ("available", "reserved", "damaged", "expired")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class OrderRef:
    order_id: int
    kind: ClassVar[str] = "order"

    @property
    def reference_id(self) -> int:
        return self.order_id


@dataclass(frozen=True)
class TransferRef:
    """Points at the counterpart material row of a transfer"""
    counterpart_material_id: int
    kind: ClassVar[str] = "transfer"

    @property
    def reference_id(self) -> int:
        return self.counterpart_material_id


@dataclass(frozen=True)
class CountRef:
    count_id: int
    kind: ClassVar[str] = "inventory_count"

    @property
    def reference_id(self) -> int:
        return self.count_id


@dataclass(frozen=True)
class IntakeRef:
    material_id: int
    kind: ClassVar[str] = "material_creation"

    @property
    def reference_id(self) -> int:
        return self.material_id


MovementRef = Union[OrderRef, TransferRef, CountRef, IntakeRef]


@dataclass
class LedgerEntry:
    material: Material
    movement: Optional[StockMovement]
    quantity_before: int
    quantity_after: int


@dataclass
class TransferResult:
    source: Material
    destination: Material
    outgoing: StockMovement
    incoming: StockMovement


def unit_cost(cost: Optional[Decimal], quantity: int) -> Decimal:
    """Cost per unit for a stock line, 0 when the line is empty"""
    if not quantity:
        return Decimal("0.00")
    return (Decimal(str(cost or 0)) / Decimal(quantity)).quantize(CENT, rounding=ROUND_HALF_UP)


def cost_share(cost: Optional[Decimal], part: int, whole: int) -> Decimal:
    """Part of a line's cost carried by ``part`` of its ``whole`` units.

    Rounded once, at the end; taking every unit takes the whole cost.
    """
    total = Decimal(str(cost or 0))
    if not whole or part >= whole:
        return total
    return (total * part / whole).quantize(CENT, rounding=ROUND_HALF_UP)


def _require_positive(quantity: int) -> None:
    if quantity is None or quantity <= 0:
        raise ValidationError("Quantity must be a positive integer")


async def _reload(db: AsyncSession, material_id: int) -> Optional[Material]:
    return await db.get(Material, material_id, populate_existing=True)


async def _compare_and_set(db: AsyncSession, material_id: int, delta: int, *conditions, **values) -> bool:
    """Apply ``quantity += delta`` only where every condition holds"""
    stmt = (
        update(Material)
        .where(Material.id == material_id, *conditions)
        .values(quantity=Material.quantity + delta, **values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount == 1


def _record(
    db: AsyncSession,
    material: Material,
    movement_type: str,
    quantity: int,
    quantity_before: int,
    reference: MovementRef,
    created_by: Optional[int],
    notes: Optional[str] = None,
) -> StockMovement:
    weight = None
    if material.weight is not None:
        weight = Decimal(str(material.weight)) * abs(quantity)
    movement = StockMovement(
        material_id=material.id,
        warehouse_id=material.warehouse_id,
        movement_type=movement_type,
        quantity=quantity,
        weight=weight,
        quantity_before=quantity_before,
        quantity_after=material.quantity,
        reference_type=reference.kind,
        reference_id=reference.reference_id,
        notes=notes,
        created_by=created_by,
    )
    db.add(movement)
    return movement


async def get_material(db: AsyncSession, material_id: int) -> Material:
    material = await _reload(db, material_id)
    if material is None:
        raise NotFoundError("Material", material_id)
    return material


async def reserve(
    db: AsyncSession,
    material_id: int,
    quantity: int,
    *,
    reference: MovementRef,
    created_by: Optional[int] = None,
    notes: Optional[str] = None,
) -> LedgerEntry:
    """Take ``quantity`` out of availability and mark the material reserved"""
    _require_positive(quantity)
    updated = await _compare_and_set(
        db, material_id, -quantity,
        Material.status == "available",
        Material.quantity >= quantity,
        status="reserved",
    )
    material = await _reload(db, material_id)
    if not updated:
        if material is None:
            raise NotFoundError("Material", material_id)
        if material.status != "available":
            raise MaterialUnavailableError(material_id, material.status)
        raise InsufficientStockError(material_id, material.quantity, quantity)

    before = material.quantity + quantity
    movement = _record(db, material, "out", quantity, before, reference, created_by,
                       notes or f"Reserved for {reference.kind} {reference.reference_id}")
    logger.info(f"Reserved {quantity} of material {material_id} ({before} -> {material.quantity})")
    return LedgerEntry(material, movement, before, material.quantity)


async def release(
    db: AsyncSession,
    material_id: int,
    quantity: int,
    *,
    reference: MovementRef,
    created_by: Optional[int] = None,
    notes: Optional[str] = None,
) -> LedgerEntry:
    """Return previously reserved quantity and make the material available"""
    _require_positive(quantity)
    updated = await _compare_and_set(db, material_id, quantity, status="available")
    if not updated:
        raise NotFoundError("Material", material_id)
    material = await _reload(db, material_id)

    before = material.quantity - quantity
    movement = _record(db, material, "in", quantity, before, reference, created_by,
                       notes or f"Released from {reference.kind} {reference.reference_id}")
    logger.info(f"Released {quantity} of material {material_id} ({before} -> {material.quantity})")
    return LedgerEntry(material, movement, before, material.quantity)


async def adjust(
    db: AsyncSession,
    material_id: int,
    quantity_delta: int,
    *,
    reference: MovementRef,
    created_by: Optional[int] = None,
    notes: Optional[str] = None,
) -> LedgerEntry:
    """Apply a signed correction, e.g. an approved count variance"""
    if not quantity_delta:
        raise ValidationError("Adjustment must change the quantity")
    updated = await _compare_and_set(
        db, material_id, quantity_delta,
        Material.quantity + quantity_delta >= 0,
    )
    material = await _reload(db, material_id)
    if not updated:
        if material is None:
            raise NotFoundError("Material", material_id)
        raise InsufficientStockError(material_id, material.quantity, -quantity_delta)

    before = material.quantity - quantity_delta
    movement = _record(db, material, "adjustment", quantity_delta, before, reference, created_by, notes)
    logger.info(f"Adjusted material {material_id} by {quantity_delta} ({before} -> {material.quantity})")
    return LedgerEntry(material, movement, before, material.quantity)


async def set_status(db: AsyncSession, material_id: int, status: str) -> Material:
    """Status-only write; quantity is untouched so no movement is recorded"""
    if status not in MATERIAL_STATUSES:
        raise ValidationError(f"Unknown material status '{status}'")
    result = await db.execute(
        update(Material)
        .where(Material.id == material_id)
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Material", material_id)
    return await _reload(db, material_id)


async def intake(
    db: AsyncSession,
    material: Material,
    *,
    created_by: Optional[int] = None,
    notes: Optional[str] = None,
) -> LedgerEntry:
    """Register a new stock line together with its opening movement"""
    quantity = material.quantity or 0
    if quantity < 0:
        raise ValidationError("Quantity cannot be negative")
    material.quantity = quantity
    material.status = material.status or "available"
    db.add(material)
    await db.flush()

    movement = None
    if quantity > 0:
        movement = _record(db, material, "in", quantity, 0, IntakeRef(material.id), created_by,
                           notes or "Initial stock")
    logger.info(f"Material {material.id} '{material.name}' received with quantity {quantity}")
    return LedgerEntry(material, movement, 0, quantity)


async def _find_or_create_destination(db: AsyncSession, source: Material, warehouse_id: int) -> Material:
    """Same-named material in the destination warehouse, created empty if missing"""
    result = await db.execute(
        select(Material)
        .where(Material.name == source.name, Material.warehouse_id == warehouse_id)
        .order_by(Material.id)
        .limit(1)
    )
    destination = result.scalar_one_or_none()
    if destination:
        return destination

    destination = Material(
        name=source.name,
        weight=source.weight,
        quantity=0,
        length=source.length,
        width=source.width,
        type=source.type,
        grammage=source.grammage,
        invoice_number=source.invoice_number,
        quality=source.quality,
        roll_number=source.roll_number,
        warehouse_id=warehouse_id,
        source=source.source,
        cost=Decimal("0.00"),
        status="available",
    )
    db.add(destination)
    await db.flush()
    return destination


async def transfer(
    db: AsyncSession,
    material_id: int,
    from_warehouse_id: int,
    to_warehouse_id: int,
    quantity: int,
    *,
    created_by: Optional[int] = None,
    notes: Optional[str] = None,
) -> TransferResult:
    """Move stock between warehouses in one committed transaction.

    Cost moves in proportion to the units moved, so source and destination
    together always hold the cost the source had.
    """
    _require_positive(quantity)
    if from_warehouse_id == to_warehouse_id:
        raise ValidationError("Source and destination warehouse must differ")

    async with atomic(db, "Material transfer", failure=LedgerOperationFailed):
        result = await db.execute(
            select(Material).where(
                Material.id == material_id,
                Material.warehouse_id == from_warehouse_id,
            )
            .execution_options(populate_existing=True)
        )
        source = result.scalar_one_or_none()
        if not source:
            raise NotFoundError("Material in source warehouse", material_id)
        if not await db.get(Warehouse, to_warehouse_id):
            raise NotFoundError("Warehouse", to_warehouse_id)

        moved_cost = cost_share(source.cost, quantity, source.quantity)
        destination = await _find_or_create_destination(db, source, to_warehouse_id)

        updated = await _compare_and_set(
            db, source.id, -quantity,
            Material.warehouse_id == from_warehouse_id,
            Material.quantity >= quantity,
            cost=Material.cost - moved_cost,
        )
        if not updated:
            current = await _reload(db, source.id)
            raise InsufficientStockError(material_id, current.quantity if current else 0, quantity)
        await _compare_and_set(db, destination.id, quantity, cost=Material.cost + moved_cost)

        source = await _reload(db, source.id)
        destination = await _reload(db, destination.id)
        outgoing = _record(db, source, "transfer_out", quantity, source.quantity + quantity,
                           TransferRef(destination.id), created_by,
                           notes or f"Transfer to warehouse {to_warehouse_id}")
        incoming = _record(db, destination, "transfer_in", quantity, destination.quantity - quantity,
                           TransferRef(source.id), created_by,
                           notes or f"Transfer from warehouse {from_warehouse_id}")

    logger.info(
        f"Transferred {quantity} of material {material_id} "
        f"from warehouse {from_warehouse_id} to {to_warehouse_id} (destination material {destination.id})"
    )
    return TransferResult(source, destination, outgoing, incoming)
