from decimal import Decimal

import pytest
from sqlalchemy import select, func

from tests.conftest import add_material, add_warehouse, material_state
from wms.core.exceptions import (
    InsufficientStockError, MaterialUnavailableError, NotFoundError, ValidationError,
)
from wms.models import Material, StockMovement
from wms.services import ledger
from wms.services.ledger import CountRef, OrderRef


async def movements_for(db, material_id):
    result = await db.execute(
        select(StockMovement).where(StockMovement.material_id == material_id).order_by(StockMovement.id)
    )
    return result.scalars().all()


def test_intake_records_opening_movement(run_db, stock):
    async def check(db):
        return await movements_for(db, stock["x"])

    movements = run_db(check)
    assert len(movements) == 1
    assert movements[0].movement_type == "in"
    assert movements[0].reference_type == "material_creation"
    assert (movements[0].quantity_before, movements[0].quantity_after) == (0, 10)


def test_reserve_and_release_conserve_quantity(run_db, stock):
    async def scenario(db):
        first = await ledger.reserve(db, stock["x"], 4, reference=OrderRef(1))
        await db.commit()
        second = await ledger.release(db, stock["x"], 4, reference=OrderRef(1))
        await db.commit()
        await ledger.set_status(db, stock["x"], "available")
        third = await ledger.reserve(db, stock["x"], 6, reference=OrderRef(2))
        await db.commit()
        return first, second, third, await material_state(db, stock["x"]), await movements_for(db, stock["x"])

    first, second, third, state, movements = run_db(scenario)
    assert (first.quantity_before, first.quantity_after) == (10, 6)
    assert (second.quantity_before, second.quantity_after) == (6, 10)
    assert (third.quantity_before, third.quantity_after) == (10, 4)
    assert state == (4, "reserved")

    # opening intake plus one row per quantity-changing call
    assert [m.movement_type for m in movements] == ["in", "out", "in", "out"]
    signed = {"in": 1, "out": -1}
    total = sum(signed[m.movement_type] * m.quantity for m in movements)
    assert total == 4
    for previous, current in zip(movements, movements[1:]):
        assert current.quantity_before == previous.quantity_after


def test_reserve_rejects_more_than_available(run_db, stock):
    async def scenario(db):
        with pytest.raises(InsufficientStockError) as exc_info:
            await ledger.reserve(db, stock["y"], 4, reference=OrderRef(1))
        await db.rollback()
        return exc_info.value, await material_state(db, stock["y"]), len(await movements_for(db, stock["y"]))

    error, state, movement_count = run_db(scenario)
    assert error.available == 3
    assert error.requested == 4
    assert state == (3, "available")
    assert movement_count == 1


def test_reserve_rejects_reserved_material(run_db, stock):
    async def scenario(db):
        await ledger.reserve(db, stock["x"], 2, reference=OrderRef(1))
        await db.commit()
        with pytest.raises(MaterialUnavailableError):
            await ledger.reserve(db, stock["x"], 1, reference=OrderRef(2))
        await db.rollback()
        return await material_state(db, stock["x"])

    assert run_db(scenario) == (8, "reserved")


def test_second_reservation_cannot_overdraw(run_db, stock):
    async def scenario(db):
        await ledger.reserve(db, stock["y"], 3, reference=OrderRef(1))
        await ledger.set_status(db, stock["y"], "available")
        await db.commit()
        with pytest.raises(InsufficientStockError):
            await ledger.reserve(db, stock["y"], 1, reference=OrderRef(2))
        await db.rollback()
        return await material_state(db, stock["y"])

    assert run_db(scenario) == (0, "available")


def test_reserve_unknown_material(run_db, stock):
    async def scenario(db):
        with pytest.raises(NotFoundError):
            await ledger.reserve(db, 999, 1, reference=OrderRef(1))

    run_db(scenario)


def test_reserve_requires_positive_quantity(run_db, stock):
    async def scenario(db):
        with pytest.raises(ValidationError):
            await ledger.reserve(db, stock["x"], 0, reference=OrderRef(1))

    run_db(scenario)


def test_adjust_applies_signed_delta(run_db, stock):
    async def scenario(db):
        down = await ledger.adjust(db, stock["x"], -3, reference=CountRef(7))
        up = await ledger.adjust(db, stock["x"], 5, reference=CountRef(8))
        await db.commit()
        return down, up, await movements_for(db, stock["x"])

    down, up, movements = run_db(scenario)
    assert (down.quantity_before, down.quantity_after) == (10, 7)
    assert (up.quantity_before, up.quantity_after) == (7, 12)
    adjustments = [m for m in movements if m.movement_type == "adjustment"]
    assert [m.quantity for m in adjustments] == [-3, 5]
    assert adjustments[0].reference_type == "inventory_count"
    assert adjustments[0].reference_id == 7


def test_adjust_cannot_go_negative(run_db, stock):
    async def scenario(db):
        with pytest.raises(InsufficientStockError):
            await ledger.adjust(db, stock["y"], -4, reference=CountRef(1))
        with pytest.raises(ValidationError):
            await ledger.adjust(db, stock["y"], 0, reference=CountRef(1))
        await db.rollback()
        return await material_state(db, stock["y"])

    assert run_db(scenario) == (3, "available")


def test_transfer_creates_destination_material(run_db, stock):
    async def scenario(db):
        cutting = await add_warehouse(db, "Cutting", "cutting")
        result = await ledger.transfer(db, stock["x"], stock["warehouse"], cutting.id, 4)
        rows = await db.execute(select(Material).where(Material.name == "Paper X").order_by(Material.id))
        transfer_rows = await db.execute(
            select(func.count(StockMovement.id)).where(StockMovement.reference_type == "transfer")
        )
        return cutting.id, result, rows.scalars().all(), transfer_rows.scalar()

    cutting_id, result, materials, transfer_rows = run_db(scenario)
    source, destination = materials
    assert source.quantity == 6
    assert destination.warehouse_id == cutting_id
    assert destination.quantity == 4
    assert destination.weight == Decimal("2.5")
    # unit cost 10 moves with the units
    assert source.cost == Decimal("60.00")
    assert destination.cost == Decimal("40.00")
    assert transfer_rows == 2
    assert result.outgoing.movement_type == "transfer_out"
    assert result.incoming.movement_type == "transfer_in"
    assert result.outgoing.reference_id == destination.id
    assert result.incoming.reference_id == source.id


def test_transfer_adds_to_existing_same_named_material(run_db, stock):
    async def scenario(db):
        cutting = await add_warehouse(db, "Cutting", "cutting")
        existing = await add_material(db, cutting.id, "Paper X", 2, cost="20")
        result = await ledger.transfer(db, stock["x"], stock["warehouse"], cutting.id, 3)
        return existing.id, result

    existing_id, result = run_db(scenario)
    assert result.destination.id == existing_id
    assert result.destination.quantity == 5
    assert result.source.quantity == 7


def test_transfer_failures_leave_stock_untouched(run_db, stock):
    async def scenario(db):
        cutting = await add_warehouse(db, "Cutting", "cutting")
        with pytest.raises(InsufficientStockError):
            await ledger.transfer(db, stock["y"], stock["warehouse"], cutting.id, 5)
        with pytest.raises(NotFoundError):
            await ledger.transfer(db, stock["y"], cutting.id, stock["warehouse"], 1)
        with pytest.raises(NotFoundError):
            await ledger.transfer(db, stock["y"], stock["warehouse"], 999, 1)
        with pytest.raises(ValidationError):
            await ledger.transfer(db, stock["y"], stock["warehouse"], stock["warehouse"], 1)
        count = await db.execute(select(func.count(Material.id)))
        return await material_state(db, stock["y"]), count.scalar()

    state, material_count = run_db(scenario)
    assert state == (3, "available")
    assert material_count == 2


def test_full_transfer_moves_the_whole_cost(run_db):
    async def scenario(db):
        main = await add_warehouse(db, "Main")
        cutting = await add_warehouse(db, "Cutting", "cutting")
        odd = await add_material(db, main.id, "Odd lot", 6, cost="10")
        result = await ledger.transfer(db, odd.id, main.id, cutting.id, 6)
        return result.source, result.destination

    source, destination = run_db(scenario)
    assert (source.quantity, source.cost) == (0, Decimal("0.00"))
    assert (destination.quantity, destination.cost) == (6, Decimal("10.00"))


def test_partial_transfer_conserves_cost(run_db):
    async def scenario(db):
        main = await add_warehouse(db, "Main")
        cutting = await add_warehouse(db, "Cutting", "cutting")
        odd = await add_material(db, main.id, "Odd lot", 6, cost="10")
        first = await ledger.transfer(db, odd.id, main.id, cutting.id, 5)
        second = await ledger.transfer(db, odd.id, main.id, cutting.id, 1)
        return first, second

    first, second = run_db(scenario)
    assert first.destination.cost == Decimal("8.33")
    assert first.source.cost == Decimal("1.67")
    assert first.source.cost + first.destination.cost == Decimal("10")
    # the last unit carries whatever cost is left, never more
    assert second.source.cost == Decimal("0.00")
    assert second.destination.cost == Decimal("10.00")


def test_cost_share():
    assert ledger.cost_share(Decimal("10"), 5, 6) == Decimal("8.33")
    assert ledger.cost_share(Decimal("10"), 6, 6) == Decimal("10")
    assert ledger.cost_share(Decimal("10"), 1, 0) == Decimal("10")
    assert ledger.cost_share(None, 1, 2) == Decimal("0")


def test_unit_cost():
    assert ledger.unit_cost(Decimal("100"), 10) == Decimal("10.00")
    assert ledger.unit_cost(Decimal("10"), 3) == Decimal("3.33")
    assert ledger.unit_cost(Decimal("10"), 0) == Decimal("0.00")
