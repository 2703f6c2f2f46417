from sqlalchemy import select

from tests.conftest import material_state
from wms.models import StockMovement

API = "/api/v1"


def record(client, headers, warehouse_id, material_id, counted):
    return client.post(f"{API}/inventory/count", json={
        "warehouse_id": warehouse_id,
        "material_id": material_id,
        "counted_quantity": counted,
    }, headers=headers)


def test_count_records_variance_without_touching_stock(client, staff, stock, run_db):
    response = record(client, staff["warehouse_manager"]["headers"], stock["warehouse"], stock["x"], 7)
    assert response.status_code == 201
    count = response.json()
    assert count["status"] == "pending"
    assert count["system_quantity"] == 10
    assert count["variance"] == -3
    assert count["material_name"] == "Paper X"

    async def check(db):
        return await material_state(db, stock["x"])

    assert run_db(check) == (10, "available")


def test_approve_books_adjustment(client, staff, stock, run_db):
    manager = staff["warehouse_manager"]
    count = record(client, manager["headers"], stock["warehouse"], stock["x"], 7).json()

    response = client.put(f"{API}/inventory/counts/{count['id']}/approve", headers=manager["headers"])
    assert response.status_code == 200
    approved = response.json()
    assert approved["status"] == "approved"
    assert approved["approved_by"] == manager["id"]
    assert approved["variance"] == -3

    async def check(db):
        result = await db.execute(
            select(StockMovement)
            .where(StockMovement.material_id == stock["x"], StockMovement.movement_type == "adjustment")
        )
        return await material_state(db, stock["x"]), result.scalars().all()

    state, adjustments = run_db(check)
    assert state == (7, "available")
    assert len(adjustments) == 1
    assert adjustments[0].quantity == -3
    assert adjustments[0].reference_type == "inventory_count"
    assert adjustments[0].reference_id == count["id"]

    again = client.put(f"{API}/inventory/counts/{count['id']}/approve", headers=manager["headers"])
    assert again.status_code == 409


def test_variance_is_taken_against_current_stock(client, staff, stock, run_db):
    manager = staff["warehouse_manager"]
    count = record(client, manager["headers"], stock["warehouse"], stock["x"], 8).json()

    # stock moves between counting and approval
    client.post(f"{API}/orders/", json={
        "customer_name": "Acme", "delivery_method": "direct",
        "items": [{"material_id": stock["x"], "quantity": 4}],
    }, headers=staff["sales"]["headers"])

    approved = client.put(f"{API}/inventory/counts/{count['id']}/approve", headers=manager["headers"]).json()
    assert approved["system_quantity"] == 6
    assert approved["variance"] == 2

    async def check(db):
        return await material_state(db, stock["x"])

    assert run_db(check)[0] == 8


def test_matching_count_books_nothing(client, staff, stock, run_db):
    manager = staff["warehouse_manager"]
    count = record(client, manager["headers"], stock["warehouse"], stock["y"], 3).json()
    approved = client.put(f"{API}/inventory/counts/{count['id']}/approve", headers=manager["headers"]).json()
    assert approved["variance"] == 0

    async def check(db):
        result = await db.execute(
            select(StockMovement).where(StockMovement.movement_type == "adjustment")
        )
        return result.scalars().all()

    assert run_db(check) == []


def test_count_session_then_approve(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    response = client.post(f"{API}/inventory/count-session", json={
        "warehouse_id": stock["warehouse"],
        "material_ids": [stock["x"], stock["y"], stock["x"]],
    }, headers=headers)
    assert response.status_code == 201
    counts = response.json()
    assert [c["material_id"] for c in counts] == [stock["x"], stock["y"]]
    assert all(c["counted_quantity"] is None for c in counts)

    uncounted = client.put(f"{API}/inventory/counts/{counts[1]['id']}/approve", headers=headers)
    assert uncounted.status_code == 400

    approved = client.put(f"{API}/inventory/counts/{counts[1]['id']}/approve",
                          json={"counted_quantity": 5, "notes": "Found a roll"}, headers=headers)
    assert approved.status_code == 200
    body = approved.json()
    assert body["counted_quantity"] == 5
    assert body["variance"] == 2
    assert body["notes"] == "Found a roll"

    listing = client.get(f"{API}/inventory/counts", params={"status": "pending"}, headers=headers).json()
    assert [c["id"] for c in listing["data"]] == [counts[0]["id"]]


def test_count_rejects_material_from_other_warehouse(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    other = client.post(f"{API}/warehouses/", json={"name": "Sorting", "type": "sorting"}, headers=headers).json()
    response = record(client, headers, other["id"], stock["x"], 1)
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"

    missing = record(client, headers, stock["warehouse"], 999, 1)
    assert missing.status_code == 404
    assert client.put(f"{API}/inventory/counts/999/approve", headers=headers).status_code == 404
