API = "/api/v1"


def test_create_material_records_intake(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    response = client.post(f"{API}/materials/", json={
        "name": "Paper Z",
        "warehouse_id": stock["warehouse"],
        "quantity": 20,
        "weight": 1.5,
        "cost": 200,
    }, headers=headers)
    assert response.status_code == 201
    material = response.json()
    assert material["status"] == "available"
    assert material["warehouse_name"] == "Main"
    assert material["total_weight"] == 30.0

    movements = client.get(f"{API}/materials/{material['id']}/movements", headers=headers).json()
    assert len(movements) == 1
    assert movements[0]["movement_type"] == "in"
    assert movements[0]["quantity"] == 20
    assert (movements[0]["quantity_before"], movements[0]["quantity_after"]) == (0, 20)


def test_create_material_in_missing_warehouse(client, staff):
    response = client.post(f"{API}/materials/", json={
        "name": "Paper Z", "warehouse_id": 999, "quantity": 1,
    }, headers=staff["warehouse_manager"]["headers"])
    assert response.status_code == 404


def test_update_keeps_quantity(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    response = client.put(f"{API}/materials/{stock['x']}",
                          json={"name": "Paper X2", "quantity": 500}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Paper X2"
    assert body["quantity"] == 10


def test_material_status_change(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    response = client.patch(f"{API}/materials/{stock['y']}/status", json={"status": "damaged"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "damaged"
    assert response.json()["quantity"] == 3

    # damaged stock cannot be ordered
    order = client.post(f"{API}/orders/", json={
        "customer_name": "Acme", "delivery_method": "direct",
        "items": [{"material_id": stock["y"], "quantity": 1}],
    }, headers=staff["sales"]["headers"])
    assert order.status_code == 400
    assert order.json()["code"] == "material_unavailable"

    bad = client.patch(f"{API}/materials/{stock['y']}/status", json={"status": "lost"}, headers=headers)
    assert bad.status_code == 400


def test_list_and_low_stock(client, staff, stock):
    headers = staff["sales"]["headers"]
    listing = client.get(f"{API}/materials/", params={"search": "paper"}, headers=headers).json()
    assert listing["total"] == 2

    low = client.get(f"{API}/materials/alerts/low-stock", params={"threshold": 5}, headers=headers).json()
    assert [m["id"] for m in low] == [stock["y"]]


def test_delete_material(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    client.post(f"{API}/orders/", json={
        "customer_name": "Acme", "delivery_method": "direct",
        "items": [{"material_id": stock["x"], "quantity": 1}],
    }, headers=staff["sales"]["headers"])

    referenced = client.delete(f"{API}/materials/{stock['x']}", headers=headers)
    assert referenced.status_code == 409

    assert client.delete(f"{API}/materials/{stock['y']}", headers=headers).status_code == 200
    assert client.get(f"{API}/materials/{stock['y']}", headers=headers).status_code == 404


def test_warehouse_statistics_and_utilization(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    warehouse = client.get(f"{API}/warehouses/{stock['warehouse']}", headers=headers).json()
    assert warehouse["material_count"] == 2
    assert warehouse["total_quantity"] == 13
    assert warehouse["total_weight"] == 28.0
    assert warehouse["total_value"] == 130.0

    utilization = client.get(f"{API}/warehouses/{stock['warehouse']}/utilization", headers=headers).json()
    assert utilization["capacity"] == 1000.0
    assert utilization["utilization"] == 0.028


def test_warehouse_lifecycle(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    created = client.post(f"{API}/warehouses/", json={"name": "Cutting", "type": "cutting"}, headers=headers)
    assert created.status_code == 201
    cutting = created.json()
    assert cutting["material_count"] == 0

    bad_type = client.post(f"{API}/warehouses/", json={"name": "Attic", "type": "attic"}, headers=headers)
    assert bad_type.status_code == 400

    renamed = client.put(f"{API}/warehouses/{cutting['id']}", json={"location": "Hall B"}, headers=headers)
    assert renamed.json()["location"] == "Hall B"

    listing = client.get(f"{API}/warehouses/", headers=headers).json()
    assert listing["total"] == 2

    assert client.delete(f"{API}/warehouses/{stock['warehouse']}", headers=headers).status_code == 409
    assert client.delete(f"{API}/warehouses/{cutting['id']}", headers=headers).status_code == 200
    assert client.get(f"{API}/warehouses/{cutting['id']}", headers=headers).status_code == 404


def test_transfer_endpoint(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    cutting = client.post(f"{API}/warehouses/", json={"name": "Cutting", "type": "cutting"}, headers=headers).json()

    response = client.post(f"{API}/warehouses/transfer", json={
        "material_id": stock["x"],
        "from_warehouse_id": stock["warehouse"],
        "to_warehouse_id": cutting["id"],
        "quantity": 4,
    }, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["source_quantity"] == 6
    assert body["destination_quantity"] == 4

    destination = client.get(f"{API}/materials/{body['destination_material_id']}", headers=headers).json()
    assert destination["name"] == "Paper X"
    assert destination["warehouse_id"] == cutting["id"]
    assert destination["cost"] == 40.0

    too_many = client.post(f"{API}/warehouses/transfer", json={
        "material_id": stock["y"],
        "from_warehouse_id": stock["warehouse"],
        "to_warehouse_id": cutting["id"],
        "quantity": 10,
    }, headers=headers)
    assert too_many.status_code == 400
    assert too_many.json()["code"] == "insufficient_stock"

    forbidden = client.post(f"{API}/warehouses/transfer", json={
        "material_id": stock["x"],
        "from_warehouse_id": stock["warehouse"],
        "to_warehouse_id": cutting["id"],
        "quantity": 1,
    }, headers=staff["sales"]["headers"])
    assert forbidden.status_code == 403


def test_maintenance_requests(client, staff, stock):
    created = client.post(f"{API}/maintenance/", json={
        "warehouse_id": stock["warehouse"], "title": "Broken shelf", "priority": "high",
    }, headers=staff["sales"]["headers"])
    assert created.status_code == 201
    request = created.json()
    assert request["status"] == "pending"

    manager = staff["warehouse_manager"]
    assigned = client.put(f"{API}/maintenance/{request['id']}/assign",
                          json={"assigned_to": manager["id"]}, headers=manager["headers"])
    assert assigned.status_code == 200
    assert assigned.json()["status"] == "in_progress"

    done = client.put(f"{API}/maintenance/{request['id']}/status",
                      json={"status": "completed"}, headers=manager["headers"])
    assert done.json()["completed_date"] is not None

    listing = client.get(f"{API}/maintenance/", headers=manager["headers"]).json()
    assert listing["total"] == 1
    assert client.get(f"{API}/maintenance/", headers=staff["sales"]["headers"]).status_code == 403


def test_deleted_material_id_is_never_reused(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    temp = client.post(f"{API}/materials/", json={
        "name": "Temp", "warehouse_id": stock["warehouse"], "quantity": 7,
    }, headers=headers).json()
    assert client.delete(f"{API}/materials/{temp['id']}", headers=headers).status_code == 200

    fresh = client.post(f"{API}/materials/", json={
        "name": "Fresh", "warehouse_id": stock["warehouse"], "quantity": 2,
    }, headers=headers).json()
    assert fresh["id"] > temp["id"]

    # only its own intake, none of the deleted row's history
    movements = client.get(f"{API}/materials/{fresh['id']}/movements", headers=headers).json()
    assert len(movements) == 1
    assert movements[0]["quantity_after"] == 2


def test_expired_alerts(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    assert client.get(f"{API}/materials/alerts/expired", headers=headers).json() == []

    client.patch(f"{API}/materials/{stock['y']}/status", json={"status": "expired"}, headers=headers)
    expired = client.get(f"{API}/materials/alerts/expired", headers=staff["sales"]["headers"]).json()
    assert [m["id"] for m in expired] == [stock["y"]]
    assert expired[0]["status"] == "expired"


def test_usage_history(client, staff, stock):
    headers = staff["warehouse_manager"]["headers"]
    assert client.get(f"{API}/materials/{stock['x']}/usage-history", headers=headers).json() == []

    order = client.post(f"{API}/orders/", json={
        "customer_name": "Acme", "delivery_method": "direct",
        "items": [{"material_id": stock["x"], "quantity": 4}],
    }, headers=staff["sales"]["headers"]).json()

    history = client.get(f"{API}/materials/{stock['x']}/usage-history", headers=headers).json()
    assert len(history) == 1
    usage = history[0]
    assert usage["order_id"] == order["id"]
    assert usage["order_number"] == order["order_number"]
    assert usage["customer_name"] == "Acme"
    assert usage["order_status"] == "pending"
    assert (usage["used_quantity"], usage["reserved_quantity"]) == (4, 4)
    assert usage["total_price"] == 40.0
    assert usage["order_date"] is not None

    assert client.get(f"{API}/materials/{stock['y']}/usage-history", headers=headers).json() == []
    missing = client.get(f"{API}/materials/999/usage-history", headers=headers)
    assert missing.status_code == 404
