from sqlalchemy import select, func

from tests.conftest import add_user
from wms.models import Notification
from wms.services import notifications

API = "/api/v1"


def place_order(client, staff, stock, quantity=1):
    return client.post(f"{API}/orders/", json={
        "customer_name": "Acme", "delivery_method": "direct",
        "items": [{"material_id": stock["x"], "quantity": quantity}],
    }, headers=staff["sales"]["headers"])


def inbox(client, member, **params):
    return client.get(f"{API}/notifications/", params=params, headers=member["headers"]).json()


def test_new_order_reaches_subscribed_roles(client, staff, stock):
    order = place_order(client, staff, stock).json()

    admin_inbox = inbox(client, staff["admin"])
    assert admin_inbox["total"] == 1
    notification = admin_inbox["data"][0]
    assert notification["type"] == "new_order"
    assert notification["related_id"] == order["id"]
    assert notification["data"]["order_number"] == order["order_number"]

    assert inbox(client, staff["warehouse_manager"])["total"] == 1
    assert inbox(client, staff["accountant"])["total"] == 0
    assert inbox(client, staff["sales"])["total"] == 0


def test_inactive_users_are_not_notified(client, staff, stock, run_db):
    async def seed(db):
        return (await add_user(db, "former", "warehouse_manager", is_active=False)).id

    former_id = run_db(seed)
    place_order(client, staff, stock)

    async def check(db):
        result = await db.execute(select(func.count(Notification.id)).where(Notification.user_id == former_id))
        return result.scalar()

    assert run_db(check) == 0


def test_read_state(client, staff, stock):
    admin = staff["admin"]
    place_order(client, staff, stock)
    client.patch(f"{API}/orders/1/status", json={"status": "completed"}, headers=staff["sales"]["headers"])

    unread = client.get(f"{API}/notifications/unread-count", headers=admin["headers"]).json()
    assert unread == {"count": 2}

    newest = inbox(client, admin)["data"][0]
    assert newest["type"] == "order_completed"
    marked = client.put(f"{API}/notifications/{newest['id']}/read", headers=admin["headers"]).json()
    assert marked["is_read"] is True
    assert marked["read_at"] is not None

    listing = inbox(client, admin, unread_only=True)
    assert listing["total"] == 1
    assert listing["unread"] == 1

    client.put(f"{API}/notifications/mark-all-read", headers=admin["headers"])
    assert inbox(client, admin)["unread"] == 0


def test_notifications_are_private(client, staff, stock):
    place_order(client, staff, stock)
    theirs = inbox(client, staff["admin"])["data"][0]
    other = staff["warehouse_manager"]["headers"]
    assert client.put(f"{API}/notifications/{theirs['id']}/read", headers=other).status_code == 404
    assert client.delete(f"{API}/notifications/{theirs['id']}", headers=other).status_code == 404

    mine = staff["admin"]["headers"]
    assert client.delete(f"{API}/notifications/{theirs['id']}", headers=mine).status_code == 200
    assert inbox(client, staff["admin"])["total"] == 0


def test_sweep_low_stock_reports_once(run_db, staff, stock):
    async def sweep(db):
        return await notifications.sweep_low_stock(db, threshold=5)

    # only Y (3 units) is at or below 5
    assert run_db(sweep) == 1
    assert run_db(sweep) == 0

    async def alerts(db):
        result = await db.execute(
            select(Notification).where(Notification.type == "low_stock").order_by(Notification.user_id)
        )
        return result.scalars().all()

    rows = run_db(alerts)
    assert [n.user_id for n in rows] == [staff["admin"]["id"], staff["warehouse_manager"]["id"]]
    assert all(n.related_id == stock["y"] for n in rows)

    async def read_all(db):
        for n in await alerts(db):
            n.is_read = True
        await db.commit()

    run_db(read_all)
    assert run_db(sweep) == 1


def test_emit_without_subscribers(run_db, stock):
    async def scenario(db):
        return await notifications.emit(db, "unknown_event", "Title", "Message")

    assert run_db(scenario) == 0
