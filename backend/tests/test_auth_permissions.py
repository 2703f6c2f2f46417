from datetime import timedelta

import pytest

from tests.conftest import add_user, auth_headers
from wms.core.auth.security import create_access_token, get_password_hash, verify_password
from wms.core.permissions import (
    ADMIN, ACCOUNTANT, MANAGE_INVOICES, MANAGE_USERS, NOTIFY_ORDERS, NOTIFY_STOCK, PERMISSION_LABELS,
    ROLE_PERMISSIONS, ROLES, SALES, WAREHOUSE_MANAGER, has_permission, permissions_for, roles_with,
)

API = "/api/v1"


@pytest.fixture()
def clerk(run_db):
    async def seed(db):
        active = await add_user(db, "clerk", "warehouse_manager", password=get_password_hash("s3cret!"))
        retired = await add_user(db, "retired", "sales", password=get_password_hash("s3cret!"), is_active=False)
        return active.id, retired.id

    return run_db(seed)


def test_password_hashing():
    hashed = get_password_hash("s3cret!")
    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)
    # unknown hash formats never authenticate
    assert not verify_password("s3cret!", "plain-text")


def test_login_returns_token_and_user(client, clerk):
    response = client.post(f"{API}/auth/login", json={"username": "clerk", "password": "s3cret!"})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["username"] == "clerk"
    assert "manage_warehouses" in body["user"]["permissions"]

    headers = {"Authorization": f"Bearer {body['access_token']}"}
    me = client.get(f"{API}/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["id"] == clerk[0]

    permissions = client.get(f"{API}/auth/permissions", headers=headers).json()
    assert [p["name"] for p in permissions] == sorted(ROLE_PERMISSIONS[WAREHOUSE_MANAGER])
    labels = {p["name"]: p["label"] for p in permissions}
    assert labels["manage_warehouses"] == PERMISSION_LABELS["manage_warehouses"]
    assert all(p["label"] for p in permissions)


def test_login_failures(client, clerk):
    wrong = client.post(f"{API}/auth/login", json={"username": "clerk", "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json()["code"] == "unauthorized"
    assert wrong.headers["www-authenticate"] == "Bearer"

    unknown = client.post(f"{API}/auth/login", json={"username": "ghost", "password": "s3cret!"})
    assert unknown.status_code == 401

    disabled = client.post(f"{API}/auth/login", json={"username": "retired", "password": "s3cret!"})
    assert disabled.status_code == 403

    empty = client.post(f"{API}/auth/login", json={"username": "", "password": ""})
    assert empty.status_code == 400


def test_missing_or_bad_token(client, stock):
    anonymous = client.get(f"{API}/orders/")
    assert anonymous.status_code == 401
    assert anonymous.json()["code"] == "unauthorized"

    garbage = client.get(f"{API}/orders/", headers={"Authorization": "Bearer not-a-token"})
    assert garbage.status_code == 401

    expired = create_access_token({"sub": "1", "role": ADMIN}, expires_delta=timedelta(minutes=-5))
    response = client.get(f"{API}/orders/", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401

    no_role = create_access_token({"sub": "1"})
    response = client.get(f"{API}/orders/", headers={"Authorization": f"Bearer {no_role}"})
    assert response.status_code == 401


def test_permission_gates(client, staff, stock):
    sales = staff["sales"]["headers"]
    assert client.get(f"{API}/invoices/", headers=sales).status_code == 403
    assert client.get(f"{API}/users/", headers=sales).status_code == 403
    assert client.get(f"{API}/orders/", headers=sales).status_code == 200

    accountant = staff["accountant"]["headers"]
    assert client.get(f"{API}/invoices/", headers=accountant).status_code == 200
    assert client.post(f"{API}/warehouses/", json={"name": "Annex", "type": "main"},
                       headers=accountant).status_code == 403

    # unknown roles get nothing
    stranger = auth_headers(999, "intern")
    assert client.get(f"{API}/orders/", headers=stranger).status_code == 403


def test_permission_table():
    assert set(ROLE_PERMISSIONS) == set(ROLES)
    every = set().union(*ROLE_PERMISSIONS.values())
    assert permissions_for(ADMIN) == every
    assert has_permission(ACCOUNTANT, MANAGE_INVOICES)
    assert not has_permission(SALES, MANAGE_INVOICES)
    assert permissions_for("intern") == frozenset()
    assert roles_with(MANAGE_USERS) == [ADMIN]
    assert roles_with(NOTIFY_STOCK) == [ADMIN, WAREHOUSE_MANAGER]
    assert ACCOUNTANT not in roles_with(NOTIFY_ORDERS)
    with pytest.raises(TypeError):
        ROLE_PERMISSIONS[SALES] = frozenset()


def test_user_management(client, staff):
    admin = staff["admin"]["headers"]
    created = client.post(f"{API}/users/", json={
        "username": "cutter", "name": "Cutter", "user_type": "cutting_manager", "password": "secret1",
    }, headers=admin)
    assert created.status_code == 201
    user_id = created.json()["id"]

    duplicate = client.post(f"{API}/users/", json={
        "username": "cutter", "name": "Other", "user_type": "sales", "password": "secret1",
    }, headers=admin)
    assert duplicate.status_code == 409

    login = client.post(f"{API}/auth/login", json={"username": "cutter", "password": "secret1"})
    assert login.status_code == 200
    own = {"Authorization": f"Bearer {login.json()['access_token']}"}

    assert client.get(f"{API}/users/{user_id}", headers=own).status_code == 200
    assert client.get(f"{API}/users/{staff['admin']['id']}", headers=own).status_code == 403

    bad_change = client.put(f"{API}/users/{user_id}/password",
                            json={"current_password": "wrong", "new_password": "secret2"}, headers=own)
    assert bad_change.status_code == 400
    good_change = client.put(f"{API}/users/{user_id}/password",
                             json={"current_password": "secret1", "new_password": "secret2"}, headers=own)
    assert good_change.status_code == 200

    assert client.delete(f"{API}/users/{user_id}", headers=admin).status_code == 200
    relogin = client.post(f"{API}/auth/login", json={"username": "cutter", "password": "secret2"})
    assert relogin.status_code == 403

    assert client.delete(f"{API}/users/{staff['admin']['id']}", headers=admin).status_code == 400
