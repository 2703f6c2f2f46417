import asyncio
import os
import tempfile
from decimal import Decimal

import pytest

# Settings are read at import time
_RUNTIME_DIR = tempfile.mkdtemp(prefix="wms-tests-")
os.environ.setdefault("SQLITE_DATABASE_URI", f"sqlite:///{_RUNTIME_DIR}/app.db")
os.environ.setdefault("LOG_DIR", os.path.join(_RUNTIME_DIR, "logs"))
os.environ["LOW_STOCK_SCAN_ENABLED"] = "false"

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

import wms.models  # noqa: F401
from wms.core.auth.security import create_access_token
from wms.core.deps import get_db
from wms.db.base import Base
from wms.main import app
from wms.models import Material, User, Warehouse
from wms.services import ledger


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    asyncio.run(engine.dispose())


@pytest.fixture()
def run_db(session_factory):
    """Run ``fn(db)`` to completion in a fresh session"""

    def runner(fn):
        async def go():
            async with session_factory() as db:
                return await fn(db)

        return asyncio.run(go())

    return runner


@pytest.fixture()
def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user_id: int, role: str) -> dict:
    token = create_access_token({"sub": str(user_id), "role": role})
    return {"Authorization": f"Bearer {token}"}


async def add_user(db, username: str, user_type: str, password: str = "not-a-hash", is_active: bool = True) -> User:
    user = User(
        username=username,
        password=password,
        name=username.title(),
        user_type=user_type,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    return user


async def add_warehouse(db, name: str = "Main", type: str = "main", capacity=None) -> Warehouse:
    warehouse = Warehouse(name=name, type=type, capacity=capacity, is_active=True)
    db.add(warehouse)
    await db.commit()
    return warehouse


async def add_material(db, warehouse_id: int, name: str, quantity: int, cost="0", weight=None) -> Material:
    entry = await ledger.intake(
        db,
        Material(
            name=name,
            quantity=quantity,
            cost=Decimal(str(cost)),
            weight=Decimal(str(weight)) if weight is not None else None,
            warehouse_id=warehouse_id,
            status="available",
        ),
    )
    await db.commit()
    return entry.material


@pytest.fixture()
def staff(run_db):
    """One user per commonly used role, with request headers"""

    async def seed(db):
        users = {}
        for role in ("admin", "warehouse_manager", "accountant", "sales"):
            user = await add_user(db, role, role)
            users[role] = user.id
        return users

    ids = run_db(seed)
    return {role: {"id": user_id, "headers": auth_headers(user_id, role)} for role, user_id in ids.items()}


@pytest.fixture()
def stock(run_db):
    """Main warehouse with X (10 units, cost 100) and Y (3 units, cost 30)"""

    async def seed(db):
        warehouse = await add_warehouse(db, "Main", "main", capacity=Decimal("1000"))
        x = await add_material(db, warehouse.id, "Paper X", 10, cost="100", weight="2.5")
        y = await add_material(db, warehouse.id, "Paper Y", 3, cost="30", weight="1")
        return {"warehouse": warehouse.id, "x": x.id, "y": y.id}

    return run_db(seed)


async def material_state(db, material_id: int):
    material = await db.get(Material, material_id, populate_existing=True)
    return material.quantity, material.status
