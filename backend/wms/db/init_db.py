import asyncio
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.auth.security import get_password_hash
from wms.core.config import settings
from wms.db.session import engine, SessionLocal
from wms.db.base import Base

# Import every model so the tables are registered on the metadata
from wms.models import (  # noqa: F401
    User, Warehouse, Material, StockMovement, Order, OrderItem,
    Invoice, InvoiceItem, InventoryCount, Notification, MaintenanceRequest
)

logger = logging.getLogger(__name__)


async def ensure_tables_exist() -> None:
    """
    Create missing tables (called at application startup)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ensure_admin(db: AsyncSession) -> bool:
    """Create the first admin account when the user table is empty"""
    result = await db.execute(select(func.count(User.id)))
    if result.scalar():
        return False

    db.add(User(
        username=settings.FIRST_ADMIN_USERNAME,
        password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
        name="Administrator",
        user_type="admin",
        is_active=True,
    ))
    await db.commit()
    logger.info(f"Created initial admin user '{settings.FIRST_ADMIN_USERNAME}'")
    return True


async def init_db() -> None:
    await ensure_tables_exist()
    async with SessionLocal() as db:
        await ensure_admin(db)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_db())
