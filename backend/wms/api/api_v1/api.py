"""API v1 router aggregation"""
from fastapi import APIRouter

from wms.api.api_v1.endpoints import (
    auth, users, warehouses, materials, orders, invoices,
    inventory, notifications, maintenance
)

api_router = APIRouter()

# Access
api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])

# Stock
api_router.include_router(warehouses.router, prefix="/warehouses", tags=["Warehouses"])
api_router.include_router(materials.router, prefix="/materials", tags=["Materials"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["Inventory counts"])

# Sales
api_router.include_router(orders.router, prefix="/orders", tags=["Orders"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])

# Operations
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(maintenance.router, prefix="/maintenance", tags=["Maintenance"])
