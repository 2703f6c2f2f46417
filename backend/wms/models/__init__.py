from wms.models.user import User
from wms.models.warehouse import Warehouse
from wms.models.material import Material, StockMovement
from wms.models.order import Order, OrderItem
from wms.models.invoice import Invoice, InvoiceItem
from wms.models.inventory_count import InventoryCount
from wms.models.notification import Notification
from wms.models.maintenance import MaintenanceRequest

__all__ = [
    "User",
    "Warehouse",
    "Material",
    "StockMovement",
    "Order",
    "OrderItem",
    "Invoice",
    "InvoiceItem",
    "InventoryCount",
    "Notification",
    "MaintenanceRequest",
]
