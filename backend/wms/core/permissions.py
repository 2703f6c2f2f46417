"""
Role permissions

A static, read-only table from role to the set of permissions it grants.
Notification audiences are expressed as ``notify_*`` capabilities in the
same table, so the workflow never carries role lists of its own.
"""

from types import MappingProxyType
from typing import FrozenSet, List, Mapping

# Roles
ADMIN = "admin"
WAREHOUSE_MANAGER = "warehouse_manager"
CUTTING_MANAGER = "cutting_manager"
SORTING_MANAGER = "sorting_manager"
ACCOUNTANT = "accountant"
ORDER_TRACKER = "order_tracker"
DELIVERY_MANAGER = "delivery_manager"
SALES = "sales"

ROLES = (
    ADMIN, WAREHOUSE_MANAGER, CUTTING_MANAGER, SORTING_MANAGER,
    ACCOUNTANT, ORDER_TRACKER, DELIVERY_MANAGER, SALES,
)

# Permissions
MANAGE_USERS = "manage_users"
MANAGE_WAREHOUSES = "manage_warehouses"
MANAGE_MATERIALS = "manage_materials"
MANAGE_ORDERS = "manage_orders"
MANAGE_INVOICES = "manage_invoices"
VIEW_REPORTS = "view_reports"
MANAGE_SETTINGS = "manage_settings"
TRANSFER_MATERIALS = "transfer_materials"
APPROVE_ORDERS = "approve_orders"
DELETE_DATA = "delete_data"
EXPORT_DATA = "export_data"

# Notification subscriptions
NOTIFY_ORDERS = "notify_orders"
NOTIFY_INVOICES = "notify_invoices"
NOTIFY_STOCK = "notify_stock"
NOTIFY_MAINTENANCE = "notify_maintenance"

PERMISSION_LABELS = {
    MANAGE_USERS: "Manage users",
    MANAGE_WAREHOUSES: "Manage warehouses",
    MANAGE_MATERIALS: "Manage materials",
    MANAGE_ORDERS: "Manage orders",
    MANAGE_INVOICES: "Manage invoices",
    VIEW_REPORTS: "View reports",
    MANAGE_SETTINGS: "Manage settings",
    TRANSFER_MATERIALS: "Transfer materials",
    APPROVE_ORDERS: "Approve orders",
    DELETE_DATA: "Delete data",
    EXPORT_DATA: "Export data",
    NOTIFY_ORDERS: "Order notifications",
    NOTIFY_INVOICES: "Invoice notifications",
    NOTIFY_STOCK: "Stock notifications",
    NOTIFY_MAINTENANCE: "Maintenance notifications",
}

ROLE_PERMISSIONS: Mapping[str, FrozenSet[str]] = MappingProxyType({
    ADMIN: frozenset({
        MANAGE_USERS, MANAGE_WAREHOUSES, MANAGE_MATERIALS, MANAGE_ORDERS,
        MANAGE_INVOICES, VIEW_REPORTS, MANAGE_SETTINGS, TRANSFER_MATERIALS,
        APPROVE_ORDERS, DELETE_DATA, EXPORT_DATA,
        NOTIFY_ORDERS, NOTIFY_INVOICES, NOTIFY_STOCK, NOTIFY_MAINTENANCE,
    }),
    WAREHOUSE_MANAGER: frozenset({
        MANAGE_WAREHOUSES, MANAGE_MATERIALS, TRANSFER_MATERIALS, VIEW_REPORTS,
        NOTIFY_ORDERS, NOTIFY_STOCK,
    }),
    CUTTING_MANAGER: frozenset({
        MANAGE_MATERIALS, MANAGE_ORDERS, VIEW_REPORTS, APPROVE_ORDERS,
        NOTIFY_ORDERS,
    }),
    SORTING_MANAGER: frozenset({
        MANAGE_MATERIALS, MANAGE_ORDERS, VIEW_REPORTS, APPROVE_ORDERS,
        NOTIFY_ORDERS,
    }),
    ACCOUNTANT: frozenset({
        MANAGE_INVOICES, VIEW_REPORTS, EXPORT_DATA, MANAGE_ORDERS,
        NOTIFY_INVOICES,
    }),
    ORDER_TRACKER: frozenset({MANAGE_ORDERS, VIEW_REPORTS}),
    DELIVERY_MANAGER: frozenset({MANAGE_ORDERS, MANAGE_INVOICES, VIEW_REPORTS}),
    SALES: frozenset({MANAGE_ORDERS, VIEW_REPORTS}),
})


def permissions_for(role: str) -> FrozenSet[str]:
    """Permissions granted to a role; unknown roles get nothing"""
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: str, permission: str) -> bool:
    return permission in permissions_for(role)


def roles_with(permission: str) -> List[str]:
    """Roles holding a permission, in declaration order"""
    return [role for role in ROLES if permission in ROLE_PERMISSIONS[role]]
