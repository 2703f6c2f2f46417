"""
Typed exceptions for the warehouse service

Every error carries a machine readable ``code`` and the HTTP status the API
answers with, so route handlers never translate messages themselves:

    WMSError
    +-- ValidationError               400 validation_error
    +-- BusinessRuleError             400
    |   +-- InsufficientStockError        insufficient_stock
    |   +-- MaterialUnavailableError      material_unavailable
    |   +-- OrderNotCompletedError        order_not_completed
    |   +-- InvalidStatusTransitionError  invalid_status_transition
    +-- UnauthorizedError             401 unauthorized
    +-- ForbiddenError                403 forbidden
    +-- NotFoundError                 404 not_found
    |   +-- OrderNotFoundError
    +-- ConflictError                 409 conflict
    |   +-- DuplicateInvoiceError         duplicate_invoice
    +-- StorageError                  500 storage_error
        +-- LedgerOperationFailed         ledger_operation_failed
"""

from typing import Any, Optional


class WMSError(Exception):
    """Base class of all domain errors"""

    code: str = "wms_error"
    status_code: int = 400

    def __init__(self, message: str, **data: Any):
        super().__init__(message)
        self.message = message
        self.data = data

    def __str__(self) -> str:
        return self.message


class ValidationError(WMSError):
    code = "validation_error"
    status_code = 400


class BusinessRuleError(WMSError):
    code = "business_rule"
    status_code = 400


class InsufficientStockError(BusinessRuleError):
    code = "insufficient_stock"

    def __init__(self, material_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for material {material_id}: available {available}, requested {requested}",
            material_id=material_id,
            available=available,
            requested=requested,
        )
        self.material_id = material_id
        self.available = available
        self.requested = requested


class MaterialUnavailableError(BusinessRuleError):
    code = "material_unavailable"

    def __init__(self, material_id: int, status: str):
        super().__init__(
            f"Material {material_id} is not available (status: {status})",
            material_id=material_id,
            status=status,
        )
        self.material_id = material_id
        self.status = status


class OrderNotCompletedError(BusinessRuleError):
    code = "order_not_completed"

    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found or not completed", order_id=order_id)
        self.order_id = order_id


class InvalidStatusTransitionError(BusinessRuleError):
    code = "invalid_status_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change status from '{current}' to '{requested}'",
            current=current,
            requested=requested,
        )
        self.current = current
        self.requested = requested


class UnauthorizedError(WMSError):
    code = "unauthorized"
    status_code = 401


class ForbiddenError(WMSError):
    code = "forbidden"
    status_code = 403


class NotFoundError(WMSError):
    code = "not_found"
    status_code = 404

    def __init__(self, resource: str, resource_id: Optional[Any] = None):
        if resource_id is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} {resource_id} not found"
        super().__init__(message, resource=resource, resource_id=resource_id)
        self.resource = resource
        self.resource_id = resource_id


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int):
        super().__init__("Order", order_id)
        self.order_id = order_id


class ConflictError(WMSError):
    code = "conflict"
    status_code = 409


class DuplicateInvoiceError(ConflictError):
    code = "duplicate_invoice"

    def __init__(self, order_id: int):
        super().__init__(f"An invoice already exists for order {order_id}", order_id=order_id)
        self.order_id = order_id


class StorageError(WMSError):
    code = "storage_error"
    status_code = 500


class LedgerOperationFailed(StorageError):
    code = "ledger_operation_failed"
