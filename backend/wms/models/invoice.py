"""
Invoices

subtotal, tax and total_amount are derived from the items and written only
by ``wms.services.invoice_engine.recompute_totals``.
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, DECIMAL, Text
from sqlalchemy.orm import relationship

from wms.db.base import Base

INVOICE_STATUSES = ("draft", "approved", "paid", "delivered", "cancelled")


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    # At most one invoice per order
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False, index=True)

    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20))
    customer_address = Column(Text)

    subtotal = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    cutting_fee = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    discount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    tax = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    total_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))

    status = Column(String(20), nullable=False, default="draft", index=True)
    notes = Column(Text)

    created_by = Column(Integer, ForeignKey("users.id"))
    approved_by = Column(Integer, ForeignKey("users.id"))
    approved_at = Column(DateTime)
    paid_at = Column(DateTime)
    delivered_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship("InvoiceItem", back_populates="invoice", order_by="InvoiceItem.id")
    order = relationship("Order", foreign_keys=[order_id])

    def __repr__(self):
        return f"<Invoice {self.invoice_number} ({self.status})>"

    @property
    def status_display(self) -> str:
        status_map = {
            "draft": "Draft",
            "approved": "Approved",
            "paid": "Paid",
            "delivered": "Delivered",
            "cancelled": "Cancelled",
        }
        return status_map.get(self.status, self.status)


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), comment="Optional material link")
    material_name = Column(String(100), nullable=False)
    description = Column(Text)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(DECIMAL(12, 2), nullable=False)
    total_price = Column(DECIMAL(12, 2), nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    invoice = relationship("Invoice", back_populates="items")

    def __repr__(self):
        return f"<InvoiceItem {self.invoice_id}:{self.material_name} x{self.quantity}>"
