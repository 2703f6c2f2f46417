"""
Orders

Status flow:
pending -> processing -> sorting -> cutting -> completed
cancelled can be reached from any non-terminal state.
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, DECIMAL, Text
from sqlalchemy.orm import relationship

from wms.db.base import Base

ORDER_STATUSES = ("pending", "processing", "sorting", "cutting", "completed", "cancelled")
TERMINAL_ORDER_STATUSES = ("completed", "cancelled")
DELIVERY_METHODS = ("direct", "sort_then_delivery", "cut_then_delivery", "sort_cut_delivery")


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True, comment="Order number")

    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20))
    customer_address = Column(Text)
    plate_count = Column(Integer, comment="Number of plates")

    delivery_method = Column(String(30), nullable=False, default="direct", comment="Delivery method")
    status = Column(String(20), nullable=False, default="pending", index=True)

    total_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Items total plus cutting fee")
    cutting_fee = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Cutting fee")
    notes = Column(Text)

    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, comment="Completion time")

    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")
    creator = relationship("User", foreign_keys=[created_by])

    def __repr__(self):
        return f"<Order {self.order_number} ({self.status})>"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    @property
    def requires_cutting(self) -> bool:
        return "cut" in (self.delivery_method or "")

    @property
    def status_display(self) -> str:
        status_map = {
            "pending": "Pending",
            "processing": "Processing",
            "sorting": "Sorting",
            "cutting": "Cutting",
            "completed": "Completed",
            "cancelled": "Cancelled",
        }
        return status_map.get(self.status, self.status)

    @property
    def delivery_method_display(self) -> str:
        method_map = {
            "direct": "Direct delivery",
            "sort_then_delivery": "Sort then deliver",
            "cut_then_delivery": "Cut then deliver",
            "sort_cut_delivery": "Sort, cut and deliver",
        }
        return method_map.get(self.delivery_method, self.delivery_method)


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    # Units still held from the ledger for this line; cleared on completion or cancellation
    reserved_quantity = Column(Integer, nullable=False, default=0)
    weight = Column(DECIMAL(12, 3), comment="Line weight")
    unit_price = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    total_price = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="items")
    material = relationship("Material", foreign_keys=[material_id])

    def __repr__(self):
        return f"<OrderItem {self.order_id}:{self.material_id} x{self.quantity}>"
