"""
Materials and the stock movement ledger

Material.quantity and Material.status are written only by
``wms.services.ledger``; every quantity change there appends exactly one
StockMovement row.
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, DECIMAL, Text, CheckConstraint
from sqlalchemy.orm import relationship

from wms.db.base import Base


class Material(Base):
    """Material - one stock line in one warehouse"""
    __tablename__ = "materials"
    # AUTOINCREMENT: a deleted id must never come back, its movements stay behind
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_material_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    weight = Column(DECIMAL(12, 3), comment="Weight per unit")
    quantity = Column(Integer, nullable=False, default=0, comment="Units on hand")
    length = Column(DECIMAL(10, 2), comment="Length")
    width = Column(DECIMAL(10, 2), comment="Width")
    type = Column(String(50), comment="Material type")
    grammage = Column(DECIMAL(10, 2), comment="Grammage")
    invoice_number = Column(String(50), comment="Supplier invoice number")
    quality = Column(String(50), comment="Quality grade")
    roll_number = Column(String(50), comment="Roll number")
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    source = Column(String(100), comment="Supplier / origin")
    cost = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Total cost of the stock line")
    # available / reserved / damaged / expired
    status = Column(String(20), nullable=False, default="available", index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    warehouse = relationship("Warehouse", foreign_keys=[warehouse_id])

    def __repr__(self):
        return f"<Material {self.name} @ {self.warehouse_id} = {self.quantity}>"

    @property
    def total_weight(self) -> Decimal:
        return (self.weight or Decimal("0")) * (self.quantity or 0)


class StockMovement(Base):
    """Stock movement - append-only audit of quantity changes"""
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), index=True)

    # in / out / transfer_in / transfer_out / adjustment
    movement_type = Column(String(20), nullable=False, comment="Movement type")
    # Signed for adjustments, positive otherwise
    quantity = Column(Integer, nullable=False, comment="Units moved")
    weight = Column(DECIMAL(12, 3), comment="Weight moved")
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)

    # order / transfer / inventory_count / material_creation
    reference_type = Column(String(30), comment="Reference kind")
    reference_id = Column(Integer, comment="Referenced row id")
    notes = Column(Text)

    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=datetime.utcnow)

    material = relationship("Material", foreign_keys=[material_id])
    warehouse = relationship("Warehouse", foreign_keys=[warehouse_id])

    def __repr__(self):
        return f"<StockMovement {self.movement_type} {self.material_id} {self.quantity}>"

    @property
    def type_display(self) -> str:
        type_map = {
            "in": "Stock in",
            "out": "Stock out",
            "transfer_in": "Transfer in",
            "transfer_out": "Transfer out",
            "adjustment": "Adjustment",
        }
        return type_map.get(self.movement_type, self.movement_type)
