from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from wms.db.base import Base


class InventoryCount(Base):
    """Physical count of one material; approval applies the variance"""
    __tablename__ = "inventory_counts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    # NULL until counted when created by a count session
    counted_quantity = Column(Integer)
    system_quantity = Column(Integer, nullable=False)
    variance = Column(Integer, comment="counted - system")
    status = Column(String(20), nullable=False, default="pending", index=True)
    notes = Column(Text)
    counted_by = Column(Integer, ForeignKey("users.id"))
    approved_by = Column(Integer, ForeignKey("users.id"))
    approved_at = Column(DateTime)
    count_date = Column(DateTime, default=datetime.utcnow)

    material = relationship("Material", foreign_keys=[material_id])
    warehouse = relationship("Warehouse", foreign_keys=[warehouse_id])

    def __repr__(self):
        return f"<InventoryCount {self.material_id} {self.counted_quantity}/{self.system_quantity}>"
