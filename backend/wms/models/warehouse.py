from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, DECIMAL, Text
from sqlalchemy.orm import relationship

from wms.db.base import Base


class Warehouse(Base):
    """Warehouse

    type:
    - main: main store
    - cutting: cutting floor
    - sorting: sorting floor
    - safekeeping: customer safekeeping
    """
    __tablename__ = "warehouses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False, default="main", comment="Warehouse type")
    # Advisory only, never enforced
    capacity = Column(DECIMAL(12, 2), comment="Capacity by weight")
    location = Column(Text, comment="Location")
    manager_id = Column(Integer, ForeignKey("users.id"), index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    manager = relationship("User", foreign_keys=[manager_id])

    def __repr__(self):
        return f"<Warehouse {self.name} ({self.type})>"

    @property
    def type_display(self) -> str:
        type_map = {
            "main": "Main",
            "cutting": "Cutting",
            "sorting": "Sorting",
            "safekeeping": "Safekeeping",
        }
        return type_map.get(self.type, self.type)
