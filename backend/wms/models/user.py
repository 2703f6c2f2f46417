from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime

from wms.db.base import Base
from wms.core.permissions import permissions_for


class User(Base):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False, comment="bcrypt hash")
    name = Column(String(100), nullable=False)
    email = Column(String(100), comment="Email")
    phone = Column(String(20), comment="Phone")
    user_type = Column(String(30), nullable=False, default="sales", comment="Role")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<User {self.username} ({self.user_type})>"

    @property
    def permissions(self):
        return permissions_for(self.user_type)
