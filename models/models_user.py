import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime
from db import Base

STAFF_ROLES = ("staff", "coordinator", "admin", "super_admin")


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    role = Column(String(32), nullable=False, default="alumni")
    tenant_id = Column(String(36), index=True, nullable=True)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=False), default=datetime.utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES
