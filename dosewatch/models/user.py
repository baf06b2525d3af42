"""
Modelo de Usuario (personal de la clínica)
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
import enum

from dosewatch.core.database import Base


class UserRole(str, enum.Enum):
    """Roles de usuario"""
    ADMIN = "Admin"
    HEALTHCARE_STAFF = "Healthcare Staff"


class User(Base):
    """Modelo de Usuario"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)

    role = Column(
        Enum(UserRole, name="userrole", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.HEALTHCARE_STAFF
    )

    is_active = Column(Boolean, default=True)

    # Metadatos
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
