"""
Modelo de Registro de actividad
"""
from sqlalchemy import Column, Integer, Text, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.sql import func
import enum

from dosewatch.core.database import Base


class ActivityType(str, enum.Enum):
    """Tipos de actividad"""
    MEDICATION = "medication"
    ATTENDANCE = "attendance"


class ActivityLog(Base):
    """Modelo de Registro de actividad"""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(Enum(ActivityType), nullable=False)
    description = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    details = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
