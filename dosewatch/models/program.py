"""
Modelo de Programa de salud
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, Table
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from dosewatch.core.database import Base


class ProgramStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class SessionFrequency(str, enum.Enum):
    """Frecuencia esperada de asistencia a sesiones"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


program_medications = Table(
    "program_medications",
    Base.metadata,
    Column("program_id", Integer, ForeignKey("programs.id", ondelete="CASCADE"), primary_key=True),
    Column("medication_id", Integer, ForeignKey("medications.id", ondelete="CASCADE"), primary_key=True),
)


class Program(Base):
    """Modelo de Programa"""
    __tablename__ = "programs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(ProgramStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ProgramStatus.ACTIVE,
        index=True
    )
    session_frequency = Column(
        Enum(SessionFrequency, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SessionFrequency.WEEKLY
    )

    # Metadatos
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relaciones
    medications = relationship("Medication", secondary=program_medications, back_populates="programs")
    enrollments = relationship("PatientEnrollment", back_populates="program", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Program(id={self.id}, name='{self.name}')>"

    @property
    def active_medications(self):
        return [m for m in self.medications if m.is_active]
