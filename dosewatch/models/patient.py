"""
Modelo de Paciente
"""
from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from dosewatch.core.database import Base


class PatientStatus(str, enum.Enum):
    """Estados del paciente"""
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class Patient(Base):
    """Modelo de Paciente"""
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False, index=True)
    status = Column(
        Enum(PatientStatus, values_callable=lambda e: [m.value for m in e]),
        default=PatientStatus.ACTIVE,
        nullable=False,
        index=True
    )

    # Metadatos
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relaciones
    enrollments = relationship("PatientEnrollment", back_populates="patient", cascade="all, delete-orphan")
    dispensations = relationship("Dispensation", back_populates="patient", cascade="all, delete-orphan")
    attendances = relationship("Attendance", back_populates="patient", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Patient(id={self.id}, full_name='{self.full_name}')>"

    @property
    def is_active(self) -> bool:
        return self.status == PatientStatus.ACTIVE
