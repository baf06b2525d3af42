"""
Modelo de Medicamento
"""
from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from dosewatch.core.database import Base


class MedicationFrequency(str, enum.Enum):
    """Frecuencia de dosificación"""
    DAILY = "Daily"
    TWICE_DAILY = "Twice Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class MedicationStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class Medication(Base):
    """Modelo de Medicamento"""
    __tablename__ = "medications"

    id = Column(Integer, primary_key=True, index=True)

    # Información básica
    name = Column(String(255), nullable=False, index=True)
    dosage = Column(String(100), nullable=False)  # ej: "500mg", "2 tabletas"
    frequency = Column(
        Enum(MedicationFrequency, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MedicationFrequency.DAILY
    )
    status = Column(
        Enum(MedicationStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MedicationStatus.ACTIVE,
        index=True
    )

    # Metadatos
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relaciones
    programs = relationship("Program", secondary="program_medications", back_populates="medications")
    dispensations = relationship("Dispensation", back_populates="medication")

    def __repr__(self):
        return f"<Medication(id={self.id}, name='{self.name}', frequency='{self.frequency}')>"

    @property
    def full_name(self) -> str:
        """Nombre completo del medicamento"""
        return f"{self.name} {self.dosage}"

    @property
    def is_active(self) -> bool:
        return self.status == MedicationStatus.ACTIVE
