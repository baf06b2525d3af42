"""
Modelo de Dispensación de medicamento
"""
from sqlalchemy import Column, Integer, Text, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from dosewatch.core.database import Base


UNIQUE_BUCKET_CONSTRAINT = "uq_dispensation_bucket"


class BucketType(str, enum.Enum):
    """Tipo de ventana de la dispensación"""
    DAY = "DAY"
    MONTH = "MONTH"


class Dispensation(Base):
    """
    Entrega de una dosis a un paciente.

    Como máximo una fila por paciente/medicamento/ventana: lo garantiza la
    restricción única, no sólo la verificación previa. `bucket_slot` es 0
    salvo en TWICE_DAILY, donde numera la dosis dentro del día (0 o 1).
    """
    __tablename__ = "dispensations"
    __table_args__ = (
        UniqueConstraint(
            "patient_id", "medication_id", "bucket_type", "bucket_start", "bucket_slot",
            name=UNIQUE_BUCKET_CONSTRAINT
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    medication_id = Column(Integer, ForeignKey("medications.id"), nullable=False, index=True)
    program_id = Column(Integer, ForeignKey("programs.id"), nullable=False, index=True)
    dispensed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Instantes en UTC naive
    dispensed_at = Column(DateTime, nullable=False, index=True)
    next_due_date = Column(DateTime, nullable=True)

    bucket_type = Column(Enum(BucketType), nullable=False, index=True)
    bucket_start = Column(DateTime, nullable=False, index=True)
    bucket_slot = Column(Integer, nullable=False, default=0)

    notes = Column(Text, nullable=True)

    # Metadatos
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relaciones
    patient = relationship("Patient", back_populates="dispensations")
    medication = relationship("Medication", back_populates="dispensations")
    program = relationship("Program")
    dispensed_by = relationship("User")

    def __repr__(self):
        return (
            f"<Dispensation(id={self.id}, patient_id={self.patient_id}, "
            f"medication_id={self.medication_id}, dispensed_at={self.dispensed_at})>"
        )
