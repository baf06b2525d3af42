"""
Modelo de Inscripción de paciente en un programa
"""
from sqlalchemy import Column, Integer, DateTime, Date, Boolean, Float, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from dosewatch.core.database import Base


class PatientEnrollment(Base):
    """Modelo de Inscripción"""
    __tablename__ = "patient_enrollments"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    program_id = Column(Integer, ForeignKey("programs.id", ondelete="CASCADE"), nullable=False, index=True)

    # Fechas
    enrollment_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    completed_date = Column(Date, nullable=True)
    is_completed = Column(Boolean, default=False, nullable=False)

    # Resumen materializado; se recalcula en cada escritura de asistencia o dispensación
    sessions_expected = Column(Integer, nullable=True)
    sessions_completed = Column(Integer, nullable=True)
    sessions_missed = Column(Integer, nullable=True)
    attendance_rate = Column(Float, nullable=True)
    adherence_rate = Column(Float, nullable=True)

    # Metadatos
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relaciones
    patient = relationship("Patient", back_populates="enrollments")
    program = relationship("Program", back_populates="enrollments")

    def __repr__(self):
        return f"<PatientEnrollment(id={self.id}, patient_id={self.patient_id}, program_id={self.program_id})>"
