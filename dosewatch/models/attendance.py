"""
Modelo de Asistencia a sesiones
"""
from sqlalchemy import Column, Integer, Text, DateTime, Date, Enum, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from dosewatch.core.database import Base


class AttendanceStatus(str, enum.Enum):
    """Estados de asistencia"""
    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"
    EXCUSED = "Excused"
    CANCELED = "Canceled"


# Cuentan como sesión completada
COMPLETED_STATUSES = (AttendanceStatus.PRESENT, AttendanceStatus.LATE)


class Attendance(Base):
    """Modelo de Asistencia"""
    __tablename__ = "attendances"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    program_id = Column(Integer, ForeignKey("programs.id", ondelete="CASCADE"), nullable=False, index=True)
    attendance_date = Column(Date, nullable=False, index=True)
    status = Column(
        Enum(AttendanceStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AttendanceStatus.ABSENT
    )
    check_in_time = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    marked_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Metadatos
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relaciones
    patient = relationship("Patient", back_populates="attendances")
    program = relationship("Program")
    marked_by = relationship("User")

    def __repr__(self):
        return f"<Attendance(id={self.id}, patient_id={self.patient_id}, status={self.status})>"
