"""
Esquemas Pydantic para progreso de inscripciones
"""
from pydantic import BaseModel
from typing import Optional
from datetime import date


class PatientProgress(BaseModel):
    """Progreso proyectado con el calendario de frecuencias"""
    attendance_rate: int = 0
    adherence_rate: int = 0
    sessions_completed: int = 0
    sessions_missed: int = 0
    sessions_expected: int = 0
    medications_dispensed: int = 0
    medications_expected: int = 0
    has_missed_sessions: bool = False


class MissedSessionsEntry(BaseModel):
    """Inscripción marcada por sesiones perdidas"""
    patient_id: int
    patient_name: str
    program_id: int
    program_name: str
    enrollment_date: date
    progress: PatientProgress


class EnrollmentProgressResponse(BaseModel):
    """Resumen materializado en la inscripción"""
    id: int
    patient_id: int
    program_id: int
    sessions_expected: Optional[int] = None
    sessions_completed: Optional[int] = None
    sessions_missed: Optional[int] = None
    attendance_rate: Optional[float] = None
    adherence_rate: Optional[float] = None

    class Config:
        from_attributes = True
