"""
Esquemas Pydantic para Asistencia
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from dosewatch.models.attendance import AttendanceStatus


class PatientAttendanceEntry(BaseModel):
    """Asistencia de un paciente dentro de una sesión"""
    patient_id: int = Field(..., description="ID del paciente")
    status: AttendanceStatus = Field(..., description="Estado de asistencia")
    check_in_time: Optional[datetime] = Field(None, description="Hora de llegada")
    notes: Optional[str] = Field(None, max_length=1000)


class AttendanceCreate(BaseModel):
    """Esquema para marcar asistencia de una sesión de programa"""
    program_id: int = Field(..., description="ID del programa")
    attendance_date: date = Field(..., description="Fecha de la sesión")
    attendances: List[PatientAttendanceEntry] = Field(..., min_length=1)


class AttendanceUpdate(BaseModel):
    """Esquema para actualizar asistencia"""
    status: Optional[AttendanceStatus] = None
    check_in_time: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=1000)


class AttendanceResponse(BaseModel):
    id: int
    patient_id: int
    program_id: int
    attendance_date: date
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    notes: Optional[str] = None
    marked_by_id: int

    class Config:
        from_attributes = True


class AttendanceStatistics(BaseModel):
    total: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    attendance_rate: float = 0.0
