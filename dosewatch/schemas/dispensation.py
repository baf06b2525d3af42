"""
Esquemas Pydantic para Dispensaciones
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from dosewatch.models.dispensation import BucketType


class DispensationCreate(BaseModel):
    """Esquema para registrar una dispensación"""
    patient_id: int = Field(..., description="ID del paciente")
    medication_id: int = Field(..., description="ID del medicamento")
    program_id: int = Field(..., description="ID del programa")
    dispensed_at: datetime = Field(..., description="Instante de la dispensación (ISO 8601)")
    notes: Optional[str] = Field(None, max_length=1000, description="Notas opcionales")


class DispensationResponse(BaseModel):
    """Esquema de respuesta de dispensación"""
    id: int
    patient_id: int
    medication_id: int
    program_id: int
    dispensed_at: datetime
    next_due_date: Optional[datetime] = None
    bucket_type: BucketType
    bucket_start: datetime
    dispensed_by_id: int
    notes: Optional[str] = None

    class Config:
        from_attributes = True
