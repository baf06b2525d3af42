"""
Endpoints de pacientes (progreso)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dosewatch.core.database import get_db
from dosewatch.schemas.progress import PatientProgress
from dosewatch.services.progress_service import ProgressService

router = APIRouter()


@router.get("/{patient_id}/progress", response_model=PatientProgress)
async def get_patient_progress(patient_id: int, db: Session = Depends(get_db)):
    """
    Progreso del paciente proyectado con el calendario de frecuencias
    """
    service = ProgressService(db)
    return service.calculate_patient_progress(patient_id)
