"""
Endpoints de progreso de inscripciones
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from dosewatch.core.database import get_db
from dosewatch.core.exceptions import NotFoundError
from dosewatch.schemas.progress import EnrollmentProgressResponse, MissedSessionsEntry
from dosewatch.services.progress_service import ProgressService

router = APIRouter()


@router.get("/missed-sessions", response_model=List[MissedSessionsEntry])
async def get_patients_with_missed_sessions(
        program_id: Optional[int] = Query(None, description="Filtrar por programa"),
        db: Session = Depends(get_db)
):
    """
    Inscripciones abiertas con sesiones perdidas según el calendario del programa
    """
    service = ProgressService(db)
    return service.get_patients_with_missed_sessions(program_id)


@router.post("/{enrollment_id}/recompute", response_model=EnrollmentProgressResponse)
async def recompute_progress(enrollment_id: int, db: Session = Depends(get_db)):
    """
    Forzar el recálculo del resumen materializado de una inscripción
    """
    service = ProgressService(db)
    enrollment = service.enrollments.get(enrollment_id)
    if not enrollment:
        raise NotFoundError("Enrollment", enrollment_id)

    service.recompute_progress(enrollment_id)
    return enrollment
