"""
Endpoints de dispensaciones y seguimiento de medicación
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from dosewatch.core.database import get_db
from dosewatch.core.dependencies import get_current_user, get_tracking_page_params, TrackingPageParams
from dosewatch.models.user import User
from dosewatch.schemas.dispensation import DispensationCreate, DispensationResponse
from dosewatch.schemas.tracking import OverdueCount, OverdueDetail
from dosewatch.services.dispensation_service import DispensationService
from dosewatch.services.tracking_service import TrackingService

router = APIRouter()


@router.post("/", response_model=DispensationResponse, status_code=status.HTTP_201_CREATED)
async def create_dispensation(
        dispensation_data: DispensationCreate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    """
    Registrar una dispensación. Responde 400 si ya existe una en la misma ventana.
    """
    service = DispensationService(db)

    return service.attempt_dispense(
        patient_id=dispensation_data.patient_id,
        medication_id=dispensation_data.medication_id,
        program_id=dispensation_data.program_id,
        dispensed_at=dispensation_data.dispensed_at,
        dispensed_by_id=current_user.id,
        notes=dispensation_data.notes
    )


@router.get("/", response_model=List[DispensationResponse])
async def list_dispensations(
        patient_id: Optional[int] = Query(None, description="Filtrar por paciente"),
        program_id: Optional[int] = Query(None, description="Filtrar por programa"),
        medication_id: Optional[int] = Query(None, description="Filtrar por medicamento"),
        start: Optional[datetime] = Query(None, description="Desde (ISO 8601)"),
        end: Optional[datetime] = Query(None, description="Hasta (ISO 8601)"),
        db: Session = Depends(get_db)
):
    service = DispensationService(db)
    return service.list_dispensations(
        patient_id=patient_id,
        program_id=program_id,
        medication_id=medication_id,
        start=start,
        end=end
    )


@router.get("/tracking")
async def get_tracking_table(
        pagination: TrackingPageParams = Depends(get_tracking_page_params),
        search: Optional[str] = Query(None, description="Buscar por paciente, medicamento o programa"),
        db: Session = Depends(get_db)
):
    """
    Tabla de seguimiento: dosis para hoy o vencidas, con nombres de campo compactos
    """
    service = TrackingService(db)
    page = service.get_tracking_table(page=pagination.page, limit=pagination.limit, search=search)
    return page.to_response()


@router.get("/overdue/count", response_model=OverdueCount)
async def get_overdue_count(db: Session = Depends(get_db)):
    service = TrackingService(db)
    return OverdueCount(count=service.get_overdue_count())


@router.get("/overdue", response_model=List[OverdueDetail])
async def get_overdue_details(db: Session = Depends(get_db)):
    """
    Dosis vencidas (anteriores a hoy) con nombres de campo completos
    """
    service = TrackingService(db)
    return service.get_overdue_details()


@router.get("/patient/{patient_id}", response_model=List[DispensationResponse])
async def get_patient_history(patient_id: int, db: Session = Depends(get_db)):
    service = DispensationService(db)
    return service.get_patient_history(patient_id)


@router.get("/{dispensation_id}", response_model=DispensationResponse)
async def get_dispensation(dispensation_id: int, db: Session = Depends(get_db)):
    service = DispensationService(db)
    return service.get_dispensation(dispensation_id)
