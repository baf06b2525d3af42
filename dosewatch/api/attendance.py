"""
Endpoints de asistencia
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from dosewatch.core.database import get_db
from dosewatch.core.dependencies import get_current_user
from dosewatch.models.user import User
from dosewatch.schemas.attendance import (
    AttendanceCreate,
    AttendanceResponse,
    AttendanceStatistics,
    AttendanceUpdate
)
from dosewatch.services.attendance_service import AttendanceService

router = APIRouter()


@router.post("/", response_model=List[AttendanceResponse], status_code=status.HTTP_201_CREATED)
async def record_attendance(
        attendance_data: AttendanceCreate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    """
    Marcar asistencia de una sesión; recalcula el progreso de las inscripciones afectadas
    """
    service = AttendanceService(db)
    return service.record_attendance(
        program_id=attendance_data.program_id,
        attendance_date=attendance_data.attendance_date,
        entries=attendance_data.attendances,
        marked_by_id=current_user.id
    )


@router.get("/statistics", response_model=AttendanceStatistics)
async def get_statistics(
        program_id: Optional[int] = Query(None),
        start_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
        end_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
        db: Session = Depends(get_db)
):
    service = AttendanceService(db)
    return service.get_statistics(program_id=program_id, start_date=start_date, end_date=end_date)


@router.patch("/{attendance_id}", response_model=AttendanceResponse)
async def update_attendance(
        attendance_id: int,
        attendance_data: AttendanceUpdate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    service = AttendanceService(db)
    return service.update_attendance(attendance_id, attendance_data, marked_by_id=current_user.id)
