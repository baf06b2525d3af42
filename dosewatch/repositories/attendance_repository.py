"""Consultas y escrituras de asistencia."""

from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from dosewatch.models.attendance import Attendance, COMPLETED_STATUSES


class AttendanceRepository:
    """Repositorio de asistencia sobre una sesión SQLAlchemy."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, attendance_id: int) -> Optional[Attendance]:
        return self.db.get(Attendance, attendance_id)

    def add_all(self, attendances: List[Attendance]) -> List[Attendance]:
        self.db.add_all(attendances)
        self.db.flush()
        return attendances

    def for_patient_program(self, patient_id: int, program_id: int) -> List[Attendance]:
        return self.db.query(Attendance).filter(
            Attendance.patient_id == patient_id,
            Attendance.program_id == program_id,
        ).all()

    def completed_counts(self) -> Dict[Tuple[int, int], int]:
        """Sesiones completadas (Present/Late) por (paciente, programa)"""
        rows = self.db.query(
            Attendance.patient_id,
            Attendance.program_id,
            func.count(Attendance.id).label("total"),
        ).filter(
            Attendance.status.in_(COMPLETED_STATUSES)
        ).group_by(
            Attendance.patient_id,
            Attendance.program_id,
        ).all()

        return {(row.patient_id, row.program_id): row.total for row in rows}

    def search(
            self,
            program_id: Optional[int] = None,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None
    ) -> List[Attendance]:
        query = self.db.query(Attendance)

        if program_id:
            query = query.filter(Attendance.program_id == program_id)
        if start_date and end_date:
            query = query.filter(Attendance.attendance_date.between(start_date, end_date))

        return query.all()
