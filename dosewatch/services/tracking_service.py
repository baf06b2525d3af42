"""
Servicio de seguimiento de medicación: tabla de adherencia y vencimientos
"""
from dataclasses import dataclass
from sqlalchemy.orm import Session
from typing import Callable, Dict, List, Optional, Tuple
from datetime import datetime

from dosewatch.core.config import get_settings
from dosewatch.core.frequency import (
    date_start,
    end_of_day,
    expected_occurrences,
    local_date,
    next_due_date,
    utcnow,
)
from dosewatch.core.rates import clamp_percentage, percentage
from dosewatch.models.medication import MedicationFrequency
from dosewatch.models.program import SessionFrequency
from dosewatch.repositories import AttendanceRepository, DispensationRepository, EnrollmentRepository
from dosewatch.schemas.tracking import OverdueDetail, TrackingPage, TrackingRow
import logging

logger = logging.getLogger(__name__)

TrackingKey = Tuple[int, int, int]


@dataclass
class _TrackingEntry:
    """Acumulador interno por (paciente, medicamento, programa)"""
    patient_id: int
    patient_name: str
    medication_id: int
    medication_name: str
    dosage: str
    frequency: MedicationFrequency
    program_id: int
    program_name: str
    enrollment_start: datetime
    session_frequency: SessionFrequency
    last_collected: Optional[datetime] = None
    dispensation_count: int = 0


class TrackingService:
    """Tabla de seguimiento recalculada en cada consulta; nunca se persiste"""

    def __init__(
            self,
            db: Session,
            enrollments: Optional[EnrollmentRepository] = None,
            dispensations: Optional[DispensationRepository] = None,
            attendances: Optional[AttendanceRepository] = None,
            clock: Callable[[], datetime] = utcnow,
            tz=None
    ):
        self.settings = get_settings()
        self.db = db
        self.enrollments = enrollments or EnrollmentRepository(db)
        self.dispensations = dispensations or DispensationRepository(db)
        self.attendances = attendances or AttendanceRepository(db)
        self.clock = clock
        self.tz = tz if tz is not None else self.settings.DEFAULT_TIMEZONE

    def get_tracking_table(
            self,
            page: int = 1,
            limit: Optional[int] = None,
            search: Optional[str] = None
    ) -> TrackingPage:
        """
        Filas con dosis para hoy o vencidas, filtradas por búsqueda y paginadas.

        La búsqueda es una subcadena sin distinguir mayúsculas sobre los nombres
        de paciente, medicamento y programa.
        """
        page = max(1, page)
        limit = min(max(1, limit or self.settings.TRACKING_PAGE_SIZE), self.settings.MAX_PAGE_SIZE)

        now = self.clock()
        cutoff = end_of_day(now, self.tz)
        rows = [row for row in self.build_rows(now) if row.next_due <= cutoff]

        if search:
            needle = search.strip().lower()
            rows = [
                row for row in rows
                if needle in row.patient_name.lower()
                or needle in row.medication_name.lower()
                or needle in row.program_name.lower()
            ]

        total = len(rows)
        offset = (page - 1) * limit

        logger.debug(f"Tabla de seguimiento: {total} filas, página {page} de tamaño {limit}")
        return TrackingPage(rows=rows[offset:offset + limit], total=total, page=page, limit=limit)

    def build_rows(self, now: Optional[datetime] = None) -> List[TrackingRow]:
        """Todas las filas de seguimiento, sin filtrar por fecha de vencimiento"""
        now = now or self.clock()
        entries = self._seed_entries()
        self._fold_dispensations(entries)
        completed = self.attendances.completed_counts()

        rows = []
        for entry in entries.values():
            last = entry.last_collected or entry.enrollment_start
            expected_dispensations = expected_occurrences(entry.frequency, entry.enrollment_start, now)
            expected_attendance = expected_occurrences(entry.session_frequency, entry.enrollment_start, now)
            actual_attendance = completed.get((entry.patient_id, entry.program_id), 0)

            adherence = percentage(
                entry.dispensation_count + actual_attendance,
                expected_dispensations + expected_attendance
            )

            rows.append(TrackingRow(
                patient_id=entry.patient_id,
                patient_name=entry.patient_name,
                medication_id=entry.medication_id,
                medication_name=entry.medication_name,
                dosage=entry.dosage,
                frequency=entry.frequency,
                program_id=entry.program_id,
                program_name=entry.program_name,
                last_collected=entry.last_collected,
                next_due=next_due_date(last, entry.frequency, self.tz),
                adherence_rate=clamp_percentage(adherence),
            ))
        return rows

    def get_overdue_count(self) -> int:
        """Número de filas vencidas; misma regla que `get_overdue_details`"""
        now = self.clock()
        return len([row for row in self.build_rows(now) if self.is_overdue(row.next_due, now)])

    def get_overdue_details(self) -> List[OverdueDetail]:
        """Filas vencidas de la tabla completa (sin paginar), con nombres de campo completos"""
        now = self.clock()
        return [
            OverdueDetail(**row.model_dump())
            for row in self.build_rows(now)
            if self.is_overdue(row.next_due, now)
        ]

    def is_overdue(self, next_due: datetime, now: Optional[datetime] = None) -> bool:
        """Vencida: anterior a ahora y no en la fecha de hoy"""
        now = now or self.clock()
        return next_due < now and local_date(next_due, self.tz) != local_date(now, self.tz)

    def _seed_entries(self) -> Dict[TrackingKey, _TrackingEntry]:
        entries: Dict[TrackingKey, _TrackingEntry] = {}

        for enrollment in self.enrollments.active_with_medications():
            program = enrollment.program
            start = date_start(enrollment.enrollment_date, self.tz)
            session_frequency = program.session_frequency or SessionFrequency.WEEKLY

            for medication in sorted(program.active_medications, key=lambda m: m.id):
                key = (enrollment.patient_id, medication.id, program.id)
                entries[key] = _TrackingEntry(
                    patient_id=enrollment.patient_id,
                    patient_name=enrollment.patient.full_name,
                    medication_id=medication.id,
                    medication_name=medication.name,
                    dosage=medication.dosage,
                    frequency=medication.frequency or MedicationFrequency.DAILY,
                    program_id=program.id,
                    program_name=program.name,
                    enrollment_start=start,
                    session_frequency=session_frequency,
                )
        return entries

    def _fold_dispensations(self, entries: Dict[TrackingKey, _TrackingEntry]) -> None:
        for key, (last_dispensed_at, total) in self.dispensations.tracking_summary().items():
            entry = entries.get(key)
            if entry:
                entry.last_collected = last_dispensed_at
                entry.dispensation_count = total
