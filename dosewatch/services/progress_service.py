"""
Servicio de progreso de inscripciones: resumen materializado y vista de sesiones perdidas
"""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Callable, Dict, List, Optional
from datetime import datetime, timedelta

from dosewatch.core.config import get_settings
from dosewatch.core.exceptions import NotFoundError
from dosewatch.core.frequency import date_start, expected_occurrences, utcnow
from dosewatch.core.rates import percentage
from dosewatch.models.attendance import AttendanceStatus, COMPLETED_STATUSES
from dosewatch.models.enrollment import PatientEnrollment
from dosewatch.repositories import (
    AttendanceRepository,
    DispensationRepository,
    EnrollmentRepository,
    ReferenceRepository,
)
from dosewatch.schemas.progress import MissedSessionsEntry, PatientProgress
import logging

logger = logging.getLogger(__name__)


class ProgressService:
    """
    Dos cálculos distintos conviven aquí y no deben unificarse sin consultar:

    - `recompute_progress` materializa en la inscripción la asistencia sobre los
      registros existentes y una adherencia heurística de ventana móvil.
    - `calculate_patient_progress` proyecta sesiones y dosis esperadas según el
      calendario de frecuencias.
    """

    def __init__(
            self,
            db: Session,
            enrollments: Optional[EnrollmentRepository] = None,
            attendances: Optional[AttendanceRepository] = None,
            dispensations: Optional[DispensationRepository] = None,
            references: Optional[ReferenceRepository] = None,
            clock: Callable[[], datetime] = utcnow,
            tz=None,
            window_days: Optional[int] = None
    ):
        settings = get_settings()
        self.db = db
        self.enrollments = enrollments or EnrollmentRepository(db)
        self.attendances = attendances or AttendanceRepository(db)
        self.dispensations = dispensations or DispensationRepository(db)
        self.references = references or ReferenceRepository(db)
        self.clock = clock
        self.tz = tz if tz is not None else settings.DEFAULT_TIMEZONE
        self.window_days = window_days or settings.ADHERENCE_WINDOW_DAYS

    def recompute_progress(self, enrollment_id: int) -> None:
        """Recalcular y guardar el resumen de asistencia/adherencia de una inscripción"""
        enrollment = self.enrollments.get(enrollment_id)
        if not enrollment:
            logger.debug(f"Inscripción {enrollment_id} no encontrada, nada que recalcular")
            return

        try:
            attendances = self.attendances.for_patient_program(enrollment.patient_id, enrollment.program_id)
            expected = len(attendances)
            completed = len([a for a in attendances if a.status in COMPLETED_STATUSES])
            missed = len([a for a in attendances if a.status == AttendanceStatus.ABSENT])

            now = self.clock()
            dispensed = self.dispensations.count_for_enrollment(
                enrollment.patient_id,
                enrollment.program_id,
                now - timedelta(days=self.window_days),
                now
            )

            enrollment.sessions_expected = expected
            enrollment.sessions_completed = completed
            enrollment.sessions_missed = missed
            enrollment.attendance_rate = percentage(completed, expected)
            enrollment.adherence_rate = min(100, percentage(dispensed, self.window_days))

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error recalculando progreso de la inscripción {enrollment_id}: {e}")
            raise

        logger.info(
            f"Progreso recalculado para inscripción {enrollment_id}: "
            f"asistencia {enrollment.attendance_rate}%, adherencia {enrollment.adherence_rate}%"
        )

    def refresh_for(self, patient_id: int, program_id: int) -> None:
        """
        Disparar el recálculo tras una escritura ya confirmada.
        Un fallo aquí se registra y no se propaga: el resumen se corrige en el siguiente disparo.
        """
        try:
            enrollment = self.enrollments.find_for(patient_id, program_id)
            if enrollment:
                self.recompute_progress(enrollment.id)
        except Exception as e:
            logger.warning(
                f"No se pudo recalcular el progreso de paciente {patient_id} en programa {program_id}: {e}"
            )

    def calculate_patient_progress(self, patient_id: int) -> PatientProgress:
        """Progreso de un paciente proyectado con el calendario de frecuencias"""
        if not self.references.get_patient(patient_id):
            raise NotFoundError("Patient", patient_id)

        enrollments = self.enrollments.for_patient(patient_id)
        if not enrollments:
            return PatientProgress()

        now = self.clock()
        sessions_expected = 0
        sessions_completed = 0
        sessions_missed = 0
        medications_expected = 0

        for enrollment in enrollments:
            start = date_start(enrollment.enrollment_date, self.tz)
            end = self._projection_end(enrollment, now)

            sessions_expected += expected_occurrences(enrollment.program.session_frequency, start, end)

            attendances = self.attendances.for_patient_program(patient_id, enrollment.program_id)
            sessions_completed += len([a for a in attendances if a.status in COMPLETED_STATUSES])
            sessions_missed += len([a for a in attendances if a.status == AttendanceStatus.ABSENT])

            for medication in enrollment.program.medications:
                medications_expected += expected_occurrences(medication.frequency, start, end)

        medications_dispensed = self.dispensations.count_for_patient(patient_id)

        return PatientProgress(
            attendance_rate=percentage(sessions_completed, sessions_expected),
            adherence_rate=percentage(medications_dispensed, medications_expected),
            sessions_completed=sessions_completed,
            sessions_missed=sessions_missed,
            sessions_expected=sessions_expected,
            medications_dispensed=medications_dispensed,
            medications_expected=medications_expected,
            has_missed_sessions=sessions_expected > sessions_completed,
        )

    def get_patients_with_missed_sessions(self, program_id: Optional[int] = None) -> List[MissedSessionsEntry]:
        """Inscripciones abiertas cuyo paciente acumula sesiones perdidas"""
        enrollments = self.enrollments.open_for_active_patients(program_id)
        progress_by_patient: Dict[int, PatientProgress] = {}
        flagged = []

        for enrollment in enrollments:
            if enrollment.patient_id not in progress_by_patient:
                progress_by_patient[enrollment.patient_id] = self.calculate_patient_progress(enrollment.patient_id)
            progress = progress_by_patient[enrollment.patient_id]

            if progress.has_missed_sessions:
                flagged.append(MissedSessionsEntry(
                    patient_id=enrollment.patient_id,
                    patient_name=enrollment.patient.full_name,
                    program_id=enrollment.program_id,
                    program_name=enrollment.program.name,
                    enrollment_date=enrollment.enrollment_date,
                    progress=progress,
                ))

        logger.info(f"{len(flagged)} inscripciones con sesiones perdidas")
        return flagged

    def _projection_end(self, enrollment: PatientEnrollment, now: datetime) -> datetime:
        if enrollment.is_completed and enrollment.end_date:
            return date_start(enrollment.end_date, self.tz)
        return now
