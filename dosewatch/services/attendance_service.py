"""
Servicio de asistencia a sesiones de programa
"""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Callable, List, Optional
from datetime import date, datetime

from dosewatch.core.exceptions import NotFoundError
from dosewatch.core.frequency import to_utc_naive, utcnow
from dosewatch.models.activity_log import ActivityType
from dosewatch.models.attendance import Attendance, AttendanceStatus
from dosewatch.repositories import AttendanceRepository, ReferenceRepository
from dosewatch.schemas.attendance import AttendanceStatistics, AttendanceUpdate, PatientAttendanceEntry
from dosewatch.services.activity_service import ActivityService
from dosewatch.services.progress_service import ProgressService
import logging

logger = logging.getLogger(__name__)


class AttendanceService:
    def __init__(
            self,
            db: Session,
            attendances: Optional[AttendanceRepository] = None,
            references: Optional[ReferenceRepository] = None,
            progress: Optional[ProgressService] = None,
            activity: Optional[ActivityService] = None,
            clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.attendances = attendances or AttendanceRepository(db)
        self.references = references or ReferenceRepository(db)
        self.progress = progress or ProgressService(
            db,
            attendances=self.attendances,
            references=self.references,
            clock=clock
        )
        self.activity = activity or ActivityService(db)
        self.clock = clock

    def record_attendance(
            self,
            program_id: int,
            attendance_date: date,
            entries: List[PatientAttendanceEntry],
            marked_by_id: int
    ) -> List[Attendance]:
        """
        Marcar la asistencia de una sesión para varios pacientes y
        recalcular el progreso de cada inscripción afectada
        """
        program = self.references.get_program(program_id)
        if not program:
            raise NotFoundError("Program", program_id)

        try:
            attendances = [
                Attendance(
                    patient_id=entry.patient_id,
                    program_id=program_id,
                    attendance_date=attendance_date,
                    status=entry.status,
                    check_in_time=to_utc_naive(entry.check_in_time) if entry.check_in_time else self.clock(),
                    notes=entry.notes,
                    marked_by_id=marked_by_id
                )
                for entry in entries
            ]
            self.attendances.add_all(attendances)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error registrando asistencia del programa {program_id}: {e}")
            raise

        logger.info(f"Asistencia registrada para {len(attendances)} pacientes en el programa {program_id}")

        for patient_id in sorted({a.patient_id for a in attendances}):
            self.progress.refresh_for(patient_id, program_id)

        self.activity.log(
            ActivityType.ATTENDANCE,
            f"Marked attendance for {len(attendances)} patients in {program.name}",
            user_id=marked_by_id,
            details={
                "program_id": program_id,
                "attendance_date": attendance_date.isoformat(),
                "count": len(attendances),
            }
        )

        return attendances

    def update_attendance(self, attendance_id: int, changes: AttendanceUpdate, marked_by_id: int) -> Attendance:
        """Actualizar una asistencia y recalcular el progreso de su inscripción"""
        attendance = self.attendances.get(attendance_id)
        if not attendance:
            raise NotFoundError("Attendance", attendance_id)

        try:
            update_data = changes.model_dump(exclude_unset=True)
            if update_data.get("check_in_time"):
                update_data["check_in_time"] = to_utc_naive(update_data["check_in_time"])

            for field, value in update_data.items():
                setattr(attendance, field, value)
            attendance.marked_by_id = marked_by_id

            self.db.commit()
            self.db.refresh(attendance)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error actualizando asistencia {attendance_id}: {e}")
            raise

        self.progress.refresh_for(attendance.patient_id, attendance.program_id)
        return attendance

    def get_statistics(
            self,
            program_id: Optional[int] = None,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None
    ) -> AttendanceStatistics:
        """Totales por estado; la tasa cuenta Present y Late como asistencia"""
        attendances = self.attendances.search(program_id=program_id, start_date=start_date, end_date=end_date)

        total = len(attendances)
        present = len([a for a in attendances if a.status == AttendanceStatus.PRESENT])
        absent = len([a for a in attendances if a.status == AttendanceStatus.ABSENT])
        late = len([a for a in attendances if a.status == AttendanceStatus.LATE])
        excused = len([a for a in attendances if a.status == AttendanceStatus.EXCUSED])

        return AttendanceStatistics(
            total=total,
            present=present,
            absent=absent,
            late=late,
            excused=excused,
            attendance_rate=((present + late) / total) * 100 if total > 0 else 0.0
        )
