"""
Servicio de dispensación con prevención de duplicados
"""
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Callable, List, Optional
from datetime import datetime

from dosewatch.core.bucketing import bucket_for
from dosewatch.core.config import get_settings
from dosewatch.core.exceptions import DuplicateDispensationError, NotFoundError
from dosewatch.core.frequency import date_range, next_due_date, normalize_frequency, to_utc_naive, utcnow
from dosewatch.models.activity_log import ActivityType
from dosewatch.models.dispensation import Dispensation, UNIQUE_BUCKET_CONSTRAINT
from dosewatch.models.medication import Medication
from dosewatch.repositories import DispensationRepository, EnrollmentRepository, ReferenceRepository
from dosewatch.services.activity_service import ActivityService
from dosewatch.services.progress_service import ProgressService
import logging

logger = logging.getLogger(__name__)

TWICE_DAILY_LIMIT = 2

TWICE_DAILY_REASON = (
    "Duplicate dispensation prevented. This medication can only be dispensed "
    "twice per day (morning and evening doses)."
)
BUCKET_COLLISION_REASON = (
    "Duplicate dispensation prevented by schedule window. "
    "This medication has already been dispensed in the current period."
)

# Códigos de violación de unicidad: MySQL 1062, PostgreSQL 23505
_UNIQUE_VIOLATION_CODES = ("1062", "23505")


def is_bucket_collision(error: IntegrityError) -> bool:
    """Determinar si un IntegrityError proviene de la restricción única de ventana"""
    orig = getattr(error, "orig", None)
    args = getattr(orig, "args", ()) or ()
    if args and str(args[0]) in _UNIQUE_VIOLATION_CODES:
        return True
    if str(getattr(orig, "pgcode", "") or "") in _UNIQUE_VIOLATION_CODES:
        return True

    message = str(orig if orig is not None else error)
    return (
        UNIQUE_BUCKET_CONSTRAINT in message
        or "UNIQUE constraint failed" in message
        or "Duplicate entry" in message
    )


class DispensationService:
    """Registro de dispensaciones: verificación previa más restricción única como respaldo"""

    def __init__(
            self,
            db: Session,
            dispensations: Optional[DispensationRepository] = None,
            references: Optional[ReferenceRepository] = None,
            enrollments: Optional[EnrollmentRepository] = None,
            progress: Optional[ProgressService] = None,
            activity: Optional[ActivityService] = None,
            clock: Callable[[], datetime] = utcnow,
            tz=None
    ):
        self.db = db
        self.dispensations = dispensations or DispensationRepository(db)
        self.references = references or ReferenceRepository(db)
        self.enrollments = enrollments or EnrollmentRepository(db)
        self.clock = clock
        self.tz = tz if tz is not None else get_settings().DEFAULT_TIMEZONE
        self.progress = progress or ProgressService(
            db,
            enrollments=self.enrollments,
            dispensations=self.dispensations,
            references=self.references,
            clock=clock,
            tz=self.tz
        )
        self.activity = activity or ActivityService(db)

    def attempt_dispense(
            self,
            patient_id: int,
            medication_id: int,
            program_id: int,
            dispensed_at: datetime,
            dispensed_by_id: int,
            notes: Optional[str] = None
    ) -> Dispensation:
        """
        Registrar una dispensación o lanzar DuplicateDispensationError.

        La verificación y la inserción comparten transacción; si otra escritura
        concurrente ocupa la misma ventana, la violación de la restricción única
        se traduce al mismo error de duplicado.
        """
        medication = self.references.get_medication(medication_id)
        if not medication:
            raise NotFoundError("Medication", medication_id)
        if not self.references.get_patient(patient_id):
            raise NotFoundError("Patient", patient_id)
        if not self.references.get_program(program_id):
            raise NotFoundError("Program", program_id)

        dispensed_at = to_utc_naive(dispensed_at)

        try:
            slot = self.check_duplicate(patient_id, medication, dispensed_at)
            bucket = bucket_for(dispensed_at, medication.frequency, self.tz)

            dispensation = Dispensation(
                patient_id=patient_id,
                medication_id=medication_id,
                program_id=program_id,
                dispensed_by_id=dispensed_by_id,
                dispensed_at=dispensed_at,
                next_due_date=next_due_date(dispensed_at, medication.frequency, self.tz),
                bucket_type=bucket.bucket_type,
                bucket_start=bucket.bucket_start,
                bucket_slot=slot,
                notes=notes
            )
            self.dispensations.add(dispensation)
            self.db.commit()
            self.db.refresh(dispensation)
        except DuplicateDispensationError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            if is_bucket_collision(e):
                logger.warning(
                    f"Dispensación concurrente detectada por la restricción única: "
                    f"paciente {patient_id}, medicamento {medication_id}"
                )
                raise DuplicateDispensationError(BUCKET_COLLISION_REASON)
            logger.error(f"Error de integridad registrando dispensación: {e}")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error registrando dispensación: {e}")
            raise

        logger.info(
            f"Dispensación {dispensation.id} registrada: paciente {patient_id}, "
            f"medicamento {medication_id}, próxima dosis {dispensation.next_due_date}"
        )

        self.progress.refresh_for(patient_id, program_id)
        self.activity.log(
            ActivityType.MEDICATION,
            f"Medication {medication.full_name} dispensed",
            user_id=dispensed_by_id,
            details={
                "patient_id": patient_id,
                "medication_id": medication_id,
                "program_id": program_id,
                "dispensation_id": dispensation.id,
            }
        )

        return dispensation

    def check_duplicate(self, patient_id: int, medication: Medication, dispensed_at: datetime) -> int:
        """
        Verificación previa. Devuelve el número de dosis (bucket_slot) que
        ocuparía la nueva dispensación o lanza DuplicateDispensationError.
        """
        window = date_range(medication.frequency, dispensed_at, self.tz)

        if normalize_frequency(medication.frequency) == "TWICE_DAILY":
            count = self.dispensations.count_in_range(patient_id, medication.id, window.start, window.end)
            if count >= TWICE_DAILY_LIMIT:
                logger.info(f"Límite de dos dosis diarias alcanzado: paciente {patient_id}, medicamento {medication.id}")
                raise DuplicateDispensationError(TWICE_DAILY_REASON)
            return count

        previous = self.dispensations.find_in_range(patient_id, medication.id, window.start, window.end)
        if previous:
            elapsed = self.clock() - previous.dispensed_at
            hours = max(0, int(elapsed.total_seconds() // 3600))
            logger.info(
                f"Dispensación duplicada evitada: paciente {patient_id}, "
                f"medicamento {medication.id}, hace {hours} horas"
            )
            raise DuplicateDispensationError(
                f"Duplicate dispensation prevented. This medication was already dispensed {hours} hours ago.",
                hours_since_last=hours
            )
        return 0

    def list_dispensations(
            self,
            patient_id: Optional[int] = None,
            program_id: Optional[int] = None,
            medication_id: Optional[int] = None,
            start: Optional[datetime] = None,
            end: Optional[datetime] = None
    ) -> List[Dispensation]:
        """Dispensaciones filtradas, más recientes primero"""
        return self.dispensations.search(
            patient_id=patient_id,
            program_id=program_id,
            medication_id=medication_id,
            start=to_utc_naive(start) if start else None,
            end=to_utc_naive(end) if end else None
        )

    def get_patient_history(self, patient_id: int) -> List[Dispensation]:
        if not self.references.get_patient(patient_id):
            raise NotFoundError("Patient", patient_id)
        return self.dispensations.search(patient_id=patient_id)

    def get_dispensation(self, dispensation_id: int) -> Dispensation:
        dispensation = self.dispensations.get(dispensation_id)
        if not dispensation:
            raise NotFoundError("Dispensation", dispensation_id)
        return dispensation
