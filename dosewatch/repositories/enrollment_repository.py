"""Consultas y escrituras de inscripciones."""

from typing import List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from dosewatch.models.enrollment import PatientEnrollment
from dosewatch.models.patient import Patient, PatientStatus
from dosewatch.models.program import Program, ProgramStatus


class EnrollmentRepository:
    """Repositorio de inscripciones sobre una sesión SQLAlchemy."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, enrollment_id: int) -> Optional[PatientEnrollment]:
        return self.db.get(PatientEnrollment, enrollment_id)

    def find_for(self, patient_id: int, program_id: int) -> Optional[PatientEnrollment]:
        """Inscripción de un paciente en un programa"""
        return self.db.query(PatientEnrollment).filter(
            PatientEnrollment.patient_id == patient_id,
            PatientEnrollment.program_id == program_id,
        ).order_by(PatientEnrollment.id).first()

    def active_with_medications(self) -> List[PatientEnrollment]:
        """
        Inscripciones no completadas de pacientes activos en programas activos,
        con el programa y sus medicamentos cargados
        """
        return self.db.query(PatientEnrollment).join(
            Patient, Patient.id == PatientEnrollment.patient_id
        ).join(
            Program, Program.id == PatientEnrollment.program_id
        ).options(
            joinedload(PatientEnrollment.patient),
            joinedload(PatientEnrollment.program).selectinload(Program.medications),
        ).filter(
            Patient.status == PatientStatus.ACTIVE,
            Program.status == ProgramStatus.ACTIVE,
            PatientEnrollment.is_completed.is_(False),
        ).order_by(PatientEnrollment.id).all()

    def open_for_active_patients(self, program_id: Optional[int] = None) -> List[PatientEnrollment]:
        """Inscripciones no completadas de pacientes activos, opcionalmente por programa"""
        query = self.db.query(PatientEnrollment).join(
            Patient, Patient.id == PatientEnrollment.patient_id
        ).options(
            joinedload(PatientEnrollment.patient),
            joinedload(PatientEnrollment.program),
        ).filter(
            Patient.status == PatientStatus.ACTIVE,
            PatientEnrollment.is_completed.is_(False),
        )

        if program_id:
            query = query.filter(PatientEnrollment.program_id == program_id)

        return query.order_by(PatientEnrollment.id).all()

    def for_patient(self, patient_id: int) -> List[PatientEnrollment]:
        """Todas las inscripciones de un paciente con programa y medicamentos"""
        return self.db.query(PatientEnrollment).options(
            joinedload(PatientEnrollment.program).selectinload(Program.medications),
        ).filter(PatientEnrollment.patient_id == patient_id).order_by(PatientEnrollment.id).all()
