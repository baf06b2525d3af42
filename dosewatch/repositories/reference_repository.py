"""Lecturas de pacientes, medicamentos y programas (mantenidos por otros módulos)."""

from typing import Optional

from sqlalchemy.orm import Session

from dosewatch.models.medication import Medication
from dosewatch.models.patient import Patient
from dosewatch.models.program import Program


class ReferenceRepository:
    """Acceso de sólo lectura a las entidades referenciadas por el motor."""

    def __init__(self, db: Session):
        self.db = db

    def get_patient(self, patient_id: int) -> Optional[Patient]:
        return self.db.get(Patient, patient_id)

    def get_medication(self, medication_id: int) -> Optional[Medication]:
        return self.db.get(Medication, medication_id)

    def get_program(self, program_id: int) -> Optional[Program]:
        return self.db.get(Program, program_id)
