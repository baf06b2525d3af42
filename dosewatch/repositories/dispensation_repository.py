"""Consultas y escrituras de dispensaciones."""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from dosewatch.models.dispensation import Dispensation
from dosewatch.models.medication import Medication, MedicationStatus
from dosewatch.models.patient import Patient, PatientStatus


class DispensationRepository:
    """Repositorio de dispensaciones sobre una sesión SQLAlchemy."""

    def __init__(self, db: Session):
        self.db = db

    def _in_range(self, patient_id: int, medication_id: int, start: datetime, end: datetime):
        return self.db.query(Dispensation).filter(
            Dispensation.patient_id == patient_id,
            Dispensation.medication_id == medication_id,
            Dispensation.dispensed_at >= start,
            Dispensation.dispensed_at <= end,
        )

    def count_in_range(self, patient_id: int, medication_id: int, start: datetime, end: datetime) -> int:
        """Dispensaciones del paciente/medicamento con dispensed_at en [start, end]"""
        return self._in_range(patient_id, medication_id, start, end).count()

    def find_in_range(
            self,
            patient_id: int,
            medication_id: int,
            start: datetime,
            end: datetime
    ) -> Optional[Dispensation]:
        """La dispensación más reciente del paciente/medicamento dentro de [start, end]"""
        return self._in_range(patient_id, medication_id, start, end).order_by(
            Dispensation.dispensed_at.desc()
        ).first()

    def add(self, dispensation: Dispensation) -> Dispensation:
        """Agregar y volcar a la base de datos (la restricción única se evalúa aquí)"""
        self.db.add(dispensation)
        self.db.flush()
        return dispensation

    def get(self, dispensation_id: int) -> Optional[Dispensation]:
        return self.db.query(Dispensation).options(
            joinedload(Dispensation.patient),
            joinedload(Dispensation.medication),
            joinedload(Dispensation.program),
        ).filter(Dispensation.id == dispensation_id).first()

    def search(
            self,
            patient_id: Optional[int] = None,
            program_id: Optional[int] = None,
            medication_id: Optional[int] = None,
            start: Optional[datetime] = None,
            end: Optional[datetime] = None
    ) -> List[Dispensation]:
        """Dispensaciones filtradas, más recientes primero"""
        query = self.db.query(Dispensation).options(
            joinedload(Dispensation.medication),
            joinedload(Dispensation.program),
        )

        if patient_id:
            query = query.filter(Dispensation.patient_id == patient_id)
        if program_id:
            query = query.filter(Dispensation.program_id == program_id)
        if medication_id:
            query = query.filter(Dispensation.medication_id == medication_id)
        if start and end:
            query = query.filter(Dispensation.dispensed_at.between(start, end))

        return query.order_by(Dispensation.dispensed_at.desc()).all()

    def count_for_enrollment(self, patient_id: int, program_id: int, start: datetime, end: datetime) -> int:
        """Dispensaciones de un paciente dentro de un programa en [start, end]"""
        return self.db.query(Dispensation).filter(
            Dispensation.patient_id == patient_id,
            Dispensation.program_id == program_id,
            Dispensation.dispensed_at.between(start, end),
        ).count()

    def count_for_patient(self, patient_id: int) -> int:
        return self.db.query(Dispensation).filter(Dispensation.patient_id == patient_id).count()

    def tracking_summary(self) -> Dict[Tuple[int, int, int], Tuple[datetime, int]]:
        """
        Última dispensación y total por (paciente, medicamento, programa),
        limitado a pacientes y medicamentos activos
        """
        rows = self.db.query(
            Dispensation.patient_id,
            Dispensation.medication_id,
            Dispensation.program_id,
            func.max(Dispensation.dispensed_at).label("last_dispensed_at"),
            func.count(Dispensation.id).label("total"),
        ).join(Patient, Patient.id == Dispensation.patient_id).join(
            Medication, Medication.id == Dispensation.medication_id
        ).filter(
            Patient.status == PatientStatus.ACTIVE,
            Medication.status == MedicationStatus.ACTIVE,
        ).group_by(
            Dispensation.patient_id,
            Dispensation.medication_id,
            Dispensation.program_id,
        ).all()

        return {
            (row.patient_id, row.medication_id, row.program_id): (row.last_dispensed_at, row.total)
            for row in rows
        }
