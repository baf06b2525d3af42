# dosewatch/models/__init__.py

from .user import User, UserRole
from .patient import Patient, PatientStatus
from .medication import Medication, MedicationFrequency, MedicationStatus
from .program import Program, ProgramStatus, SessionFrequency, program_medications
from .enrollment import PatientEnrollment
from .dispensation import Dispensation, BucketType
from .attendance import Attendance, AttendanceStatus
from .activity_log import ActivityLog, ActivityType

__all__ = [
    "User",
    "UserRole",
    "Patient",
    "PatientStatus",
    "Medication",
    "MedicationFrequency",
    "MedicationStatus",
    "Program",
    "ProgramStatus",
    "SessionFrequency",
    "program_medications",
    "PatientEnrollment",
    "Dispensation",
    "BucketType",
    "Attendance",
    "AttendanceStatus",
    "ActivityLog",
    "ActivityType",
]
