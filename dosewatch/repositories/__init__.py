from .reference_repository import ReferenceRepository
from .dispensation_repository import DispensationRepository
from .enrollment_repository import EnrollmentRepository
from .attendance_repository import AttendanceRepository

__all__ = [
    "ReferenceRepository",
    "DispensationRepository",
    "EnrollmentRepository",
    "AttendanceRepository",
]
