"""Shared pytest fixtures."""

import os

# Must be set before any dosewatch import reads the cached settings
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("DEFAULT_TIMEZONE", "UTC")

from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from dosewatch import models  # noqa: F401
from dosewatch.core.database import Base, SessionLocal, engine, get_db
from dosewatch.core.config import get_settings
from dosewatch.models import (
    Attendance,
    AttendanceStatus,
    Dispensation,
    Medication,
    MedicationFrequency,
    Patient,
    PatientEnrollment,
    PatientStatus,
    Program,
    SessionFrequency,
    User,
    UserRole,
)
from dosewatch.core.bucketing import bucket_for

NOW = datetime(2025, 3, 11, 22, 0, 0)


@pytest.fixture
def db():
    """Fresh in-memory schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fixed_clock():
    return lambda: NOW


@pytest.fixture
def staff_user(db):
    user = User(email="nurse@clinic.test", name="Nurse Joy", role=UserRole.HEALTHCARE_STAFF, is_active=True)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def make_patient(db):
    def _make(full_name="Ana Torres", status=PatientStatus.ACTIVE):
        patient = Patient(full_name=full_name, status=status)
        db.add(patient)
        db.commit()
        return patient
    return _make


@pytest.fixture
def make_medication(db):
    def _make(name="Metformin", dosage="500mg", frequency=MedicationFrequency.DAILY, **kwargs):
        medication = Medication(name=name, dosage=dosage, frequency=frequency, **kwargs)
        db.add(medication)
        db.commit()
        return medication
    return _make


@pytest.fixture
def make_program(db):
    def _make(name="Diabetes Care", medications=(), session_frequency=SessionFrequency.WEEKLY, **kwargs):
        program = Program(name=name, session_frequency=session_frequency, **kwargs)
        program.medications = list(medications)
        db.add(program)
        db.commit()
        return program
    return _make


@pytest.fixture
def make_enrollment(db):
    def _make(patient, program, enrollment_date=date(2025, 1, 1), **kwargs):
        enrollment = PatientEnrollment(
            patient_id=patient.id,
            program_id=program.id,
            enrollment_date=enrollment_date,
            **kwargs
        )
        db.add(enrollment)
        db.commit()
        return enrollment
    return _make


@pytest.fixture
def make_dispensation(db, staff_user):
    """Insert a dispensation row directly, bypassing the duplicate guard."""
    def _make(patient, medication, program, dispensed_at, slot=0):
        bucket = bucket_for(dispensed_at, medication.frequency)
        dispensation = Dispensation(
            patient_id=patient.id,
            medication_id=medication.id,
            program_id=program.id,
            dispensed_by_id=staff_user.id,
            dispensed_at=dispensed_at,
            bucket_type=bucket.bucket_type,
            bucket_start=bucket.bucket_start,
            bucket_slot=slot,
        )
        db.add(dispensation)
        db.commit()
        return dispensation
    return _make


@pytest.fixture
def make_attendance(db, staff_user):
    def _make(patient, program, attendance_date, status=AttendanceStatus.PRESENT):
        attendance = Attendance(
            patient_id=patient.id,
            program_id=program.id,
            attendance_date=attendance_date,
            status=status,
            marked_by_id=staff_user.id,
        )
        db.add(attendance)
        db.commit()
        return attendance
    return _make


@pytest.fixture
def client(db):
    """TestClient sharing the test session."""
    from dosewatch.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def token_for():
    """Sign a bearer token the way the identity provider does."""
    settings = get_settings()

    def _sign(subject):
        claims = {"sub": str(subject), "exp": datetime.now(timezone.utc) + timedelta(minutes=30)}
        return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    return _sign


@pytest.fixture
def auth_headers(staff_user, token_for):
    token = token_for(staff_user.id)
    return {"Authorization": f"Bearer {token}"}
