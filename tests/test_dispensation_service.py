"""Tests for dispensation recording and duplicate prevention."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from dosewatch.core.exceptions import DuplicateDispensationError, NotFoundError
from dosewatch.models import ActivityLog, ActivityType, BucketType, Dispensation, MedicationFrequency
from dosewatch.services.dispensation_service import (
    BUCKET_COLLISION_REASON,
    TWICE_DAILY_REASON,
    DispensationService,
    is_bucket_collision,
)
from dosewatch.services.progress_service import ProgressService


@pytest.fixture
def setup(db, fixed_clock, staff_user, make_patient, make_medication, make_program, make_enrollment):
    """Patient enrolled in a program with one medication per frequency."""
    daily = make_medication(name="Metformin", frequency=MedicationFrequency.DAILY)
    twice = make_medication(name="Insulin", dosage="10u", frequency=MedicationFrequency.TWICE_DAILY)
    weekly = make_medication(name="Methotrexate", dosage="15mg", frequency=MedicationFrequency.WEEKLY)
    monthly = make_medication(name="B12", dosage="1000mcg", frequency=MedicationFrequency.MONTHLY)
    program = make_program(medications=[daily, twice, weekly, monthly])
    patient = make_patient()
    enrollment = make_enrollment(patient, program, enrollment_date=date(2025, 3, 1))

    service = DispensationService(db, clock=fixed_clock, tz="UTC")

    def dispense(medication, dispensed_at):
        return service.attempt_dispense(
            patient_id=patient.id,
            medication_id=medication.id,
            program_id=program.id,
            dispensed_at=dispensed_at,
            dispensed_by_id=staff_user.id,
        )

    return {
        "service": service,
        "dispense": dispense,
        "patient": patient,
        "program": program,
        "enrollment": enrollment,
        "daily": daily,
        "twice": twice,
        "weekly": weekly,
        "monthly": monthly,
    }


def count_dispensations(db):
    return db.query(Dispensation).count()


class TestDailyDuplicateGuard:
    def test_second_dose_same_day_is_rejected(self, db, setup):
        setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))

        with pytest.raises(DuplicateDispensationError) as exc_info:
            setup["dispense"](setup["daily"], datetime(2025, 3, 11, 20, 0))

        assert exc_info.value.hours_since_last == 14
        assert "14 hours ago" in exc_info.value.reason
        assert count_dispensations(db) == 1

    def test_next_day_is_accepted(self, db, setup):
        setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))
        accepted = setup["dispense"](setup["daily"], datetime(2025, 3, 12, 8, 0))

        assert accepted.id is not None
        assert count_dispensations(db) == 2

    def test_accepted_row_carries_bucket_and_next_due(self, setup):
        dispensation = setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))

        assert dispensation.bucket_type == BucketType.DAY
        assert dispensation.bucket_start == datetime(2025, 3, 11)
        assert dispensation.bucket_slot == 0
        assert dispensation.next_due_date == datetime(2025, 3, 12, 8, 0)

    def test_aware_instant_is_stored_as_utc(self, setup):
        aware = datetime(2025, 3, 11, 3, 0, tzinfo=timezone(timedelta(hours=-6)))
        dispensation = setup["dispense"](setup["daily"], aware)

        assert dispensation.dispensed_at == datetime(2025, 3, 11, 9, 0)


class TestTwiceDailyCap:
    def test_two_doses_accepted_third_rejected(self, db, setup):
        morning = setup["dispense"](setup["twice"], datetime(2025, 3, 11, 9, 0))
        evening = setup["dispense"](setup["twice"], datetime(2025, 3, 11, 21, 0))

        with pytest.raises(DuplicateDispensationError) as exc_info:
            setup["dispense"](setup["twice"], datetime(2025, 3, 11, 22, 0))

        assert exc_info.value.reason == TWICE_DAILY_REASON
        assert (morning.bucket_slot, evening.bucket_slot) == (0, 1)
        assert morning.bucket_start == evening.bucket_start
        assert count_dispensations(db) == 2

    def test_next_day_resets_the_cap(self, setup):
        setup["dispense"](setup["twice"], datetime(2025, 3, 10, 9, 0))
        setup["dispense"](setup["twice"], datetime(2025, 3, 10, 21, 0))

        accepted = setup["dispense"](setup["twice"], datetime(2025, 3, 11, 9, 0))
        assert accepted.bucket_slot == 0

    def test_next_due_is_twelve_hours_later(self, setup):
        dispensation = setup["dispense"](setup["twice"], datetime(2025, 3, 11, 9, 0))
        assert dispensation.next_due_date == datetime(2025, 3, 11, 21, 0)


class TestWeeklyAndMonthlyWindows:
    def test_weekly_uses_trailing_seven_days(self, setup):
        setup["dispense"](setup["weekly"], datetime(2025, 3, 5, 10, 0))

        with pytest.raises(DuplicateDispensationError):
            setup["dispense"](setup["weekly"], datetime(2025, 3, 11, 10, 0))

        accepted = setup["dispense"](setup["weekly"], datetime(2025, 3, 13, 10, 0))
        assert accepted.bucket_type == BucketType.DAY

    def test_monthly_rejects_within_calendar_month(self, setup):
        setup["dispense"](setup["monthly"], datetime(2025, 1, 31, 23, 59, 59))

        with pytest.raises(DuplicateDispensationError):
            setup["dispense"](setup["monthly"], datetime(2025, 1, 2, 9, 0))

    def test_month_boundary_buckets_into_january(self, setup):
        january = setup["dispense"](setup["monthly"], datetime(2025, 1, 31, 23, 59, 59))
        february = setup["dispense"](setup["monthly"], datetime(2025, 2, 1, 0, 0, 0))

        assert january.bucket_type == BucketType.MONTH
        assert january.bucket_start == datetime(2025, 1, 1)
        assert february.bucket_start == datetime(2025, 2, 1)
        assert january.next_due_date == datetime(2025, 2, 28, 23, 59, 59)

    def test_monthly_next_due_follows_clinic_calendar(self, db, setup, fixed_clock, staff_user):
        service = DispensationService(db, clock=fixed_clock, tz="America/Mexico_City")

        # Jan 30 20:00 in Mexico City
        dispensation = service.attempt_dispense(
            patient_id=setup["patient"].id,
            medication_id=setup["monthly"].id,
            program_id=setup["program"].id,
            dispensed_at=datetime(2025, 1, 31, 2, 0),
            dispensed_by_id=staff_user.id,
        )

        assert dispensation.bucket_start == datetime(2025, 1, 1, 6, 0)
        assert dispensation.next_due_date == datetime(2025, 3, 1, 2, 0)

    def test_hours_since_last_is_never_negative(self, setup):
        # Prior dose recorded after the service clock
        setup["dispense"](setup["daily"], datetime(2025, 3, 11, 23, 0))

        with pytest.raises(DuplicateDispensationError) as exc_info:
            setup["dispense"](setup["daily"], datetime(2025, 3, 11, 23, 30))

        assert exc_info.value.hours_since_last == 0


class TestConstraintSafetyNet:
    def test_collision_is_translated_when_precheck_is_bypassed(self, db, setup):
        setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))

        with patch.object(setup["service"], "check_duplicate", return_value=0):
            with pytest.raises(DuplicateDispensationError) as exc_info:
                setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))

        assert exc_info.value.reason == BUCKET_COLLISION_REASON
        assert count_dispensations(db) == 1

    def test_twice_daily_race_on_same_slot(self, db, setup):
        setup["dispense"](setup["twice"], datetime(2025, 3, 11, 9, 0))

        with patch.object(setup["service"], "check_duplicate", return_value=0):
            with pytest.raises(DuplicateDispensationError):
                setup["dispense"](setup["twice"], datetime(2025, 3, 11, 10, 0))

        assert count_dispensations(db) == 1

    def test_session_is_usable_after_collision(self, db, setup):
        setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))

        with patch.object(setup["service"], "check_duplicate", return_value=0):
            with pytest.raises(DuplicateDispensationError):
                setup["dispense"](setup["daily"], datetime(2025, 3, 11, 9, 0))

        accepted = setup["dispense"](setup["daily"], datetime(2025, 3, 12, 9, 0))
        assert accepted.id is not None


class TestIsBucketCollision:
    def test_mysql_duplicate_entry(self):
        error = IntegrityError("INSERT", {}, Exception(1062, "Duplicate entry 'x' for key 'uq_dispensation_bucket'"))
        assert is_bucket_collision(error)

    def test_postgres_unique_violation(self):
        class FakePgError(Exception):
            pgcode = "23505"

        assert is_bucket_collision(IntegrityError("INSERT", {}, FakePgError("duplicate key value")))

    def test_sqlite_unique_failure(self):
        error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: dispensations.patient_id"))
        assert is_bucket_collision(error)

    def test_other_integrity_errors(self):
        error = IntegrityError("INSERT", {}, Exception(1452, "Cannot add or update a child row"))
        assert not is_bucket_collision(error)


class TestReferencesAndSideEffects:
    def test_unknown_medication(self, setup, staff_user):
        with pytest.raises(NotFoundError) as exc_info:
            setup["service"].attempt_dispense(
                patient_id=setup["patient"].id,
                medication_id=9999,
                program_id=setup["program"].id,
                dispensed_at=datetime(2025, 3, 11, 8, 0),
                dispensed_by_id=staff_user.id,
            )
        assert exc_info.value.message == "Medication not found"

    def test_unknown_patient(self, setup, staff_user):
        with pytest.raises(NotFoundError):
            setup["service"].attempt_dispense(
                patient_id=9999,
                medication_id=setup["daily"].id,
                program_id=setup["program"].id,
                dispensed_at=datetime(2025, 3, 11, 8, 0),
                dispensed_by_id=staff_user.id,
            )

    def test_accepted_dispense_recomputes_enrollment(self, db, setup):
        setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))

        db.refresh(setup["enrollment"])
        assert setup["enrollment"].adherence_rate == 14

    def test_accepted_dispense_is_logged(self, db, setup, staff_user):
        dispensation = setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))

        entry = db.query(ActivityLog).one()
        assert entry.type == ActivityType.MEDICATION
        assert entry.user_id == staff_user.id
        assert entry.details["dispensation_id"] == dispensation.id

    def test_recompute_failure_keeps_dispensation(self, db, setup, fixed_clock, staff_user):
        failing = ProgressService(db, enrollments=Mock(find_for=Mock(side_effect=RuntimeError("boom"))))
        service = DispensationService(db, progress=failing, clock=fixed_clock, tz="UTC")

        service.attempt_dispense(
            patient_id=setup["patient"].id,
            medication_id=setup["daily"].id,
            program_id=setup["program"].id,
            dispensed_at=datetime(2025, 3, 11, 8, 0),
            dispensed_by_id=staff_user.id,
        )
        assert count_dispensations(db) == 1

    def test_activity_failure_keeps_dispensation(self, db, setup):
        with patch("dosewatch.services.activity_service.ActivityLog", side_effect=RuntimeError("boom")):
            setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))

        assert count_dispensations(db) == 1
        assert db.query(ActivityLog).count() == 0


class TestDispensationQueries:
    def test_list_newest_first(self, setup):
        setup["dispense"](setup["daily"], datetime(2025, 3, 10, 8, 0))
        setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))
        setup["dispense"](setup["weekly"], datetime(2025, 3, 9, 8, 0))

        daily_only = setup["service"].list_dispensations(medication_id=setup["daily"].id)
        assert [d.dispensed_at.day for d in daily_only] == [11, 10]

        ranged = setup["service"].list_dispensations(
            start=datetime(2025, 3, 9), end=datetime(2025, 3, 10, 23, 59)
        )
        assert len(ranged) == 2

    def test_patient_history(self, setup):
        setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))

        assert len(setup["service"].get_patient_history(setup["patient"].id)) == 1
        with pytest.raises(NotFoundError):
            setup["service"].get_patient_history(9999)

    def test_get_dispensation(self, setup):
        dispensation = setup["dispense"](setup["daily"], datetime(2025, 3, 11, 8, 0))

        assert setup["service"].get_dispensation(dispensation.id).medication.name == "Metformin"
        with pytest.raises(NotFoundError):
            setup["service"].get_dispensation(9999)
