"""Tests for the HTTP endpoints."""

from datetime import date

import pytest

from dosewatch.models import MedicationFrequency


@pytest.fixture
def enrolled(make_patient, make_medication, make_program, make_enrollment):
    medication = make_medication(frequency=MedicationFrequency.DAILY)
    program = make_program(medications=[medication])
    patient = make_patient()
    enrollment = make_enrollment(patient, program, enrollment_date=date(2025, 1, 1))
    return {"patient": patient, "medication": medication, "program": program, "enrollment": enrollment}


def dispense_payload(enrolled, dispensed_at="2025-03-11T08:00:00Z"):
    return {
        "patient_id": enrolled["patient"].id,
        "medication_id": enrolled["medication"].id,
        "program_id": enrolled["program"].id,
        "dispensed_at": dispensed_at,
    }


class TestHealth:
    def test_root_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"]["status"] == "connected"

    def test_api_health(self, client):
        assert client.get("/api/health").json()["status"] == "healthy"

    def test_only_documented_routes_are_exposed(self, client, auth_headers):
        assert client.get("/api/info", headers=auth_headers).status_code == 404


class TestAuthentication:
    def test_missing_token(self, client):
        assert client.get("/api/dispensations/tracking").status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/api/dispensations/tracking", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_unknown_user(self, client, db, token_for):
        token = token_for(9999)
        response = client.get("/api/dispensations/tracking", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestDispensationEndpoints:
    def test_create_then_duplicate(self, client, auth_headers, enrolled, staff_user):
        created = client.post("/api/dispensations/", json=dispense_payload(enrolled), headers=auth_headers)
        assert created.status_code == 201
        body = created.json()
        assert body["bucket_type"] == "DAY"
        assert body["dispensed_by_id"] == staff_user.id

        duplicate = client.post(
            "/api/dispensations/",
            json=dispense_payload(enrolled, "2025-03-11T20:00:00Z"),
            headers=auth_headers,
        )
        assert duplicate.status_code == 400
        assert duplicate.json()["detail"].startswith("Duplicate dispensation prevented")
        assert "hours_since_last" in duplicate.json()

    def test_unknown_medication(self, client, auth_headers, enrolled):
        payload = dict(dispense_payload(enrolled), medication_id=9999)
        response = client.post("/api/dispensations/", json=payload, headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"detail": "Medication not found"}

    def test_history_and_detail(self, client, auth_headers, enrolled):
        created = client.post("/api/dispensations/", json=dispense_payload(enrolled), headers=auth_headers).json()

        history = client.get(f"/api/dispensations/patient/{enrolled['patient'].id}", headers=auth_headers)
        assert [d["id"] for d in history.json()] == [created["id"]]

        detail = client.get(f"/api/dispensations/{created['id']}", headers=auth_headers)
        assert detail.status_code == 200
        assert client.get("/api/dispensations/9999", headers=auth_headers).status_code == 404

    def test_list_filters(self, client, auth_headers, enrolled):
        client.post("/api/dispensations/", json=dispense_payload(enrolled), headers=auth_headers)

        response = client.get(
            "/api/dispensations/",
            params={"patient_id": enrolled["patient"].id},
            headers=auth_headers,
        )
        assert len(response.json()) == 1

    def test_tracking_table(self, client, auth_headers, enrolled):
        response = client.get("/api/dispensations/tracking", params={"limit": 10}, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"]["total"] == 1
        assert body["data"][0]["pName"] == "Ana Torres"
        assert body["data"][0]["nd"].endswith("Z")

    def test_overdue_views(self, client, auth_headers, enrolled):
        client.post("/api/dispensations/", json=dispense_payload(enrolled), headers=auth_headers)

        count = client.get("/api/dispensations/overdue/count", headers=auth_headers)
        assert count.json() == {"count": 1}

        details = client.get("/api/dispensations/overdue", headers=auth_headers).json()
        assert details[0]["medication_name"] == "Metformin"
        assert details[0]["last_collected"] == "2025-03-11T08:00:00.000Z"


class TestAttendanceAndProgressEndpoints:
    def test_record_update_and_statistics(self, client, auth_headers, enrolled):
        created = client.post(
            "/api/attendance/",
            json={
                "program_id": enrolled["program"].id,
                "attendance_date": "2025-03-11",
                "attendances": [{"patient_id": enrolled["patient"].id, "status": "Absent"}],
            },
            headers=auth_headers,
        )
        assert created.status_code == 201
        attendance_id = created.json()[0]["id"]

        updated = client.patch(f"/api/attendance/{attendance_id}", json={"status": "Late"}, headers=auth_headers)
        assert updated.json()["status"] == "Late"

        stats = client.get(
            "/api/attendance/statistics",
            params={"program_id": enrolled["program"].id},
            headers=auth_headers,
        ).json()
        assert stats["late"] == 1
        assert stats["attendance_rate"] == 100.0

    def test_recompute_endpoint(self, client, auth_headers, enrolled, make_attendance):
        make_attendance(enrolled["patient"], enrolled["program"], date(2025, 3, 4))

        response = client.post(f"/api/enrollments/{enrolled['enrollment'].id}/recompute", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["sessions_completed"] == 1
        assert response.json()["attendance_rate"] == 100
        assert client.post("/api/enrollments/9999/recompute", headers=auth_headers).status_code == 404

    def test_patient_progress(self, client, auth_headers, enrolled):
        response = client.get(f"/api/patients/{enrolled['patient'].id}/progress", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["has_missed_sessions"] is True
        assert client.get("/api/patients/9999/progress", headers=auth_headers).status_code == 404

    def test_missed_sessions(self, client, auth_headers, enrolled):
        response = client.get("/api/enrollments/missed-sessions", headers=auth_headers)

        assert [entry["patient_id"] for entry in response.json()] == [enrolled["patient"].id]
