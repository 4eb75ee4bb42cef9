"""
Tests for appointment endpoints
"""

import pytest

from conftest import API


@pytest.fixture
def patient(make_account):
    return make_account("pat")


@pytest.fixture
def profile(patient, doctor, make_patient):
    return make_patient("Pat", userId=patient.id, primaryDoctorId=doctor.id)


def book(client, account, **fields):
    payload = {"appointmentDate": "2030-01-01T10:00:00"}
    payload.update(fields)
    return client.post(f"{API}/appointments", json=payload, headers=account.headers)


class TestAppointmentCreate:

    def test_patient_books_for_own_profile(self, client, patient, profile, doctor):
        response = book(client, patient, doctorId=doctor.id, reason="Cough")
        assert response.status_code == 201

        appointment = response.json()["data"]["appointment"]
        assert appointment["patientId"] == profile["id"]
        assert appointment["doctorId"] == doctor.id
        assert appointment["status"] == "scheduled"
        assert appointment["createdById"] == patient.id
        assert appointment["doctor"]["username"] == "drdoe"
        assert appointment["patient"]["firstName"] == "Pat"

    def test_doctor_id_with_patient_role_is_rejected(self, client, staff, patient, profile, make_account):
        impostor = make_account("impostor")

        for account, fields in (
            (patient, {"doctorId": impostor.id}),
            (staff, {"patientId": profile["id"], "doctorId": impostor.id}),
        ):
            response = book(client, account, **fields)
            assert response.status_code == 400
            assert response.json()["message"] == "Assigned doctor must have the doctor role"

        listed = client.get(f"{API}/appointments", headers=staff.headers)
        assert listed.json()["data"]["appointments"] == []

    def test_unknown_doctor(self, client, patient, profile):
        response = book(client, patient, doctorId=999)
        assert response.status_code == 404
        assert response.json()["message"] == "Doctor not found"

    def test_doctor_required(self, client, staff, profile):
        response = book(client, staff, patientId=profile["id"])
        assert response.status_code == 400
        assert response.json()["message"] == "Doctor is required"

    def test_unknown_patient(self, client, staff, doctor):
        response = book(client, staff, patientId=999, doctorId=doctor.id)
        assert response.status_code == 404
        assert response.json()["message"] == "Patient not found"

    def test_patient_without_profile(self, client, make_account, doctor):
        patient = make_account("newbie")
        response = book(client, patient, doctorId=doctor.id)
        assert response.status_code == 400
        assert response.json()["message"] == "Create a patient profile before booking appointments"

    def test_patient_cannot_book_for_someone_else(self, client, patient, profile, doctor, make_patient):
        other = make_patient("Other")
        response = book(client, patient, patientId=other["id"], doctorId=doctor.id)
        assert response.status_code == 403

    def test_doctor_defaults_to_self(self, client, doctor, profile):
        response = book(client, doctor, patientId=profile["id"])
        assert response.status_code == 201
        assert response.json()["data"]["appointment"]["doctorId"] == doctor.id

    def test_doctor_cannot_book_for_another_doctor(self, client, doctor, profile, make_account):
        other_doctor = make_account("drother", role="doctor")
        response = book(client, doctor, patientId=profile["id"], doctorId=other_doctor.id)
        assert response.status_code == 403

    def test_date_required(self, client, staff, profile, doctor):
        response = client.post(f"{API}/appointments", json={
            "patientId": profile["id"], "doctorId": doctor.id,
        }, headers=staff.headers)
        assert response.status_code == 400


class TestAppointmentRead:

    def test_list_is_scoped_and_ordered(self, client, staff, doctor, patient, profile, make_account, make_patient):
        other_doctor = make_account("drother", role="doctor")
        other = make_patient("Other")

        later = book(client, staff, patientId=profile["id"], doctorId=doctor.id,
                     appointmentDate="2030-03-01T09:00:00").json()["data"]["appointment"]
        sooner = book(client, staff, patientId=profile["id"], doctorId=doctor.id,
                      appointmentDate="2030-02-01T09:00:00").json()["data"]["appointment"]
        foreign = book(client, staff, patientId=other["id"], doctorId=other_doctor.id).json()["data"]["appointment"]

        doctor_view = client.get(f"{API}/appointments", headers=doctor.headers).json()["data"]["appointments"]
        assert [a["id"] for a in doctor_view] == [sooner["id"], later["id"]]

        patient_view = client.get(f"{API}/appointments", headers=patient.headers).json()["data"]["appointments"]
        assert [a["id"] for a in patient_view] == [sooner["id"], later["id"]]

        staff_view = client.get(f"{API}/appointments", headers=staff.headers).json()["data"]["appointments"]
        assert len(staff_view) == 3

        assert client.get(f"{API}/appointments/{foreign['id']}", headers=doctor.headers).status_code == 403
        assert client.get(f"{API}/appointments/{foreign['id']}", headers=patient.headers).status_code == 403
        assert client.get(f"{API}/appointments/{sooner['id']}", headers=patient.headers).status_code == 200

    def test_status_filter(self, client, staff, doctor, profile):
        book(client, staff, patientId=profile["id"], doctorId=doctor.id)
        book(client, staff, patientId=profile["id"], doctorId=doctor.id, status="cancelled")

        response = client.get(f"{API}/appointments", params={"status": "cancelled"}, headers=staff.headers)
        appointments = response.json()["data"]["appointments"]
        assert [a["status"] for a in appointments] == ["cancelled"]

    def test_invalid_status_filter(self, client, staff):
        response = client.get(f"{API}/appointments", params={"status": "postponed"}, headers=staff.headers)
        assert response.status_code == 400

    def test_unknown_appointment(self, client, staff):
        assert client.get(f"{API}/appointments/999", headers=staff.headers).status_code == 404


class TestAppointmentUpdate:

    def test_patient_update_drops_disallowed_fields(self, client, patient, profile, doctor, make_account):
        other_doctor = make_account("drother", role="doctor")
        appointment = book(client, patient, doctorId=doctor.id).json()["data"]["appointment"]

        response = client.put(f"{API}/appointments/{appointment['id']}", json={
            "doctorId": other_doctor.id,
            "location": "Room 9",
            "notes": "Running late",
            "status": "cancelled",
        }, headers=patient.headers)
        assert response.status_code == 200

        updated = response.json()["data"]["appointment"]
        assert updated["doctorId"] == doctor.id
        assert updated["location"] is None
        assert updated["notes"] == "Running late"
        assert updated["status"] == "cancelled"

    def test_oversized_location_dropped_for_doctor(self, client, doctor, profile):
        appointment = book(client, doctor, patientId=profile["id"]).json()["data"]["appointment"]

        response = client.put(f"{API}/appointments/{appointment['id']}", json={
            "location": "R" * 300,
            "reason": "Check-up",
        }, headers=doctor.headers)
        assert response.status_code == 200
        assert response.json()["data"]["appointment"]["location"] is None
        assert response.json()["data"]["appointment"]["reason"] == "Check-up"

    def test_oversized_location_rejected_for_staff(self, client, staff, doctor, profile):
        appointment = book(client, staff, patientId=profile["id"], doctorId=doctor.id).json()["data"]["appointment"]

        response = client.put(f"{API}/appointments/{appointment['id']}", json={
            "location": "R" * 300,
        }, headers=staff.headers)
        assert response.status_code == 400
        assert response.json()["message"] == "location must be at most 255 characters"

    def test_staff_can_reassign_doctor(self, client, staff, doctor, profile, make_account):
        other_doctor = make_account("drother", role="doctor")
        appointment = book(client, staff, patientId=profile["id"], doctorId=doctor.id).json()["data"]["appointment"]

        response = client.put(f"{API}/appointments/{appointment['id']}", json={
            "doctorId": other_doctor.id,
        }, headers=staff.headers)
        assert response.status_code == 200
        assert response.json()["data"]["appointment"]["doctorId"] == other_doctor.id

    def test_staff_reassign_to_non_doctor(self, client, staff, doctor, profile, patient):
        appointment = book(client, staff, patientId=profile["id"], doctorId=doctor.id).json()["data"]["appointment"]

        response = client.put(f"{API}/appointments/{appointment['id']}", json={
            "doctorId": patient.id,
        }, headers=staff.headers)
        assert response.status_code == 400

    def test_unrelated_doctor_cannot_update(self, client, staff, doctor, profile, make_account):
        other_doctor = make_account("drother", role="doctor")
        appointment = book(client, staff, patientId=profile["id"], doctorId=doctor.id).json()["data"]["appointment"]

        response = client.put(f"{API}/appointments/{appointment['id']}", json={"notes": "x"},
                              headers=other_doctor.headers)
        assert response.status_code == 403


class TestAppointmentDelete:

    def test_only_privileged_roles_delete(self, client, staff, doctor, patient, profile):
        appointment = book(client, patient, doctorId=doctor.id).json()["data"]["appointment"]

        assert client.delete(f"{API}/appointments/{appointment['id']}", headers=patient.headers).status_code == 403
        assert client.delete(f"{API}/appointments/{appointment['id']}", headers=doctor.headers).status_code == 403
        assert client.delete(f"{API}/appointments/{appointment['id']}", headers=staff.headers).status_code == 200
        assert client.get(f"{API}/appointments/{appointment['id']}", headers=staff.headers).status_code == 404
