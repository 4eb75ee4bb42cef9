"""
Tests for the administrative endpoints
"""

import pytest

from conftest import API


@pytest.fixture
def admin(make_account):
    return make_account("root", role="admin")


class TestDashboard:

    def test_statistics(self, client, admin, staff, doctor, make_account, make_patient):
        patient = make_account("pat")
        profile = make_patient("Pat", userId=patient.id, primaryDoctorId=doctor.id)
        client.post(f"{API}/appointments", json={
            "patientId": profile["id"], "doctorId": doctor.id, "appointmentDate": "2099-01-01T10:00:00",
        }, headers=staff.headers)
        client.post(f"{API}/appointments", json={
            "patientId": profile["id"], "doctorId": doctor.id, "appointmentDate": "2001-01-01T10:00:00",
        }, headers=staff.headers)
        client.post(f"{API}/medical-records", json={"patientId": profile["id"], "title": "Visit"},
                    headers=doctor.headers)

        response = client.get(f"{API}/admin/dashboard", headers=admin.headers)
        assert response.status_code == 200

        statistics = response.json()["data"]["statistics"]
        assert statistics["totalUsers"] == 4
        assert statistics["roleBreakdown"] == {
            "admin": 1, "manager": 0, "staff": 1, "doctor": 1, "patient": 1,
        }
        assert statistics["totalPatients"] == 1
        # past appointments do not count as scheduled
        assert statistics["scheduledAppointments"] == 1
        assert statistics["recordsDocumented"] == 1

    @pytest.mark.parametrize("role", ["manager", "staff", "doctor", "patient"])
    def test_admin_only(self, client, make_account, role):
        account = make_account(f"user-{role}", role=role)
        for path in ("/admin/dashboard", "/admin/users", "/admin/audit-log"):
            response = client.get(f"{API}{path}", headers=account.headers)
            assert response.status_code == 403
            assert response.json()["message"] == "Not authorized to perform this action"


class TestUserAdministration:

    def test_list_users_with_profiles(self, client, admin, make_account, make_patient):
        patient = make_account("pat")
        make_patient("Pat", userId=patient.id)

        response = client.get(f"{API}/admin/users", headers=admin.headers)
        assert response.status_code == 200

        users = {u["username"]: u for u in response.json()["data"]["users"]}
        assert set(users) == {"root", "sam", "pat"}
        assert users["pat"]["patientProfile"]["firstName"] == "Pat"
        assert users["root"]["patientProfile"] is None
        assert all("hashedPassword" not in u for u in users.values())

    def test_admin_cannot_delete_self(self, client, admin):
        response = client.delete(f"{API}/admin/users/{admin.id}", headers=admin.headers)
        assert response.status_code == 403

        still_there = client.get(f"{API}/auth/profile", headers=admin.headers)
        assert still_there.status_code == 200

    def test_admin_deletes_another_admin(self, client, admin, make_account):
        other_admin = make_account("root2", role="admin")

        response = client.delete(f"{API}/admin/users/{other_admin.id}", headers=admin.headers)
        assert response.status_code == 200

        login = client.post(f"{API}/auth/login", json={"username": "root2", "password": "secret1"})
        assert login.status_code == 401
        assert client.get(f"{API}/auth/profile", headers=other_admin.headers).status_code == 401

    def test_delete_unknown_user(self, client, admin):
        response = client.delete(f"{API}/admin/users/999", headers=admin.headers)
        assert response.status_code == 404

    def test_deleting_doctor_applies_cascade_rules(self, client, admin, staff, doctor, make_patient):
        profile = make_patient("Pat", primaryDoctorId=doctor.id)
        appointment = client.post(f"{API}/appointments", json={
            "patientId": profile["id"], "doctorId": doctor.id, "appointmentDate": "2030-01-01T10:00:00",
        }, headers=staff.headers).json()["data"]["appointment"]
        record = client.post(f"{API}/medical-records", json={
            "patientId": profile["id"], "title": "Visit",
        }, headers=doctor.headers).json()["data"]["record"]

        response = client.delete(f"{API}/admin/users/{doctor.id}", headers=admin.headers)
        assert response.status_code == 200

        patient_after = client.get(f"{API}/patients/{profile['id']}", headers=staff.headers)
        assert patient_after.status_code == 200
        assert patient_after.json()["data"]["patient"]["primaryDoctorId"] is None

        assert client.get(f"{API}/appointments/{appointment['id']}", headers=staff.headers).status_code == 404

        record_after = client.get(f"{API}/medical-records/{record['id']}", headers=staff.headers)
        assert record_after.status_code == 200
        assert record_after.json()["data"]["record"]["doctorId"] is None
        assert record_after.json()["data"]["record"]["createdById"] is None

    def test_deleting_patient_account_keeps_profile(self, client, admin, staff, make_account, make_patient):
        patient = make_account("pat")
        profile = make_patient("Pat", userId=patient.id)

        assert client.delete(f"{API}/admin/users/{patient.id}", headers=admin.headers).status_code == 200

        response = client.get(f"{API}/patients/{profile['id']}", headers=staff.headers)
        assert response.status_code == 200
        assert response.json()["data"]["patient"]["userId"] is None


class TestAuditLog:

    def test_security_events_are_recorded(self, client, admin, make_account):
        victim = make_account("victim")
        client.post(f"{API}/auth/login", json={"username": "victim", "password": "wrong-one"})
        client.post(f"{API}/auth/login", json={"username": "victim", "password": "secret1"})
        client.delete(f"{API}/admin/users/{victim.id}", headers=admin.headers)

        response = client.get(f"{API}/admin/audit-log", headers=admin.headers)
        assert response.status_code == 200

        events = [e["event"] for e in response.json()["data"]["events"]]
        assert events[0] == "account_deleted"
        for expected in ("register", "login_failure", "login_success"):
            assert expected in events

    def test_limit_is_bounded(self, client, admin):
        response = client.get(f"{API}/admin/audit-log", params={"limit": 0}, headers=admin.headers)
        assert response.status_code == 400

        response = client.get(f"{API}/admin/audit-log", params={"limit": 1}, headers=admin.headers)
        assert len(response.json()["data"]["events"]) == 1
