"""
Unit tests for authentication functionality
"""

import time
from datetime import timedelta

from fastapi.testclient import TestClient
from jose import jwt

from app.models.user import User
from main import create_app
from conftest import API


class TestUserRegistration:
    """Test cases for user registration"""

    def test_register_success(self, client):
        """Test successful registration returns the account and a token"""
        response = client.post(f"{API}/auth/register", json={
            "username": "TestUser",
            "email": "Test@Example.com",
            "password": "secret1",
        })
        assert response.status_code == 201

        body = response.json()
        assert body["success"] is True
        user = body["data"]["user"]
        assert user["username"] == "testuser"
        assert user["email"] == "test@example.com"
        assert user["role"] == "patient"
        assert "password" not in user
        assert "hashedPassword" not in user
        assert body["data"]["token"]

    def test_register_with_role(self, make_account):
        account = make_account("drwho", role="doctor")
        assert account.user["role"] == "doctor"

    def test_register_duplicate_username(self, client, make_account):
        make_account("duplicate")

        response = client.post(f"{API}/auth/register", json={
            "username": "duplicate",
            "email": "other@example.com",
            "password": "secret1",
        })
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "username" in response.json()["message"]

    def test_register_duplicate_email(self, client, make_account):
        make_account("first", email="dup@example.com")

        response = client.post(f"{API}/auth/register", json={
            "username": "second",
            "email": "dup@example.com",
            "password": "secret1",
        })
        assert response.status_code == 400
        assert "email" in response.json()["message"]

    def test_register_invalid_payloads(self, client):
        invalid_payloads = [
            {"username": "ab", "email": "a@example.com", "password": "secret1"},  # Username too short
            {"username": "bad name", "email": "b@example.com", "password": "secret1"},  # Bad characters
            {"username": "valid", "email": "not-an-email", "password": "secret1"},  # Bad email
            {"username": "valid", "email": "c@example.com", "password": "short"},  # Password too short
            {"username": "valid", "email": "d@example.com", "password": "secret1", "role": "superuser"},
        ]

        for payload in invalid_payloads:
            response = client.post(f"{API}/auth/register", json=payload)
            assert response.status_code == 400, payload
            body = response.json()
            assert body["success"] is False
            assert body["message"] == "Validation failed"
            assert body["errors"]


class TestUserLogin:
    """Test cases for user login"""

    def test_login_with_either_identifier(self, client, make_account, auth_handler):
        make_account("jane", email="jane@x.com", password="secret1")

        by_username = client.post(f"{API}/auth/login", json={"username": "jane", "password": "secret1"})
        by_email = client.post(f"{API}/auth/login", json={"email": "jane@x.com", "password": "secret1"})
        assert by_username.status_code == 200
        assert by_email.status_code == 200

        claims = [
            auth_handler.verify_token(response.json()["data"]["token"])
            for response in (by_username, by_email)
        ]
        for claim in claims:
            claim.pop("exp")
        assert claims[0] == claims[1]
        assert claims[0]["username"] == "jane"
        assert claims[0]["email"] == "jane@x.com"
        assert claims[0]["role"] == "patient"

    def test_login_wrong_password(self, client, make_account):
        make_account("jane", email="jane@x.com", password="secret1")

        for payload in ({"username": "jane", "password": "wrong1"}, {"email": "jane@x.com", "password": "wrong1"}):
            response = client.post(f"{API}/auth/login", json=payload)
            assert response.status_code == 401
            assert response.json()["message"] == "Invalid email/username or password"

    def test_email_match_wins_over_username(self, client, make_account):
        make_account("jane", email="jane@x.com", password="secret1")
        make_account("bob", email="bob@x.com", password="other12")

        response = client.post(f"{API}/auth/login", json={
            "email": "jane@x.com", "username": "bob", "password": "secret1",
        })
        assert response.status_code == 200
        assert response.json()["data"]["user"]["username"] == "jane"

        response = client.post(f"{API}/auth/login", json={
            "email": "jane@x.com", "username": "bob", "password": "other12",
        })
        assert response.status_code == 401

    def test_login_unknown_account_same_message(self, client):
        response = client.post(f"{API}/auth/login", json={"username": "nobody", "password": "secret1"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email/username or password"

    def test_login_requires_identifier(self, client):
        response = client.post(f"{API}/auth/login", json={"password": "secret1"})
        assert response.status_code == 400
        assert "Email or username is required" in response.json()["errors"]


class TestTokens:
    """Token verification"""

    def test_token_claims_match_account(self, make_account, auth_handler):
        account = make_account("claims")
        payload = auth_handler.verify_token(account.token)

        assert payload["sub"] == str(account.id)
        assert payload["username"] == "claims"
        assert payload["email"] == "claims@example.com"
        assert payload["role"] == "patient"

    def test_missing_token(self, client):
        response = client.get(f"{API}/auth/profile")
        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required"

    def test_tampered_token(self, client, make_account, auth_handler):
        account = make_account("tamper")
        payload = auth_handler.verify_token(account.token)
        payload["role"] = "admin"
        forged = jwt.encode(payload, "not-the-secret", algorithm="HS256")

        response = client.get(f"{API}/auth/profile", headers={"Authorization": f"Bearer {forged}"})
        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get(f"{API}/auth/profile", headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401

    def test_expired_token(self, client, make_account, auth_handler):
        account = make_account("expired")
        user = User(id=account.id, username="expired", email="expired@example.com", role="patient")
        token = auth_handler.create_access_token(user, expires_delta=timedelta(seconds=-10))

        response = client.get(f"{API}/auth/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestProfile:
    """Current account endpoint"""

    def test_profile_without_patient_profile(self, client, doctor):
        response = client.get(f"{API}/auth/profile", headers=doctor.headers)
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["user"]["username"] == "drdoe"
        assert "patientProfile" not in data
        assert "hashedPassword" not in data["user"]

    def test_profile_includes_patient_profile(self, client, make_account):
        patient = make_account("pat")
        created = client.post(f"{API}/patients", json={"firstName": "Pat", "lastName": "Jones"},
                              headers=patient.headers)
        assert created.status_code == 201

        response = client.get(f"{API}/auth/profile", headers=patient.headers)
        assert response.status_code == 200
        assert response.json()["data"]["patientProfile"]["firstName"] == "Pat"


class TestChangePassword:
    """Password change for a signed-in account"""

    def test_change_password(self, client, make_account):
        account = make_account("changer")

        response = client.post(f"{API}/auth/change-password", json={
            "currentPassword": "secret1",
            "newPassword": "secret2",
        }, headers=account.headers)
        assert response.status_code == 200

        old = client.post(f"{API}/auth/login", json={"username": "changer", "password": "secret1"})
        new = client.post(f"{API}/auth/login", json={"username": "changer", "password": "secret2"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_change_password_wrong_current(self, client, make_account):
        account = make_account("changer")

        response = client.post(f"{API}/auth/change-password", json={
            "currentPassword": "nope-nope",
            "newPassword": "secret2",
        }, headers=account.headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Current password is incorrect"


class TestPublicEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["data"]["apiPrefix"] == "/api"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "healthy"


class TestInjectedSettings:
    """The Settings passed to create_app drive hashing, tokens and rate limits"""

    def test_token_signed_with_injected_secret(self, settings, make_account):
        account = make_account("signer")

        payload = jwt.decode(account.token, settings.secret_key, algorithms=["HS256"])
        assert payload["sub"] == str(account.id)

    def test_token_lifetime_from_settings(self, settings, database):
        settings.secret_key = "another-secret"
        settings.access_token_expire_minutes = 5
        client = TestClient(create_app(settings=settings, database=database))

        response = client.post(f"{API}/auth/register", json={
            "username": "shortlived", "email": "short@example.com", "password": "secret1",
        })
        payload = jwt.decode(response.json()["data"]["token"], "another-secret", algorithms=["HS256"])
        assert 0 < payload["exp"] - time.time() <= 5 * 60 + 5

    def test_bcrypt_rounds_from_settings(self, database, make_account):
        make_account("rounds")

        with database.session() as session:
            stored = session.query(User).filter(User.username == "rounds").one()
            assert stored.hashed_password.startswith("$2b$04$")

    def test_rate_limit_switch_from_settings(self, settings, database):
        settings.rate_limit_enabled = True
        client = TestClient(create_app(settings=settings, database=database))

        statuses = [client.get("/").status_code for _ in range(11)]
        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429
