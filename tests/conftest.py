"""
Shared fixtures: a fresh in-memory database and application per test
"""

import os

# main.py builds a module-level app on import; keep it off the file database
os.environ.setdefault("DATABASE_URL", "sqlite://")

from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.database import Database
from main import create_app

API = "/api"
DEFAULT_PASSWORD = "secret1"


@dataclass
class Account:
    user: dict
    token: str

    @property
    def id(self) -> int:
        return self.user["id"]

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture
def settings():
    settings = Settings()
    settings.database_url = "sqlite://"
    settings.secret_key = "test-secret-key"
    settings.rate_limit_enabled = False
    settings.bcrypt_rounds = 4
    settings.expose_reset_token = True
    return settings


@pytest.fixture
def app(settings, database):
    return create_app(settings=settings, database=database)


@pytest.fixture
def auth_handler(app):
    return app.state.auth_handler


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_account(client):
    """Register an account through the API and return it with its token"""
    def _make(username: str, role: str = "patient", password: str = DEFAULT_PASSWORD,
              email: str = None) -> Account:
        response = client.post(f"{API}/auth/register", json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
            "role": role,
        })
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return Account(user=data["user"], token=data["token"])

    return _make


@pytest.fixture
def staff(make_account):
    return make_account("sam", role="staff")


@pytest.fixture
def doctor(make_account):
    return make_account("drdoe", role="doctor")


@pytest.fixture
def make_patient(client, staff):
    """Create a patient profile as staff"""
    def _make(first_name: str = "Pat", last_name: str = "Smith", **fields) -> dict:
        payload = {"firstName": first_name, "lastName": last_name}
        payload.update(fields)
        response = client.post(f"{API}/patients", json=payload, headers=staff.headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]["patient"]

    return _make
