import os
from types import SimpleNamespace

import pytest

# Must be set before the application modules read their settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from medibook.main import app
from medibook.core.config import settings
from medibook.core.database import get_db, get_redis, Base

API = settings.API_PREFIX

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

PATIENT_DATA = {
    "name": "Test Patient",
    "email": "patient@example.com",
    "password": "secret123",
    "role": "patient",
    "phone": "555-0100",
    "age": 34,
    "gender": "female",
    "address": "12 Elm Street",
    "emergencyContact": {"name": "Sam", "phone": "555-0199", "relationship": "sibling"},
}

DOCTOR_DATA = {
    "name": "Dr. Test",
    "email": "doctor@example.com",
    "password": "secret123",
    "role": "doctor",
    "phone": "555-0200",
    "specialization": "Cardiology",
    "licenseNumber": "LIC-1001",
    "experience": 12,
}

@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture(autouse=True)
def reset_rate_limits():
    get_redis().flushall()
    yield

@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}

def register(client, base: dict, **overrides) -> SimpleNamespace:
    """Register a user and return its id, token, headers and payload."""
    payload = {**base, **overrides}
    response = client.post(f"{API}/auth/register", json=payload)
    assert response.status_code == 201, response.json()
    data = response.json()
    return SimpleNamespace(
        id=data["user"]["id"],
        token=data["accessToken"],
        refresh_token=data["refreshToken"],
        headers=auth_headers(data["accessToken"]),
        user=data["user"],
        payload=payload,
    )

@pytest.fixture
def patient(client):
    return register(client, PATIENT_DATA)

@pytest.fixture
def other_patient(client):
    return register(client, PATIENT_DATA, name="Other Patient", email="other.patient@example.com")

@pytest.fixture
def doctor(client):
    return register(client, DOCTOR_DATA)

@pytest.fixture
def other_doctor(client):
    return register(
        client, DOCTOR_DATA,
        name="Dr. Other", email="other.doctor@example.com", licenseNumber="LIC-2002"
    )

def book(client, patient, doctor, **overrides) -> dict:
    payload = {
        "doctorId": doctor.id,
        "date": "2030-05-01",
        "time": "09:30",
        "reason": "Chest pain",
        "symptoms": "Shortness of breath",
        **overrides,
    }
    response = client.post(f"{API}/appointments", json=payload, headers=patient.headers)
    assert response.status_code == 201, response.json()
    return response.json()["appointment"]

@pytest.fixture
def appointment(client, patient, doctor):
    return book(client, patient, doctor)
