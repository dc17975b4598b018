from typing import Optional

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from src.clinicadmin.config import settings
from src.clinicadmin.infra.db.models import Base
from src.clinicadmin.infra.db.session import database
from src.clinicadmin.main import app


PASSWORD = "password123"


@pytest.fixture(autouse=True)
def fresh_database(monkeypatch):
    """Every test gets an empty in-memory database and cheap password hashing."""

    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    engine = database.configure("sqlite://")
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def login(client):
    async def _login(email: str, password: str = PASSWORD) -> dict:
        response = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == status.HTTP_200_OK, response.text
        return {"Authorization": f"Bearer {response.json()['data']['token']}"}

    return _login


@pytest.fixture
def register_clinic(client, login):
    """Register a clinic and return auth headers for its admin."""

    async def _register(clinic_name: str = "Alpha Clinic", email: str = "admin@alpha.example.com") -> dict:
        response = await client.post(
            "/api/v1/auth/register",
            json={"clinicName": clinic_name, "userName": "Clinic Admin", "email": email, "password": PASSWORD},
        )
        assert response.status_code == status.HTTP_201_CREATED, response.text
        return await login(email)

    return _register


@pytest.fixture
async def admin_headers(register_clinic):
    return await register_clinic()


@pytest.fixture
def create_staff(client, login):
    """Create a staff member as an admin; returns ``(user, headers)``."""

    async def _create(
        admin: dict,
        *,
        role: str = "doctor",
        name: str = "Dr. Ada Obi",
        email: str = "ada.obi@alpha.example.com",
        specialty: Optional[str] = "Cardiology",
    ) -> tuple:
        body = {"name": name, "email": email, "password": PASSWORD, "role": role}
        if specialty is not None:
            body["specialty"] = specialty
        response = await client.post("/api/v1/users", json=body, headers=admin)
        assert response.status_code == status.HTTP_201_CREATED, response.text
        return response.json()["data"], await login(email)

    return _create


@pytest.fixture
def create_patient(client):
    async def _create(headers: dict, name: str = "John Carter", **fields) -> dict:
        response = await client.post("/api/v1/patients", json={"name": name, **fields}, headers=headers)
        assert response.status_code == status.HTTP_201_CREATED, response.text
        return response.json()["data"]

    return _create
