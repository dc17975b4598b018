import httpx
import pytest
from httpx import ASGITransport

from src.clinicadmin.client.api import ClinicAdminClient
from src.clinicadmin.client.errors import (
    AuthenticationError,
    ClientNotStartedError,
    ConflictError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    ServerError,
    ValidationError,
)
from src.clinicadmin.client.session import AuthSession, SessionStore
from src.clinicadmin.main import app


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "session.json")


def _client(store, transport=None):
    return ClinicAdminClient("http://test", store, transport=transport or ASGITransport(app=app))


async def _signed_in(store):
    api = _client(store)
    await api.start()
    await api.register("Alpha Clinic", "Clinic Admin", "admin@alpha.example.com", "password123")
    await api.login("admin@alpha.example.com", "password123")
    return api


async def test_calls_before_start_are_refused(store):
    api = _client(store)
    with pytest.raises(ClientNotStartedError):
        await api.me()
    with pytest.raises(ClientNotStartedError):
        assert api.session


async def test_login_persists_and_rehydrates_session(store):
    api = await _signed_in(store)
    assert api.session.is_authenticated
    assert api.session.role == "admin"
    assert store.path.exists()
    await api.close()

    async with _client(store) as restored:
        assert restored.session.token == api.session.token
        profile = await restored.me()
        assert profile["email"] == "admin@alpha.example.com"


async def test_resource_round_trip(store):
    api = await _signed_in(store)
    try:
        doctor = await api.create_user(
            {
                "name": "Dr. Ada Obi",
                "email": "ada@alpha.example.com",
                "password": "password123",
                "role": "doctor",
                "specialty": "Cardiology",
            }
        )
        patient = await api.create_patient({"name": "Jane Doe"})
        await api.create_appointment(
            {
                "patientId": patient["id"],
                "doctorId": doctor["id"],
                "start": "2025-01-01T09:00:00",
                "end": "2025-01-01T09:30:00",
            }
        )
        appointments = await api.list_appointments("2025-01-01", "2025-01-02", doctor_id=doctor["id"])
        assert [a["patientName"] for a in appointments] == ["Jane Doe"]

        invoice = await api.create_invoice(
            {
                "patientId": patient["id"],
                "issueDate": "2025-01-01",
                "dueDate": "2025-01-31",
                "items": [{"description": "Visit", "quantity": 2, "unitPrice": 50}],
            }
        )
        filename, pdf = await api.download_invoice_pdf(invoice["id"])
        assert filename == f"Invoice-{invoice['invoiceNumber']}.pdf"
        assert pdf.startswith(b"%PDF")

        item = await api.create_inventory_item({"name": "Gauze", "quantity": 2})
        adjusted = await api.adjust_stock(item["id"], 3, notes="delivery")
        assert adjusted["quantity"] == 5
        low = await api.list_inventory(low_stock=True)
        assert low["pagination"]["totalItems"] == 1

        settings = await api.update_settings({"currencySymbol": "€"})
        assert settings["currencySymbol"] == "€"
        dashboard = await api.get_dashboard()
        assert dashboard["kpis"]["totalPatients"] == 1
    finally:
        await api.close()


async def test_http_errors_map_to_typed_exceptions(store):
    api = await _signed_in(store)
    try:
        with pytest.raises(NotFoundError) as not_found:
            await api.get_patient(9999)
        assert not_found.value.message == "Patient not found."
        assert not_found.value.status_code == 404

        await api.create_patient({"name": "Jane Doe", "email": "jane@example.com"})
        with pytest.raises(ConflictError):
            await api.create_patient({"name": "Jane Again", "email": "jane@example.com"})

        with pytest.raises(ValidationError):
            await api.create_patient({"name": "J"})

        await api.create_user(
            {"name": "Rita Desk", "email": "rita@alpha.example.com", "password": "password123", "role": "reception"}
        )
    finally:
        await api.close()

    reception_store = SessionStore(store.path.with_name("reception.json"))
    async with _client(reception_store) as reception:
        await reception.login("rita@alpha.example.com", "password123")
        with pytest.raises(PermissionDeniedError):
            await reception.list_users()


async def test_unauthorized_response_clears_session(store):
    store.save(AuthSession(token="expired-token", user={"id": 1, "role": "admin"}))

    async with _client(store) as api:
        assert api.session.is_authenticated
        with pytest.raises(AuthenticationError):
            await api.list_patients()
        assert not api.session.is_authenticated
        assert not store.path.exists()


async def test_reads_are_retried_once(store):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        if len(calls) == 1:
            return httpx.Response(503, json={"success": False, "message": "busy", "data": None})
        return httpx.Response(200, json={"success": True, "message": "ok", "data": {"id": 1}})

    async with _client(store, httpx.MockTransport(handler)) as api:
        assert await api.get_patient(1) == {"id": 1}
    assert calls == ["GET", "GET"]


async def test_writes_are_not_retried(store):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(500, json={"success": False, "message": "boom", "data": None})

    async with _client(store, httpx.MockTransport(handler)) as api:
        with pytest.raises(ServerError) as excinfo:
            await api.create_patient({"name": "Jane Doe"})
    assert excinfo.value.message == "boom"
    assert calls == ["POST"]


async def test_network_failure_raises_after_retry(store):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(store, httpx.MockTransport(handler)) as api:
        with pytest.raises(NetworkError):
            await api.list_patients()
    assert calls == ["GET", "GET"]
