from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional, Tuple

import httpx

from src.clinicadmin.client.errors import (
    AuthenticationError,
    ClientNotStartedError,
    NetworkError,
    ServerError,
    error_for_status,
)
from src.clinicadmin.client.session import AuthSession, SessionStore


logger = logging.getLogger("clinicadmin.client")

API_PREFIX = "/api/v1"


def _clean(params: Dict[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


class ClinicAdminClient:
    """Async client for the ClinicAdmin REST API.

    The client owns its :class:`AuthSession`. ``start()`` must be awaited once
    before any call: it rehydrates the session from the :class:`SessionStore`
    and opens the HTTP connection pool. Request bodies are plain dicts with the
    API's camelCase keys; responses return the envelope's ``data`` member.

    GET requests are retried once on transport errors and 5xx responses.
    Writes are sent exactly once.
    """

    def __init__(
        self,
        base_url: str,
        store: SessionStore,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._store = store
        self._timeout = timeout
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None
        self._session: Optional[AuthSession] = None

    async def start(self) -> AuthSession:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        if self._session is None:
            self._session = self._store.load()
            if self._session.is_authenticated:
                logger.info("Rehydrated session for tenant %s", self._session.tenant_id)
        return self._session

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "ClinicAdminClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def session(self) -> AuthSession:
        if self._session is None:
            raise ClientNotStartedError("ClinicAdminClient.start() has not been called.")
        return self._session

    # -- transport ------------------------------------------------------------

    def _clear_session(self) -> None:
        self._session = AuthSession()
        self._store.clear()

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if self._http is None or self._session is None:
            raise ClientNotStartedError("ClinicAdminClient.start() has not been called.")

        headers = dict(kwargs.pop("headers", None) or {})
        if self._session.token:
            headers["Authorization"] = f"Bearer {self._session.token}"

        attempts = 2 if method == "GET" else 1
        for attempt in range(1, attempts + 1):
            try:
                response = await self._http.request(method, API_PREFIX + path, headers=headers, **kwargs)
            except httpx.TransportError as exc:
                if attempt < attempts:
                    logger.warning("%s %s failed (%s); retrying", method, path, exc)
                    continue
                raise NetworkError(f"Could not reach the server: {exc}") from exc

            if response.status_code >= 500 and attempt < attempts:
                logger.warning("%s %s returned %s; retrying", method, path, response.status_code)
                continue
            break

        if response.is_success:
            return response

        error = error_for_status(response.status_code, self._error_message(response))
        if isinstance(error, AuthenticationError):
            self._clear_session()
        elif isinstance(error, ServerError):
            logger.error("%s %s failed with status %s", method, path, response.status_code)
        raise error

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.reason_phrase

    async def _data(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._send(method, path, **kwargs)
        return response.json().get("data")

    # -- auth -----------------------------------------------------------------

    async def register(self, clinic_name: str, user_name: str, email: str, password: str) -> Dict[str, Any]:
        return await self._data(
            "POST",
            "/auth/register",
            json={"clinicName": clinic_name, "userName": user_name, "email": email, "password": password},
        )

    async def login(self, email: str, password: str) -> AuthSession:
        result = await self._data("POST", "/auth/login", json={"email": email, "password": password})
        self._session = AuthSession(token=result["token"], user=result["user"])
        self._store.save(self._session)
        return self._session

    def logout(self) -> None:
        if self._session is None:
            raise ClientNotStartedError("ClinicAdminClient.start() has not been called.")
        self._clear_session()

    async def me(self) -> Dict[str, Any]:
        return await self._data("GET", "/auth/me")

    # -- patients -------------------------------------------------------------

    async def list_patients(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = _clean({"page": page, "limit": limit, "search": search, "sortBy": sort_by, "sortOrder": sort_order})
        return await self._data("GET", "/patients", params=params)

    async def get_patient(self, patient_id: int) -> Dict[str, Any]:
        return await self._data("GET", f"/patients/{patient_id}")

    async def create_patient(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("POST", "/patients", json=payload)

    async def update_patient(self, patient_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("PUT", f"/patients/{patient_id}", json=payload)

    async def delete_patient(self, patient_id: int) -> Dict[str, Any]:
        return await self._data("DELETE", f"/patients/{patient_id}")

    # -- appointments ---------------------------------------------------------

    async def list_appointments(
        self,
        start: str | date,
        end: str | date,
        *,
        doctor_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[Dict[str, Any]]:
        params = _clean(
            {"start": start, "end": end, "doctorId": doctor_id, "patientId": patient_id, "status": status}
        )
        return await self._data("GET", "/appointments", params=params)

    async def get_appointment(self, appointment_id: int) -> Dict[str, Any]:
        return await self._data("GET", f"/appointments/{appointment_id}")

    async def create_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("POST", "/appointments", json=payload)

    async def update_appointment(self, appointment_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("PUT", f"/appointments/{appointment_id}", json=payload)

    async def delete_appointment(self, appointment_id: int) -> Dict[str, Any]:
        return await self._data("DELETE", f"/appointments/{appointment_id}")

    # -- billing --------------------------------------------------------------

    async def list_invoices(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
        patient_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        params = _clean(
            {
                "page": page,
                "limit": limit,
                "search": search,
                "status": status,
                "patientId": patient_id,
                "startDate": start_date,
                "endDate": end_date,
            }
        )
        return await self._data("GET", "/billing", params=params)

    async def get_invoice(self, invoice_id: int) -> Dict[str, Any]:
        return await self._data("GET", f"/billing/{invoice_id}")

    async def create_invoice(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("POST", "/billing", json=payload)

    async def update_invoice(self, invoice_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("PUT", f"/billing/{invoice_id}", json=payload)

    async def delete_invoice(self, invoice_id: int) -> Dict[str, Any]:
        return await self._data("DELETE", f"/billing/{invoice_id}")

    async def download_invoice_pdf(self, invoice_id: int) -> Tuple[str, bytes]:
        """Return ``(filename, pdf_bytes)`` for an invoice."""

        response = await self._send("GET", f"/billing/{invoice_id}/pdf")
        filename = f"invoice-{invoice_id}.pdf"
        disposition = response.headers.get("content-disposition", "")
        if 'filename="' in disposition:
            filename = disposition.split('filename="', 1)[1].rstrip('"')
        return filename, response.content

    # -- inventory ------------------------------------------------------------

    async def list_inventory(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        low_stock: Optional[bool] = None,
    ) -> Dict[str, Any]:
        params = _clean({"page": page, "limit": limit, "search": search, "lowStock": low_stock})
        return await self._data("GET", "/inventory", params=params)

    async def get_inventory_item(self, item_id: int) -> Dict[str, Any]:
        return await self._data("GET", f"/inventory/{item_id}")

    async def create_inventory_item(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("POST", "/inventory", json=payload)

    async def update_inventory_item(self, item_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("PUT", f"/inventory/{item_id}", json=payload)

    async def adjust_stock(self, item_id: int, amount: int, notes: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"amount": amount}
        if notes is not None:
            body["notes"] = notes
        return await self._data("POST", f"/inventory/{item_id}/adjust", json=body)

    async def delete_inventory_item(self, item_id: int) -> Dict[str, Any]:
        return await self._data("DELETE", f"/inventory/{item_id}")

    # -- users ----------------------------------------------------------------

    async def list_users(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = _clean({"page": page, "limit": limit, "search": search, "role": role, "status": status})
        return await self._data("GET", "/users", params=params)

    async def get_user(self, user_id: int) -> Dict[str, Any]:
        return await self._data("GET", f"/users/{user_id}")

    async def create_user(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("POST", "/users", json=payload)

    async def update_user(self, user_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("PUT", f"/users/{user_id}", json=payload)

    async def change_password(self, user_id: int, new_password: str) -> None:
        await self._send("PUT", f"/users/{user_id}/password", json={"newPassword": new_password})

    async def delete_user(self, user_id: int) -> Dict[str, Any]:
        return await self._data("DELETE", f"/users/{user_id}")

    # -- settings / dashboard -------------------------------------------------

    async def get_settings(self) -> Dict[str, Any]:
        return await self._data("GET", "/settings")

    async def update_settings(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._data("PUT", "/settings", json=payload)

    async def get_dashboard(
        self,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        return await self._data("GET", "/dashboard", params=_clean({"startDate": start_date, "endDate": end_date}))
