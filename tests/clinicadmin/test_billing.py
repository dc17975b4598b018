from datetime import date

import pytest
from fastapi import status


@pytest.fixture
async def patient(admin_headers, create_patient):
    return await create_patient(admin_headers, "Jane Doe", email="jane@example.com", address="4 Elm Road")


def _invoice_body(patient_id, **overrides):
    body = {
        "patientId": patient_id,
        "issueDate": "2025-01-10",
        "dueDate": "2025-02-10",
        "items": [
            {"description": "Consultation", "quantity": 2, "unitPrice": 50.00},
            {"description": "Blood test", "quantity": 1, "unitPrice": 30.00},
        ],
    }
    body.update(overrides)
    return body


async def test_create_invoice_computes_total_and_number(client, admin_headers, patient):
    response = await client.post("/api/v1/billing", json=_invoice_body(patient["id"]), headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED
    invoice = response.json()["data"]
    assert invoice["totalAmount"] == 130.00
    assert invoice["invoiceNumber"] == f"INV-{date.today().year}-0001"
    assert invoice["status"] == "pending"
    assert [item["total"] for item in invoice["items"]] == [100.00, 30.00]
    assert invoice["patientName"] == "Jane Doe"
    assert invoice["patientAddress"] == "4 Elm Road"


async def test_invoice_numbers_strictly_increase(client, admin_headers, patient):
    numbers = []
    for _ in range(3):
        response = await client.post("/api/v1/billing", json=_invoice_body(patient["id"]), headers=admin_headers)
        numbers.append(response.json()["data"]["invoiceNumber"])

    year = date.today().year
    assert numbers == [f"INV-{year}-0001", f"INV-{year}-0002", f"INV-{year}-0003"]


async def test_invoice_numbers_are_per_clinic(client, register_clinic, create_patient):
    alpha = await register_clinic("Alpha Clinic", "admin@alpha.example.com")
    beta = await register_clinic("Beta Clinic", "admin@beta.example.com")
    alpha_patient = await create_patient(alpha)
    beta_patient = await create_patient(beta)

    first = await client.post("/api/v1/billing", json=_invoice_body(alpha_patient["id"]), headers=alpha)
    second = await client.post("/api/v1/billing", json=_invoice_body(beta_patient["id"]), headers=beta)
    assert first.json()["data"]["invoiceNumber"] == second.json()["data"]["invoiceNumber"]


async def test_fractional_prices_round_to_cents(client, admin_headers, patient):
    body = _invoice_body(patient["id"], items=[{"description": "Syringes", "quantity": 3, "unitPrice": 0.1}])
    response = await client.post("/api/v1/billing", json=body, headers=admin_headers)
    assert response.json()["data"]["totalAmount"] == 0.3


async def test_create_invoice_validation(client, admin_headers, patient):
    no_items = await client.post(
        "/api/v1/billing", json=_invoice_body(patient["id"], items=[]), headers=admin_headers
    )
    assert no_items.status_code == status.HTTP_400_BAD_REQUEST

    zero_quantity = await client.post(
        "/api/v1/billing",
        json=_invoice_body(patient["id"], items=[{"description": "Visit", "quantity": 0, "unitPrice": 10}]),
        headers=admin_headers,
    )
    assert zero_quantity.status_code == status.HTTP_400_BAD_REQUEST

    unknown_patient = await client.post("/api/v1/billing", json=_invoice_body(9999), headers=admin_headers)
    assert unknown_patient.status_code == status.HTTP_404_NOT_FOUND


async def test_update_replaces_items_and_recomputes_total(client, admin_headers, patient):
    created = (
        await client.post("/api/v1/billing", json=_invoice_body(patient["id"]), headers=admin_headers)
    ).json()["data"]

    response = await client.put(
        f"/api/v1/billing/{created['id']}",
        json={"status": "paid", "items": [{"description": "Follow-up", "quantity": 3, "unitPrice": 12.5}]},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    updated = response.json()["data"]
    assert updated["status"] == "paid"
    assert updated["totalAmount"] == 37.50
    assert [item["description"] for item in updated["items"]] == ["Follow-up"]
    assert updated["invoiceNumber"] == created["invoiceNumber"]

    notes_only = await client.put(
        f"/api/v1/billing/{created['id']}", json={"notes": "Paid in cash"}, headers=admin_headers
    )
    assert notes_only.json()["data"]["totalAmount"] == 37.50
    assert notes_only.json()["data"]["notes"] == "Paid in cash"


async def test_list_invoices_filters(client, admin_headers, patient, create_patient):
    other = await create_patient(admin_headers, "Zed Other")
    await client.post("/api/v1/billing", json=_invoice_body(patient["id"]), headers=admin_headers)
    await client.post(
        "/api/v1/billing",
        json=_invoice_body(other["id"], issueDate="2025-03-01", status="paid"),
        headers=admin_headers,
    )

    everything = await client.get("/api/v1/billing", headers=admin_headers)
    items = everything.json()["data"]["items"]
    # Newest issue date first.
    assert [i["patientName"] for i in items] == ["Zed Other", "Jane Doe"]

    paid = await client.get("/api/v1/billing?status=paid", headers=admin_headers)
    assert [i["patientName"] for i in paid.json()["data"]["items"]] == ["Zed Other"]

    by_name = await client.get("/api/v1/billing?search=jane", headers=admin_headers)
    assert [i["patientName"] for i in by_name.json()["data"]["items"]] == ["Jane Doe"]

    by_number = await client.get("/api/v1/billing?search=-0002", headers=admin_headers)
    assert [i["patientName"] for i in by_number.json()["data"]["items"]] == ["Zed Other"]

    in_range = await client.get("/api/v1/billing?startDate=2025-02-01&endDate=2025-03-31", headers=admin_headers)
    assert [i["patientName"] for i in in_range.json()["data"]["items"]] == ["Zed Other"]


async def test_invoice_pdf_download(client, admin_headers, patient):
    created = (
        await client.post("/api/v1/billing", json=_invoice_body(patient["id"]), headers=admin_headers)
    ).json()["data"]

    response = await client.get(f"/api/v1/billing/{created['id']}/pdf", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == (
        f'attachment; filename="Invoice-{created["invoiceNumber"]}.pdf"'
    )
    assert response.content.startswith(b"%PDF")


async def test_only_admin_deletes_invoices(client, admin_headers, create_staff, patient):
    _, reception_headers = await create_staff(
        admin_headers, role="reception", name="Rita Desk", email="rita@alpha.example.com", specialty=None
    )
    created = (
        await client.post("/api/v1/billing", json=_invoice_body(patient["id"]), headers=reception_headers)
    ).json()["data"]

    forbidden = await client.delete(f"/api/v1/billing/{created['id']}", headers=reception_headers)
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    deleted = await client.delete(f"/api/v1/billing/{created['id']}", headers=admin_headers)
    assert deleted.status_code == status.HTTP_200_OK
    assert (await client.get(f"/api/v1/billing/{created['id']}", headers=admin_headers)).status_code == 404
