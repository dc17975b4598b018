from fastapi import status


async def test_patients_are_invisible_across_clinics(client, register_clinic, create_patient):
    alpha = await register_clinic("Alpha Clinic", "admin@alpha.example.com")
    beta = await register_clinic("Beta Clinic", "admin@beta.example.com")

    patient_a = await create_patient(alpha, "Alice Alpha")
    patient_b = await create_patient(beta, "Bob Beta")

    list_a = await client.get("/api/v1/patients", headers=alpha)
    names_a = [p["name"] for p in list_a.json()["data"]["items"]]
    assert names_a == ["Alice Alpha"]

    list_b = await client.get("/api/v1/patients", headers=beta)
    names_b = [p["name"] for p in list_b.json()["data"]["items"]]
    assert names_b == ["Bob Beta"]

    # Another clinic's row looks exactly like a missing one.
    get_as_beta = await client.get(f"/api/v1/patients/{patient_a['id']}", headers=beta)
    assert get_as_beta.status_code == status.HTTP_404_NOT_FOUND
    assert get_as_beta.json()["message"] == "Patient not found."

    put_as_beta = await client.put(
        f"/api/v1/patients/{patient_a['id']}", json={"name": "Hijacked"}, headers=beta
    )
    assert put_as_beta.status_code == status.HTTP_404_NOT_FOUND

    delete_as_alpha = await client.delete(f"/api/v1/patients/{patient_b['id']}", headers=alpha)
    assert delete_as_alpha.status_code == status.HTTP_404_NOT_FOUND

    still_there = await client.get(f"/api/v1/patients/{patient_a['id']}", headers=alpha)
    assert still_there.json()["data"]["name"] == "Alice Alpha"


async def test_cannot_book_other_clinics_patient_or_doctor(
    client, register_clinic, create_staff, create_patient
):
    alpha = await register_clinic("Alpha Clinic", "admin@alpha.example.com")
    beta = await register_clinic("Beta Clinic", "admin@beta.example.com")

    alpha_doctor, _ = await create_staff(alpha)
    alpha_patient = await create_patient(alpha)
    beta_doctor, _ = await create_staff(beta, email="doc@beta.example.com")
    beta_patient = await create_patient(beta)

    slot = {"start": "2025-03-01T10:00:00", "end": "2025-03-01T10:30:00"}

    response = await client.post(
        "/api/v1/appointments",
        json={"patientId": alpha_patient["id"], "doctorId": beta_doctor["id"], **slot},
        headers=alpha,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Doctor not found or does not belong to this clinic."

    response = await client.post(
        "/api/v1/appointments",
        json={"patientId": beta_patient["id"], "doctorId": alpha_doctor["id"], **slot},
        headers=alpha,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Patient not found or does not belong to this clinic."


async def test_invoices_and_inventory_are_scoped(client, register_clinic, create_patient):
    alpha = await register_clinic("Alpha Clinic", "admin@alpha.example.com")
    beta = await register_clinic("Beta Clinic", "admin@beta.example.com")
    patient = await create_patient(alpha)

    invoice = await client.post(
        "/api/v1/billing",
        json={
            "patientId": patient["id"],
            "issueDate": "2025-02-01",
            "dueDate": "2025-02-15",
            "items": [{"description": "Consultation", "quantity": 1, "unitPrice": 40}],
        },
        headers=alpha,
    )
    assert invoice.status_code == status.HTTP_201_CREATED
    invoice_id = invoice.json()["data"]["id"]

    item = await client.post("/api/v1/inventory", json={"name": "Gauze", "quantity": 5}, headers=alpha)
    item_id = item.json()["data"]["id"]

    assert (await client.get(f"/api/v1/billing/{invoice_id}", headers=beta)).status_code == 404
    assert (await client.get(f"/api/v1/billing/{invoice_id}/pdf", headers=beta)).status_code == 404
    assert (await client.delete(f"/api/v1/billing/{invoice_id}", headers=beta)).status_code == 404
    assert (
        await client.put(f"/api/v1/billing/{invoice_id}", json={"status": "paid"}, headers=beta)
    ).status_code == 404
    assert (
        await client.put(f"/api/v1/inventory/{item_id}", json={"name": "Bandage"}, headers=beta)
    ).status_code == 404
    assert (await client.delete(f"/api/v1/inventory/{item_id}", headers=beta)).status_code == 404
    assert (
        await client.post(f"/api/v1/inventory/{item_id}/adjust", json={"amount": 1}, headers=beta)
    ).status_code == 404
    assert (await client.get("/api/v1/billing", headers=beta)).json()["data"]["items"] == []
    assert (await client.get("/api/v1/inventory", headers=beta)).json()["data"]["items"] == []

    # Same item name is fine in another clinic.
    other = await client.post("/api/v1/inventory", json={"name": "Gauze", "quantity": 1}, headers=beta)
    assert other.status_code == status.HTTP_201_CREATED


async def test_appointments_and_staff_are_scoped(client, register_clinic, create_staff, create_patient):
    alpha = await register_clinic("Alpha Clinic", "admin@alpha.example.com")
    beta = await register_clinic("Beta Clinic", "admin@beta.example.com")

    doctor, _ = await create_staff(alpha)
    patient = await create_patient(alpha)
    booked = await client.post(
        "/api/v1/appointments",
        json={
            "patientId": patient["id"],
            "doctorId": doctor["id"],
            "start": "2025-03-01T10:00:00",
            "end": "2025-03-01T10:30:00",
        },
        headers=alpha,
    )
    assert booked.status_code == status.HTTP_201_CREATED
    appointment_id = booked.json()["data"]["id"]

    appointment_url = f"/api/v1/appointments/{appointment_id}"
    assert (await client.get(appointment_url, headers=beta)).status_code == 404
    assert (await client.put(appointment_url, json={"status": "cancelled"}, headers=beta)).status_code == 404
    assert (await client.delete(appointment_url, headers=beta)).status_code == 404

    user_url = f"/api/v1/users/{doctor['id']}"
    assert (await client.get(user_url, headers=beta)).status_code == 404
    assert (await client.put(user_url, json={"name": "Dr. Nobody"}, headers=beta)).status_code == 404
    assert (await client.delete(user_url, headers=beta)).status_code == 404

    listing = await client.get("/api/v1/appointments?start=2025-03-01&end=2025-03-02", headers=beta)
    assert listing.status_code == status.HTTP_200_OK
    assert listing.json()["data"] == []

    untouched = await client.get(appointment_url, headers=alpha)
    assert untouched.json()["data"]["status"] == "scheduled"
    assert (await client.get(user_url, headers=alpha)).json()["data"]["name"] == "Dr. Ada Obi"
