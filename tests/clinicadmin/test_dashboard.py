from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi import status

from src.clinicadmin.errors import ApiError
from src.clinicadmin.domain.models.user import CurrentUser
from src.clinicadmin.services.dashboard.service import dashboard_service, resolve_range


def _iso(moment: datetime) -> str:
    return moment.replace(microsecond=0).isoformat()


async def test_dashboard_summary(client, admin_headers, create_staff, create_patient):
    doctor_a, doctor_a_headers = await create_staff(admin_headers)
    doctor_b, _ = await create_staff(admin_headers, name="Dr. Ben Lee", email="ben.lee@alpha.example.com")
    patient = await create_patient(admin_headers)

    now = datetime.now(timezone.utc)
    tomorrow = now.replace(hour=10, minute=0) + timedelta(days=1)
    yesterday = now.replace(hour=10, minute=0) - timedelta(days=1)

    async def book(doctor, start):
        response = await client.post(
            "/api/v1/appointments",
            json={
                "patientId": patient["id"],
                "doctorId": doctor["id"],
                "start": _iso(start),
                "end": _iso(start + timedelta(minutes=30)),
            },
            headers=admin_headers,
        )
        return response.json()["data"]

    await book(doctor_a, tomorrow)
    latest = await book(doctor_b, tomorrow + timedelta(hours=1))
    past = await book(doctor_a, yesterday)
    await client.put(f"/api/v1/appointments/{past['id']}", json={"status": "completed"}, headers=admin_headers)

    today = now.date()
    for status_value, price in [("paid", 130.0), ("pending", 45.0)]:
        await client.post(
            "/api/v1/billing",
            json={
                "patientId": patient["id"],
                "issueDate": today.isoformat(),
                "dueDate": (today + timedelta(days=30)).isoformat(),
                "status": status_value,
                "items": [{"description": "Visit", "quantity": 1, "unitPrice": price}],
            },
            headers=admin_headers,
        )
    await client.post("/api/v1/inventory", json={"name": "Masks", "quantity": 1}, headers=admin_headers)

    window = f"startDate={(today - timedelta(days=2)).isoformat()}&endDate={(today + timedelta(days=2)).isoformat()}"
    response = await client.get(f"/api/v1/dashboard?{window}", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]

    assert data["kpis"] == {
        "totalPatients": 1,
        "totalDoctors": 2,
        "upcomingAppointments": 2,
        "todaySales": 130.0,
        "pendingInvoices": 1,
        "lowStockItems": 1,
    }
    assert data["salesReport"] == [{"date": today.isoformat(), "value": 130.0}]
    assert sum(point["value"] for point in data["newPatientsReport"]) == 1
    assert data["serviceReport"] == [
        {"doctorId": doctor_a["id"], "name": "Dr. Ada Obi", "value": 1, "color": "#FF6384"}
    ]
    assert [a["id"] for a in data["recentAppointments"]][0] == latest["id"]
    assert len(data["recentAppointments"]) == 3
    assert [p["name"] for p in data["recentPatients"]] == ["John Carter"]

    # Doctors only count their own upcoming appointments.
    as_doctor = await client.get(f"/api/v1/dashboard?{window}", headers=doctor_a_headers)
    assert as_doctor.status_code == status.HTTP_200_OK
    assert as_doctor.json()["data"]["kpis"]["upcomingAppointments"] == 1


async def test_dashboard_range_validation(client, admin_headers):
    inverted = await client.get("/api/v1/dashboard?startDate=2025-02-01&endDate=2025-01-01", headers=admin_headers)
    assert inverted.status_code == status.HTTP_400_BAD_REQUEST

    too_long = await client.get("/api/v1/dashboard?startDate=2024-01-01&endDate=2025-06-01", headers=admin_headers)
    assert too_long.status_code == status.HTTP_400_BAD_REQUEST

    not_a_date = await client.get("/api/v1/dashboard?startDate=soon", headers=admin_headers)
    assert not_a_date.status_code == status.HTTP_400_BAD_REQUEST


def test_resolve_range_defaults_to_last_thirty_days():
    start, end = resolve_range(None, None, today=date(2025, 3, 31))
    assert (start, end) == (date(2025, 3, 1), date(2025, 3, 31))

    start, end = resolve_range(None, date(2025, 1, 31))
    assert start == date(2025, 1, 1)

    with pytest.raises(ApiError):
        resolve_range(date(2025, 1, 1), date(2026, 1, 3))


async def test_today_follows_the_utc_clock(client, admin_headers, create_staff, create_patient):
    doctor, _ = await create_staff(admin_headers)
    patient = await create_patient(admin_headers)
    me = (await client.get("/api/v1/auth/me", headers=admin_headers)).json()["data"]

    await client.post(
        "/api/v1/appointments",
        json={
            "patientId": patient["id"],
            "doctorId": doctor["id"],
            "start": "2025-06-02T08:00:00",
            "end": "2025-06-02T08:30:00",
        },
        headers=admin_headers,
    )
    await client.post(
        "/api/v1/billing",
        json={
            "patientId": patient["id"],
            "issueDate": "2025-06-01",
            "dueDate": "2025-06-30",
            "status": "paid",
            "items": [{"description": "Late visit", "quantity": 1, "unitPrice": 80}],
        },
        headers=admin_headers,
    )

    summary = dashboard_service.get_summary(
        me["tenantId"], CurrentUser.model_validate(me), now=datetime(2025, 6, 1, 23, 30)
    )
    assert summary.end_date == date(2025, 6, 1)
    assert summary.start_date == date(2025, 5, 2)
    assert summary.kpis.today_sales == 80.0
    assert summary.kpis.upcoming_appointments == 1
