from datetime import date, timedelta

import pytest

from src.clinicadmin.domain.models.common import parse_calendar_bound
from src.clinicadmin.infra.db.models import ClinicORM, ClinicSettingsORM, InvoiceORM, PatientORM, UserORM
from src.clinicadmin.infra.db.seed import DEMO_ADMIN_EMAIL, seed_demo_data
from src.clinicadmin.infra.db.session import database
from src.clinicadmin.services.auth.credentials import hash_password, parse_expires_in, verify_password
from src.clinicadmin.services.auth.service import auth_service
from src.clinicadmin.services.billing.service import billing_service, line_total
from src.clinicadmin.services.settings.service import settings_service


@pytest.mark.parametrize(
    "value, expected",
    [
        ("1d", timedelta(days=1)),
        ("12h", timedelta(hours=12)),
        ("30m", timedelta(minutes=30)),
        ("0d", timedelta(days=1)),
        ("forever", timedelta(days=1)),
    ],
)
def test_parse_expires_in(value, expected):
    assert parse_expires_in(value) == expected


def test_password_hashing_round_trip():
    stored = hash_password("password123")
    assert stored != "password123"
    assert verify_password("password123", stored)
    assert not verify_password("password124", stored)
    assert not verify_password("password123", "not-a-bcrypt-hash")


def test_parse_calendar_bound():
    assert parse_calendar_bound("2025-01-01").isoformat() == "2025-01-01T00:00:00"
    assert parse_calendar_bound("2025-01-01T09:30:00+02:00").isoformat() == "2025-01-01T07:30:00"
    with pytest.raises(ValueError):
        parse_calendar_bound("01/02/2025")


def test_line_total_rounds_to_cents():
    assert line_total(3, 0.1) == 0.3
    assert line_total(2, 50.0) == 100.0


def test_next_invoice_number_restarts_each_year():
    with database.session() as session:
        clinic = ClinicORM(name="Numbering Clinic")
        session.add(clinic)
        session.flush()
        patient = PatientORM(tenant_id=clinic.id, name="Nina Numbers")
        session.add(patient)
        session.flush()
        session.add(
            InvoiceORM(
                tenant_id=clinic.id,
                patient_id=patient.id,
                invoice_number="INV-2024-0041",
                issue_date=date(2024, 12, 30),
                due_date=date(2025, 1, 30),
                total_amount=10.0,
            )
        )
        session.flush()

        assert billing_service.next_invoice_number(session, clinic.id, today=date(2024, 12, 31)) == "INV-2024-0042"
        assert billing_service.next_invoice_number(session, clinic.id, today=date(2025, 1, 1)) == "INV-2025-0001"
        assert billing_service.next_invoice_number(session, "clinic_other", today=date(2024, 12, 31)) == "INV-2024-0001"


def test_seed_demo_data_is_idempotent():
    tenant_id = seed_demo_data()
    assert tenant_id is not None
    assert seed_demo_data() is None

    with database.session() as session:
        assert session.query(UserORM).filter(UserORM.tenant_id == tenant_id).count() == 4
        assert session.query(PatientORM).filter(PatientORM.tenant_id == tenant_id).count() == 4

    result = auth_service.login(DEMO_ADMIN_EMAIL, "password123")
    assert result.user.tenant_id == tenant_id


def test_next_invoice_number_continues_past_four_digits():
    with database.session() as session:
        clinic = ClinicORM(name="Busy Clinic")
        session.add(clinic)
        session.flush()
        patient = PatientORM(tenant_id=clinic.id, name="Bea Busy")
        session.add(patient)
        session.flush()
        for number in ("INV-2025-9999", "INV-2025-10000"):
            session.add(
                InvoiceORM(
                    tenant_id=clinic.id,
                    patient_id=patient.id,
                    invoice_number=number,
                    issue_date=date(2025, 6, 1),
                    due_date=date(2025, 6, 30),
                    total_amount=10.0,
                )
            )
        session.flush()

        assert billing_service.next_invoice_number(session, clinic.id, today=date(2025, 6, 2)) == "INV-2025-10001"


def test_settings_first_access_survives_concurrent_create(monkeypatch):
    with database.session() as session:
        clinic = ClinicORM(name="Race Clinic")
        session.add(clinic)
        session.flush()
        tenant_id = clinic.id

    created = settings_service.get_settings(tenant_id)

    # The first lookup misses as if another request had not committed yet.
    real_find = settings_service._find
    misses = []

    def stale_find(session, tenant):
        if not misses:
            misses.append(tenant)
            return None
        return real_find(session, tenant)

    monkeypatch.setattr(settings_service, "_find", stale_find)

    again = settings_service.get_settings(tenant_id)
    assert misses == [tenant_id]
    assert again.id == created.id

    with database.session() as session:
        assert session.query(ClinicSettingsORM).filter(ClinicSettingsORM.tenant_id == tenant_id).count() == 1
