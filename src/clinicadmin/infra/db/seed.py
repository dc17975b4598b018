"""Demo data for local development.

Run with ``python -m src.clinicadmin.infra.db.seed`` or set
``SEED_DEMO_DATA=true`` before starting the API. Seeding is skipped when the
demo admin already exists, so repeated runs leave the database unchanged.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select

from src.clinicadmin.config import settings
from src.clinicadmin.domain.models.settings import OpeningHours
from src.clinicadmin.infra.db.models import (
    ClinicORM,
    ClinicSettingsORM,
    InventoryItemORM,
    PatientORM,
    UserORM,
)
from src.clinicadmin.infra.db.session import database
from src.clinicadmin.services.auth.credentials import hash_password


logger = logging.getLogger("clinicadmin.db")

DEMO_CLINIC_NAME = "Sunrise Family Clinic"
DEMO_ADMIN_EMAIL = "admin@sunrise.example.com"
DEMO_PASSWORD = "password123"

_STAFF = [
    ("Dr. Amina Yusuf", "amina.yusuf@sunrise.example.com", "doctor", "General Practice", "5550100001"),
    ("Dr. Daniel Okafor", "daniel.okafor@sunrise.example.com", "doctor", "Pediatrics", "5550100002"),
    ("Grace Mensah", "grace.mensah@sunrise.example.com", "reception", None, "5550100003"),
]

_PATIENTS = [
    ("Samuel Tesfaye", "samuel.t@example.com", "5550200001", date(1985, 4, 12), "male", "O+"),
    ("Hana Bekele", "hana.b@example.com", "5550200002", date(1992, 9, 3), "female", "A-"),
    ("Lucas Moreau", None, "5550200003", date(2016, 1, 27), "male", None),
    ("Priya Raman", "priya.r@example.com", None, date(1978, 11, 19), "female", "B+"),
]

# (name, category, quantity, low_stock_threshold, supplier)
_INVENTORY = [
    ("Disposable Gloves (box)", "Consumables", 40, 10, "MedSupply Co."),
    ("Surgical Masks (box)", "Consumables", 8, 10, "MedSupply Co."),
    ("Paracetamol 500mg", "Medication", 120, 30, "PharmaDirect"),
    ("Digital Thermometer", "Equipment", 3, 2, None),
]


def seed_demo_data(password: str = DEMO_PASSWORD) -> Optional[str]:
    """Create the demo clinic and return its tenant id (``None`` if it already exists)."""

    with database.session() as session:
        existing = session.scalars(select(UserORM).where(UserORM.email == DEMO_ADMIN_EMAIL)).first()
        if existing is not None:
            logger.info("Demo data already present for tenant %s", existing.tenant_id)
            return None

        clinic = ClinicORM(name=DEMO_CLINIC_NAME, address="12 Harbour Road, Springfield", phone="5550100000")
        session.add(clinic)
        session.flush()

        password_hash = hash_password(password)
        session.add(
            UserORM(
                tenant_id=clinic.id,
                name="Clinic Admin",
                email=DEMO_ADMIN_EMAIL,
                password_hash=password_hash,
                role="admin",
            )
        )
        for name, email, role, specialty, phone in _STAFF:
            session.add(
                UserORM(
                    tenant_id=clinic.id,
                    name=name,
                    email=email,
                    password_hash=password_hash,
                    role=role,
                    specialty=specialty,
                    phone=phone,
                )
            )

        for name, email, phone, dob, gender, blood_group in _PATIENTS:
            session.add(
                PatientORM(
                    tenant_id=clinic.id,
                    name=name,
                    email=email,
                    phone=phone,
                    dob=dob,
                    gender=gender,
                    blood_group=blood_group,
                )
            )

        restocked = date.today() - timedelta(days=14)
        for name, category, quantity, threshold, supplier in _INVENTORY:
            session.add(
                InventoryItemORM(
                    tenant_id=clinic.id,
                    name=name,
                    category=category,
                    quantity=quantity,
                    low_stock_threshold=threshold,
                    supplier=supplier,
                    last_restock_date=restocked,
                )
            )

        session.add(
            ClinicSettingsORM(
                tenant_id=clinic.id,
                clinic_name=DEMO_CLINIC_NAME,
                currency_symbol=settings.default_currency_symbol,
                opening_hours=OpeningHours.default().model_dump(by_alias=True),
                holidays=[],
            )
        )
        tenant_id = clinic.id

    logger.info("Seeded demo clinic %s (admin: %s)", tenant_id, DEMO_ADMIN_EMAIL)
    return tenant_id


if __name__ == "__main__":  # pragma: no cover
    from src.clinicadmin.infra.db.bootstrap import init_database

    logging.basicConfig(level=settings.log_level)
    init_database(seed=False)
    seed_demo_data()
